"""Tests for local ID generation."""

from __future__ import annotations

import re

from mindplace.id_utils import is_local_id, local_snippet_id, local_topic_id


class TestLocalIds:
    def test_snippet_id_format(self) -> None:
        assert re.fullmatch(r"local-\d{13,}-[0-9a-z]{7}", local_snippet_id())

    def test_topic_id_format(self) -> None:
        assert re.fullmatch(r"topic-\d{13,}-[0-9a-z]{7}", local_topic_id())

    def test_ids_are_unique(self) -> None:
        ids = {local_snippet_id() for _ in range(500)}
        assert len(ids) == 500


class TestIsLocalId:
    def test_generated_ids_are_local(self) -> None:
        assert is_local_id(local_snippet_id())
        assert is_local_id(local_topic_id())

    def test_seed_topic_ids_are_local(self) -> None:
        assert is_local_id("topic-2")

    def test_remote_ids_are_not_local(self) -> None:
        assert not is_local_id("3f2b8c1e-6a4d-4c1b-9e7a-1d2c3b4a5f6e")
        assert not is_local_id("clx9q2k0p0000abcd1234")
        assert not is_local_id("local")
