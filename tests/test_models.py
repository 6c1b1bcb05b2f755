"""Tests for snippet and topic models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from mindplace.exceptions import InvalidInputError
from mindplace.models import (
    LibrarySnapshot,
    Snippet,
    Topic,
    attach_topics,
    filter_by_topic,
    parse_iso,
    sort_snippets,
    sort_topics,
    to_iso,
    validate_snippet_input,
    validate_topic_input,
)


class TestTimestamps:
    """Tests for ISO-8601 helpers."""

    def test_to_iso_uses_z_suffix_and_milliseconds(self) -> None:
        value = datetime(2024, 3, 1, 12, 30, 45, 123456, tzinfo=UTC)
        assert to_iso(value) == "2024-03-01T12:30:45.123Z"

    def test_to_iso_converts_other_zones_to_utc(self) -> None:
        value = datetime(2024, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_iso(value) == "2024-03-01T12:00:00.000Z"

    def test_parse_iso_accepts_javascript_format(self) -> None:
        parsed = parse_iso("2024-03-01T12:30:45.123Z")
        assert parsed == datetime(2024, 3, 1, 12, 30, 45, 123000, tzinfo=UTC)

    def test_parse_iso_treats_naive_as_utc(self) -> None:
        parsed = parse_iso("2024-03-01T12:30:45")
        assert parsed.tzinfo is UTC


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_snippet_uses_camel_case_keys(self) -> None:
        snippet = Snippet(
            id="s1",
            name="Hello",
            content="# Hi",
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
            topic_id="t1",
            topic=Topic(id="t1", name="Notes"),
        )
        data = snippet.to_dict()

        assert data["createdAt"] == "2024-01-01T00:00:00.000Z"
        assert data["topicId"] == "t1"
        assert data["topic"] == {"id": "t1", "name": "Notes"}

    def test_snippet_without_topic_omits_keys(self) -> None:
        snippet = Snippet(id="s1", name="Hello", content="# Hi")
        data = snippet.to_dict()

        assert "topicId" not in data
        assert "topic" not in data

    def test_snippet_to_dict_can_drop_topic_projection(self) -> None:
        snippet = Snippet(
            id="s1", name="a", content="b", topic_id="t1", topic=Topic(id="t1", name="x")
        )
        data = snippet.to_dict(include_topic=False)

        assert data["topicId"] == "t1"
        assert "topic" not in data

    def test_topic_count_uses_wire_shape(self) -> None:
        topic = Topic(id="t1", name="Notes", snippet_count=3)

        assert topic.to_dict()["_count"] == {"snippets": 3}
        assert Topic.from_dict(topic.to_dict()).snippet_count == 3
        assert "_count" not in topic.to_dict(include_count=False)

    def test_snippet_from_dict_with_embedded_topic(self) -> None:
        snippet = Snippet.from_dict(
            {
                "id": "s1",
                "name": "Hello",
                "content": "# Hi",
                "createdAt": "2024-01-01T00:00:00.000Z",
                "topicId": "t1",
                "topic": {"id": "t1", "name": "Notes"},
            }
        )

        assert snippet.topic_id == "t1"
        assert snippet.topic is not None
        assert snippet.topic.name == "Notes"

    def test_library_snapshot_shape(self) -> None:
        snapshot = LibrarySnapshot(snippets=[], topics=[Topic(id="t", name="n")])
        assert snapshot.to_dict() == {
            "snippets": [],
            "topics": [{"id": "t", "name": "n"}],
            "usingLocalStorage": False,
        }


class TestValidation:
    """Tests for input validation."""

    @pytest.mark.parametrize(
        ("name", "content", "field"),
        [("", "body", "name"), (None, "body", "name"), ("title", "", "content")],
    )
    def test_snippet_rejects_empty_fields(self, name, content, field) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            validate_snippet_input(name, content)
        assert exc_info.value.field == field

    def test_snippet_accepts_non_empty_fields(self) -> None:
        validate_snippet_input("title", "body")

    def test_topic_rejects_empty_name(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_topic_input("")


class TestProjections:
    """Tests for topic joins, filtering and ordering."""

    def test_attach_topics_uses_current_topic_name(self) -> None:
        stale = Snippet(
            id="s1", name="a", content="b", topic_id="t1", topic=Topic(id="t1", name="Old")
        )
        [snippet] = attach_topics([stale], [Topic(id="t1", name="Renamed", snippet_count=4)])

        assert snippet.topic is not None
        assert snippet.topic.name == "Renamed"
        assert snippet.topic.snippet_count is None

    def test_attach_topics_drops_unresolved_snapshot(self) -> None:
        stale = Snippet(
            id="s1", name="a", content="b", topic_id="gone", topic=Topic(id="gone", name="x")
        )
        [snippet] = attach_topics([stale], [])

        assert snippet.topic is None
        assert snippet.topic_id == "gone"

    def test_filter_by_topic(self) -> None:
        snippets = [
            Snippet(id="1", name="a", content="x", topic_id="t1"),
            Snippet(id="2", name="b", content="x", topic=Topic(id="t1", name="T")),
            Snippet(id="3", name="c", content="x", topic_id="t2"),
            Snippet(id="4", name="d", content="x"),
        ]

        assert [s.id for s in filter_by_topic(snippets, "t1")] == ["1", "2"]
        assert len(filter_by_topic(snippets, "all")) == 4
        assert len(filter_by_topic(snippets, None)) == 4

    def test_sorting(self) -> None:
        now = datetime.now(UTC)
        old = Snippet(id="old", name="a", content="x", created_at=now - timedelta(days=1))
        new = Snippet(id="new", name="b", content="x", created_at=now)

        assert [s.id for s in sort_snippets([old, new])] == ["new", "old"]
        assert [t.name for t in sort_topics([Topic("2", "Notes"), Topic("1", "General")])] == [
            "General",
            "Notes",
        ]
