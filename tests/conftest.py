"""
Shared test configuration and fixtures.

Provides local mirror fixtures on temp dirs and an in-memory remote store
that records every call and can be switched into a failing state.
"""

from __future__ import annotations

import tempfile
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest

from mindplace.storage import LocalMirrorStore, StoreConfig
from tests.fakes import FakeRemoteStore


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir: Path) -> StoreConfig:
    """Store config pointing the local mirror at a temp dir."""
    return StoreConfig(api_url="http://mindplace.test", local_path=temp_dir)


@pytest.fixture
async def local_store(config: StoreConfig) -> AsyncIterator[LocalMirrorStore]:
    """Local mirror on a temp dir."""
    store = LocalMirrorStore(config)
    yield store
    await store.close()


@pytest.fixture
def fake_remote() -> FakeRemoteStore:
    """In-memory remote store."""
    return FakeRemoteStore()
