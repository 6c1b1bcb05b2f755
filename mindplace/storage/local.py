"""
Local mirror store.

Keeps snippets and topics as two JSON files on disk so the library stays
usable with no network. Failures to read or write are reported to an
optional callback and never raised to callers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from ..exceptions import InvalidInputError, LocalDataParseError, MindPlaceError, PersistenceError
from ..id_utils import local_snippet_id, local_topic_id
from ..logging_utils import get_store_logger
from ..models import (
    Snippet,
    Topic,
    attach_topics,
    utc_now,
    validate_snippet_input,
    validate_topic_input,
)
from .base import StoreConfig
from .file_ops import read_collection, write_collection

logger = get_store_logger("local")

SNIPPETS_FILE = "mindplace_snippets.json"
TOPICS_FILE = "mindplace_topics.json"

DEFAULT_TOPICS = (
    Topic(id="topic-1", name="General", description="General snippets", icon="folder"),
    Topic(id="topic-2", name="Code Snippets", description="Code examples and snippets", icon="code"),
    Topic(id="topic-3", name="Notes", description="Notes and reminders", icon="note"),
)


class LocalMirrorStore:
    """Local file-based mirror of snippets and topics.

    Directory structure:
    {local_dir}/
      mindplace_snippets.json
      mindplace_topics.json

    Each file holds ``{"version": 1, "items": [...]}``. Collections are
    rewritten whole on every change; mutating operations hold a single
    lock so their read-modify-write cycles never interleave.
    """

    def __init__(
        self,
        config: StoreConfig,
        on_error: Callable[[MindPlaceError], None] | None = None,
    ) -> None:
        """Initialize the local mirror.

        Args:
            config: Store configuration (uses ``local_dir``)
            on_error: Callback for swallowed parse and persistence failures
        """
        self.config = config
        self.base_path = config.local_dir
        self.on_error = on_error
        self._write_lock = asyncio.Lock()

    @property
    def snippets_path(self) -> Path:
        return self.base_path / SNIPPETS_FILE

    @property
    def topics_path(self) -> Path:
        return self.base_path / TOPICS_FILE

    def _report(self, error: MindPlaceError) -> None:
        if self.on_error:
            self.on_error(error)

    # Whole-collection access

    async def load_snippets(self) -> list[Snippet]:
        """Load persisted snippets, or an empty list if none are readable."""
        try:
            items = await read_collection(self.snippets_path)
            return [Snippet.from_dict(item) for item in items or []]
        except LocalDataParseError as e:
            logger.warning(f"Ignoring unreadable local snippets: {e}")
            self._report(e)
        except (KeyError, TypeError, ValueError) as e:
            error = LocalDataParseError(str(self.snippets_path), f"invalid snippet record: {e}")
            logger.warning(f"Ignoring unreadable local snippets: {error}")
            self._report(error)
        return []

    async def load_topics(self) -> list[Topic]:
        """Load persisted topics, seeding the defaults on first use."""
        try:
            items = await read_collection(self.topics_path)
        except LocalDataParseError as e:
            logger.warning(f"Ignoring unreadable local topics: {e}")
            self._report(e)
            return []

        if items is None:
            topics = [replace(t, created_at=utc_now()) for t in DEFAULT_TOPICS]
            logger.info("Seeding default local topics")
            await self.save_topics(topics)
            return topics

        try:
            return [Topic.from_dict(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            error = LocalDataParseError(str(self.topics_path), f"invalid topic record: {e}")
            logger.warning(f"Ignoring unreadable local topics: {error}")
            self._report(error)
            return []

    async def save_snippets(self, snippets: list[Snippet]) -> bool:
        """Overwrite the persisted snippet collection.

        Returns:
            False if the collection could not be written
        """
        items = [s.to_dict(include_topic=False) for s in snippets]
        return await self._save(self.snippets_path, items)

    async def save_topics(self, topics: list[Topic]) -> bool:
        """Overwrite the persisted topic collection."""
        items = [t.to_dict(include_count=False) for t in topics]
        return await self._save(self.topics_path, items)

    async def _save(self, path: Path, items: list[dict]) -> bool:
        try:
            await write_collection(path, items)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to persist local data: {e}")
            self._report(e)
            return False

    # Entity operations

    async def create_snippet(
        self,
        name: str,
        content: str,
        topic_id: str | None = None,
    ) -> Snippet:
        """Create a snippet with a fresh local ID.

        A ``topic_id`` that does not resolve against the local topics is
        dropped, leaving the snippet uncategorized.
        """
        validate_snippet_input(name, content)
        async with self._write_lock:
            topics = await self.load_topics()
            if topic_id and not any(t.id == topic_id for t in topics):
                logger.debug(f"Unknown local topic {topic_id}, creating snippet uncategorized")
                topic_id = None
            snippet = Snippet(
                id=local_snippet_id(),
                name=name,
                content=content,
                created_at=utc_now(),
                topic_id=topic_id,
            )
            snippets = await self.load_snippets()
            snippets.append(snippet)
            await self.save_snippets(snippets)

        logger.debug(f"Created local snippet {snippet.id}")
        return attach_topics([snippet], topics)[0]

    async def create_topic(
        self,
        name: str,
        description: str | None = None,
        icon: str | None = None,
    ) -> Topic:
        """Create a topic with a fresh local ID."""
        validate_topic_input(name)
        async with self._write_lock:
            topic = Topic(
                id=local_topic_id(),
                name=name,
                description=description,
                icon=icon,
                created_at=utc_now(),
            )
            topics = await self.load_topics()
            topics.append(topic)
            await self.save_topics(topics)

        logger.debug(f"Created local topic {topic.id}")
        return topic

    async def find_snippet_by_id(self, snippet_id: str) -> Snippet | None:
        """Find a snippet by ID, with its topic attached."""
        for snippet in await self.load_snippets():
            if snippet.id == snippet_id:
                return attach_topics([snippet], await self.load_topics())[0]
        return None

    async def find_topic_by_id(self, topic_id: str) -> Topic | None:
        """Find a topic by ID."""
        for topic in await self.load_topics():
            if topic.id == topic_id:
                return topic
        return None

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic and uncategorize every snippet that referenced it.

        Snippets are rewritten before the topic list, so the persisted state
        never holds a snippet pointing at a missing topic.

        Returns:
            True if the topic existed and was removed; False if it is missing
            or its snippets could not be rewritten, in which case the topic
            is kept
        """
        async with self._write_lock:
            topics = await self.load_topics()
            remaining = [t for t in topics if t.id != topic_id]
            if len(remaining) == len(topics):
                return False

            snippets = await self.load_snippets()
            reassigned = 0
            for i, snippet in enumerate(snippets):
                if snippet.topic_id == topic_id:
                    snippets[i] = replace(snippet, topic_id=None, topic=None)
                    reassigned += 1

            if reassigned and not await self.save_snippets(snippets):
                logger.error(f"Keeping local topic {topic_id}, its snippets could not be rewritten")
                return False
            await self.save_topics(remaining)

        logger.info(f"Deleted local topic {topic_id} ({reassigned} snippets uncategorized)")
        return True

    async def reorder_topics(self, from_index: int, to_index: int) -> list[Topic]:
        """Move one topic to a new position and persist the new order.

        Raises:
            InvalidInputError: If either index is out of range
        """
        async with self._write_lock:
            topics = await self.load_topics()
            if not 0 <= from_index < len(topics):
                raise InvalidInputError("from_index", "is out of range")
            if not 0 <= to_index < len(topics):
                raise InvalidInputError("to_index", "is out of range")

            topics.insert(to_index, topics.pop(from_index))
            await self.save_topics(topics)
        return topics

    async def close(self) -> None:
        """Close storage (no-op for local storage)."""
        pass
