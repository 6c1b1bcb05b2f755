"""
Reconciling snippet repository.

Single entry point for callers: reads and writes go to the remote store
until it first proves unavailable, then to the local mirror for the rest
of the session.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..exceptions import UnavailableError, UnsupportedOperationError
from ..id_utils import is_local_id
from ..logging_utils import StoreLoggerAdapter
from ..models import (
    LibrarySnapshot,
    Snippet,
    Topic,
    attach_topics,
    validate_snippet_input,
    validate_topic_input,
)
from .base import RemoteStore, StoreConfig, StoreMode
from .local import LocalMirrorStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnippetRepository:
    """Repository combining a remote store with a local mirror.

    State machine (per repository instance):
    - REMOTE (initial): operations go to the remote store. The first
      ``UnavailableError`` switches to LOCAL and the same operation is
      answered by the local mirror instead. The failed call is not retried.
    - LOCAL (terminal): operations go straight to the local mirror; the
      remote store is never consulted again. Create a new repository to
      try the remote store again.

    ``InvalidInputError`` is raised before either store is touched, so it
    is identical in both modes. A failure of the local mirror after a
    fallback propagates, since there is nothing left to fall back to.

    Example:
        >>> repo = SnippetRepository(HttpRemoteStore(config), LocalMirrorStore(config))
        >>> library = await repo.list_snippets_and_topics()
        >>> library.using_local_storage
        False
    """

    def __init__(
        self,
        remote: RemoteStore | None,
        local: LocalMirrorStore,
        on_fallback: Callable[[UnavailableError], None] | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            remote: Remote store, or None to start directly in LOCAL mode
            local: Local mirror store
            on_fallback: Callback invoked once when the repository degrades
        """
        self.remote = remote
        self.local = local
        self.on_fallback = on_fallback
        self.mode = StoreMode.REMOTE if remote is not None else StoreMode.LOCAL
        self._log = StoreLoggerAdapter(logger, "repository", mode=lambda: self.mode.value)

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        on_fallback: Callable[[UnavailableError], None] | None = None,
    ) -> SnippetRepository:
        """Build a repository for the HTTP API configured in ``config``."""
        from .remote import HttpRemoteStore

        remote = HttpRemoteStore(config) if config.api_url else None
        return cls(remote, LocalMirrorStore(config), on_fallback=on_fallback)

    @property
    def using_local_storage(self) -> bool:
        return self.mode is StoreMode.LOCAL

    def _degrade(self, error: UnavailableError) -> None:
        if self.mode is StoreMode.LOCAL:
            return
        self.mode = StoreMode.LOCAL
        self._log.warning(
            f"Remote store unavailable, using local storage for this session: {error}",
            operation=error.operation,
        )
        if self.on_fallback:
            self.on_fallback(error)

    async def _dispatch(
        self,
        remote_call: Callable[[RemoteStore], Awaitable[T]],
        local_call: Callable[[LocalMirrorStore], Awaitable[T]],
    ) -> T:
        """Run an operation remotely, or locally once degraded."""
        if self.mode is StoreMode.REMOTE and self.remote is not None:
            try:
                return await remote_call(self.remote)
            except UnavailableError as e:
                self._degrade(e)
        return await local_call(self.local)

    # Reads

    async def list_snippets_and_topics(self) -> LibrarySnapshot:
        """Read snippets and topics together with the current mode."""

        async def remote_read(remote: RemoteStore) -> tuple[list[Snippet], list[Topic]]:
            snippets = await remote.list_snippets()
            topics = await remote.list_topics()
            return snippets, topics

        async def local_read(local: LocalMirrorStore) -> tuple[list[Snippet], list[Topic]]:
            return await local.load_snippets(), await local.load_topics()

        snippets, topics = await self._dispatch(remote_read, local_read)
        return LibrarySnapshot(
            snippets=attach_topics(snippets, topics),
            topics=topics,
            using_local_storage=self.using_local_storage,
        )

    async def get_snippet(self, snippet_id: str) -> Snippet | None:
        """Get a single snippet, or None if no store has it.

        Locally generated IDs are looked up in the mirror directly. A remote
        miss also checks the mirror, which may hold snippets created while
        an earlier session was degraded.
        """
        if is_local_id(snippet_id):
            return await self.local.find_snippet_by_id(snippet_id)

        async def remote_get(remote: RemoteStore) -> Snippet | None:
            snippet = await remote.get_snippet(snippet_id)
            if snippet is None:
                return await self.local.find_snippet_by_id(snippet_id)
            return snippet

        return await self._dispatch(remote_get, lambda local: local.find_snippet_by_id(snippet_id))

    # Writes

    async def create_snippet(
        self,
        name: str,
        content: str,
        topic_id: str | None = None,
    ) -> Snippet:
        """Create a snippet.

        Raises:
            InvalidInputError: If name or content is empty
        """
        validate_snippet_input(name, content)
        return await self._dispatch(
            lambda remote: remote.create_snippet(name, content, topic_id),
            lambda local: local.create_snippet(name, content, topic_id),
        )

    async def create_topic(
        self,
        name: str,
        description: str | None = None,
        icon: str | None = None,
    ) -> Topic:
        """Create a topic.

        Raises:
            InvalidInputError: If name is empty
        """
        validate_topic_input(name)
        return await self._dispatch(
            lambda remote: remote.create_topic(name, description, icon),
            lambda local: local.create_topic(name, description, icon),
        )

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic, uncategorizing its snippets.

        Returns:
            True if the topic existed in the store that handled the call
        """
        return await self._dispatch(
            lambda remote: remote.delete_topic(topic_id),
            lambda local: local.delete_topic(topic_id),
        )

    async def reorder_topics(self, from_index: int, to_index: int) -> list[Topic]:
        """Move one local topic to a new position.

        Remote topics are always ordered by name, so reordering is only
        available once the repository is using local storage.

        Raises:
            UnsupportedOperationError: In REMOTE mode
            InvalidInputError: If either index is out of range
        """
        if self.mode is not StoreMode.LOCAL:
            raise UnsupportedOperationError("reorder_topics", self.mode.value)
        return await self.local.reorder_topics(from_index, to_index)

    async def close(self) -> None:
        """Close both stores."""
        if self.remote is not None:
            await self.remote.close()
        await self.local.close()
