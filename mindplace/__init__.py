"""
MindPlace

Local-first snippet and topic storage.

Provides:
- Remote stores (MindPlace HTTP API, Azure Cosmos DB)
- A local JSON mirror usable with no network
- A repository that degrades to the local mirror for the rest of a
  session once the remote store is unavailable
- The HTTP API itself (aiohttp)

Usage:

    >>> from mindplace import SnippetRepository, StoreConfig
    >>> repo = SnippetRepository.from_config(StoreConfig.from_environment())
    >>> library = await repo.list_snippets_and_topics()
    >>> snippet = await repo.create_snippet("Hello", "# Hi", topic_id="topic-2")
    >>> library.using_local_storage
    False
"""

from .exceptions import (
    AuthenticationError,
    InvalidInputError,
    LocalDataParseError,
    MindPlaceError,
    PersistenceError,
    UnavailableError,
    UnsupportedOperationError,
)
from .models import LibrarySnapshot, Snippet, Topic, filter_by_topic
from .storage import (
    CosmosAuthMethod,
    CosmosRemoteStore,
    HttpRemoteStore,
    LocalMirrorStore,
    RemoteStore,
    SnippetRepository,
    StoreConfig,
    StoreMode,
)

__all__ = [
    # Models
    "Snippet",
    "Topic",
    "LibrarySnapshot",
    "filter_by_topic",
    # Stores
    "StoreConfig",
    "StoreMode",
    "CosmosAuthMethod",
    "RemoteStore",
    "HttpRemoteStore",
    "CosmosRemoteStore",
    "LocalMirrorStore",
    "SnippetRepository",
    # Exceptions
    "MindPlaceError",
    "InvalidInputError",
    "UnavailableError",
    "PersistenceError",
    "LocalDataParseError",
    "UnsupportedOperationError",
    "AuthenticationError",
]

__version__ = "0.1.0"
