"""
Snippet stores.

Provides the remote stores (HTTP API and Cosmos DB), the local mirror and
the repository that reconciles them.

Example:
    >>> from mindplace.storage import StoreConfig, SnippetRepository
    >>> config = StoreConfig(api_url="http://localhost:8080", local_path="/tmp/mindplace")
    >>> repo = SnippetRepository.from_config(config)
    >>> library = await repo.list_snippets_and_topics()
"""

from .base import CosmosAuthMethod, RemoteStore, StoreConfig, StoreMode
from .cosmos import CosmosRemoteStore
from .local import DEFAULT_TOPICS, LocalMirrorStore
from .remote import HttpRemoteStore
from .repository import SnippetRepository

__all__ = [
    # Configuration
    "StoreConfig",
    "CosmosAuthMethod",
    "StoreMode",
    # Store implementations
    "RemoteStore",
    "HttpRemoteStore",
    "CosmosRemoteStore",
    "LocalMirrorStore",
    "SnippetRepository",
    "DEFAULT_TOPICS",
]
