"""
Store configuration and the remote store interface.

Defines the contract that every authoritative backend must implement.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..models import Snippet, Topic


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use the account key
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


class StoreMode(Enum):
    """Where the repository sends reads and writes.

    REMOTE: Initial mode, the remote store is consulted
    LOCAL: Terminal mode, only the local mirror is used
    """

    REMOTE = "remote"
    LOCAL = "local"


@dataclass
class StoreConfig:
    """Configuration for the MindPlace stores.

    Environment Variables:
        MINDPLACE_API_URL: Base URL of the MindPlace HTTP API
        MINDPLACE_LOCAL_PATH: Directory for the local mirror (default: ~/.mindplace)
        MINDPLACE_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 10)
        MINDPLACE_COSMOS_ENDPOINT: Cosmos DB endpoint URL
        MINDPLACE_COSMOS_KEY: Cosmos DB key (if using key auth)
        MINDPLACE_COSMOS_DATABASE: Database name (default: mindplace-db)
        MINDPLACE_COSMOS_CONTAINER: Container name (default: items)
        MINDPLACE_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
        AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET: Service principal settings
    """

    api_url: str | None = None
    local_path: str | Path | None = None
    request_timeout: float = 10.0

    # Cosmos DB connection settings
    cosmos_endpoint: str | None = None
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    cosmos_key: str | None = None  # Only used if auth_method is KEY
    cosmos_database: str = "mindplace-db"
    cosmos_container: str = "items"
    cosmos_partition_key_path: str = "/type"

    # Azure AD authentication settings (for SERVICE_PRINCIPAL)
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    @property
    def local_dir(self) -> Path:
        """Directory holding the local mirror files."""
        if self.local_path:
            return Path(self.local_path)
        return Path.home() / ".mindplace"

    @classmethod
    def from_environment(cls) -> StoreConfig:
        """Create configuration from environment variables."""
        auth_method_str = os.environ.get("MINDPLACE_COSMOS_AUTH_METHOD", "default_credential")
        try:
            auth_method = CosmosAuthMethod(auth_method_str.lower())
        except ValueError:
            auth_method = CosmosAuthMethod.DEFAULT_CREDENTIAL

        return cls(
            api_url=os.environ.get("MINDPLACE_API_URL"),
            local_path=os.environ.get("MINDPLACE_LOCAL_PATH"),
            request_timeout=float(os.environ.get("MINDPLACE_REQUEST_TIMEOUT", "10")),
            cosmos_endpoint=os.environ.get("MINDPLACE_COSMOS_ENDPOINT"),
            cosmos_auth_method=auth_method,
            cosmos_key=os.environ.get("MINDPLACE_COSMOS_KEY"),
            cosmos_database=os.environ.get("MINDPLACE_COSMOS_DATABASE", "mindplace-db"),
            cosmos_container=os.environ.get("MINDPLACE_COSMOS_CONTAINER", "items"),
            azure_tenant_id=os.environ.get("AZURE_TENANT_ID"),
            azure_client_id=os.environ.get("AZURE_CLIENT_ID"),
            azure_client_secret=os.environ.get("AZURE_CLIENT_SECRET"),
        )


class RemoteStore(ABC):
    """Abstract interface for the authoritative snippet store.

    Every availability failure must surface as ``UnavailableError``;
    implementations never retry.
    """

    @abstractmethod
    async def list_snippets(self) -> list[Snippet]:
        """List snippets, newest first.

        Raises:
            UnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def list_topics(self) -> list[Topic]:
        """List topics ordered by name, with snippet counts where known.

        Raises:
            UnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def get_snippet(self, snippet_id: str) -> Snippet | None:
        """Get a single snippet, or None if it does not exist."""
        ...

    @abstractmethod
    async def create_snippet(
        self,
        name: str,
        content: str,
        topic_id: str | None = None,
    ) -> Snippet:
        """Create a snippet.

        Raises:
            InvalidInputError: If name or content is empty (checked before any I/O)
            UnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def create_topic(
        self,
        name: str,
        description: str | None = None,
        icon: str | None = None,
    ) -> Topic:
        """Create a topic.

        Raises:
            InvalidInputError: If name is empty (checked before any I/O)
            UnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic and uncategorize its snippets.

        Returns:
            True if the topic existed
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the store is reachable.

        Raises:
            UnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""
        ...
