"""
Cosmos DB remote store.

Stores snippets and topics in Azure Cosmos DB, the authoritative
database behind the MindPlace HTTP API.

Supports multiple authentication methods:
- Key-based authentication
- Azure AD via DefaultAzureCredential (recommended)
- Azure Managed Identity
- Service Principal
"""

from __future__ import annotations

import uuid
from collections import Counter
from typing import Any

from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from ..exceptions import AuthenticationError, MindPlaceError, UnavailableError
from ..logging_utils import get_store_logger
from ..models import (
    Snippet,
    Topic,
    attach_topics,
    sort_snippets,
    sort_topics,
    utc_now,
    validate_snippet_input,
    validate_topic_input,
)
from .base import CosmosAuthMethod, RemoteStore, StoreConfig

logger = get_store_logger("cosmos")

SNIPPET_TYPE = "snippet"
TOPIC_TYPE = "topic"

_SELECT_BY_TYPE = "SELECT * FROM c WHERE c.type = @type"
_SELECT_BY_TOPIC = "SELECT * FROM c WHERE c.type = @type AND c.topicId = @topic_id"


def _get_credential(config: StoreConfig) -> Any:
    """Get the appropriate credential based on auth method.

    Raises:
        AuthenticationError: If credential cannot be created
    """
    auth_method = config.cosmos_auth_method
    endpoint = config.cosmos_endpoint

    if auth_method == CosmosAuthMethod.KEY:
        if not config.cosmos_key:
            raise AuthenticationError(endpoint, "cosmos_key required for KEY authentication")
        return config.cosmos_key

    if auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL:
        from azure.identity.aio import DefaultAzureCredential

        return DefaultAzureCredential()

    if auth_method == CosmosAuthMethod.MANAGED_IDENTITY:
        from azure.identity.aio import ManagedIdentityCredential

        # If client_id is provided, use user-assigned managed identity
        if config.azure_client_id:
            return ManagedIdentityCredential(client_id=config.azure_client_id)
        return ManagedIdentityCredential()

    if auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        if not all([config.azure_tenant_id, config.azure_client_id, config.azure_client_secret]):
            raise AuthenticationError(
                endpoint,
                "azure_tenant_id, azure_client_id, and azure_client_secret "
                "required for SERVICE_PRINCIPAL authentication",
            )
        from azure.identity.aio import ClientSecretCredential

        return ClientSecretCredential(
            tenant_id=config.azure_tenant_id,
            client_id=config.azure_client_id,
            client_secret=config.azure_client_secret,
        )

    raise AuthenticationError(endpoint, f"Unsupported auth method: {auth_method}")


class CosmosRemoteStore(RemoteStore):
    """Cosmos DB snippet store.

    Uses a single container partitioned by document type, so listing
    snippets or topics reads exactly one partition.

    Document schema:
    {
        "id": "{uuid}",
        "type": "snippet" | "topic",
        // snippets
        "name": "...", "content": "...", "createdAt": "{iso}", "topicId": "...",
        // topics
        "name": "...", "description": "...", "icon": "...", "createdAt": "{iso}"
    }
    """

    def __init__(self, config: StoreConfig) -> None:
        """Initialize Cosmos DB store.

        Args:
            config: Store configuration with Cosmos connection info
        """
        if not config.cosmos_endpoint:
            raise MindPlaceError("Cosmos endpoint is required")

        self.config = config
        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False

    async def _ensure_initialized(self, operation: str) -> ContainerProxy:
        """Ensure client and container are initialized."""
        if self._initialized and self._container is not None:
            return self._container

        try:
            self._credential = _get_credential(self.config)
        except AuthenticationError as e:
            raise UnavailableError(operation, e.message, e) from e

        try:
            client = CosmosClient(self.config.cosmos_endpoint, credential=self._credential)  # type: ignore[arg-type]
            self._client = client

            database = await client.create_database_if_not_exists(id=self.config.cosmos_database)
            self._container = await database.create_container_if_not_exists(
                id=self.config.cosmos_container,
                partition_key=PartitionKey(path=self.config.cosmos_partition_key_path),
            )
            self._initialized = True
            logger.info(
                f"Connected to Cosmos DB: {self.config.cosmos_endpoint} "
                f"(database={self.config.cosmos_database}, "
                f"container={self.config.cosmos_container}, "
                f"auth={self.config.cosmos_auth_method.value})"
            )
        except AzureError as e:
            # Each attempt builds a new client and credential; drop this pair.
            await self.close()
            raise UnavailableError(operation, "connection failed", e) from e

        return self._container

    async def _query(
        self,
        operation: str,
        query: str,
        parameters: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        container = await self._ensure_initialized(operation)
        try:
            return [
                doc
                async for doc in container.query_items(query=query, parameters=parameters)
            ]
        except AzureError as e:
            raise UnavailableError(operation, "query failed", e) from e

    async def _list_topic_docs(self, operation: str) -> list[dict[str, Any]]:
        return await self._query(operation, _SELECT_BY_TYPE, [{"name": "@type", "value": TOPIC_TYPE}])

    async def list_snippets(self) -> list[Snippet]:
        docs = await self._query(
            "list_snippets", _SELECT_BY_TYPE, [{"name": "@type", "value": SNIPPET_TYPE}]
        )
        topics = [_document_to_topic(d) for d in await self._list_topic_docs("list_snippets")]
        return sort_snippets(attach_topics([_document_to_snippet(d) for d in docs], topics))

    async def list_topics(self) -> list[Topic]:
        topic_docs = await self._list_topic_docs("list_topics")
        snippet_docs = await self._query(
            "list_topics", _SELECT_BY_TYPE, [{"name": "@type", "value": SNIPPET_TYPE}]
        )
        counts = Counter(d.get("topicId") for d in snippet_docs if d.get("topicId"))

        topics = []
        for doc in topic_docs:
            topic = _document_to_topic(doc)
            topic.snippet_count = counts.get(topic.id, 0)
            topics.append(topic)
        return sort_topics(topics)

    async def get_snippet(self, snippet_id: str) -> Snippet | None:
        container = await self._ensure_initialized("get_snippet")
        try:
            doc = await container.read_item(item=snippet_id, partition_key=SNIPPET_TYPE)
        except CosmosResourceNotFoundError:
            return None
        except AzureError as e:
            raise UnavailableError("get_snippet", "read failed", e) from e

        snippet = _document_to_snippet(doc)
        if snippet.topic_id:
            topic = await self._read_topic("get_snippet", snippet.topic_id)
            snippet.topic = topic
        return snippet

    async def _read_topic(self, operation: str, topic_id: str) -> Topic | None:
        container = await self._ensure_initialized(operation)
        try:
            return _document_to_topic(
                await container.read_item(item=topic_id, partition_key=TOPIC_TYPE)
            )
        except CosmosResourceNotFoundError:
            return None
        except AzureError as e:
            raise UnavailableError(operation, "read failed", e) from e

    async def create_snippet(
        self,
        name: str,
        content: str,
        topic_id: str | None = None,
    ) -> Snippet:
        validate_snippet_input(name, content)

        topic = await self._read_topic("create_snippet", topic_id) if topic_id else None
        snippet = Snippet(
            id=str(uuid.uuid4()),
            name=name,
            content=content,
            created_at=utc_now(),
            topic_id=topic.id if topic else None,
            topic=topic,
        )
        await self._upsert("create_snippet", _snippet_to_document(snippet))
        return snippet

    async def create_topic(
        self,
        name: str,
        description: str | None = None,
        icon: str | None = None,
    ) -> Topic:
        validate_topic_input(name)

        topic = Topic(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            icon=icon,
            created_at=utc_now(),
        )
        await self._upsert("create_topic", _topic_to_document(topic))
        return topic

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic after uncategorizing its snippets."""
        if await self._read_topic("delete_topic", topic_id) is None:
            return False

        docs = await self._query(
            "delete_topic",
            _SELECT_BY_TOPIC,
            [
                {"name": "@type", "value": SNIPPET_TYPE},
                {"name": "@topic_id", "value": topic_id},
            ],
        )
        for doc in docs:
            doc.pop("topicId", None)
            await self._upsert("delete_topic", doc)

        container = await self._ensure_initialized("delete_topic")
        try:
            await container.delete_item(item=topic_id, partition_key=TOPIC_TYPE)
        except CosmosResourceNotFoundError:
            return False
        except AzureError as e:
            raise UnavailableError("delete_topic", "delete failed", e) from e

        logger.info(f"Deleted topic {topic_id} ({len(docs)} snippets uncategorized)")
        return True

    async def _upsert(self, operation: str, doc: dict[str, Any]) -> None:
        container = await self._ensure_initialized(operation)
        try:
            await container.upsert_item(doc)
        except AzureError as e:
            raise UnavailableError(operation, "write failed", e) from e

    async def ping(self) -> bool:
        container = await self._ensure_initialized("ping")
        try:
            await container.read()
        except AzureError as e:
            raise UnavailableError("ping", "container read failed", e) from e
        return True

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
        self._credential = None
        self._container = None
        self._initialized = False


def _snippet_to_document(snippet: Snippet) -> dict[str, Any]:
    doc = snippet.to_dict(include_topic=False)
    doc["type"] = SNIPPET_TYPE
    return doc


def _topic_to_document(topic: Topic) -> dict[str, Any]:
    doc = topic.to_dict(include_count=False)
    doc["type"] = TOPIC_TYPE
    return doc


def _document_to_snippet(doc: dict[str, Any]) -> Snippet:
    return Snippet.from_dict({k: v for k, v in doc.items() if not k.startswith("_")})


def _document_to_topic(doc: dict[str, Any]) -> Topic:
    return Topic.from_dict({k: v for k, v in doc.items() if not k.startswith("_")})
