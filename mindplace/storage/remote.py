"""
HTTP remote store.

Talks to the MindPlace HTTP API and normalises every failure into
``UnavailableError``, including successful responses in which the backend
signals ``usingLocalStorage``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from ..exceptions import MindPlaceError, UnavailableError
from ..models import (
    Snippet,
    Topic,
    sort_snippets,
    sort_topics,
    validate_snippet_input,
    validate_topic_input,
)
from .base import RemoteStore, StoreConfig

logger = logging.getLogger(__name__)


class HttpRemoteStore(RemoteStore):
    """Remote store backed by the MindPlace HTTP API.

    Example:
        >>> store = HttpRemoteStore(StoreConfig(api_url="http://localhost:8080"))
        >>> snippets = await store.list_snippets()
        >>> await store.close()
    """

    def __init__(
        self,
        config: StoreConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the HTTP store.

        Args:
            config: Store configuration with ``api_url``
            session: Optional externally owned client session
        """
        if not config.api_url:
            raise MindPlaceError("MindPlace API URL is required")

        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        """Send a request and return the decoded body.

        Returns:
            The JSON body, or None for a 404 when ``allow_not_found`` is set

        Raises:
            UnavailableError: On any network, status or body failure
        """
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, json=payload) as response:
                if allow_not_found and response.status == 404:
                    return None
                if response.status >= 400:
                    raise UnavailableError(operation, f"HTTP {response.status}")
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UnavailableError(operation, type(e).__name__, e) from e

        if not isinstance(body, dict):
            raise UnavailableError(operation, "unexpected response body")
        if body.get("usingLocalStorage"):
            raise UnavailableError(operation, body.get("error") or "backend requested local storage")
        return body

    async def list_snippets(self) -> list[Snippet]:
        body = await self._request("list_snippets", "GET", "/api/snippets")
        try:
            snippets = [Snippet.from_dict(item) for item in body.get("snippets") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise UnavailableError("list_snippets", "malformed snippet", e) from e
        return sort_snippets(snippets)

    async def list_topics(self) -> list[Topic]:
        body = await self._request("list_topics", "GET", "/api/topics")
        try:
            topics = [Topic.from_dict(item) for item in body.get("topics") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise UnavailableError("list_topics", "malformed topic", e) from e
        return sort_topics(topics)

    async def get_snippet(self, snippet_id: str) -> Snippet | None:
        body = await self._request(
            "get_snippet",
            "GET",
            f"/api/snippets/{quote(snippet_id, safe='')}",
            allow_not_found=True,
        )
        if body is None or not body.get("snippet"):
            return None
        try:
            return Snippet.from_dict(body["snippet"])
        except (KeyError, TypeError, ValueError) as e:
            raise UnavailableError("get_snippet", "malformed snippet", e) from e

    async def create_snippet(
        self,
        name: str,
        content: str,
        topic_id: str | None = None,
    ) -> Snippet:
        validate_snippet_input(name, content)

        payload: dict[str, Any] = {"name": name, "content": content}
        if topic_id:
            payload["topicId"] = topic_id

        body = await self._request("create_snippet", "POST", "/api/snippets", payload)
        try:
            return Snippet.from_dict(body["snippet"])
        except (KeyError, TypeError, ValueError) as e:
            raise UnavailableError("create_snippet", "malformed snippet", e) from e

    async def create_topic(
        self,
        name: str,
        description: str | None = None,
        icon: str | None = None,
    ) -> Topic:
        validate_topic_input(name)

        payload: dict[str, Any] = {"name": name}
        if description is not None:
            payload["description"] = description
        if icon is not None:
            payload["icon"] = icon

        body = await self._request("create_topic", "POST", "/api/topics", payload)
        try:
            return Topic.from_dict(body["topic"])
        except (KeyError, TypeError, ValueError) as e:
            raise UnavailableError("create_topic", "malformed topic", e) from e

    async def delete_topic(self, topic_id: str) -> bool:
        body = await self._request(
            "delete_topic",
            "DELETE",
            f"/api/topics/{quote(topic_id, safe='')}",
            allow_not_found=True,
        )
        return body is not None

    async def ping(self) -> bool:
        body = await self._request("ping", "GET", "/api/health")
        return body.get("status") == "ok"

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
