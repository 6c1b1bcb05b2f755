"""
MindPlace HTTP API.

Thin aiohttp handlers over a remote store (normally Cosmos DB). When no
database is configured the handlers answer with the degraded
``usingLocalStorage`` shapes, telling clients to keep data locally.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from aiohttp import web

from ..exceptions import InvalidInputError, MindPlaceError, UnavailableError
from ..id_utils import local_snippet_id, local_topic_id
from ..logging_utils import StoreLoggerAdapter, configure_logging
from ..models import Snippet, Topic, to_iso, utc_now
from ..storage.base import RemoteStore, StoreConfig

logger = logging.getLogger(__name__)
log = StoreLoggerAdapter(logger, "api")


@dataclass
class ServerSettings:
    """Settings for the HTTP API.

    Attributes:
        host: Interface to bind
        port: Port to bind
        health_retries: Database pings attempted by the health check
        health_retry_delay: Seconds between health check pings
    """

    host: str = "0.0.0.0"
    port: int = 8080
    health_retries: int = 5
    health_retry_delay: float = 2.0


DATABASE_KEY = web.AppKey("database", object)
SETTINGS_KEY = web.AppKey("settings", ServerSettings)


def _database(request: web.Request) -> RemoteStore | None:
    return request.app[DATABASE_KEY]  # type: ignore[return-value]


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_optional_text(value: Any) -> bool:
    return value is None or isinstance(value, str)


async def list_snippets(request: web.Request) -> web.Response:
    """GET /api/snippets"""
    database = _database(request)
    if database is None:
        return web.json_response({"snippets": [], "topics": [], "usingLocalStorage": True})

    try:
        snippets = await database.list_snippets()
        topics = await database.list_topics()
    except UnavailableError as e:
        log.error(f"Error fetching snippets: {e}", operation="list_snippets")
        return web.json_response(
            {"snippets": [], "topics": [], "usingLocalStorage": True, "error": e.message}
        )

    return web.json_response(
        {"snippets": [s.to_dict() for s in snippets], "topics": [t.to_dict() for t in topics]}
    )


async def create_snippet(request: web.Request) -> web.Response:
    """POST /api/snippets"""
    body = await _read_json(request)
    name, content, topic_id = body.get("name"), body.get("content"), body.get("topicId")
    if not _is_text(name) or not _is_text(content):
        return web.json_response({"error": "Name and content required"}, status=400)
    if not _is_optional_text(topic_id):
        return web.json_response({"error": "topicId must be a string"}, status=400)

    database = _database(request)
    if database is None:
        placeholder = Snippet(id=local_snippet_id(), name=name, content=content, topic_id=topic_id)
        return web.json_response(
            {"usingLocalStorage": True, "snippet": placeholder.to_dict()}, status=201
        )

    try:
        snippet = await database.create_snippet(name, content, topic_id)
    except MindPlaceError as e:
        log.error(f"Error creating snippet: {e}", operation="create_snippet")
        return web.json_response({"error": "Internal Server Error"}, status=500)

    return web.json_response({"snippet": snippet.to_dict()}, status=201)


async def get_snippet(request: web.Request) -> web.Response:
    """GET /api/snippets/{id}"""
    database = _database(request)
    if database is None:
        return web.json_response({"error": "Snippet not found"}, status=404)

    try:
        snippet = await database.get_snippet(request.match_info["id"])
    except UnavailableError as e:
        log.error(f"Error fetching snippet: {e}", operation="get_snippet")
        return web.json_response({"error": "Internal Server Error"}, status=500)

    if snippet is None:
        return web.json_response({"error": "Snippet not found"}, status=404)
    return web.json_response({"snippet": snippet.to_dict()})


async def list_topics(request: web.Request) -> web.Response:
    """GET /api/topics"""
    database = _database(request)
    if database is None:
        return web.json_response({"topics": [], "usingLocalStorage": True})

    try:
        topics = await database.list_topics()
    except UnavailableError as e:
        log.error(f"Error fetching topics: {e}", operation="list_topics")
        return web.json_response({"topics": [], "usingLocalStorage": True, "error": e.message})

    return web.json_response({"topics": [t.to_dict() for t in topics]})


async def create_topic(request: web.Request) -> web.Response:
    """POST /api/topics"""
    body = await _read_json(request)
    name = body.get("name")
    if not _is_text(name):
        return web.json_response({"error": "Topic name is required"}, status=400)

    description, icon = body.get("description"), body.get("icon")
    if not _is_optional_text(description) or not _is_optional_text(icon):
        return web.json_response({"error": "description and icon must be strings"}, status=400)
    database = _database(request)
    if database is None:
        placeholder = Topic(
            id=local_topic_id(), name=name, description=description, icon=icon, created_at=utc_now()
        )
        return web.json_response(
            {"usingLocalStorage": True, "topic": placeholder.to_dict()}, status=201
        )

    try:
        topic = await database.create_topic(name, description, icon)
    except (InvalidInputError, UnavailableError) as e:
        log.error(f"Error creating topic: {e}", operation="create_topic")
        placeholder = Topic(
            id=local_topic_id(), name=name, description=description, icon=icon, created_at=utc_now()
        )
        return web.json_response(
            {"usingLocalStorage": True, "error": e.message, "topic": placeholder.to_dict()},
            status=201,
        )

    return web.json_response({"topic": topic.to_dict()}, status=201)


async def delete_topic(request: web.Request) -> web.Response:
    """DELETE /api/topics/{id}"""
    database = _database(request)
    if database is None:
        return web.json_response({"error": "Topic not found"}, status=404)

    try:
        deleted = await database.delete_topic(request.match_info["id"])
    except UnavailableError as e:
        log.error(f"Error deleting topic: {e}", operation="delete_topic")
        return web.json_response({"error": "Internal Server Error"}, status=500)

    if not deleted:
        return web.json_response({"error": "Topic not found"}, status=404)
    return web.json_response({"ok": True})


async def health(request: web.Request) -> web.Response:
    """GET /api/health

    Pings the database, retrying a few times before reporting it down.
    """
    settings = request.app[SETTINGS_KEY]
    database = _database(request)

    error = "No database configured"
    if database is not None:
        for attempt in range(1, settings.health_retries + 1):
            try:
                await database.ping()
                return web.json_response(
                    {"status": "ok", "timestamp": to_iso(utc_now()), "database": "connected"}
                )
            except UnavailableError as e:
                error = e.message
                log.warning(f"Health check attempt {attempt} failed: {e}", operation="ping")
                if attempt < settings.health_retries:
                    await asyncio.sleep(settings.health_retry_delay)

    return web.json_response(
        {
            "status": "error",
            "timestamp": to_iso(utc_now()),
            "database": "disconnected",
            "error": error,
        },
        status=500,
    )


def create_app(
    database: RemoteStore | None,
    settings: ServerSettings | None = None,
) -> web.Application:
    """Build the HTTP application.

    Args:
        database: Authoritative store, or None when no database is configured
        settings: Server settings (defaults if omitted)
    """
    app = web.Application()
    app[DATABASE_KEY] = database
    app[SETTINGS_KEY] = settings or ServerSettings()

    app.router.add_get("/api/snippets", list_snippets)
    app.router.add_post("/api/snippets", create_snippet)
    app.router.add_get("/api/snippets/{id}", get_snippet)
    app.router.add_get("/api/topics", list_topics)
    app.router.add_post("/api/topics", create_topic)
    app.router.add_delete("/api/topics/{id}", delete_topic)
    app.router.add_get("/api/health", health)

    async def close_database(app: web.Application) -> None:
        if app[DATABASE_KEY] is not None:
            await app[DATABASE_KEY].close()  # type: ignore[attr-defined]

    app.on_cleanup.append(close_database)
    return app


def build_database(config: StoreConfig) -> RemoteStore | None:
    """Create the Cosmos DB store when an endpoint is configured."""
    if not config.cosmos_endpoint:
        logger.warning("No Cosmos DB endpoint configured, clients will use local storage")
        return None

    from ..storage.cosmos import CosmosRemoteStore

    return CosmosRemoteStore(config)


def run(argv: list[str] | None = None) -> None:
    """Run the HTTP API (``mindplace-server``)."""
    parser = argparse.ArgumentParser(description="MindPlace snippet API server")
    parser.add_argument("--host", default=ServerSettings.host)
    parser.add_argument("--port", type=int, default=ServerSettings.port)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-format", choices=["json", "text"], default="json")
    args = parser.parse_args(argv)

    configure_logging(
        getattr(logging, args.log_level.upper(), logging.INFO),
        json_format=args.log_format == "json",
    )

    settings = ServerSettings(host=args.host, port=args.port)
    app = create_app(build_database(StoreConfig.from_environment()), settings)
    web.run_app(app, host=settings.host, port=settings.port)
