"""Tests for the HTTP remote store against a live in-process API."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from aiohttp import test_utils, web

from mindplace.exceptions import InvalidInputError, MindPlaceError, UnavailableError
from mindplace.server import ServerSettings, create_app
from mindplace.storage import HttpRemoteStore, StoreConfig

from tests.fakes import FakeRemoteStore


@pytest.fixture
async def server(fake_remote: FakeRemoteStore) -> AsyncIterator[test_utils.TestServer]:
    test_server = test_utils.TestServer(create_app(fake_remote, ServerSettings(health_retry_delay=0)))
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def store(server: test_utils.TestServer) -> AsyncIterator[HttpRemoteStore]:
    http_store = HttpRemoteStore(StoreConfig(api_url=str(server.make_url("/"))))
    yield http_store
    await http_store.close()


async def _serve(handler) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    return test_server


class TestHttpRemoteStore:
    def test_requires_api_url(self) -> None:
        with pytest.raises(MindPlaceError):
            HttpRemoteStore(StoreConfig())

    async def test_create_and_list(self, store: HttpRemoteStore) -> None:
        topic = await store.create_topic("Work", "Day job", icon="code")
        created = await store.create_snippet("Hello", "# Hi", topic_id=topic.id)

        snippets = await store.list_snippets()
        topics = await store.list_topics()

        assert [s.id for s in snippets] == [created.id]
        assert snippets[0].topic_id == topic.id
        assert snippets[0].topic is not None
        assert snippets[0].topic.name == "Work"
        assert topics[0].icon == "code"
        assert topics[0].snippet_count == 1

    async def test_get_snippet(self, store: HttpRemoteStore) -> None:
        created = await store.create_snippet("Hello", "# Hi")

        found = await store.get_snippet(created.id)

        assert found is not None
        assert found.content == "# Hi"

    async def test_get_missing_snippet_is_none(self, store: HttpRemoteStore) -> None:
        assert await store.get_snippet("missing") is None

    async def test_delete_topic(
        self, store: HttpRemoteStore, fake_remote: FakeRemoteStore
    ) -> None:
        topic = await store.create_topic("Work")
        snippet = await store.create_snippet("a", "b", topic_id=topic.id)

        assert await store.delete_topic(topic.id) is True
        assert await store.delete_topic(topic.id) is False
        assert fake_remote.snippets[snippet.id].topic_id is None

    async def test_ping(self, store: HttpRemoteStore) -> None:
        assert await store.ping() is True

    async def test_ids_are_escaped_in_the_path(self) -> None:
        paths: list[str] = []

        async def handler(request: web.Request) -> web.Response:
            paths.append(request.raw_path)
            return web.json_response({"error": "not found"}, status=404)

        server = await _serve(handler)
        store = HttpRemoteStore(StoreConfig(api_url=str(server.make_url("/"))))
        try:
            assert await store.get_snippet("a/b?c#d") is None
            assert await store.delete_topic("x/y") is False
        finally:
            await store.close()
            await server.close()

        assert paths == ["/api/snippets/a%2Fb%3Fc%23d", "/api/topics/x%2Fy"]

    async def test_invalid_input_is_not_sent(
        self, store: HttpRemoteStore, fake_remote: FakeRemoteStore
    ) -> None:
        with pytest.raises(InvalidInputError):
            await store.create_snippet("", "body")
        with pytest.raises(InvalidInputError):
            await store.create_topic("")

        assert fake_remote.calls == []


class TestUnavailable:
    """Every failure mode surfaces as UnavailableError."""

    async def test_backend_local_storage_signal(
        self, store: HttpRemoteStore, fake_remote: FakeRemoteStore
    ) -> None:
        fake_remote.available = False

        with pytest.raises(UnavailableError) as exc_info:
            await store.list_snippets()
        assert exc_info.value.operation == "list_snippets"

        with pytest.raises(UnavailableError):
            await store.list_topics()
        with pytest.raises(UnavailableError):
            await store.create_topic("Recipes")

    async def test_server_error_status(
        self, store: HttpRemoteStore, fake_remote: FakeRemoteStore
    ) -> None:
        fake_remote.available = False

        with pytest.raises(UnavailableError):
            await store.create_snippet("Hello", "# Hi")
        with pytest.raises(UnavailableError):
            await store.ping()

    async def test_connection_refused(self) -> None:
        store = HttpRemoteStore(StoreConfig(api_url="http://127.0.0.1:1", request_timeout=2.0))
        try:
            with pytest.raises(UnavailableError):
                await store.list_snippets()
        finally:
            await store.close()

    async def test_non_json_body(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.Response(text="<html>gateway</html>", content_type="text/html")

        server = await _serve(handler)
        store = HttpRemoteStore(StoreConfig(api_url=str(server.make_url("/"))))
        try:
            with pytest.raises(UnavailableError):
                await store.list_topics()
        finally:
            await store.close()
            await server.close()

    async def test_malformed_record(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.json_response({"snippets": [{"id": "x"}]})

        server = await _serve(handler)
        store = HttpRemoteStore(StoreConfig(api_url=str(server.make_url("/"))))
        try:
            with pytest.raises(UnavailableError) as exc_info:
                await store.list_snippets()
            assert exc_info.value.operation == "list_snippets"
        finally:
            await store.close()
            await server.close()

    async def test_delete_server_error_is_unavailable(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.json_response({"error": "boom"}, status=503)

        server = await _serve(handler)
        store = HttpRemoteStore(StoreConfig(api_url=str(server.make_url("/"))))
        try:
            with pytest.raises(UnavailableError):
                await store.delete_topic("t1")
        finally:
            await store.close()
            await server.close()
