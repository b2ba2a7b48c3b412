"""
Session Backend Tests

Tests for the in-memory browser simulation and the HTTP bridge client.
The bridge is exercised through httpx.MockTransport, so no server runs.
"""

import json

import httpx
import pytest

from prompt_relay.errors import EndpointUnreachable, SendFailed, SessionNotFound
from prompt_relay.registry.sessions import LoadState
from prompt_relay.sessions.backend import HttpSessionBackend, InMemorySessionBackend


class TestInMemorySessionBackend:
    """Tests for InMemorySessionBackend."""

    @pytest.mark.asyncio
    async def test_open_assigns_unique_ids(self, backend):
        first = await backend.open_session("https://chat.example")
        second = await backend.open_session("https://chat.example")

        assert first != second
        assert backend.open_calls == ["https://chat.example"] * 2
        assert backend.is_open(first) and backend.is_open(second)

    @pytest.mark.asyncio
    async def test_status_follows_load_delay(self, fake_clock):
        backend = InMemorySessionBackend(load_delay=1.0, clock=fake_clock)
        session_id = await backend.open_session("https://chat.example")

        assert await backend.query_session_status(session_id) is LoadState.LOADING
        fake_clock.advance(1.0)
        assert await backend.query_session_status(session_id) is LoadState.READY

    @pytest.mark.asyncio
    async def test_forced_status(self, backend):
        session_id = await backend.open_session("https://chat.example")
        backend.set_status(session_id, LoadState.UNKNOWN)

        assert await backend.query_session_status(session_id) is LoadState.UNKNOWN

        backend.set_status(session_id, None)
        assert await backend.query_session_status(session_id) is LoadState.READY

    @pytest.mark.asyncio
    async def test_unreachable_locator(self, backend):
        backend.set_unreachable("https://down.example")

        with pytest.raises(EndpointUnreachable):
            await backend.open_session("https://down.example")

        backend.set_unreachable("https://down.example", False)
        assert await backend.open_session("https://down.example")

    @pytest.mark.asyncio
    async def test_send_records_message(self, backend):
        session_id = await backend.open_session("https://chat.example")

        ack = await backend.send_to_session(session_id, {"type": "sendPrompt"})

        assert ack == {"success": True}
        assert backend.sent_messages(session_id) == [{"type": "sendPrompt"}]

    @pytest.mark.asyncio
    async def test_failing_sends(self, backend):
        session_id = await backend.open_session("https://chat.example")
        backend.fail_sends(session_id, "no adapter")

        with pytest.raises(SendFailed, match="no adapter"):
            await backend.send_to_session(session_id, {})

    @pytest.mark.asyncio
    async def test_closed_session_not_found(self, backend):
        session_id = await backend.open_session("https://chat.example")
        backend.drop_session(session_id)

        with pytest.raises(SessionNotFound):
            await backend.query_session_status(session_id)
        with pytest.raises(SessionNotFound):
            await backend.send_to_session(session_id, {})

    @pytest.mark.asyncio
    async def test_close_session_notifies_subscribers(self, backend):
        closed = []
        unsubscribe = backend.on_session_closed(closed.append)
        session_id = await backend.open_session("https://chat.example")

        backend.close_session(session_id)
        unsubscribe()
        backend.close_session(session_id)

        assert closed == [session_id]
        assert not backend.is_open(session_id)


def _bridge(handler, token=None):
    return HttpSessionBackend(
        "http://bridge.test/", token=token, transport=httpx.MockTransport(handler)
    )


class TestHttpSessionBackend:
    """Tests for HttpSessionBackend against a mocked bridge."""

    @pytest.mark.asyncio
    async def test_open_session_posts_background_tab(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"session_id": 42})

        backend = _bridge(handler, token="s3cret")

        session_id = await backend.open_session("https://claude.ai")
        await backend.aclose()

        assert session_id == "42"
        assert seen["path"] == "/sessions"
        assert seen["body"] == {"url": "https://claude.ai", "active": False}
        assert seen["auth"] == "Bearer s3cret"

    @pytest.mark.asyncio
    async def test_open_session_failure_is_unreachable(self):
        backend = _bridge(lambda request: httpx.Response(503))

        with pytest.raises(EndpointUnreachable):
            await backend.open_session("https://claude.ai")

    @pytest.mark.asyncio
    async def test_open_session_missing_id_is_unreachable(self):
        backend = _bridge(lambda request: httpx.Response(200, json={}))

        with pytest.raises(EndpointUnreachable):
            await backend.open_session("https://claude.ai")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reported,expected",
        [
            ("complete", LoadState.READY),
            ("ready", LoadState.READY),
            ("loading", LoadState.LOADING),
            ("unloaded", LoadState.UNKNOWN),
        ],
    )
    async def test_status_mapping(self, reported, expected):
        backend = _bridge(lambda request: httpx.Response(200, json={"status": reported}))

        assert await backend.query_session_status("7") is expected

    @pytest.mark.asyncio
    async def test_status_for_missing_session(self):
        backend = _bridge(lambda request: httpx.Response(404))

        with pytest.raises(SessionNotFound):
            await backend.query_session_status("7")

    @pytest.mark.asyncio
    async def test_status_when_bridge_down(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        backend = _bridge(handler)

        with pytest.raises(EndpointUnreachable):
            await backend.query_session_status("7")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>proxy error</html>"),
            httpx.Response(200, json=["complete"]),
        ],
    )
    async def test_status_with_unusable_body(self, response):
        backend = _bridge(lambda request: response)

        with pytest.raises(EndpointUnreachable):
            await backend.query_session_status("7")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>proxy error</html>"),
            httpx.Response(200, json="ok"),
        ],
    )
    async def test_send_with_unusable_acknowledgement(self, response):
        backend = _bridge(lambda request: response)

        with pytest.raises(SendFailed):
            await backend.send_to_session("7", {})

    @pytest.mark.asyncio
    async def test_send_with_empty_acknowledgement(self):
        backend = _bridge(lambda request: httpx.Response(204))

        assert await backend.send_to_session("7", {}) == {}

    @pytest.mark.asyncio
    async def test_send_returns_acknowledgement(self):
        def handler(request):
            assert request.url.path == "/sessions/7/messages"
            assert json.loads(request.content)["type"] == "sendPrompt"
            return httpx.Response(200, json={"success": True})

        backend = _bridge(handler)

        ack = await backend.send_to_session("7", {"type": "sendPrompt", "prompt": "hi"})

        assert ack == {"success": True}

    @pytest.mark.asyncio
    async def test_send_to_missing_session(self):
        backend = _bridge(lambda request: httpx.Response(404))

        with pytest.raises(SessionNotFound):
            await backend.send_to_session("7", {})

    @pytest.mark.asyncio
    async def test_send_rejected(self):
        backend = _bridge(lambda request: httpx.Response(500))

        with pytest.raises(SendFailed, match="500"):
            await backend.send_to_session("7", {})

    @pytest.mark.asyncio
    async def test_send_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        backend = _bridge(handler)

        with pytest.raises(SendFailed):
            await backend.send_to_session("7", {})
