"""
Session Backends - The browser-side capabilities the relay consumes.

A session backend opens background tabs, probes their load state, delivers
prompt messages to the adapter running inside a tab, and reports tabs that
were closed outside the relay's control.

Key components:
- SessionBackend: Abstract interface plus close-event fan-out
- InMemorySessionBackend: Process-local simulation of browser tabs
- HttpSessionBackend: Client for the extension's HTTP bridge (httpx)
"""

import asyncio
import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from prompt_relay.errors import EndpointUnreachable, SendFailed, SessionNotFound
from prompt_relay.registry.sessions import LoadState

logger = logging.getLogger(__name__)

SessionClosedCallback = Callable[[str], object]


class SessionBackend(ABC):
    """
    Interface to the component that owns real browser tabs.

    Subclasses implement the three async capabilities. Close notifications
    are pushed through ``emit_session_closed`` by whatever observes the
    browser (the in-memory simulation itself, or the HTTP bridge endpoint).
    """

    def __init__(self) -> None:
        self._close_callbacks: list[SessionClosedCallback] = []

    @abstractmethod
    async def open_session(self, locator: str) -> str:
        """
        Open a background session on ``locator`` without taking focus.

        Returns:
            The new session ID.

        Raises:
            EndpointUnreachable: If the session could not be opened.
        """

    @abstractmethod
    async def query_session_status(self, session_id: str) -> LoadState:
        """
        Non-blocking probe of a session's load state.

        Raises:
            SessionNotFound: If the session no longer exists.
        """

    @abstractmethod
    async def send_to_session(self, session_id: str, message: dict) -> dict:
        """
        Deliver a structured message to the adapter inside a session.

        Returns:
            The adapter's acknowledgement payload.

        Raises:
            SessionNotFound: If the session no longer exists.
            SendFailed: If the adapter rejected or never received the message.
        """

    def on_session_closed(self, callback: SessionClosedCallback) -> Callable[[], None]:
        """
        Subscribe to session-closed notifications.

        Returns:
            A function that removes the subscription.
        """
        self._close_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._close_callbacks:
                self._close_callbacks.remove(callback)

        return unsubscribe

    def emit_session_closed(self, session_id: str) -> None:
        """Notify every subscriber that ``session_id`` was closed."""
        for callback in list(self._close_callbacks):
            try:
                callback(session_id)
            except Exception:
                logger.exception(f"Session-closed subscriber failed for {session_id}")

    async def aclose(self) -> None:
        """Release backend resources."""


@dataclass
class _SimulatedTab:
    """Internal state for one simulated browser tab."""

    session_id: str
    locator: str
    opened_at: float
    active: bool = False
    forced_status: LoadState | None = None
    send_error: str | None = None
    messages: list[dict] = field(default_factory=list)


class InMemorySessionBackend(SessionBackend):
    """
    Process-local stand-in for a browser.

    Tabs become ready ``load_delay`` seconds after they are opened unless a
    status is forced with ``set_status``. Used by the demo script, the test
    suite, and the default ``session_backend="memory"`` configuration.

    Example:
        backend = InMemorySessionBackend(load_delay=0.2)
        session_id = await backend.open_session("https://claude.ai")
        await backend.query_session_status(session_id)  # LoadState.LOADING
    """

    def __init__(
        self,
        load_delay: float = 0.0,
        open_delay: float = 0.0,
        unreachable: set[str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the simulated browser.

        Args:
            load_delay: Seconds before a new tab reports ready
            open_delay: Seconds ``open_session`` takes to return
            unreachable: Locators that fail to open
            clock: Monotonic time source used for the load delay
        """
        super().__init__()
        self._load_delay = load_delay
        self._open_delay = open_delay
        self._unreachable = set(unreachable or ())
        self._clock = clock
        self._tabs: dict[str, _SimulatedTab] = {}
        self._ids = itertools.count(1)
        self.open_calls: list[str] = []

    async def open_session(self, locator: str) -> str:
        self.open_calls.append(locator)
        await asyncio.sleep(self._open_delay)

        if locator in self._unreachable:
            raise EndpointUnreachable(f"Cannot open session for {locator}")

        session_id = f"tab-{next(self._ids)}"
        self._tabs[session_id] = _SimulatedTab(
            session_id=session_id,
            locator=locator,
            opened_at=self._clock(),
        )
        logger.debug(f"Opened simulated tab {session_id} on {locator}")
        return session_id

    async def query_session_status(self, session_id: str) -> LoadState:
        tab = self._require(session_id)
        if tab.forced_status is not None:
            return tab.forced_status
        if self._clock() - tab.opened_at >= self._load_delay:
            return LoadState.READY
        return LoadState.LOADING

    async def send_to_session(self, session_id: str, message: dict) -> dict:
        tab = self._require(session_id)
        if tab.send_error is not None:
            raise SendFailed(tab.send_error)
        tab.messages.append(message)
        return {"success": True}

    def _require(self, session_id: str) -> _SimulatedTab:
        tab = self._tabs.get(session_id)
        if tab is None:
            raise SessionNotFound(session_id)
        return tab

    def set_status(self, session_id: str, status: LoadState | None) -> None:
        """Force a tab's reported status; ``None`` restores the load delay."""
        self._require(session_id).forced_status = status

    def fail_sends(self, session_id: str, error: str = "Adapter did not respond") -> None:
        """Make every send to this tab fail with ``error``."""
        self._require(session_id).send_error = error

    def set_unreachable(self, locator: str, unreachable: bool = True) -> None:
        if unreachable:
            self._unreachable.add(locator)
        else:
            self._unreachable.discard(locator)

    def close_session(self, session_id: str) -> None:
        """Close a tab as the user would, emitting a close notification."""
        self._tabs.pop(session_id, None)
        self.emit_session_closed(session_id)

    def drop_session(self, session_id: str) -> None:
        """Close a tab without any notification reaching subscribers."""
        self._tabs.pop(session_id, None)

    def sent_messages(self, session_id: str) -> list[dict]:
        return list(self._require(session_id).messages)

    def is_open(self, session_id: str) -> bool:
        return session_id in self._tabs

    @property
    def open_session_ids(self) -> list[str]:
        return list(self._tabs.keys())


class HttpSessionBackend(SessionBackend):
    """
    Session backend that drives tabs through the extension's HTTP bridge.

    Bridge contract:
        POST /sessions                 {"url", "active": false} -> {"session_id"}
        GET  /sessions/{id}            -> {"status": "loading" | "complete"}
        POST /sessions/{id}/messages   message -> acknowledgement

    The httpx client is created lazily on first use.
    """

    _STATUS_MAP = {
        "complete": LoadState.READY,
        "ready": LoadState.READY,
        "loading": LoadState.LOADING,
    }

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the bridge client (lazy initialization)."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
            logger.debug(f"Initialized bridge client for {self._base_url}")
        return self._client

    async def open_session(self, locator: str) -> str:
        try:
            response = await self.client.post(
                "/sessions", json={"url": locator, "active": False}
            )
            response.raise_for_status()
            return str(response.json()["session_id"])
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise EndpointUnreachable(f"Cannot open session for {locator}: {e}") from e

    async def query_session_status(self, session_id: str) -> LoadState:
        try:
            response = await self.client.get(f"/sessions/{session_id}")
        except httpx.HTTPError as e:
            raise EndpointUnreachable(f"Bridge request failed: {e}") from e

        if response.status_code == 404:
            raise SessionNotFound(session_id)
        if response.is_error:
            raise EndpointUnreachable(
                f"Bridge status probe failed with status {response.status_code}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise EndpointUnreachable(f"Bridge returned a non-JSON status: {e}") from e
        if not isinstance(body, dict):
            raise EndpointUnreachable("Bridge returned a malformed status body")

        status = str(body.get("status", "")).lower()
        return self._STATUS_MAP.get(status, LoadState.UNKNOWN)

    async def send_to_session(self, session_id: str, message: dict) -> dict:
        try:
            response = await self.client.post(
                f"/sessions/{session_id}/messages", json=message
            )
        except httpx.HTTPError as e:
            raise SendFailed(f"Bridge request failed: {e}") from e

        if response.status_code == 404:
            raise SessionNotFound(session_id)
        if response.is_error:
            raise SendFailed(
                f"Bridge rejected message with status {response.status_code}"
            )
        if not response.content:
            return {}
        try:
            ack = response.json()
        except ValueError as e:
            raise SendFailed(f"Bridge returned a non-JSON acknowledgement: {e}") from e
        if not isinstance(ack, dict):
            raise SendFailed("Bridge returned a malformed acknowledgement")
        return ack

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
