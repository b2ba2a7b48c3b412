"""
Readiness Waiter - Bounded polling for tab load completion.

Provider pages load in a roughly fixed, short window, so the waiter polls
at a fixed interval instead of backing off. Anything slower than the
timeout is reported as a failure for that one delivery.

The clock and sleep functions are injectable so tests can advance time
deterministically instead of sleeping.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from prompt_relay.errors import ReadinessTimeout, SessionLost, SessionNotFound
from prompt_relay.registry.sessions import LoadState, SessionHandle
from prompt_relay.sessions.backend import SessionBackend

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.1


class ReadinessWaiter:
    """
    Waits for a session to report ``ready``.

    Usage:
        waiter = ReadinessWaiter(backend)
        handle = await waiter.await_ready(handle, timeout=10.0)
    """

    def __init__(
        self,
        backend: SessionBackend,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._backend = backend
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    async def await_ready(
        self, handle: SessionHandle, timeout: float = DEFAULT_TIMEOUT
    ) -> SessionHandle:
        """
        Poll the session until it is ready or ``timeout`` seconds elapse.

        Args:
            handle: Session to wait on; its load_state is updated in place.
            timeout: Upper bound on the wait, in seconds.

        Returns:
            The same handle, now marked ready.

        Raises:
            SessionLost: The session stopped resolving during the wait.
            ReadinessTimeout: The session was still not ready at the deadline.
        """
        start = self._clock()
        polls = 0

        while True:
            polls += 1
            try:
                status = await self._backend.query_session_status(handle.session_id)
            except SessionNotFound as e:
                handle.load_state = LoadState.UNKNOWN
                raise SessionLost(
                    f"Session {handle.session_id} for {handle.provider_id} was closed"
                ) from e

            handle.load_state = status
            if status is LoadState.READY:
                logger.debug(
                    f"Session {handle.session_id} ready after {polls} poll(s)"
                )
                return handle

            elapsed = self._clock() - start
            if elapsed >= timeout:
                raise ReadinessTimeout(
                    f"Session {handle.session_id} for {handle.provider_id} "
                    f"not ready after {elapsed * 1000:.0f}ms"
                )

            await self._sleep(self._poll_interval)
