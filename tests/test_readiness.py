"""
Readiness Waiter Tests

Tests for the bounded polling loop, driven by a fake clock so no test
actually sleeps.
"""

import pytest

from prompt_relay.errors import ReadinessTimeout, SessionLost
from prompt_relay.registry.sessions import LoadState, SessionHandle
from prompt_relay.sessions.readiness import ReadinessWaiter


async def _open(backend, provider_id="chat"):
    session_id = await backend.open_session(f"https://{provider_id}.example")
    return SessionHandle(provider_id, session_id)


class TestAwaitReady:
    """Tests for ReadinessWaiter.await_ready()."""

    @pytest.mark.asyncio
    async def test_ready_immediately(self, clocked_backend, fake_clock):
        """A ready session returns without sleeping."""
        handle = await _open(clocked_backend)
        waiter = ReadinessWaiter(clocked_backend, clock=fake_clock, sleep=fake_clock.sleep)

        result = await waiter.await_ready(handle, timeout=10.0)

        assert result is handle
        assert handle.load_state is LoadState.READY
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_ready_after_load_delay(self, fake_clock):
        """Polls at the fixed interval until the tab finishes loading."""
        from prompt_relay.sessions.backend import InMemorySessionBackend

        backend = InMemorySessionBackend(load_delay=0.35, clock=fake_clock)
        handle = await _open(backend)
        waiter = ReadinessWaiter(
            backend, poll_interval=0.1, clock=fake_clock, sleep=fake_clock.sleep
        )

        await waiter.await_ready(handle, timeout=10.0)

        assert handle.load_state is LoadState.READY
        assert fake_clock.sleeps == [0.1, 0.1, 0.1, 0.1]
        assert fake_clock.now == pytest.approx(0.4)

    @pytest.mark.asyncio
    async def test_timeout_not_before_deadline(self, clocked_backend, fake_clock):
        """A session stuck loading times out at or after the timeout, not before."""
        handle = await _open(clocked_backend)
        clocked_backend.set_status(handle.session_id, LoadState.LOADING)
        waiter = ReadinessWaiter(
            clocked_backend, poll_interval=0.1, clock=fake_clock, sleep=fake_clock.sleep
        )

        with pytest.raises(ReadinessTimeout):
            await waiter.await_ready(handle, timeout=2.0)

        assert fake_clock.now >= 2.0
        assert fake_clock.now < 2.0 + 0.1 + 1e-9
        assert handle.load_state is LoadState.LOADING

    @pytest.mark.asyncio
    async def test_timeout_error_code(self, clocked_backend, fake_clock):
        handle = await _open(clocked_backend)
        clocked_backend.set_status(handle.session_id, LoadState.LOADING)
        waiter = ReadinessWaiter(clocked_backend, clock=fake_clock, sleep=fake_clock.sleep)

        with pytest.raises(ReadinessTimeout) as exc_info:
            await waiter.await_ready(handle, timeout=0.5)

        assert exc_info.value.code == "READINESS_TIMEOUT"
        assert handle.session_id in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_session_lost_surfaces_immediately(self, clocked_backend, fake_clock):
        """A vanished session fails at once instead of waiting out the timeout."""
        handle = await _open(clocked_backend)
        clocked_backend.drop_session(handle.session_id)
        waiter = ReadinessWaiter(clocked_backend, clock=fake_clock, sleep=fake_clock.sleep)

        with pytest.raises(SessionLost):
            await waiter.await_ready(handle, timeout=10.0)

        assert fake_clock.now == 0.0
        assert handle.load_state is LoadState.UNKNOWN

    @pytest.mark.asyncio
    async def test_session_lost_mid_wait(self, clocked_backend, fake_clock):
        """Closing the tab while it loads ends the wait with SessionLost."""
        handle = await _open(clocked_backend)
        clocked_backend.set_status(handle.session_id, LoadState.LOADING)

        async def sleep_then_close(seconds):
            await fake_clock.sleep(seconds)
            if fake_clock.now >= 0.3:
                clocked_backend.drop_session(handle.session_id)

        waiter = ReadinessWaiter(
            clocked_backend, poll_interval=0.1, clock=fake_clock, sleep=sleep_then_close
        )

        with pytest.raises(SessionLost):
            await waiter.await_ready(handle, timeout=10.0)

        assert fake_clock.now < 1.0

    def test_poll_interval_must_be_positive(self, backend):
        with pytest.raises(ValueError):
            ReadinessWaiter(backend, poll_interval=0)
