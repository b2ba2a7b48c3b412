"""
Pytest configuration and shared fixtures.

Provides test utilities, a deterministic clock, simulated browser backends
and environment setup for the Prompt Relay test suite.

IMPORTANT: Environment variables must be set BEFORE importing modules that
use pydantic-settings, as settings are cached on first access.
"""

import asyncio
import os

# Set test environment variables before importing relay modules
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"
os.environ["SESSION_BACKEND"] = "memory"

# Now safe to import everything else
import pytest
from fastapi.testclient import TestClient

from prompt_relay.config import Settings
from prompt_relay.registry.models import ProviderDescriptor, ProviderRegistry
from prompt_relay.sessions.backend import InMemorySessionBackend


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow-running")


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    yield

    from prompt_relay.dispatcher.coordinator import reset_coordinator

    reset_coordinator()

    from prompt_relay.registry import models

    models._registry_instance = None

    from prompt_relay.history import store

    store._history = None
    store._preferences = None


class FakeClock:
    """
    Manually advanced monotonic clock.

    ``sleep`` advances time instead of waiting, then yields to the event
    loop so other tasks still interleave.
    """

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    """A FakeClock starting at t=0."""
    return FakeClock()


@pytest.fixture
def relay_settings():
    """Settings with short timeouts suitable for tests."""
    return Settings(
        readiness_timeout_ms=1_000,
        readiness_poll_interval_ms=10,
        send_timeout_ms=1_000,
    )


@pytest.fixture
def two_providers():
    """The chat/mirror provider pair used by the end-to-end scenarios."""
    return ProviderRegistry(
        [
            ProviderDescriptor(
                provider_id="chat",
                display_name="Chat",
                endpoint_locator="https://chat.example",
            ),
            ProviderDescriptor(
                provider_id="mirror",
                display_name="Mirror",
                endpoint_locator="https://mirror.example",
            ),
        ]
    )


@pytest.fixture
def make_providers():
    """
    Factory fixture for provider registries of any size.

    Usage:
        providers = make_providers(4, disabled={"p2"})
    """

    def _create(count: int, disabled: set[str] | None = None) -> ProviderRegistry:
        disabled = disabled or set()
        return ProviderRegistry(
            [
                ProviderDescriptor(
                    provider_id=f"p{i}",
                    display_name=f"Provider {i}",
                    endpoint_locator=f"https://p{i}.example",
                    enabled=f"p{i}" not in disabled,
                )
                for i in range(count)
            ]
        )

    return _create


@pytest.fixture
def backend():
    """A simulated browser whose tabs are ready immediately."""
    return InMemorySessionBackend()


@pytest.fixture
def clocked_backend(fake_clock):
    """A simulated browser driven by the fake clock."""
    return InMemorySessionBackend(clock=fake_clock)


@pytest.fixture
def make_coordinator(relay_settings):
    """
    Factory fixture for independent coordinators.

    Each coordinator owns a fresh session registry and is already
    listening for close notifications from its backend.

    Usage:
        coordinator = make_coordinator(providers, backend)
    """
    from prompt_relay.dispatcher.coordinator import DispatchCoordinator

    def _create(providers, backend, settings=None, waiter=None):
        coordinator = DispatchCoordinator(
            providers,
            backend,
            settings=settings or relay_settings,
            waiter=waiter,
        )
        coordinator.start()
        return coordinator

    return _create


@pytest.fixture
def sample_context():
    """A RequestContext with page details filled in."""
    from prompt_relay.schemas.dispatch import RequestContext

    return RequestContext(
        prompt="Summarize this page",
        url="https://example.com/article",
        title="Example article",
        content="Body text of the article",
        selected_text="highlighted words",
        timestamp=1735689600000,
    )


@pytest.fixture
def api_backend():
    """Backend shared between the API test client and the test body."""
    return InMemorySessionBackend()


@pytest.fixture
def test_client(api_backend, relay_settings):
    """
    Create a FastAPI TestClient over a coordinator on the in-memory backend.

    The coordinator is installed as the global instance before the app
    starts, so the lifespan handler picks it up instead of building one.
    """
    from prompt_relay.dispatcher import coordinator as coordinator_module
    from prompt_relay.registry.models import build_provider_registry

    coordinator = coordinator_module.DispatchCoordinator(
        build_provider_registry(), api_backend, settings=relay_settings
    )
    coordinator.start()
    coordinator_module._coordinator = coordinator

    from prompt_relay.main import app

    with TestClient(app) as client:
        yield client
