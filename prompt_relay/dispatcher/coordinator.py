"""
Dispatch Coordinator - Single-target and send-to-all prompt delivery.

The coordinator owns the session registry and wires together the
provisioner, readiness waiter, delivery unit and lifecycle monitor. All of
them are injectable, so tests build an independent coordinator per case.

Send-to-all runs one delivery task per enabled provider and joins them
all. Each task fills its own slot in the gathered result list, and a
failing provider never cancels or delays its siblings.
"""

import asyncio
import logging
import time

from prompt_relay.config import Settings, get_settings
from prompt_relay.dispatcher.handlers import (
    DeliveryResult,
    DeliveryUnit,
    DispatchOutcome,
)
from prompt_relay.errors import NoProvidersConfigured
from prompt_relay.registry.models import (
    ProviderDescriptor,
    ProviderRegistry,
    get_provider_registry,
)
from prompt_relay.registry.sessions import SessionRegistry
from prompt_relay.schemas.dispatch import RequestContext
from prompt_relay.sessions.backend import (
    HttpSessionBackend,
    InMemorySessionBackend,
    SessionBackend,
)
from prompt_relay.sessions.lifecycle import LifecycleMonitor
from prompt_relay.sessions.provisioner import SessionProvisioner
from prompt_relay.sessions.readiness import ReadinessWaiter

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """
    Orchestrates delivery of one request to one or all providers.

    Usage:
        coordinator = DispatchCoordinator(providers, backend)
        coordinator.start()
        outcome = await coordinator.dispatch_all(RequestContext(prompt="hi"))
        await coordinator.aclose()

    Attributes:
        registry: Session registry owned by this coordinator
        monitor: Lifecycle monitor keeping the registry consistent
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        backend: SessionBackend,
        settings: Settings | None = None,
        registry: SessionRegistry | None = None,
        waiter: ReadinessWaiter | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._providers = providers
        self._backend = backend
        self.registry = registry if registry is not None else SessionRegistry()
        self.monitor = LifecycleMonitor(self.registry)

        self._waiter = waiter or ReadinessWaiter(
            backend, poll_interval=self._settings.readiness_poll_interval_seconds
        )
        self._provisioner = SessionProvisioner(self.registry, providers, backend)
        self._delivery = DeliveryUnit(
            providers,
            self._provisioner,
            self._waiter,
            backend,
            readiness_timeout=self._settings.readiness_timeout_seconds,
            send_timeout=self._settings.send_timeout_seconds,
        )

    @property
    def backend(self) -> SessionBackend:
        return self._backend

    @property
    def provisioner(self) -> SessionProvisioner:
        return self._provisioner

    def start(self) -> None:
        """Begin listening for session-closed notifications."""
        self.monitor.attach(self._backend)

    async def aclose(self) -> None:
        """Stop listening and release the backend."""
        self.monitor.detach()
        await self._backend.aclose()

    def get_providers(self) -> list[ProviderDescriptor]:
        """Return every configured provider descriptor."""
        return self._providers.list_providers()

    async def dispatch_one(
        self, provider_id: str, context: RequestContext
    ) -> DeliveryResult:
        """
        Deliver ``context`` to a single provider.

        Returns:
            DeliveryResult; failures are reported in the result, not raised.
        """
        logger.info(f"Dispatching to {provider_id}")
        return await self._delivery.deliver(provider_id, context)

    async def dispatch_all(self, context: RequestContext) -> DispatchOutcome:
        """
        Deliver ``context`` to every enabled provider concurrently.

        Returns:
            DispatchOutcome with exactly one result per enabled provider.

        Raises:
            NoProvidersConfigured: The provider configuration is empty.
        """
        if len(self._providers) == 0:
            raise NoProvidersConfigured()

        targets = [p.provider_id for p in self._providers.list_enabled()]
        logger.info(f"Dispatching to all enabled providers: {', '.join(targets) or '-'}")
        start_time = time.perf_counter()

        gathered = await asyncio.gather(
            *(self._delivery.deliver(provider_id, context) for provider_id in targets),
            return_exceptions=True,
        )

        results: list[DeliveryResult] = []
        for provider_id, outcome in zip(targets, gathered):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(f"Delivery task for {provider_id} escaped: {outcome}")
                outcome = DeliveryResult.failure(provider_id, outcome)
            results.append(outcome)

        latency_ms = (time.perf_counter() - start_time) * 1000
        dispatch = DispatchOutcome(results=results, latency_ms=latency_ms)
        logger.info(
            f"Dispatch completed: sent={len(dispatch.sent)}, "
            f"failed={len(dispatch.failed)}, latency={latency_ms:.0f}ms"
        )
        return dispatch


def create_backend(settings: Settings) -> SessionBackend:
    """
    Build the session backend selected by ``settings.session_backend``.

    Args:
        settings: The application settings instance.

    Returns:
        A new SessionBackend.
    """
    if settings.session_backend == "http":
        token = settings.bridge_token.get_secret_value() if settings.bridge_token else None
        return HttpSessionBackend(
            settings.bridge_url,
            token=token,
            timeout=settings.send_timeout_seconds,
        )
    return InMemorySessionBackend()


_coordinator: DispatchCoordinator | None = None


def get_coordinator() -> DispatchCoordinator:
    """
    Get the global coordinator used by the HTTP surface.

    Library callers and tests should construct their own
    DispatchCoordinator instead of sharing this one.

    Returns:
        The singleton DispatchCoordinator, started on first access.
    """
    global _coordinator
    if _coordinator is None:
        settings = get_settings()
        _coordinator = DispatchCoordinator(
            get_provider_registry(), create_backend(settings), settings=settings
        )
        _coordinator.start()
    return _coordinator


def reset_coordinator() -> None:
    """
    Reset the global coordinator instance.

    This is primarily useful for testing to ensure a fresh
    coordinator is created between test runs.
    """
    global _coordinator
    if _coordinator is not None:
        _coordinator.monitor.detach()
    _coordinator = None
