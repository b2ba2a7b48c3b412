"""
Dispatcher Handlers - Delivery of one request to one provider.

This module handles the per-provider delivery steps (open or reuse a tab,
wait for it to load, hand the prompt to the tab's adapter) and normalizes
every outcome into a DeliveryResult.

Key components:
- DeliveryStatus: sent / error
- DeliveryResult: Standardized outcome for one (request, provider) pair
- DispatchOutcome: Collection of results for a send-to-all dispatch
- DeliveryUnit: Runs the delivery steps and never raises past its boundary
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from prompt_relay.errors import DeliveryError, SendTimeout, SessionLost, SessionNotFound
from prompt_relay.registry.models import ProviderRegistry
from prompt_relay.registry.sessions import SessionHandle
from prompt_relay.schemas.dispatch import RequestContext
from prompt_relay.sessions.backend import SessionBackend
from prompt_relay.sessions.provisioner import SessionProvisioner
from prompt_relay.sessions.readiness import ReadinessWaiter

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"


class DeliveryStatus(str, Enum):
    """Terminal status of a single delivery."""

    SENT = "sent"
    ERROR = "error"


@dataclass
class DeliveryResult:
    """
    Result of delivering one request to one provider.

    Produced exactly once per (request, provider) pair and never retried.

    Attributes:
        provider_id: Provider the result belongs to
        status: sent or error
        error: Failure message if the delivery failed
        error_code: Machine-readable failure code (see prompt_relay.errors)
        session_id: Session the prompt was handed to, when one was acquired
        latency_ms: Time spent on this delivery
    """

    provider_id: str
    status: DeliveryStatus
    error: str | None = None
    error_code: str | None = None
    session_id: str | None = None
    latency_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the prompt reached the provider's tab."""
        return self.status is DeliveryStatus.SENT

    @classmethod
    def failure(
        cls,
        provider_id: str,
        error: Exception,
        session_id: str | None = None,
        latency_ms: float = 0.0,
    ) -> "DeliveryResult":
        """Build an error result from the exception that ended a delivery."""
        code = error.code if isinstance(error, DeliveryError) else INTERNAL_ERROR_CODE
        return cls(
            provider_id=provider_id,
            status=DeliveryStatus.ERROR,
            error=str(error) or type(error).__name__,
            error_code=code,
            session_id=session_id,
            latency_ms=latency_ms,
        )


@dataclass
class DispatchOutcome:
    """
    Results of a send-to-all dispatch, one per enabled provider.

    Order carries no meaning; results are tagged by provider ID.
    """

    results: list[DeliveryResult] = field(default_factory=list)
    latency_ms: float = 0.0

    @property
    def sent(self) -> list[DeliveryResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[DeliveryResult]:
        return [r for r in self.results if not r.success]

    def by_provider(self) -> dict[str, DeliveryResult]:
        """Index results by provider ID."""
        return {r.provider_id: r for r in self.results}

    def __len__(self) -> int:
        return len(self.results)


class DeliveryUnit:
    """
    Delivers a request to one provider.

    Steps: acquire a session, wait for it to be ready, send the prompt
    message with a bounded wait for the acknowledgement. A failure at any
    step becomes an error result; cancellation still propagates.
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        provisioner: SessionProvisioner,
        waiter: ReadinessWaiter,
        backend: SessionBackend,
        readiness_timeout: float = 10.0,
        send_timeout: float = 15.0,
    ) -> None:
        self._providers = providers
        self._provisioner = provisioner
        self._waiter = waiter
        self._backend = backend
        self._readiness_timeout = readiness_timeout
        self._send_timeout = send_timeout

    async def deliver(self, provider_id: str, context: RequestContext) -> DeliveryResult:
        """
        Deliver ``context`` to ``provider_id``.

        Args:
            provider_id: Configured provider to deliver to.
            context: Prompt and page context; never mutated.

        Returns:
            DeliveryResult with status sent or error.
        """
        start_time = time.perf_counter()
        handle: SessionHandle | None = None

        try:
            self._providers.require_provider(provider_id)
            handle = await self._provisioner.acquire(provider_id)
            await self._waiter.await_ready(handle, timeout=self._readiness_timeout)
            await self._send(handle, context)

        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            if isinstance(e, SessionLost) and handle is not None:
                self._provisioner.release(provider_id, handle)
            if isinstance(e, DeliveryError):
                logger.warning(f"Delivery to {provider_id} failed: {e}")
            else:
                logger.exception(f"Unexpected error delivering to {provider_id}")
            return DeliveryResult.failure(
                provider_id,
                e,
                session_id=handle.session_id if handle else None,
                latency_ms=latency_ms,
            )

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Delivered to {provider_id}: session={handle.session_id}, "
            f"latency={latency_ms:.0f}ms"
        )
        return DeliveryResult(
            provider_id=provider_id,
            status=DeliveryStatus.SENT,
            session_id=handle.session_id,
            latency_ms=latency_ms,
        )

    async def _send(self, handle: SessionHandle, context: RequestContext) -> dict:
        """Hand the prompt message to the tab, bounded by the send timeout."""
        try:
            return await asyncio.wait_for(
                self._backend.send_to_session(handle.session_id, context.to_message()),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SendTimeout(
                f"Session {handle.session_id} did not acknowledge within "
                f"{self._send_timeout * 1000:.0f}ms"
            ) from e
        except SessionNotFound as e:
            raise SessionLost(
                f"Session {handle.session_id} for {handle.provider_id} was closed"
            ) from e
