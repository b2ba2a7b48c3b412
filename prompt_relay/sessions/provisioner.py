"""
Session Provisioner - Reuse or open the session bound to a provider.

The read-check-create-write sequence is a compare-and-set on the session
registry. It runs under a per-provider asyncio.Lock so two concurrent
acquisitions for the same provider open one tab, not two, while different
providers still provision in parallel.
"""

import asyncio
import logging
from collections import defaultdict

from prompt_relay.errors import SessionNotFound
from prompt_relay.registry.models import ProviderRegistry
from prompt_relay.registry.sessions import SessionHandle, SessionRegistry
from prompt_relay.sessions.backend import SessionBackend

logger = logging.getLogger(__name__)


class SessionProvisioner:
    """
    Hands out a live session for a provider.

    A registry entry is only reused after the backend confirms its session
    still resolves; a stale entry is evicted and replaced transparently.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        providers: ProviderRegistry,
        backend: SessionBackend,
    ) -> None:
        self._registry = registry
        self._providers = providers
        self._backend = backend
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def acquire(self, provider_id: str) -> SessionHandle:
        """
        Return the live session for ``provider_id``, opening one if needed.

        Raises:
            UnknownProvider: The provider is not configured.
            EndpointUnreachable: A new session could not be opened.
        """
        provider = self._providers.require_provider(provider_id)

        async with self._locks[provider_id]:
            existing = self._registry.get(provider_id)
            if existing is not None:
                try:
                    existing.load_state = await self._backend.query_session_status(
                        existing.session_id
                    )
                    logger.debug(
                        f"Reusing session {existing.session_id} for {provider_id}"
                    )
                    return existing
                except SessionNotFound:
                    logger.info(
                        f"Session {existing.session_id} for {provider_id} is gone, "
                        f"opening a new one"
                    )
                    self._registry.remove_if_current(provider_id, existing.session_id)

            session_id = await self._backend.open_session(provider.endpoint_locator)
            handle = SessionHandle(provider_id=provider_id, session_id=session_id)
            self._registry.put(provider_id, handle)
            logger.info(
                f"Created session {session_id} for {provider.display_name}"
            )
            return handle

    def release(self, provider_id: str, handle: SessionHandle) -> bool:
        """
        Forget a session the caller found to be dead.

        Only evicts if the registry still holds this exact session.
        """
        removed = self._registry.remove_if_current(provider_id, handle.session_id)
        if removed:
            logger.info(f"Released lost session {handle.session_id} for {provider_id}")
        return removed
