"""
Lifecycle Monitor - Evicts registry entries for tabs closed by the user.

Close notifications arrive asynchronously and independently of any
in-flight dispatch. Handling them is idempotent: a duplicate or late
notification for an unknown session is a no-op.
"""

import logging
from collections.abc import Callable

from prompt_relay.registry.sessions import SessionRegistry
from prompt_relay.sessions.backend import SessionBackend

logger = logging.getLogger(__name__)


class LifecycleMonitor:
    """Keeps the session registry free of entries for closed sessions."""

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, backend: SessionBackend) -> None:
        """Subscribe to a backend's close notifications."""
        self.detach()
        self._unsubscribe = backend.on_session_closed(self.handle_session_closed)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def is_attached(self) -> bool:
        return self._unsubscribe is not None

    def handle_session_closed(self, session_id: str) -> str | None:
        """
        Remove the registry entry bound to ``session_id``.

        Returns:
            The evicted provider ID, or None if no entry matched.
        """
        provider_id = self._registry.find_by_session_id(session_id)
        if provider_id is None:
            logger.debug(f"Close notification for untracked session {session_id}")
            return None

        self._registry.remove_if_current(provider_id, session_id)
        logger.info(f"Provider tab closed: {provider_id} ({session_id})")
        return provider_id
