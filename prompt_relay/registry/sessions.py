"""
Session Registry

Maps a provider ID to the live session (background tab) currently bound
to it. The registry is plain in-memory state with no I/O of its own:
- The provisioner writes entries when it opens a session
- The lifecycle monitor removes entries when a tab is closed
- Nothing is persisted across restarts

All mutation happens on the event loop thread, so no lock is held here;
per-provider serialization of create-if-missing lives in the provisioner.
"""

import time
from dataclasses import dataclass, field
from enum import Enum


class LoadState(str, Enum):
    """Load state of the page behind a session."""

    LOADING = "loading"
    READY = "ready"
    UNKNOWN = "unknown"


@dataclass
class SessionHandle:
    """
    Live binding between a provider and a background tab.

    Attributes:
        provider_id: Provider this session belongs to
        session_id: Opaque ID assigned by the session backend
        load_state: Last observed load state (starts as loading)
        created_at: Unix timestamp when the session was opened
    """

    provider_id: str
    session_id: str
    load_state: LoadState = LoadState.LOADING
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider_id": self.provider_id,
            "session_id": self.session_id,
            "load_state": self.load_state.value,
            "created_at": self.created_at,
        }


class SessionRegistry:
    """
    Table of provider ID -> SessionHandle.

    Holds at most one handle per provider by construction. ``put`` is
    last-writer-wins; entries whose session has died are removed either by
    the lifecycle monitor or by the provisioner on its next acquire.

    Example:
        registry = SessionRegistry()
        registry.put("chatgpt", SessionHandle("chatgpt", "tab-7"))
        registry.find_by_session_id("tab-7")  # -> "chatgpt"
    """

    def __init__(self) -> None:
        self._entries: dict[str, SessionHandle] = {}

    def get(self, provider_id: str) -> SessionHandle | None:
        return self._entries.get(provider_id)

    def put(self, provider_id: str, handle: SessionHandle) -> None:
        """Bind a handle to a provider, replacing any previous entry."""
        if handle.provider_id != provider_id:
            raise ValueError(
                f"Handle for '{handle.provider_id}' cannot be stored under '{provider_id}'"
            )
        self._entries[provider_id] = handle

    def remove(self, provider_id: str) -> SessionHandle | None:
        """Remove and return the entry for a provider, if any."""
        return self._entries.pop(provider_id, None)

    def remove_if_current(self, provider_id: str, session_id: str) -> bool:
        """
        Remove a provider's entry only if it still points at ``session_id``.

        Used when a delivery finds its own session dead: a newer session
        created in the meantime must not be evicted.

        Returns:
            True if an entry was removed
        """
        current = self._entries.get(provider_id)
        if current is not None and current.session_id == session_id:
            del self._entries[provider_id]
            return True
        return False

    def find_by_session_id(self, session_id: str) -> str | None:
        """Return the provider ID bound to ``session_id``, if any."""
        for provider_id, handle in self._entries.items():
            if handle.session_id == session_id:
                return provider_id
        return None

    def snapshot(self) -> list[SessionHandle]:
        """Return a copy of the current entries."""
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._entries
