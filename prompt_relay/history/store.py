"""
History and Preferences Store

Keeps the prompt history log and the user's preferences in memory.
History is most-recent-first and capped; older entries are discarded.
Nothing here is persisted across restarts.

Both stores use threading.Lock so they are safe to share between
FastAPI's async handlers and threadpool-run sync handlers.
"""

import threading
import time
from typing import Any

from prompt_relay.config import get_settings
from prompt_relay.schemas.dispatch import HistoryEntry, UserPreferences


class HistoryStore:
    """
    Thread-safe, capped, most-recent-first history log.

    Example:
        store = HistoryStore(max_entries=100)
        store.add({"prompt": "hello", "provider": "claude"})
        store.entries()[0].prompt  # "hello"
    """

    def __init__(self, max_entries: int = 100):
        """
        Initialize the history store.

        Args:
            max_entries: Maximum entries to retain. The oldest entry is
                         dropped when a new one would exceed the limit.
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []
        self._max_entries = max_entries

    def add(self, data: dict[str, Any] | HistoryEntry) -> HistoryEntry:
        """
        Record a new entry at the front of the log, stamped with the current time.

        Returns:
            The stored entry
        """
        payload = data.model_dump() if isinstance(data, HistoryEntry) else dict(data)
        payload["timestamp"] = time.time()
        entry = HistoryEntry.model_validate(payload)

        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self._max_entries :]
        return entry

    def entries(self, limit: int | None = None) -> list[HistoryEntry]:
        """Return entries, newest first."""
        with self._lock:
            entries = list(self._entries)
        return entries if limit is None else entries[:limit]

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PreferencesStore:
    """Holds the current UserPreferences."""

    def __init__(self, preferences: UserPreferences | None = None):
        self._lock = threading.Lock()
        self._preferences = preferences or UserPreferences()

    def get(self) -> UserPreferences:
        with self._lock:
            return self._preferences

    def update(self, changes: dict[str, Any]) -> UserPreferences:
        """
        Merge ``changes`` into the current preferences.

        Raises:
            pydantic.ValidationError: If the merged preferences are invalid
        """
        with self._lock:
            merged = {**self._preferences.model_dump(), **changes}
            self._preferences = UserPreferences.model_validate(merged)
            return self._preferences

    def reset(self) -> None:
        with self._lock:
            self._preferences = UserPreferences()


_history: HistoryStore | None = None
_preferences: PreferencesStore | None = None


def get_history_store() -> HistoryStore:
    """
    Get the global history store instance.

    Returns:
        Singleton HistoryStore sized from settings
    """
    global _history
    if _history is None:
        _history = HistoryStore(max_entries=get_settings().history_max_entries)
    return _history


def get_preferences_store() -> PreferencesStore:
    """
    Get the global preferences store instance.

    Returns:
        Singleton PreferencesStore seeded with the configured default provider
    """
    global _preferences
    if _preferences is None:
        _preferences = PreferencesStore(
            UserPreferences(default_provider=get_settings().default_provider)
        )
    return _preferences
