"""
History module: Prompt history log and user preferences.

Components:
    HistoryStore: Capped, most-recent-first, thread-safe history log
    PreferencesStore: Current user preferences

Singleton Access:
    get_history_store(): Returns global HistoryStore instance
    get_preferences_store(): Returns global PreferencesStore instance
"""

from prompt_relay.history.store import (
    HistoryStore,
    PreferencesStore,
    get_history_store,
    get_preferences_store,
)

__all__ = [
    "HistoryStore",
    "PreferencesStore",
    "get_history_store",
    "get_preferences_store",
]
