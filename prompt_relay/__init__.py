"""
Prompt Relay: Multi-Target Prompt Dispatch

Delivers one prompt to several session-based AI chat endpoints at once.
Each endpoint lives in a background browser tab; the relay keeps track of
which tab belongs to which provider, waits for tabs to finish loading, and
reports a per-provider outcome back to the caller.
"""

__version__ = "0.1.0"
