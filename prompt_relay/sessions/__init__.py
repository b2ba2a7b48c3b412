"""
Sessions module: Tab lifecycle around the session registry.

This module contains:
- backend.py: Browser capabilities (open, probe, send, close events)
- readiness.py: Bounded polling until a tab has loaded
- provisioner.py: Reuse-or-open with per-provider serialization
- lifecycle.py: Eviction of tabs closed outside the relay

Public API:
- SessionBackend, InMemorySessionBackend, HttpSessionBackend
- ReadinessWaiter
- SessionProvisioner
- LifecycleMonitor
"""

from prompt_relay.sessions.backend import (
    HttpSessionBackend,
    InMemorySessionBackend,
    SessionBackend,
)
from prompt_relay.sessions.lifecycle import LifecycleMonitor
from prompt_relay.sessions.provisioner import SessionProvisioner
from prompt_relay.sessions.readiness import ReadinessWaiter

__all__ = [
    "SessionBackend",
    "InMemorySessionBackend",
    "HttpSessionBackend",
    "ReadinessWaiter",
    "SessionProvisioner",
    "LifecycleMonitor",
]
