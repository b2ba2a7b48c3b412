"""
Dispatcher module: Prompt delivery to one or all providers.

This module provides the delivery path from a RequestContext to the tabs
of the configured chat providers, and the coordinator that fans a prompt
out to every enabled provider.

Key exports:
- DeliveryStatus, DeliveryResult, DispatchOutcome: Outcome records
- DeliveryUnit: One request to one provider, never raises
- DispatchCoordinator: dispatch_one() / dispatch_all() / get_providers()
- get_coordinator(): Global coordinator for the HTTP surface
- create_backend(): Session backend selected by settings
"""

from prompt_relay.dispatcher.handlers import (
    # Data classes
    DeliveryStatus,
    DeliveryResult,
    DispatchOutcome,
    # Delivery
    DeliveryUnit,
)
from prompt_relay.dispatcher.coordinator import (
    DispatchCoordinator,
    create_backend,
    get_coordinator,
    reset_coordinator,
)

__all__ = [
    # Data classes
    "DeliveryStatus",
    "DeliveryResult",
    "DispatchOutcome",
    # Delivery
    "DeliveryUnit",
    # Coordination
    "DispatchCoordinator",
    "create_backend",
    "get_coordinator",
    "reset_coordinator",
]
