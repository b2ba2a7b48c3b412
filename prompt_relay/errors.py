"""Prompt Relay error hierarchy.

All project exceptions inherit from RelayError. Failures that belong to a
single provider delivery derive from DeliveryError and carry a stable
``code``; the delivery unit turns them into error results instead of
letting them propagate.

Hierarchy:
    RelayError
    ├── DeliveryError
    │   ├── EndpointUnreachable     open-session failure
    │   ├── SessionLost             a known session stopped resolving
    │   ├── ReadinessTimeout        tab never finished loading
    │   ├── SendFailed              prompt could not be delivered
    │   │   └── SendTimeout         tab never acknowledged the prompt
    │   └── UnknownProvider         provider id not configured
    ├── SessionNotFound             backend probe for a dead session id
    └── ConfigurationError
        └── NoProvidersConfigured
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all Prompt Relay errors."""


class DeliveryError(RelayError):
    """A failure confined to one (request, provider) delivery."""

    code = "DELIVERY_ERROR"


class EndpointUnreachable(DeliveryError):
    code = "ENDPOINT_UNREACHABLE"


class SessionLost(DeliveryError):
    code = "SESSION_LOST"


class ReadinessTimeout(DeliveryError):
    code = "READINESS_TIMEOUT"


class SendFailed(DeliveryError):
    code = "SEND_FAILED"


class SendTimeout(SendFailed):
    code = "SEND_TIMEOUT"


class UnknownProvider(DeliveryError):
    code = "UNKNOWN_PROVIDER"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown provider: {provider_id}")
        self.provider_id = provider_id


class SessionNotFound(RelayError):
    """Raised by a session backend when a session id no longer resolves."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ConfigurationError(RelayError):
    """Fatal misconfiguration, distinct from a per-provider delivery error."""


class NoProvidersConfigured(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No providers are configured")
