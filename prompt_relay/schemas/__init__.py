"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the Prompt Relay API:
- RequestContext shared by every delivery of a dispatch
- Delivery and dispatch outcome models
- Inbound action envelope, preferences, history and session models
- Error and health check models

Example usage:
    from prompt_relay.schemas import RequestContext

    context = RequestContext(prompt="Hello", url="https://example.com")
    context.to_message()  # {"type": "sendPrompt", "prompt": "Hello", ...}
"""

from prompt_relay.schemas.dispatch import (
    # Request models
    RequestContext,
    InboundMessage,
    SessionClosedEvent,
    # Preferences and history
    UserPreferences,
    HistoryEntry,
    # Response models
    DeliveryResultSchema,
    DispatchOutcomeResponse,
    SessionInfo,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Health models
    ComponentHealth,
    HealthResponse,
    # Conversion utilities
    delivery_result_to_schema,
    build_dispatch_response,
)

__all__ = [
    # Request models
    "RequestContext",
    "InboundMessage",
    "SessionClosedEvent",
    # Preferences and history
    "UserPreferences",
    "HistoryEntry",
    # Response models
    "DeliveryResultSchema",
    "DispatchOutcomeResponse",
    "SessionInfo",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
    # Conversion utilities
    "delivery_result_to_schema",
    "build_dispatch_response",
]
