"""
Pydantic Schemas for the Relay API

This module defines the request and response models for the Prompt Relay API:
- RequestContext: Prompt plus optional page context, passed to every delivery
- DeliveryResultSchema / DispatchOutcomeResponse: Per-provider outcomes
- InboundMessage: Action-style envelope used by the extension UI
- Preferences, history, session, error and health schemas

All schemas follow Pydantic v2 patterns with validation and field
descriptions for OpenAPI documentation.
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_relay.config import get_settings

if TYPE_CHECKING:
    from prompt_relay.dispatcher.handlers import DeliveryResult, DispatchOutcome


# =============================================================================
# REQUEST MODELS
# =============================================================================


class RequestContext(BaseModel):
    """
    Prompt and optional page context for one dispatch.

    The context is a value object: it is frozen, shared by every
    concurrent delivery of a dispatch, and never mutated by them.

    Example:
        {
            "prompt": "Summarize this page",
            "url": "https://example.com/article",
            "title": "Example article",
            "content": "First paragraph...",
            "selectedText": "a highlighted sentence",
            "timestamp": 1735689600000
        }
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"prompt": "Explain quantum entanglement simply"},
                {
                    "prompt": "Summarize this page",
                    "url": "https://example.com/article",
                    "title": "Example article",
                    "selectedText": "a highlighted sentence",
                },
            ]
        },
    )

    prompt: str = Field(
        ...,
        min_length=1,
        description="The prompt text to deliver",
    )

    url: str | None = Field(
        default=None,
        description="URL of the page the prompt was written on",
    )

    title: str | None = Field(
        default=None,
        description="Title of that page",
    )

    content: str | None = Field(
        default=None,
        description="Page text snippet (truncated to the configured bound)",
    )

    selected_text: str | None = Field(
        default=None,
        alias="selectedText",
        description="Text the user had selected",
    )

    timestamp: int | None = Field(
        default=None,
        ge=0,
        description="Capture time in epoch milliseconds",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_whitespace(cls, v: str) -> str:
        """Ensure prompt is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("Prompt cannot be empty or whitespace only")
        return v

    @field_validator("content")
    @classmethod
    def truncate_content(cls, v: str | None) -> str | None:
        """Bound the page text snippet."""
        if v is None:
            return v
        return v[: get_settings().page_text_max_chars]

    def to_message(self) -> dict[str, Any]:
        """Build the wire message delivered to a provider tab's adapter."""
        return {
            "type": "sendPrompt",
            "prompt": self.prompt,
            "context": self.model_dump(by_alias=True, exclude_none=True),
        }


class InboundMessage(BaseModel):
    """
    Action-style request envelope sent by the extension UI.

    Mirrors the runtime message protocol: ``action`` selects the
    operation and the remaining fields carry its arguments.
    """

    model_config = ConfigDict(extra="ignore")

    action: str = Field(..., min_length=1, description="Operation to perform")

    provider: str | None = Field(
        default=None, description="Target provider for sendPrompt"
    )

    context: dict[str, Any] | None = Field(
        default=None, description="RequestContext payload for send actions"
    )

    settings: dict[str, Any] | None = Field(
        default=None, description="New preferences for updateSettings"
    )

    data: dict[str, Any] | None = Field(
        default=None, description="History entry for saveHistory"
    )


class SessionClosedEvent(BaseModel):
    """Notification from the browser bridge that a tab was closed."""

    session_id: str = Field(..., min_length=1, description="ID of the closed session")


# =============================================================================
# PREFERENCES AND HISTORY
# =============================================================================


class UserPreferences(BaseModel):
    """User-facing preferences stored alongside the relay."""

    model_config = ConfigDict(extra="ignore")

    auto_open: bool = Field(
        default=False, description="Open the panel automatically on page load"
    )

    default_provider: str = Field(
        default="chatgpt", description="Provider preselected in the panel"
    )

    multi_model: bool = Field(
        default=True, description="Offer send-to-all in the panel"
    )

    context_size: int = Field(
        default=10_000,
        gt=0,
        description=(
            "Page text size the panel should capture; stored for the UI only, "
            "the relay bounds content with the page_text_max_chars setting"
        ),
    )


class HistoryEntry(BaseModel):
    """
    One history record.

    Entries are free-form beyond the common fields; whatever the UI saves
    is kept, stamped with the time it was recorded.
    """

    model_config = ConfigDict(extra="allow")

    prompt: str | None = Field(default=None, description="Prompt that was sent")

    provider: str | None = Field(
        default=None, description="Provider it was sent to, if a single one"
    )

    timestamp: float | None = Field(
        default=None, description="Unix time the entry was recorded"
    )


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class DeliveryResultSchema(BaseModel):
    """Outcome of delivering one request to one provider."""

    provider_id: str = Field(..., description="Provider the result belongs to")

    status: Literal["sent", "error"] = Field(..., description="Delivery status")

    error: str | None = Field(default=None, description="Failure message")

    error_code: str | None = Field(
        default=None, description="Machine-readable failure code"
    )

    session_id: str | None = Field(
        default=None, description="Session the prompt was delivered to"
    )

    latency_ms: float = Field(
        default=0.0, ge=0.0, description="Time spent on this delivery"
    )


class DispatchOutcomeResponse(BaseModel):
    """
    Response for send-to-all dispatch.

    Example:
        {
            "results": [
                {"provider_id": "chatgpt", "status": "sent", ...},
                {"provider_id": "grok", "status": "error",
                 "error_code": "READINESS_TIMEOUT", ...}
            ],
            "sent_count": 1,
            "failed_count": 1,
            "latency_ms": 10012.4
        }
    """

    results: list[DeliveryResultSchema] = Field(
        default_factory=list, description="One result per enabled provider"
    )

    sent_count: int = Field(default=0, ge=0, description="Results with status sent")

    failed_count: int = Field(
        default=0, ge=0, description="Results with status error"
    )

    latency_ms: float = Field(
        default=0.0, ge=0.0, description="Wall time of the whole dispatch"
    )


class SessionInfo(BaseModel):
    """A provider's current session binding."""

    provider_id: str
    session_id: str
    load_state: str
    created_at: float


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Provides machine-readable error codes, human-readable messages,
    and optional field information for validation errors.
    """

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors."""

    error: ErrorDetail = Field(
        ...,
        description="Error details",
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """Health status of an individual system component."""

    name: str = Field(
        ...,
        description="Component name (e.g., 'providers', 'sessions', 'backend')",
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Component health status",
    )

    message: str | None = Field(
        default=None,
        description="Additional status information or error details",
    )


class HealthResponse(BaseModel):
    """Response from the /health endpoint."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Overall service health status",
    )

    service: str = Field(
        default="prompt-relay",
        description="Service identifier",
    )

    version: str = Field(
        ...,
        description="Application version",
    )

    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Health status of individual components",
    )

    uptime_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Time since service start in seconds",
    )


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def delivery_result_to_schema(result: "DeliveryResult") -> DeliveryResultSchema:
    """
    Convert a DeliveryResult dataclass to its API model.

    Args:
        result: DeliveryResult from dispatcher/handlers.py

    Returns:
        DeliveryResultSchema for API response
    """
    return DeliveryResultSchema(
        provider_id=result.provider_id,
        status=result.status.value,
        error=result.error,
        error_code=result.error_code,
        session_id=result.session_id,
        latency_ms=round(result.latency_ms, 2),
    )


def build_dispatch_response(outcome: "DispatchOutcome") -> DispatchOutcomeResponse:
    """Build the send-to-all response from a DispatchOutcome."""
    return DispatchOutcomeResponse(
        results=[delivery_result_to_schema(r) for r in outcome.results],
        sent_count=len(outcome.sent),
        failed_count=len(outcome.failed),
        latency_ms=round(outcome.latency_ms, 2),
    )
