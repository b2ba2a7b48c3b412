"""
Prompt Relay: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the inbound
router that the extension UI and the browser bridge talk to:
- /health: Health check endpoint
- /config: Non-sensitive configuration values
- /providers: Configured provider descriptors
- /dispatch, /dispatch/{provider_id}: Send-to-all and single-target dispatch
- /messages: Action-style envelope mirroring the extension message protocol
- /sessions, /sessions/closed: Session registry view and close notifications
- /settings, /history: User preferences and prompt history

The application uses a lifespan context manager to:
1. Load configuration and configure logging at startup
2. Build the dispatch coordinator and attach its lifecycle monitor
3. Release the session backend on shutdown
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from prompt_relay import __version__
from prompt_relay.config import Settings, configure_logging, get_settings
from prompt_relay.dispatcher.coordinator import get_coordinator, reset_coordinator
from prompt_relay.errors import ConfigurationError
from prompt_relay.history import get_history_store, get_preferences_store
from prompt_relay.registry.models import ProviderDescriptor
from prompt_relay.schemas.dispatch import (
    ComponentHealth,
    DeliveryResultSchema,
    DispatchOutcomeResponse,
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    HistoryEntry,
    InboundMessage,
    RequestContext,
    SessionClosedEvent,
    SessionInfo,
    UserPreferences,
    build_dispatch_response,
    delivery_result_to_schema,
)

logger = logging.getLogger(__name__)

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Builds the coordinator and starts listening for closed tabs

    On shutdown:
    - Closes the session backend
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("Prompt Relay starting up...")
    logger.info("=" * 60)
    logger.info(f"Session backend: {settings.session_backend}")
    if settings.session_backend == "http":
        logger.info(f"Bridge URL: {settings.bridge_url}")
        logger.info(
            f"Bridge token: {'configured' if settings.bridge_token else 'not configured'}"
        )
    logger.info(f"Readiness timeout: {settings.readiness_timeout_ms}ms")
    logger.info(f"Send timeout: {settings.send_timeout_ms}ms")

    coordinator = get_coordinator()
    providers = coordinator.get_providers()
    logger.info(f"{len(providers)} providers configured:")
    for provider in providers:
        state = "enabled" if provider.enabled else "disabled"
        logger.info(f"  - {provider.provider_id}: {provider.endpoint_locator} ({state})")

    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("Prompt Relay ready to accept requests")

    yield  # Application runs here

    logger.info("Prompt Relay shutting down...")
    await coordinator.aclose()
    reset_coordinator()


app = FastAPI(
    title="Prompt Relay",
    description="Deliver one prompt to many AI chat providers at once",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Extension origins are not known ahead of time
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(
    status_code: int, code: str, message: str, field: str | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=code, message=message, field=field)
        ).model_dump(),
    )


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "Prompt Relay",
        "description": "Multi-target prompt dispatch",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "providers": "/providers",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check system health and component status.",
)
async def health_check():
    """
    Health check endpoint for monitoring.

    Checks:
    - Provider configuration (at least one enabled provider)
    - Session registry size
    - Session backend type
    """
    components = []
    overall_status = "healthy"

    coordinator = get_coordinator()

    providers = coordinator.get_providers()
    enabled = [p for p in providers if p.enabled]
    if enabled:
        components.append(
            ComponentHealth(
                name="providers",
                status="healthy",
                message=f"{len(enabled)} of {len(providers)} providers enabled",
            )
        )
    else:
        components.append(
            ComponentHealth(
                name="providers",
                status="degraded" if providers else "unhealthy",
                message="No enabled providers",
            )
        )
        overall_status = "degraded" if providers else "unhealthy"

    components.append(
        ComponentHealth(
            name="sessions",
            status="healthy",
            message=f"{len(coordinator.registry)} open sessions",
        )
    )

    components.append(
        ComponentHealth(
            name="backend",
            status="healthy" if coordinator.monitor.is_attached else "degraded",
            message=type(coordinator.backend).__name__,
        )
    )
    if not coordinator.monitor.is_attached and overall_status == "healthy":
        overall_status = "degraded"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        service="prompt-relay",
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config():
    """
    Returns non-sensitive configuration values.

    The bridge token is a SecretStr and is NOT exposed in this endpoint.
    """
    settings: Settings = get_settings()
    return {
        "dispatch": {
            "readiness_timeout_ms": settings.readiness_timeout_ms,
            "readiness_poll_interval_ms": settings.readiness_poll_interval_ms,
            "send_timeout_ms": settings.send_timeout_ms,
            "page_text_max_chars": settings.page_text_max_chars,
        },
        "sessions": {
            "backend": settings.session_backend,
            "bridge_url": settings.bridge_url,
            "bridge_token_configured": settings.bridge_token is not None,
        },
        "providers": {
            "default": settings.default_provider,
            "disabled": settings.disabled_providers,
        },
        "history": {"max_entries": settings.history_max_entries},
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
        },
        "logging": {"level": settings.log_level},
    }


@app.get("/providers", response_model=list[ProviderDescriptor])
async def list_providers():
    """
    List all configured providers.

    Disabled providers are included with ``enabled: false``; they are
    skipped by send-to-all but still reachable by single-target dispatch.
    """
    return get_coordinator().get_providers()


@app.post(
    "/dispatch/{provider_id}",
    response_model=DeliveryResultSchema,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Send to one provider",
)
async def dispatch_one(provider_id: str, context: RequestContext):
    """
    Deliver a prompt to a single provider.

    Delivery failures (timeouts, closed tabs, unreachable endpoints) are
    reported with ``status: error`` and a 200 response; only an unknown
    provider ID is an HTTP error.
    """
    coordinator = get_coordinator()
    if provider_id not in {p.provider_id for p in coordinator.get_providers()}:
        raise HTTPException(
            status_code=404,
            detail={
                "code": ErrorCodes.UNKNOWN_PROVIDER,
                "message": f"Unknown provider: {provider_id}",
            },
        )

    result = await coordinator.dispatch_one(provider_id, context)
    return delivery_result_to_schema(result)


@app.post(
    "/dispatch",
    response_model=DispatchOutcomeResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Send to all providers",
)
async def dispatch_all(context: RequestContext):
    """
    Deliver a prompt to every enabled provider concurrently.

    The response always holds one result per enabled provider; a failing
    provider never prevents results for the others.
    """
    outcome = await get_coordinator().dispatch_all(context)
    return build_dispatch_response(outcome)


@app.post("/messages", summary="Extension message router")
async def handle_message(message: InboundMessage):
    """
    Route an action-style message from the extension UI.

    Supported actions: getProviders, sendPrompt, sendToAll, getSettings,
    updateSettings, saveHistory, getHistory.
    """
    coordinator = get_coordinator()
    logger.debug(f"Message received: {message.action}")

    try:
        match message.action:
            case "getProviders":
                return [p.model_dump() for p in coordinator.get_providers()]

            case "sendPrompt":
                context = RequestContext.model_validate(message.context or {})
                provider_id = message.provider or get_preferences_store().get().default_provider
                result = await coordinator.dispatch_one(provider_id, context)
                return delivery_result_to_schema(result).model_dump()

            case "sendToAll":
                context = RequestContext.model_validate(message.context or {})
                outcome = await coordinator.dispatch_all(context)
                return build_dispatch_response(outcome).model_dump()

            case "getSettings":
                return {"settings": get_preferences_store().get().model_dump()}

            case "updateSettings":
                get_preferences_store().update(message.settings or {})
                return {"success": True}

            case "saveHistory":
                get_history_store().add(message.data or {})
                return {"success": True}

            case "getHistory":
                return [e.model_dump() for e in get_history_store().entries()]

            case _:
                return _error_response(
                    400, ErrorCodes.UNKNOWN_ACTION, f"Unknown action: {message.action}"
                )

    except ValidationError as e:
        first_error = e.errors()[0] if e.errors() else {}
        return _error_response(
            422,
            ErrorCodes.VALIDATION_ERROR,
            first_error.get("msg", "Validation failed"),
            ".".join(str(loc) for loc in first_error.get("loc", [])) or None,
        )


@app.get("/sessions", response_model=list[SessionInfo])
async def list_sessions():
    """List the provider tabs the relay currently knows about."""
    return [SessionInfo(**h.to_dict()) for h in get_coordinator().registry.snapshot()]


@app.post("/sessions/closed", summary="Session closed notification")
async def session_closed(event: SessionClosedEvent):
    """
    Receive a tab-closed notification from the browser bridge.

    The notification is fanned out to the backend's subscribers, which
    include the lifecycle monitor. Repeated notifications are harmless.
    """
    coordinator = get_coordinator()
    provider_id = coordinator.registry.find_by_session_id(event.session_id)
    coordinator.backend.emit_session_closed(event.session_id)
    return {"session_id": event.session_id, "provider_id": provider_id}


@app.get("/settings", response_model=UserPreferences)
async def get_user_settings():
    return get_preferences_store().get()


@app.put("/settings", response_model=UserPreferences)
async def update_user_settings(preferences: UserPreferences):
    return get_preferences_store().update(preferences.model_dump())


@app.get("/history", response_model=list[HistoryEntry])
async def get_history(limit: int | None = None):
    """Return the prompt history, newest first."""
    return get_history_store().entries(limit)


@app.post("/history", response_model=HistoryEntry)
async def save_history(entry: HistoryEntry):
    return get_history_store().add(entry)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """
    Handle fatal configuration errors such as an empty provider set.

    These are distinct from per-provider delivery errors, which are
    always reported inside a result.
    """
    logger.error(f"Configuration error: {exc}")
    return _error_response(500, ErrorCodes.CONFIGURATION_ERROR, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )
