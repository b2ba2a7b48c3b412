"""
Prompt Relay Configuration Module

Timeouts, the session backend selection and the provider enable list are
all environment-driven through pydantic-settings. Variable names match the
field names, case-insensitively (READINESS_TIMEOUT_MS, SESSION_BACKEND...).
The bridge token is a SecretStr so it never shows up in logs.
"""

from functools import lru_cache
from typing import Annotated, Literal
import json
import logging
import sys

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Relay settings, read from the environment or a local .env file.

    Durations are configured in milliseconds to match the browser side;
    the ``*_seconds`` properties convert them for asyncio.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    readiness_timeout_ms: int = Field(
        default=10_000,
        gt=0,
        description="Maximum time to wait for a provider tab to finish loading",
    )

    readiness_poll_interval_ms: int = Field(
        default=100,
        gt=0,
        description="Fixed interval between tab status probes",
    )

    send_timeout_ms: int = Field(
        default=15_000,
        gt=0,
        description="Maximum time to wait for a tab to acknowledge a prompt",
    )

    page_text_max_chars: int = Field(
        default=10_000,
        gt=0,
        description="Page text snippets longer than this are truncated",
    )

    history_max_entries: int = Field(
        default=100,
        gt=0,
        description="Number of most-recent history entries to keep",
    )

    session_backend: Literal["memory", "http"] = Field(
        default="memory",
        description="Session backend: in-process simulation or HTTP browser bridge",
    )

    bridge_url: str = Field(
        default="http://127.0.0.1:8765",
        description="Base URL of the browser bridge (http backend only)",
    )

    bridge_token: SecretStr | None = Field(
        default=None, description="Bearer token for the browser bridge (optional)"
    )

    disabled_providers: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description=(
            "Provider ids excluded from send-to-all dispatch; comma-separated "
            "(grok,claude) or a JSON list"
        ),
    )

    default_provider: str = Field(
        default="chatgpt",
        description="Provider used when a request does not name one",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="127.0.0.1", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("bridge_url")
    @classmethod
    def validate_bridge_url(cls, v: str) -> str:
        """Require an http(s) bridge URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("bridge_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("disabled_providers", mode="before")
    @classmethod
    def parse_disabled_providers(cls, v: object) -> object:
        """Accept ``grok,claude`` as well as a JSON list from the environment."""
        if not isinstance(v, str):
            return v
        if v.strip().startswith("["):
            return json.loads(v)
        return [item.strip() for item in v.split(",") if item.strip()]

    @property
    def readiness_timeout_seconds(self) -> float:
        return self.readiness_timeout_ms / 1000

    @property
    def readiness_poll_interval_seconds(self) -> float:
        return self.readiness_poll_interval_ms / 1000

    @property
    def send_timeout_seconds(self) -> float:
        return self.send_timeout_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """
    Load the relay settings once per process.

    Tests that need different values construct Settings directly and
    inject it into the coordinator instead of clearing this cache.

    Returns:
        Settings: The process-wide settings.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Route relay logs to stdout at the configured level.

    The bridge client's httpx/httpcore loggers are held at WARNING so
    readiness polling does not flood the output with request lines.

    Args:
        settings: Settings providing ``log_level``.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
