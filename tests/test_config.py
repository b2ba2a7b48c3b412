"""
Configuration Tests

Tests for reading relay settings from the environment.
"""

import pytest
from pydantic import ValidationError

from prompt_relay.config import Settings


class TestDisabledProviders:
    """Tests for the DISABLED_PROVIDERS variable."""

    def test_default_is_empty(self, monkeypatch):
        monkeypatch.delenv("DISABLED_PROVIDERS", raising=False)

        assert Settings().disabled_providers == []

    def test_single_provider(self, monkeypatch):
        monkeypatch.setenv("DISABLED_PROVIDERS", "grok")

        assert Settings().disabled_providers == ["grok"]

    def test_comma_separated(self, monkeypatch):
        monkeypatch.setenv("DISABLED_PROVIDERS", " grok, claude ,,")

        assert Settings().disabled_providers == ["grok", "claude"]

    def test_json_list(self, monkeypatch):
        monkeypatch.setenv("DISABLED_PROVIDERS", '["grok", "gemini"]')

        assert Settings().disabled_providers == ["grok", "gemini"]

    def test_empty_string(self, monkeypatch):
        monkeypatch.setenv("DISABLED_PROVIDERS", "")

        assert Settings().disabled_providers == []

    def test_python_list_still_accepted(self):
        assert Settings(disabled_providers=["grok"]).disabled_providers == ["grok"]


class TestSettingsValues:
    """Tests for other environment-driven settings."""

    def test_timeouts_from_environment(self, monkeypatch):
        monkeypatch.setenv("READINESS_TIMEOUT_MS", "2500")
        monkeypatch.setenv("SEND_TIMEOUT_MS", "500")

        settings = Settings()

        assert settings.readiness_timeout_seconds == 2.5
        assert settings.send_timeout_seconds == 0.5

    def test_bridge_url_trailing_slash_dropped(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_URL", "http://localhost:9000/")

        assert Settings().bridge_url == "http://localhost:9000"

    def test_bridge_url_requires_http(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_URL", "ws://localhost:9000")

        with pytest.raises(ValidationError):
            Settings()
