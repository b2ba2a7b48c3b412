"""
Provider Registry

This module defines the static set of AI chat providers the relay can
deliver prompts to:
- ChatGPT, Claude, Gemini, Perplexity and Grok web surfaces

Each provider entry includes:
- Provider ID (the key used in dispatch calls)
- Display name and icon for the UI layer
- Endpoint locator (URL a background tab is opened on)
- Enabled flag (filter predicate for send-to-all dispatch)

Provider configuration is loaded once and never mutated at runtime.
"""

from pydantic import BaseModel, ConfigDict, Field

from prompt_relay.config import get_settings
from prompt_relay.errors import UnknownProvider


class ProviderDescriptor(BaseModel):
    """
    Complete metadata for a configured chat provider.

    Descriptors are immutable; enabling or disabling a provider means
    building a new registry, not editing an entry in place.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(
        ...,
        min_length=1,
        description="Unique identifier used in dispatch calls",
    )

    display_name: str = Field(
        ...,
        description="Human-readable provider name",
    )

    endpoint_locator: str = Field(
        ...,
        description="Address a new session is opened on",
    )

    icon: str = Field(
        default="",
        description="Short glyph shown next to the provider in the UI",
    )

    enabled: bool = Field(
        default=True,
        description="Whether send-to-all dispatch includes this provider",
    )


DEFAULT_PROVIDERS: list[ProviderDescriptor] = [
    ProviderDescriptor(
        provider_id="chatgpt",
        display_name="ChatGPT",
        endpoint_locator="https://chat.openai.com",
        icon="🤖",
    ),
    ProviderDescriptor(
        provider_id="claude",
        display_name="Claude",
        endpoint_locator="https://claude.ai",
        icon="🎭",
    ),
    ProviderDescriptor(
        provider_id="gemini",
        display_name="Gemini",
        endpoint_locator="https://gemini.google.com",
        icon="✨",
    ),
    ProviderDescriptor(
        provider_id="perplexity",
        display_name="Perplexity",
        endpoint_locator="https://www.perplexity.ai",
        icon="🔍",
    ),
    ProviderDescriptor(
        provider_id="grok",
        display_name="Grok",
        endpoint_locator="https://x.ai/grok",
        icon="🦅",
    ),
]


class ProviderRegistry:
    """
    Central registry of all configured providers.

    Insertion order is preserved so listings and dispatch outcomes come
    back in a stable, configuration-defined order.

    Attributes:
        _providers: Dictionary mapping provider IDs to their descriptors
    """

    def __init__(self, providers: list[ProviderDescriptor] | None = None) -> None:
        self._providers: dict[str, ProviderDescriptor] = {}
        for provider in DEFAULT_PROVIDERS if providers is None else providers:
            self._register(provider)

    def _register(self, provider: ProviderDescriptor) -> None:
        """Register a provider, rejecting duplicate IDs."""
        if provider.provider_id in self._providers:
            raise ValueError(f"Duplicate provider id: {provider.provider_id}")
        self._providers[provider.provider_id] = provider

    def get_provider(self, provider_id: str) -> ProviderDescriptor | None:
        """
        Retrieve a provider descriptor by ID.

        Args:
            provider_id: The unique identifier of the provider

        Returns:
            ProviderDescriptor if found, None otherwise
        """
        return self._providers.get(provider_id)

    def require_provider(self, provider_id: str) -> ProviderDescriptor:
        """
        Retrieve a provider descriptor, raising if it is not configured.

        Raises:
            UnknownProvider: If no provider has this ID
        """
        provider = self._providers.get(provider_id)
        if provider is None:
            raise UnknownProvider(provider_id)
        return provider

    def list_providers(self) -> list[ProviderDescriptor]:
        """Return all configured providers, enabled or not."""
        return list(self._providers.values())

    def list_enabled(self) -> list[ProviderDescriptor]:
        """Return the providers included in send-to-all dispatch."""
        return [p for p in self._providers.values() if p.enabled]

    def get_provider_ids(self) -> list[str]:
        return list(self._providers.keys())

    def __len__(self) -> int:
        return len(self._providers)


def build_provider_registry(disabled: list[str] | None = None) -> ProviderRegistry:
    """
    Build a registry of the default providers with some switched off.

    Args:
        disabled: Provider IDs to mark as not enabled

    Returns:
        A new ProviderRegistry
    """
    disabled_ids = set(disabled or [])
    return ProviderRegistry(
        [
            p.model_copy(update={"enabled": False}) if p.provider_id in disabled_ids else p
            for p in DEFAULT_PROVIDERS
        ]
    )


_registry_instance: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """
    Get the global provider registry instance.

    Uses lazy initialization to create the registry only when needed,
    applying ``Settings.disabled_providers`` once at load time.

    Returns:
        The singleton ProviderRegistry instance
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = build_provider_registry(get_settings().disabled_providers)
    return _registry_instance
