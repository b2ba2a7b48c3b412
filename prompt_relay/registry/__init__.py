"""
Registry module: Provider configuration and live session bindings.

This module contains:
- models.py: Static provider descriptors and the ProviderRegistry
- sessions.py: SessionRegistry mapping provider IDs to open tabs

Public API:
- ProviderDescriptor: Pydantic model for a configured provider
- ProviderRegistry: Static provider table
- get_provider_registry: Singleton accessor function
- LoadState: Enum of tab load states
- SessionHandle: Provider-to-tab binding
- SessionRegistry: Injectable session table
"""

from prompt_relay.registry.models import (
    DEFAULT_PROVIDERS,
    ProviderDescriptor,
    ProviderRegistry,
    build_provider_registry,
    get_provider_registry,
)
from prompt_relay.registry.sessions import (
    LoadState,
    SessionHandle,
    SessionRegistry,
)

__all__ = [
    "DEFAULT_PROVIDERS",
    "ProviderDescriptor",
    "ProviderRegistry",
    "build_provider_registry",
    "get_provider_registry",
    "LoadState",
    "SessionHandle",
    "SessionRegistry",
]
