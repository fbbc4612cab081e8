"""Provider adapters and the registry that binds them to provider keys."""

from switchboard.providers.base import (
    AdapterCallOptions,
    FunctionAdapter,
    LLMProviderAdapter,
    ProviderMessage,
)
from switchboard.providers.bootstrap import (
    extract_adapter,
    register_builtin_providers,
    register_providers_from_config,
)
from switchboard.providers.registry import ProviderRecord, ProviderRegistry

__all__ = [
    "AdapterCallOptions",
    "FunctionAdapter",
    "LLMProviderAdapter",
    "ProviderMessage",
    "ProviderRecord",
    "ProviderRegistry",
    "extract_adapter",
    "register_builtin_providers",
    "register_providers_from_config",
]
