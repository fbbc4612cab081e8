"""Provider/model catalog: normalized configuration records and loader."""

from switchboard.catalog.loader import (
    DEFAULT_PROVIDER_ENV_MAP,
    load_models_configuration,
    load_raw_config,
    normalize_config,
)
from switchboard.catalog.models import (
    VALID_MODES,
    ConfigIssues,
    Mode,
    ModelDescriptor,
    ModelsConfiguration,
    ProviderConfig,
)

__all__ = [
    "DEFAULT_PROVIDER_ENV_MAP",
    "VALID_MODES",
    "ConfigIssues",
    "Mode",
    "ModelDescriptor",
    "ModelsConfiguration",
    "ProviderConfig",
    "load_models_configuration",
    "load_raw_config",
    "normalize_config",
]
