"""Load and normalize the declarative provider/model catalog (models.json).

Malformed content never raises: every problem is recorded on
``ConfigIssues`` and the offending entry is skipped or defaulted. An
unreadable document yields a single error and an empty catalog.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from switchboard.catalog.models import (
    VALID_MODES,
    ConfigIssues,
    Mode,
    ModelDescriptor,
    ModelsConfiguration,
    ProviderConfig,
)
from switchboard.config import resolve_models_config_path

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_ENV_MAP: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "google": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
}


def _select_string(preferred: Any, fallback: Any = None) -> str | None:
    if isinstance(preferred, str) and preferred.strip():
        return preferred.strip()
    if isinstance(fallback, str) and fallback.strip():
        return fallback.strip()
    return None


def load_raw_config(path: Path) -> tuple[dict, ConfigIssues]:
    """Read *path* as JSON. I/O and parse failures become a single error."""
    issues = ConfigIssues()
    empty: dict = {"providers": {}, "models": {}}

    if not path.exists():
        issues.error(f"models.json not found at {path}")
        return empty, issues

    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        issues.error(f"Failed to read models.json: {e}")
        return empty, issues

    if not isinstance(parsed, dict):
        issues.error("Failed to read models.json: top-level value must be an object")
        return empty, issues
    return parsed, issues


def normalize_mode(raw_mode: Any, issues: ConfigIssues, context: str) -> Mode:
    """Collapse a mode value to ``fast`` or ``deep``, warning at most once."""
    if raw_mode is None:
        return Mode.FAST

    if isinstance(raw_mode, list):
        valid = [
            value.strip().lower()
            for value in raw_mode
            if isinstance(value, str) and value.strip().lower() in VALID_MODES
        ]
        if len(valid) > 1:
            issues.warning(
                f'Model configuration for {context} lists multiple modes; using "{valid[0]}".'
            )
        if valid:
            return Mode(valid[0])
        issues.warning(f"No valid mode found for {context}; defaulting to 'fast'.")
        return Mode.FAST

    if isinstance(raw_mode, str) and raw_mode.strip().lower() in VALID_MODES:
        return Mode(raw_mode.strip().lower())

    issues.warning(f"Invalid mode value for {context}; defaulting to 'fast'.")
    return Mode.FAST


def normalize_provider(provider_key: str, entry: Any, issues: ConfigIssues) -> ProviderConfig:
    if not isinstance(entry, dict):
        issues.warning(f'Provider "{provider_key}" configuration must be an object.')
        entry = {}

    api_key_env = _select_string(entry.get("apiKeyEnv"), DEFAULT_PROVIDER_ENV_MAP.get(provider_key))
    if not api_key_env:
        issues.warning(
            f'Provider "{provider_key}" does not declare apiKeyEnv and no fallback is known.'
        )

    base_url = _select_string(entry.get("baseURL"))
    if not base_url:
        issues.warning(
            f'Provider "{provider_key}" is missing baseURL; '
            "requests may fail unless overridden per model."
        )

    extra = entry.get("extra")
    return ProviderConfig(
        provider_key=provider_key,
        api_key_env=api_key_env,
        base_url=base_url,
        default_model=_select_string(entry.get("defaultModel")),
        module=_select_string(entry.get("module")),
        extra=extra if isinstance(extra, dict) else {},
    )


def normalize_model(
    name: str | None,
    entry: Any,
    providers: dict[str, ProviderConfig],
    issues: ConfigIssues,
) -> ModelDescriptor | None:
    """Normalize one model entry; ``None`` means the entry was dropped."""
    if isinstance(entry, str):
        entry = {"provider": entry}

    if isinstance(entry, dict):
        name = _select_string(name, entry.get("name"))

    if not name:
        issues.warning('Model entry is missing required "name" property.')
        return None

    if not isinstance(entry, dict):
        issues.warning(f'Model "{name}" configuration must be an object.')
        return None

    provider_key = _select_string(entry.get("provider"), entry.get("providerKey"))
    if not provider_key:
        issues.error(f'Model "{name}" is missing provider reference.')
        return None

    if provider_key not in providers:
        issues.warning(f'Model "{name}" references unknown provider "{provider_key}".')

    raw_mode = entry["mode"] if entry.get("mode") is not None else entry.get("modes")
    return ModelDescriptor(
        name=name,
        provider_key=provider_key,
        mode=normalize_mode(raw_mode, issues, f'model "{name}"'),
        api_key_env=_select_string(entry.get("apiKeyEnv")),
        base_url=_select_string(entry.get("baseURL")),
        alias=_select_string(entry.get("alias")),
    )


def _iter_model_entries(raw_models: Any, issues: ConfigIssues):
    if isinstance(raw_models, dict):
        yield from raw_models.items()
    elif isinstance(raw_models, list):
        for entry in raw_models:
            yield None, entry
    elif raw_models is not None:
        issues.warning('"models" must be an object or a list; ignoring it.')


def _validate_providers(configuration: ModelsConfiguration) -> None:
    issues = configuration.issues
    for provider in configuration.providers.values():
        key = provider.provider_key
        if provider.default_model:
            model = configuration.models.get(provider.default_model)
            if model is None:
                issues.warning(
                    f'Provider "{key}" defaultModel "{provider.default_model}" is not defined.'
                )
            elif model.provider_key != key:
                issues.warning(
                    f'Provider "{key}" defaultModel "{provider.default_model}" '
                    f'belongs to provider "{model.provider_key}".'
                )
        if not configuration.provider_models.get(key):
            issues.warning(f'Provider "{key}" has no models defined.')


def normalize_config(raw: Any) -> ModelsConfiguration:
    configuration = ModelsConfiguration()
    issues = configuration.issues
    raw = raw if isinstance(raw, dict) else {}

    raw_providers = raw.get("providers")
    if not isinstance(raw_providers, dict):
        if raw_providers is not None:
            issues.warning('"providers" must be an object; ignoring it.')
        raw_providers = {}

    for provider_key, entry in raw_providers.items():
        configuration.providers[provider_key] = normalize_provider(provider_key, entry, issues)
        configuration.provider_models[provider_key] = []

    for name, entry in _iter_model_entries(raw.get("models"), issues):
        descriptor = normalize_model(name, entry, configuration.providers, issues)
        if descriptor is None:
            continue
        if descriptor.name in configuration.models:
            issues.warning(f'Model "{descriptor.name}" is declared more than once; keeping the first.')
            continue
        configuration.models[descriptor.name] = descriptor
        configuration.ordered_models.append(descriptor.name)
        configuration.provider_models.setdefault(descriptor.provider_key, []).append(descriptor)

    _validate_providers(configuration)
    return configuration


def load_models_configuration(path: str | Path | None = None) -> ModelsConfiguration:
    config_path = resolve_models_config_path(path)
    raw, load_issues = load_raw_config(config_path)
    configuration = normalize_config(raw)
    configuration.issues.errors.extend(load_issues.errors)
    configuration.issues.warnings.extend(load_issues.warnings)
    configuration.path = config_path
    logger.debug(
        f"Loaded {len(configuration.providers)} providers and "
        f"{len(configuration.models)} models from {config_path}"
    )
    return configuration
