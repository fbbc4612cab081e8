"""Populate a ProviderRegistry from built-ins and from configuration modules."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import httpx

from switchboard.catalog.models import ModelsConfiguration
from switchboard.config import SKIP_BUILTIN_ENV, env_flag
from switchboard.providers.anthropic import AnthropicAdapter
from switchboard.providers.base import DEFAULT_TIMEOUT, FunctionAdapter, LLMProviderAdapter
from switchboard.providers.google import GoogleAdapter
from switchboard.providers.huggingface import HuggingFaceAdapter
from switchboard.providers.openai import OpenAIAdapter
from switchboard.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

OPENAI_COMPATIBLE_KEYS = ("openrouter", "custom")


def register_builtin_providers(
    registry: ProviderRegistry,
    *,
    skip: bool | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[str]:
    """Register the bundled vendor adapters once per registry.

    Returns the keys registered by this call (empty on repeat calls or when
    skipped). Keys already bound by the host are left alone.
    """
    if registry.builtins_registered:
        return []
    registry.builtins_registered = True

    if skip is None:
        skip = env_flag(SKIP_BUILTIN_ENV)
    if skip:
        logger.debug("Skipping built-in provider adapters")
        return []

    openai = OpenAIAdapter(client=client, timeout=timeout)
    builtins: dict[str, LLMProviderAdapter] = {
        "openai": openai,
        "google": GoogleAdapter(client=client, timeout=timeout),
        "anthropic": AnthropicAdapter(client=client, timeout=timeout),
        "huggingface": HuggingFaceAdapter(client=client, timeout=timeout),
    }
    for key in OPENAI_COMPATIBLE_KEYS:
        builtins[key] = openai

    registered = []
    for key, adapter in builtins.items():
        if registry.has(key):
            continue
        registry.register(key, adapter, {"source": "builtin"})
        registered.append(key)
    return registered


def _load_module(module_ref: str, base_dir: Path) -> tuple[Any, str]:
    """Import *module_ref*: a file path (relative to *base_dir*) or a dotted path."""
    if module_ref.startswith((".", "/")) or module_ref.endswith(".py"):
        resolved = (base_dir / module_ref).resolve()
        if not resolved.exists():
            raise FileNotFoundError(f"module file not found: {resolved}")
        name = f"switchboard_provider_{resolved.stem}_{abs(hash(str(resolved)))}"
        spec = importlib.util.spec_from_file_location(name, resolved)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load module from {resolved}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
        return module, str(resolved)

    module_name, _, attr = module_ref.partition(":")
    module = importlib.import_module(module_name)
    if attr:
        return getattr(module, attr), module_ref
    return module, module_name


def extract_adapter(exported: Any) -> LLMProviderAdapter | None:
    """Turn a module export into an adapter, or ``None`` if it has the wrong shape."""
    if exported is None:
        return None

    if isinstance(exported, ModuleType):
        adapter = getattr(exported, "adapter", None)
        if adapter is not None and callable(getattr(adapter, "call_llm", None)):
            return adapter
        fn = getattr(exported, "call_llm", None)
        if callable(fn):
            return FunctionAdapter(fn, system_role=getattr(exported, "SYSTEM_ROLE", "system"))
        return None

    if inspect.isclass(exported):
        if not callable(getattr(exported, "call_llm", None)):
            return None
        return exported()

    if callable(getattr(exported, "call_llm", None)):
        return exported

    if callable(exported):
        return FunctionAdapter(exported)
    return None


def register_providers_from_config(
    registry: ProviderRegistry,
    configuration: ModelsConfiguration,
    *,
    base_dir: Path | None = None,
) -> list[str]:
    """Load adapters for providers that declare a ``module``.

    Failures are appended to ``configuration.issues.warnings`` and the
    provider is left unregistered. Returns the new warnings.
    """
    warnings: list[str] = []
    root = base_dir or configuration.base_dir or Path.cwd()

    for provider in configuration.providers.values():
        module_ref = provider.module
        if not module_ref:
            continue
        key = provider.provider_key
        if registry.metadata(key).get("source") == "host":
            logger.debug(f"Provider {key!r} bound by host; ignoring module {module_ref!r}")
            continue

        try:
            exported, resolved = _load_module(module_ref, root)
            adapter = extract_adapter(exported)
            if adapter is None:
                warnings.append(
                    f'Provider "{key}" module "{module_ref}" does not export a call_llm handler.'
                )
                continue
            registry.register(
                key,
                adapter,
                {"module": module_ref, "resolved_module": resolved, "source": "config"},
                override=True,
            )
        except Exception as e:
            warnings.append(
                f'Failed to register provider "{key}" from module "{module_ref}": {e}'
            )

    for warning in warnings:
        logger.warning(warning)
    configuration.issues.warnings.extend(warnings)
    return warnings
