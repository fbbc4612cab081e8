"""Tests for providers/registry.py and providers/bootstrap.py."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from switchboard.catalog.loader import normalize_config
from switchboard.errors import ProviderAlreadyRegistered, ProviderNotRegistered
from switchboard.providers.base import AdapterCallOptions, FunctionAdapter
from switchboard.providers.bootstrap import (
    extract_adapter,
    register_builtin_providers,
    register_providers_from_config,
)
from switchboard.providers.openai import OpenAIAdapter
from switchboard.providers.registry import ProviderRegistry


class _Adapter:
    system_role = "user"

    async def call_llm(self, messages, options):
        return "hi"


@pytest.mark.unit
class TestProviderRegistry:
    def test_register_normalizes_key(self):
        registry = ProviderRegistry()
        adapter = _Adapter()
        registry.register("  OpenAI ", adapter)
        assert registry.get("openai") is adapter
        assert registry.has("OPENAI")
        assert registry.list() == ["openai"]

    def test_duplicate_registration_is_rejected(self):
        registry = ProviderRegistry()
        registry.register("acme", _Adapter())
        with pytest.raises(ProviderAlreadyRegistered, match="acme"):
            registry.register("ACME", _Adapter())

    def test_override_rebinds(self):
        registry = ProviderRegistry()
        first, second = _Adapter(), _Adapter()
        registry.register("acme", first)
        registry.register("acme", second, {"source": "config"}, override=True)
        assert registry.get("acme") is second
        assert registry.metadata("acme") == {"source": "config"}

    def test_empty_key_is_rejected(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register("  ", _Adapter())

    def test_adapter_without_call_llm_is_rejected(self):
        with pytest.raises(TypeError):
            ProviderRegistry().register("acme", object())  # type: ignore[arg-type]

    def test_missing_system_role_defaults_to_system(self):
        class Bare:
            async def call_llm(self, messages, options):
                return ""

        adapter = Bare()
        ProviderRegistry().register("bare", adapter)  # type: ignore[arg-type]
        assert adapter.system_role == "system"  # type: ignore[attr-defined]

    def test_ensure_raises_for_unknown_key(self):
        with pytest.raises(ProviderNotRegistered, match="ghost"):
            ProviderRegistry().ensure("ghost")

    def test_metadata_is_a_copy(self):
        registry = ProviderRegistry()
        registry.register("acme", _Adapter(), {"source": "host"})
        registry.metadata("acme")["source"] = "tampered"
        assert registry.metadata("acme") == {"source": "host"}

    def test_reset_clears_records_and_builtin_flag(self):
        registry = ProviderRegistry()
        register_builtin_providers(registry, skip=False)
        registry.reset()
        assert registry.list() == []
        assert registry.builtins_registered is False


@pytest.mark.unit
class TestBuiltinProviders:
    def test_registers_vendor_adapters(self):
        registry = ProviderRegistry()
        keys = register_builtin_providers(registry, skip=False)
        assert set(keys) == {"openai", "google", "anthropic", "huggingface", "openrouter", "custom"}
        assert isinstance(registry.get("openrouter"), OpenAIAdapter)
        assert registry.get("custom") is registry.get("openai")
        assert registry.metadata("google") == {"source": "builtin"}

    def test_second_call_is_a_no_op(self):
        registry = ProviderRegistry()
        register_builtin_providers(registry, skip=False)
        assert register_builtin_providers(registry, skip=False) == []

    def test_skip_flag(self):
        registry = ProviderRegistry()
        assert register_builtin_providers(registry, skip=True) == []
        assert registry.list() == []

    def test_skip_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("SWITCHBOARD_SKIP_BUILTIN_PROVIDERS", "1")
        registry = ProviderRegistry()
        assert register_builtin_providers(registry) == []

    def test_host_binding_is_kept(self):
        registry = ProviderRegistry()
        mine = _Adapter()
        registry.register("openai", mine, {"source": "host"})
        keys = register_builtin_providers(registry, skip=False)
        assert "openai" not in keys
        assert registry.get("openai") is mine


ADAPTER_MODULE = '''
SYSTEM_ROLE = "user"

async def call_llm(messages, options):
    return "from-module:" + options.model
'''

ADAPTER_OBJECT_MODULE = '''
class _Impl:
    system_role = "system"

    async def call_llm(self, messages, options):
        return "object"

adapter = _Impl()
'''

DATACLASS_MODULE = '''
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Settings:
    prefix: str = "acme"


async def call_llm(messages, options):
    return f"{Settings().prefix}:{options.model}"
'''


def _config_with_module(module: str, base_dir: Path):
    cfg = normalize_config(
        {
            "providers": {"acme": {"baseURL": "https://acme.test", "apiKeyEnv": "ACME_KEY", "module": module}},
            "models": {"acme-1": "acme"},
        }
    )
    cfg.path = base_dir / "models.json"
    return cfg


@pytest.mark.unit
class TestConfigModules:
    def test_file_module_with_call_llm(self, tmp_path: Path):
        (tmp_path / "acme_adapter.py").write_text(ADAPTER_MODULE)
        cfg = _config_with_module("./acme_adapter.py", tmp_path)
        registry = ProviderRegistry()

        warnings = register_providers_from_config(registry, cfg)

        assert warnings == []
        adapter = registry.get("acme")
        assert isinstance(adapter, FunctionAdapter)
        assert adapter.system_role == "user"
        meta = registry.metadata("acme")
        assert meta["source"] == "config"
        assert meta["module"] == "./acme_adapter.py"
        assert meta["resolved_module"] == str((tmp_path / "acme_adapter.py").resolve())

    def test_module_exporting_adapter_object(self, tmp_path: Path):
        (tmp_path / "obj.py").write_text(ADAPTER_OBJECT_MODULE)
        cfg = _config_with_module("./obj.py", tmp_path)
        registry = ProviderRegistry()
        register_providers_from_config(registry, cfg)
        assert type(registry.get("acme")).__name__ == "_Impl"

    @pytest.mark.asyncio
    async def test_module_defining_dataclass(self, tmp_path: Path):
        (tmp_path / "dc_adapter.py").write_text(DATACLASS_MODULE)
        cfg = _config_with_module("./dc_adapter.py", tmp_path)
        registry = ProviderRegistry()

        warnings = register_providers_from_config(registry, cfg)

        assert warnings == []
        assert registry.has("acme")
        options = AdapterCallOptions(model="acme-1", api_key="k", base_url="https://acme.test")
        assert await registry.get("acme").call_llm([], options) == "acme:acme-1"

    def test_broken_module_is_not_left_importable(self, tmp_path: Path):
        (tmp_path / "broken_twice.py").write_text("raise RuntimeError('boom')\n")
        cfg = _config_with_module("./broken_twice.py", tmp_path)
        register_providers_from_config(ProviderRegistry(), cfg)
        assert not [name for name in sys.modules if name.startswith("switchboard_provider_broken_twice")]

    def test_module_without_handler_warns(self, tmp_path: Path):
        (tmp_path / "empty.py").write_text("VALUE = 1\n")
        cfg = _config_with_module("./empty.py", tmp_path)
        registry = ProviderRegistry()

        warnings = register_providers_from_config(registry, cfg)

        assert not registry.has("acme")
        assert warnings == ['Provider "acme" module "./empty.py" does not export a call_llm handler.']
        assert warnings[0] in cfg.issues.warnings

    def test_missing_module_file_warns(self, tmp_path: Path):
        cfg = _config_with_module("./nowhere.py", tmp_path)
        registry = ProviderRegistry()
        warnings = register_providers_from_config(registry, cfg)
        assert len(warnings) == 1
        assert warnings[0].startswith('Failed to register provider "acme" from module "./nowhere.py"')

    def test_broken_module_warns(self, tmp_path: Path):
        (tmp_path / "broken.py").write_text("raise RuntimeError('boom')\n")
        cfg = _config_with_module("./broken.py", tmp_path)
        warnings = register_providers_from_config(ProviderRegistry(), cfg)
        assert "boom" in warnings[0]

    def test_config_module_overrides_builtin(self, tmp_path: Path):
        (tmp_path / "acme_adapter.py").write_text(ADAPTER_MODULE)
        cfg = normalize_config(
            {"providers": {"openai": {"baseURL": "u", "module": "./acme_adapter.py"}}, "models": {"m": "openai"}}
        )
        cfg.path = tmp_path / "models.json"
        registry = ProviderRegistry()
        register_builtin_providers(registry, skip=False)

        register_providers_from_config(registry, cfg)

        assert isinstance(registry.get("openai"), FunctionAdapter)
        assert registry.metadata("openai")["source"] == "config"

    def test_config_module_does_not_override_host(self, tmp_path: Path):
        (tmp_path / "acme_adapter.py").write_text(ADAPTER_MODULE)
        cfg = _config_with_module("./acme_adapter.py", tmp_path)
        registry = ProviderRegistry()
        mine = _Adapter()
        registry.register("acme", mine, {"source": "host"})

        register_providers_from_config(registry, cfg)

        assert registry.get("acme") is mine

    def test_dotted_module_reference(self):
        cfg = normalize_config(
            {
                "providers": {"acme": {"baseURL": "u", "module": "switchboard.providers.openai:OpenAIAdapter"}},
                "models": {"m": "acme"},
            }
        )
        registry = ProviderRegistry()
        assert register_providers_from_config(registry, cfg) == []
        assert isinstance(registry.get("acme"), OpenAIAdapter)


@pytest.mark.unit
class TestExtractAdapter:
    def test_bare_callable_is_wrapped(self):
        def fn(messages, options):
            return "x"

        adapter = extract_adapter(fn)
        assert isinstance(adapter, FunctionAdapter)
        assert adapter.system_role == "system"

    def test_adapter_instance_is_returned_as_is(self):
        adapter = _Adapter()
        assert extract_adapter(adapter) is adapter

    def test_wrong_shapes_return_none(self):
        assert extract_adapter(None) is None
        assert extract_adapter(42) is None
        assert extract_adapter(str) is None

    @pytest.mark.asyncio
    async def test_function_adapter_accepts_sync_functions(self):
        adapter = FunctionAdapter(lambda messages, options: "sync")
        assert await adapter.call_llm([], None) == "sync"  # type: ignore[arg-type]
