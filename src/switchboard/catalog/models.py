"""Pydantic models for the normalized provider/model catalog."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Mode(StrEnum):
    FAST = "fast"
    DEEP = "deep"


VALID_MODES: frozenset[str] = frozenset(m.value for m in Mode)


class ConfigIssues(BaseModel):
    """Ordered, non-fatal diagnostics collected while loading configuration."""

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def empty(self) -> bool:
        return not self.errors and not self.warnings


class ProviderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider_key: str
    api_key_env: str | None = None
    base_url: str | None = None
    default_model: str | None = None
    module: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ModelDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    provider_key: str
    mode: Mode = Mode.FAST
    api_key_env: str | None = None
    base_url: str | None = None
    alias: str | None = None


class ModelsConfiguration(BaseModel):
    """Normalized catalog: providers, models, and the diagnostics behind them."""

    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    models: dict[str, ModelDescriptor] = Field(default_factory=dict)
    provider_models: dict[str, list[ModelDescriptor]] = Field(default_factory=dict)
    ordered_models: list[str] = Field(default_factory=list)
    issues: ConfigIssues = Field(default_factory=ConfigIssues)
    path: Path | None = None

    def get_model(self, name: str) -> ModelDescriptor | None:
        return self.models.get(name)

    def get_provider(self, key: str) -> ProviderConfig | None:
        return self.providers.get(key)

    def models_for(self, provider_key: str) -> list[ModelDescriptor]:
        return list(self.provider_models.get(provider_key, []))

    @property
    def base_dir(self) -> Path | None:
        return self.path.parent if self.path is not None else None
