"""Agent records and the introspection listing built from them."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from switchboard.catalog.models import Mode


class AgentOrigin(StrEnum):
    PROVIDER = "provider"
    CUSTOM = "custom"
    REGISTERED = "registered"
    DEFAULT = "default"


class InactiveReason(StrEnum):
    NO_MODELS = "no models configured"
    NO_API_KEY_ENV = "no API key configured"
    MISSING_API_KEYS = "missing API keys"
    NO_ADAPTER = "no adapter registered"
    MISSING_CUSTOM_SETTINGS = "missing base URL or model"
    NAME_TAKEN = "agent name already registered"


class ModelRecord(BaseModel):
    """A model resolved against its provider; model-level overrides win."""

    model_config = ConfigDict(frozen=True)

    name: str
    provider_key: str
    mode: Mode = Mode.FAST
    api_key_env: str | None = None
    base_url: str | None = None
    alias: str | None = None


class AgentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    canonical_name: str
    provider_key: str
    origin: AgentOrigin = AgentOrigin.PROVIDER
    api_key_env: str | None = None
    base_url: str | None = None
    default_model: str
    supported_modes: frozenset[Mode] = frozenset()
    available_models: list[ModelRecord] = Field(default_factory=list)
    role: str = ""
    job: str = ""
    expertise: str = ""
    instructions: str = ""

    def supports_mode(self, mode: str | Mode | None) -> bool:
        if mode is None:
            return False
        try:
            return Mode(str(mode).lower()) in self.supported_modes
        except ValueError:
            return False

    def models_for(self, mode: Mode) -> list[ModelRecord]:
        return [m for m in self.available_models if m.mode == mode]

    def find_model(self, name: str | None) -> ModelRecord | None:
        if not name:
            return None
        lowered = name.lower()
        for record in self.available_models:
            if record.name.lower() == lowered or (record.alias and record.alias.lower() == lowered):
                return record
        return None


class AgentDefinition(BaseModel):
    """A host-registered agent over catalog models, which may span providers."""

    model_config = ConfigDict(frozen=True)

    name: str
    role: str = ""
    job: str = ""
    expertise: str = ""
    instructions: str = ""
    fast_models: list[str] = Field(default_factory=list)
    deep_models: list[str] = Field(default_factory=list)
    model_order: list[str] = Field(default_factory=list)
    origin: AgentOrigin = AgentOrigin.REGISTERED


class AgentSummary(BaseModel):
    name: str
    origin: AgentOrigin
    provider_key: str | None = None
    default_model: str | None = None
    available_models: list[str] = Field(default_factory=list)
    fast_models: list[str] = Field(default_factory=list)
    deep_models: list[str] = Field(default_factory=list)
    reason: str | None = None


class AliasConflict(BaseModel):
    alias: str
    kept_agent: str
    skipped_agent: str
    reason: str


class AgentListing(BaseModel):
    default_agent: str | None = None
    active: list[AgentSummary] = Field(default_factory=list)
    inactive: list[AgentSummary] = Field(default_factory=list)
    alias_conflicts: list[AliasConflict] = Field(default_factory=list)
