"""Agent registry: usable agents built from the catalog and the credentials present.

The registry is built lazily, once, from a snapshot of the environment. Every
skip decision is kept as a structured summary entry so ``list_agents`` can
explain why an agent is unavailable.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Iterable, Mapping

from switchboard.agents.models import (
    AgentDefinition,
    AgentListing,
    AgentOrigin,
    AgentRecord,
    AgentSummary,
    AliasConflict,
    InactiveReason,
    ModelRecord,
)
from switchboard.catalog.models import Mode, ModelDescriptor, ModelsConfiguration, ProviderConfig
from switchboard.errors import DefaultAgentNotConfigured, NoAgentsConfigured
from switchboard.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

PROVIDER_PRIORITY: tuple[str, ...] = (
    "openai",
    "google",
    "anthropic",
    "openrouter",
    "mistral",
    "deepseek",
    "huggingface",
)

CUSTOM_AGENT_PATTERN = re.compile(r"^CUSTOM_LLM_([A-Z0-9_]+)_API_KEY$")
DEFAULT_AGENT_NAME = "default"


def provider_model_env(provider_key: str) -> str:
    """Env var that pins a provider agent's default model, e.g. ``OPENAI_MODEL``."""
    return re.sub(r"[^A-Z0-9]", "_", provider_key.upper()) + "_MODEL"


def resolve_model_record(
    descriptor: ModelDescriptor, provider: ProviderConfig | None
) -> ModelRecord:
    return ModelRecord(
        name=descriptor.name,
        provider_key=descriptor.provider_key,
        mode=descriptor.mode,
        api_key_env=descriptor.api_key_env or (provider.api_key_env if provider else None),
        base_url=descriptor.base_url or (provider.base_url if provider else None),
        alias=descriptor.alias,
    )


class AgentRegistry:
    def __init__(
        self,
        configuration: ModelsConfiguration,
        providers: ProviderRegistry,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.configuration = configuration
        self.providers = providers
        self._environ_source = environ
        self._lock = threading.Lock()
        self._definitions: dict[str, AgentDefinition] = {}
        self._clear()

    def _clear(self) -> None:
        self._agents: dict[str, AgentRecord] | None = None
        self._aliases: dict[str, str] = {}
        self._active: list[AgentSummary] = []
        self._inactive: list[AgentSummary] = []
        self._conflicts: list[AliasConflict] = []
        self._default: str | None = None
        self._default_pinned = False
        self._env: dict[str, str] = {}

    # -- Lifecycle ------------------------------------------------------------

    def ensure(self) -> dict[str, AgentRecord]:
        """Build the registry on first use; later calls return the cached map."""
        agents = self._agents
        if agents is not None:
            return agents
        with self._lock:
            if self._agents is None:
                self._build()
            return self._agents  # type: ignore[return-value]

    def reset(self) -> None:
        with self._lock:
            self._clear()

    @property
    def built(self) -> bool:
        return self._agents is not None

    def _build(self) -> None:
        source = os.environ if self._environ_source is None else self._environ_source
        self._env = dict(source)
        self._emit_diagnostics()

        agents: dict[str, AgentRecord] = {}
        for provider in self.configuration.providers.values():
            record = self._build_provider_agent(provider, agents)
            if record is not None:
                agents[record.name] = record

        self._register_custom_agents(agents)
        for definition in self._definitions.values():
            self._apply_definition(definition, agents)
        self._build_alias_index(agents)
        self._default = self._choose_default(agents)
        self._agents = agents

        logger.info(
            f"Agent registry built: {len(self._active)} active, {len(self._inactive)} inactive, "
            f"default={self._default!r}"
        )

    def _emit_diagnostics(self) -> None:
        for error in self.configuration.issues.errors:
            logger.error(f"LLM configuration error: {error}")
        for warning in self.configuration.issues.warnings:
            logger.warning(f"LLM configuration warning: {warning}")

    # -- Provider agents ------------------------------------------------------

    def _skip(
        self,
        name: str,
        origin: AgentOrigin,
        reason: str,
        provider_key: str | None = None,
    ) -> None:
        logger.debug(f"Agent {name!r} inactive: {reason}")
        self._inactive.append(
            AgentSummary(name=name, origin=origin, provider_key=provider_key, reason=reason)
        )

    def _build_provider_agent(
        self, provider: ProviderConfig, agents: dict[str, AgentRecord]
    ) -> AgentRecord | None:
        key = provider.provider_key.strip().lower()
        origin = AgentOrigin.PROVIDER
        records = [
            resolve_model_record(descriptor, provider)
            for descriptor in self.configuration.models_for(provider.provider_key)
        ]

        if not records:
            self._skip(key, origin, InactiveReason.NO_MODELS, key)
            return None

        keyed = [r for r in records if r.api_key_env]
        if not keyed:
            self._skip(key, origin, InactiveReason.NO_API_KEY_ENV, key)
            return None

        available = [r for r in keyed if self._env.get(r.api_key_env or "")]
        if not available:
            self._skip(key, origin, InactiveReason.MISSING_API_KEYS, key)
            return None

        if not self.providers.has(key):
            self._skip(key, origin, InactiveReason.NO_ADAPTER, key)
            return None

        if key in agents:
            self._skip(key, origin, InactiveReason.NAME_TAKEN, key)
            return None

        default = self._select_default_model(key, provider, available)
        extra = provider.extra
        record = AgentRecord(
            name=key,
            canonical_name=provider.provider_key,
            provider_key=key,
            origin=origin,
            api_key_env=default.api_key_env,
            base_url=default.base_url,
            default_model=default.name,
            supported_modes=frozenset(r.mode for r in available),
            available_models=available,
            role=str(extra.get("role") or f"{key} agent"),
            job=str(extra.get("job") or f"Handle requests routed to {key}."),
            expertise=str(extra.get("expertise") or "Provider specialist"),
            instructions=str(extra.get("instructions") or ""),
        )
        self._active.append(_summarize(record))
        return record

    def _select_default_model(
        self, key: str, provider: ProviderConfig, available: list[ModelRecord]
    ) -> ModelRecord:
        by_name = {r.name: r for r in available}

        env_name = provider_model_env(key)
        pinned = self._env.get(env_name, "").strip()
        if pinned:
            if pinned in by_name:
                return by_name[pinned]
            logger.warning(
                f'{env_name}="{pinned}" is not an available model for provider "{key}"; ignoring.'
            )

        if provider.default_model and provider.default_model in by_name:
            return by_name[provider.default_model]

        for mode in (Mode.DEEP, Mode.FAST):
            for record in available:
                if record.mode == mode:
                    return record
        return available[0]

    # -- Custom agents --------------------------------------------------------

    def _register_custom_agents(self, agents: dict[str, AgentRecord]) -> None:
        origin = AgentOrigin.CUSTOM
        for env_name in sorted(self._env):
            match = CUSTOM_AGENT_PATTERN.match(env_name)
            if not match:
                continue
            suffix = match.group(1)
            name = suffix.lower()

            if not self._env.get(env_name):
                self._skip(name, origin, InactiveReason.MISSING_API_KEYS)
                continue

            base_url = self._env.get(f"CUSTOM_LLM_{suffix}_BASE_URL", "").strip()
            model_name = self._env.get(f"CUSTOM_LLM_{suffix}_MODEL", "").strip()
            if not base_url or not model_name:
                self._skip(name, origin, InactiveReason.MISSING_CUSTOM_SETTINGS)
                continue

            descriptor = self.configuration.get_model(model_name)
            if descriptor is None:
                self._skip(name, origin, f'model "{model_name}" not in catalog')
                continue

            provider_key = descriptor.provider_key.strip().lower()
            if not self.providers.has(provider_key):
                self._skip(name, origin, InactiveReason.NO_ADAPTER, provider_key)
                continue

            if name in agents:
                self._skip(name, origin, InactiveReason.NAME_TAKEN, provider_key)
                continue

            model = ModelRecord(
                name=descriptor.name,
                provider_key=provider_key,
                mode=descriptor.mode,
                api_key_env=env_name,
                base_url=base_url,
                alias=descriptor.alias,
            )
            record = AgentRecord(
                name=name,
                canonical_name=suffix,
                provider_key=provider_key,
                origin=origin,
                api_key_env=env_name,
                base_url=base_url,
                default_model=model.name,
                supported_modes=frozenset({model.mode}),
                available_models=[model],
                role=f"{name} agent",
                job=f"Handle requests using the custom {model.name} endpoint.",
                expertise="Custom endpoint",
            )
            agents[name] = record
            self._active.append(_summarize(record))

    # -- Registered agents ----------------------------------------------------

    def register_agent(
        self,
        name: str,
        *,
        role: str = "",
        job: str = "",
        expertise: str = "",
        instructions: str = "",
        fast_models: Iterable[str] = (),
        deep_models: Iterable[str] = (),
        model_order: Iterable[str] = (),
    ) -> AgentSummary:
        """Register a named agent over catalog models, possibly from several providers.

        Models are tried in ``model_order`` then ``fast_models`` then
        ``deep_models``; with no fast or deep models every catalog model is
        used. Registering an existing name replaces it. Definitions survive
        ``reset`` and are re-resolved against the fresh environment snapshot.
        Returns the agent's summary, which carries a reason when inactive.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("register_agent requires a non-empty name.")
        definition = AgentDefinition(
            name=name.strip(),
            role=role,
            job=job,
            expertise=expertise,
            instructions=instructions,
            fast_models=_model_names(fast_models),
            deep_models=_model_names(deep_models),
            model_order=_model_names(model_order),
        )
        return self._commit(definition)

    def register_default_agent(
        self,
        *,
        role: str = "General-purpose assistant",
        job: str = "Plan and execute tasks accurately and reliably.",
        expertise: str = "Generalist",
        instructions: str = "Select the most capable model for each request.",
    ) -> AgentSummary:
        """Register the ``default`` agent over every catalog model; it becomes the default."""
        definition = AgentDefinition(
            name=DEFAULT_AGENT_NAME,
            role=role,
            job=job,
            expertise=expertise,
            instructions=instructions,
            origin=AgentOrigin.DEFAULT,
        )
        return self._commit(definition)

    def _commit(self, definition: AgentDefinition) -> AgentSummary:
        key = definition.name.lower()
        with self._lock:
            self._definitions[key] = definition
            if self._agents is None:
                self._build()
            else:
                agents = self._agents
                self._apply_definition(definition, agents)
                self._aliases = {}
                self._conflicts = []
                self._build_alias_index(agents)
                if not self._default_pinned:
                    self._default = self._choose_default(agents)
            summary = next(s for s in [*self._active, *self._inactive] if s.name == key)
            return summary.model_copy(deep=True)

    def _apply_definition(self, definition: AgentDefinition, agents: dict[str, AgentRecord]) -> None:
        key = definition.name.lower()
        origin = definition.origin
        agents.pop(key, None)
        self._active = [s for s in self._active if s.name != key]
        self._inactive = [s for s in self._inactive if s.name != key]

        fast_names = list(definition.fast_models)
        deep_names = list(definition.deep_models)
        if not fast_names and not deep_names:
            for model_name in self.configuration.ordered_models:
                descriptor = self.configuration.get_model(model_name)
                if descriptor is None:
                    continue
                (deep_names if descriptor.mode == Mode.DEEP else fast_names).append(model_name)

        records: list[ModelRecord] = []
        for model_name in dict.fromkeys([*definition.model_order, *fast_names, *deep_names]):
            descriptor = self.configuration.get_model(model_name)
            if descriptor is None:
                logger.warning(f'Agent "{definition.name}" references unknown model "{model_name}"; skipping.')
                continue
            record = resolve_model_record(descriptor, self.provider_config(descriptor.provider_key))
            if model_name in fast_names:
                record = record.model_copy(update={"mode": Mode.FAST})
            elif model_name in deep_names:
                record = record.model_copy(update={"mode": Mode.DEEP})
            records.append(record)

        if not records:
            self._skip(key, origin, InactiveReason.NO_MODELS)
            return

        primary_provider = records[0].provider_key
        keyed = [r for r in records if self._env.get(r.api_key_env or "")]
        if not keyed:
            self._skip(key, origin, InactiveReason.MISSING_API_KEYS, primary_provider)
            return

        available = [r for r in keyed if self.providers.has(r.provider_key)]
        if not available:
            self._skip(key, origin, InactiveReason.NO_ADAPTER, primary_provider)
            return

        default = available[0]
        record = AgentRecord(
            name=key,
            canonical_name=definition.name,
            provider_key=default.provider_key.strip().lower(),
            origin=origin,
            api_key_env=default.api_key_env,
            base_url=default.base_url,
            default_model=default.name,
            supported_modes=frozenset(r.mode for r in available),
            available_models=available,
            role=definition.role,
            job=definition.job,
            expertise=definition.expertise,
            instructions=definition.instructions,
        )
        agents[key] = record
        self._active.append(_summarize(record))

    # -- Aliases and default --------------------------------------------------

    def _build_alias_index(self, agents: dict[str, AgentRecord]) -> None:
        for key, agent in agents.items():
            candidates = [agent.name, agent.canonical_name]
            # Models of registered agents stay bound to their provider agents.
            if agent.origin not in (AgentOrigin.REGISTERED, AgentOrigin.DEFAULT):
                candidates.append(agent.provider_key)
                for model in agent.available_models:
                    candidates.append(model.name)
                    if model.alias:
                        candidates.append(model.alias)

            for candidate in candidates:
                alias = candidate.strip().lower()
                if not alias:
                    continue
                owner = self._aliases.get(alias)
                if owner is None:
                    self._aliases[alias] = key
                elif owner != key and alias not in agents:
                    self._conflicts.append(
                        AliasConflict(
                            alias=alias,
                            kept_agent=owner,
                            skipped_agent=key,
                            reason=f'alias already bound to "{owner}"',
                        )
                    )

    @staticmethod
    def _choose_default(agents: dict[str, AgentRecord]) -> str | None:
        if DEFAULT_AGENT_NAME in agents:
            return DEFAULT_AGENT_NAME
        for name in PROVIDER_PRIORITY:
            if name in agents:
                return name
        return next(iter(agents), None)

    # -- Queries --------------------------------------------------------------

    @property
    def default_agent_name(self) -> str | None:
        self.ensure()
        return self._default

    def set_default_agent(self, name: str | None) -> None:
        """Pin the process default; ``None`` clears it."""
        agents = self.ensure()
        if name is None:
            self._default = None
            self._default_pinned = True
            return
        key = name.strip().lower()
        if key not in agents:
            raise DefaultAgentNotConfigured(name)
        self._default = key
        self._default_pinned = True

    def get_agent(self, name: str | None = None) -> AgentRecord:
        """Resolve by registry key, then alias, then the process default."""
        agents = self.ensure()
        if not agents:
            raise NoAgentsConfigured()

        if name:
            key = name.strip().lower()
            if key in agents:
                return agents[key]
            owner = self._aliases.get(key)
            if owner is not None:
                return agents[owner]

        if self._default is not None and self._default in agents:
            return agents[self._default]
        raise DefaultAgentNotConfigured(name)

    def agents(self) -> list[AgentRecord]:
        return list(self.ensure().values())

    def resolve_alias(self, alias: str) -> str | None:
        self.ensure()
        return self._aliases.get(alias.strip().lower())

    def list_agents(self) -> AgentListing:
        self.ensure()
        return AgentListing(
            default_agent=self._default,
            active=[s.model_copy(deep=True) for s in self._active],
            inactive=[s.model_copy(deep=True) for s in self._inactive],
            alias_conflicts=[c.model_copy() for c in self._conflicts],
        )

    def env_value(self, name: str | None) -> str | None:
        """Read from the credential snapshot taken at build time."""
        if not name:
            return None
        self.ensure()
        return self._env.get(name) or None

    def provider_config(self, key: str) -> ProviderConfig | None:
        config = self.configuration.get_provider(key)
        if config is not None:
            return config
        lowered = key.lower()
        for provider in self.configuration.providers.values():
            if provider.provider_key.lower() == lowered:
                return provider
        return None


def _summarize(record: AgentRecord) -> AgentSummary:
    return AgentSummary(
        name=record.name,
        origin=record.origin,
        provider_key=record.provider_key,
        default_model=record.default_model,
        available_models=[m.name for m in record.available_models],
        fast_models=[m.name for m in record.models_for(Mode.FAST)],
        deep_models=[m.name for m in record.models_for(Mode.DEEP)],
    )


def _model_names(values: Iterable[str] | str) -> list[str]:
    if isinstance(values, str):
        values = [values]
    names = (str(v).strip() for v in values if v is not None)
    return list(dict.fromkeys(n for n in names if n))
