"""Resolve an agent into a concrete model and credentials, then dispatch."""

from __future__ import annotations

from switchboard.agents.models import AgentRecord, ModelRecord
from switchboard.agents.registry import AgentRegistry
from switchboard.catalog.models import Mode
from switchboard.dispatch import CallOptions, ChatMessage, LLMClient
from switchboard.errors import MissingCredentialsError, ProviderConfigurationError


def _coerce_mode(mode: str | Mode | None) -> Mode | None:
    if mode is None:
        return None
    try:
        return Mode(str(mode).strip().lower())
    except ValueError:
        return None


def select_model(
    agent: AgentRecord, mode: str | Mode | None = None, model_name: str | None = None
) -> ModelRecord:
    """Pick the model for a call.

    Order: exact model name, first model of the requested mode, first model of
    the other mode, the agent's default model, the first available model.
    """
    by_name = agent.find_model(model_name)
    if by_name is not None:
        return by_name

    wanted = _coerce_mode(mode)
    if wanted is not None:
        other = Mode.FAST if wanted == Mode.DEEP else Mode.DEEP
        for candidate in (wanted, other):
            records = agent.models_for(candidate)
            if records:
                return records[0]

    default = agent.find_model(agent.default_model)
    if default is not None:
        return default
    if not agent.available_models:
        raise ProviderConfigurationError(f'Agent "{agent.name}" has no available models.')
    return agent.available_models[0]


def resolve_invocation(
    agent: AgentRecord,
    registry: AgentRegistry,
    *,
    mode: str | Mode | None = None,
    model_name: str | None = None,
) -> tuple[ModelRecord, CallOptions]:
    record = select_model(agent, mode, model_name)
    provider_key = record.provider_key or agent.provider_key
    provider = registry.provider_config(provider_key)

    base_url = record.base_url or agent.base_url or (provider.base_url if provider else None)
    if not base_url:
        raise ProviderConfigurationError(
            f'No base URL configured for model "{record.name}" of agent "{agent.name}".'
        )

    api_key_env = record.api_key_env or agent.api_key_env
    api_key = registry.env_value(api_key_env)
    if not api_key:
        raise MissingCredentialsError(api_key_env, agent.name)

    params = provider.extra.get("params") if provider else None
    headers = provider.extra.get("headers") if provider else None
    options = CallOptions(
        provider_key=provider_key,
        api_key=api_key,
        base_url=base_url,
        params=dict(params) if isinstance(params, dict) else {},
        headers={str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else {},
    )
    return record, options


async def invoke_agent(
    client: LLMClient,
    registry: AgentRegistry,
    agent: AgentRecord,
    history: list[ChatMessage],
    *,
    mode: str | Mode | None = None,
    model_name: str | None = None,
    prompt: str | None = None,
) -> str:
    record, options = resolve_invocation(agent, registry, mode=mode, model_name=model_name)
    return await client.call_llm_with_model(record.name, history, prompt, options=options)
