"""Low-level LLM client: role conversion, adapter lookup, cancellable dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypedDict

from switchboard.cancellation import CancellationScope, CancellationToken
from switchboard.errors import ProviderResponseError
from switchboard.providers.base import AdapterCallOptions, LLMProviderAdapter, ProviderMessage
from switchboard.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class Role(StrEnum):
    SYSTEM = "system"
    HUMAN = "human"
    AI = "ai"


class ChatMessage(TypedDict):
    role: str
    message: str


@dataclass
class CallOptions:
    """Credentials and transport options already resolved for one dispatch."""

    provider_key: str
    api_key: str | None = None
    base_url: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


def human(message: str) -> ChatMessage:
    return {"role": Role.HUMAN.value, "message": message}


def system(message: str) -> ChatMessage:
    return {"role": Role.SYSTEM.value, "message": message}


def ai(message: str) -> ChatMessage:
    return {"role": Role.AI.value, "message": message}


def to_provider_messages(
    conversation: list[ChatMessage], system_role: str = "system"
) -> list[ProviderMessage]:
    """Map system/human/ai onto the adapter's system role, user and assistant."""
    mapping = {
        Role.SYSTEM.value: system_role,
        Role.HUMAN.value: "user",
        Role.AI.value: "assistant",
    }
    converted: list[ProviderMessage] = []
    for entry in conversation:
        role = mapping.get(str(entry.get("role", "")).lower())
        if role is None:
            raise ValueError(f"Unsupported conversation role: {entry.get('role')!r}")
        message = entry.get("message")
        converted.append({"role": role, "content": "" if message is None else str(message)})
    return converted


class LLMClient:
    """Dispatches conversations to provider adapters within a cancellation scope."""

    def __init__(self, providers: ProviderRegistry, *, scope: CancellationScope | None = None):
        self._providers = providers
        self._scope = scope or CancellationScope()

    @property
    def scope(self) -> CancellationScope:
        return self._scope

    @property
    def providers(self) -> ProviderRegistry:
        return self._providers

    async def call_llm_with_model(
        self,
        model_name: str,
        conversation: list[ChatMessage],
        prompt: str | None = None,
        *,
        options: CallOptions,
        scope: CancellationScope | None = None,
    ) -> str:
        adapter = self._providers.ensure(options.provider_key)

        history = list(conversation)
        if prompt:
            history.append(human(prompt))
        messages = to_provider_messages(history, getattr(adapter, "system_role", "system"))

        active_scope = scope or self._scope

        async def _call(token: CancellationToken) -> Any:
            adapter_options = AdapterCallOptions(
                model=model_name,
                api_key=options.api_key,
                base_url=options.base_url,
                provider_key=options.provider_key,
                params=dict(options.params),
                headers=dict(options.headers),
                cancel_token=token,
            )
            return await adapter.call_llm(messages, adapter_options)

        logger.debug(
            f"Dispatching {len(messages)} message(s) to {options.provider_key}/{model_name}"
        )
        result = await active_scope.run(_call)
        return _check_result(result, options.provider_key, adapter)

    async def call_llm(
        self,
        conversation: list[ChatMessage],
        prompt: str | None = None,
        *,
        model: str,
        options: CallOptions,
    ) -> str:
        return await self.call_llm_with_model(model, conversation, prompt, options=options)

    def cancel_requests(self) -> int:
        return self._scope.cancel_all()


def _check_result(result: Any, provider_key: str, adapter: LLMProviderAdapter) -> str:
    if isinstance(result, dict) and result.get("error"):
        error = result["error"]
        message = error.get("message") if isinstance(error, dict) else error
        raise ProviderResponseError(f'Provider "{provider_key}" returned an error: {message}')
    if not isinstance(result, str):
        raise ProviderResponseError(
            f'Provider "{provider_key}" adapter {type(adapter).__name__} '
            f"returned {type(result).__name__} instead of text"
        )
    return result
