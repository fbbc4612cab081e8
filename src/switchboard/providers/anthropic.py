"""Anthropic messages API adapter."""

from __future__ import annotations

from typing import Any

from switchboard.providers.base import AdapterCallOptions, HTTPProviderAdapter, ProviderMessage
from switchboard.providers.messages import to_anthropic_messages

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 1000


class AnthropicAdapter(HTTPProviderAdapter):
    vendor = "Anthropic"

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        model, url = self._require(options)
        system, converted = to_anthropic_messages(messages)

        payload: dict[str, Any] = {
            "model": model,
            "messages": converted,
            "max_tokens": DEFAULT_MAX_TOKENS,
            **options.params,
        }
        if system:
            payload["system"] = system

        data = await self._post_json(
            url,
            payload,
            headers={
                "x-api-key": options.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
            options=options,
        )
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise self._missing(data) from None
        if not isinstance(text, str):
            raise self._missing(data)
        return text
