"""OpenAI chat-completions adapter (also used for OpenRouter and custom endpoints)."""

from __future__ import annotations

from typing import Any

from switchboard.providers.base import AdapterCallOptions, HTTPProviderAdapter, ProviderMessage
from switchboard.providers.messages import to_chat_messages


class OpenAIAdapter(HTTPProviderAdapter):
    vendor = "OpenAI"

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        model, url = self._require(options)
        payload: dict[str, Any] = {
            "model": model,
            "messages": to_chat_messages(messages),
            **options.params,
        }
        data = await self._post_json(
            url,
            payload,
            headers={"Authorization": f"Bearer {options.api_key}"},
            options=options,
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise self._missing(data) from None
        if not isinstance(content, str):
            raise self._missing(data)
        return content
