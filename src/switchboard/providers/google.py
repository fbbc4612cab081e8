"""Google Gemini generateContent adapter."""

from __future__ import annotations

from typing import Any

from switchboard.providers.base import AdapterCallOptions, HTTPProviderAdapter, ProviderMessage
from switchboard.providers.messages import to_gemini_contents


class GoogleAdapter(HTTPProviderAdapter):
    vendor = "Google"

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        model, base = self._require(options)
        system, contents = to_gemini_contents(messages)

        payload: dict[str, Any] = {"contents": contents, **options.params}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        data = await self._post_json(
            f"{base}/{model}:generateContent",
            payload,
            headers={},
            options=options,
            params={"key": options.api_key or ""},
        )
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise self._missing(data) from None
        if not isinstance(text, str):
            raise self._missing(data)
        return text
