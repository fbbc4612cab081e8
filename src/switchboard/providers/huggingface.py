"""Hugging Face inference API adapter (text-generation models)."""

from __future__ import annotations

from typing import Any

import httpx

from switchboard.errors import ProviderResponseError
from switchboard.providers.base import AdapterCallOptions, HTTPProviderAdapter, ProviderMessage
from switchboard.providers.messages import to_transcript_prompt

DEFAULT_MAX_NEW_TOKENS = 500


class HuggingFaceAdapter(HTTPProviderAdapter):
    vendor = "Hugging Face"

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        model, base = self._require(options)
        parameters: dict[str, Any] = {
            "return_full_text": False,
            "max_new_tokens": DEFAULT_MAX_NEW_TOKENS,
            **options.params,
        }
        data = await self._post_json(
            f"{base}/{model}",
            {"inputs": to_transcript_prompt(messages), "parameters": parameters},
            headers={"Authorization": f"Bearer {options.api_key}"},
            options=options,
        )
        try:
            text = data[0]["generated_text"]
        except (KeyError, IndexError, TypeError):
            raise self._missing(data) from None
        if not isinstance(text, str):
            raise self._missing(data)
        return text.strip()

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code == 503:
            raise ProviderResponseError(
                "Hugging Face model is loading, please retry in a few moments.",
                status=503,
                body=resp.text,
            )
        super()._raise_for_status(resp)
