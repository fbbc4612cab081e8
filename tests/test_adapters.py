"""Tests for the built-in vendor adapters (httpx client mocked)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from switchboard.cancellation import CancellationToken
from switchboard.errors import (
    DispatchError,
    ProviderConfigurationError,
    ProviderResponseError,
    RequestCancelledError,
)
from switchboard.providers.anthropic import AnthropicAdapter
from switchboard.providers.base import AdapterCallOptions
from switchboard.providers.google import GoogleAdapter
from switchboard.providers.huggingface import HuggingFaceAdapter
from switchboard.providers.messages import to_transcript_prompt
from switchboard.providers.openai import OpenAIAdapter

MESSAGES = [
    {"role": "system", "content": "be brief"},
    {"role": "user", "content": "hello"},
    {"role": "assistant", "content": "hi"},
    {"role": "user", "content": "again"},
]


def _response(data=None, *, status: int = 200, text: str | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if isinstance(data, Exception):
        resp.json.side_effect = data
        resp.text = text or ""
    else:
        resp.json.return_value = data
        resp.text = text if text is not None else json.dumps(data)
    return resp


def _wire(adapter, resp: MagicMock) -> AsyncMock:
    adapter._client = MagicMock()
    adapter._client.post = AsyncMock(return_value=resp)
    return adapter._client.post


def _options(**overrides) -> AdapterCallOptions:
    values = {"model": "m-1", "api_key": "sk-test", "base_url": "https://vendor.test/v1/"}
    values.update(overrides)
    return AdapterCallOptions(**values)


@pytest.mark.unit
class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_posts_chat_completion(self):
        adapter = OpenAIAdapter()
        post = _wire(adapter, _response({"choices": [{"message": {"content": "answer"}}]}))

        result = await adapter.call_llm(MESSAGES, _options(params={"temperature": 0.2}))

        assert result == "answer"
        url = post.call_args.args[0]
        kwargs = post.call_args.kwargs
        assert url == "https://vendor.test/v1"
        assert kwargs["json"]["model"] == "m-1"
        assert kwargs["json"]["temperature"] == 0.2
        assert kwargs["json"]["messages"][0] == {"role": "system", "content": "be brief"}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_extra_headers_are_merged(self):
        adapter = OpenAIAdapter()
        post = _wire(adapter, _response({"choices": [{"message": {"content": "x"}}]}))
        await adapter.call_llm(MESSAGES, _options(headers={"X-Title": "switchboard"}))
        assert post.call_args.kwargs["headers"]["X-Title"] == "switchboard"

    @pytest.mark.asyncio
    async def test_error_envelope_raises(self):
        adapter = OpenAIAdapter()
        _wire(adapter, _response({"error": {"message": "quota exceeded"}}))
        with pytest.raises(ProviderResponseError, match="quota exceeded"):
            await adapter.call_llm(MESSAGES, _options())

    @pytest.mark.asyncio
    async def test_http_error_status_raises_with_status(self):
        adapter = OpenAIAdapter()
        _wire(adapter, _response({"error": {"message": "bad key"}}, status=401))
        with pytest.raises(ProviderResponseError) as exc_info:
            await adapter.call_llm(MESSAGES, _options())
        assert exc_info.value.status == 401
        assert "bad key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_content_raises(self):
        adapter = OpenAIAdapter()
        _wire(adapter, _response({"choices": []}))
        with pytest.raises(ProviderResponseError, match="did not contain text"):
            await adapter.call_llm(MESSAGES, _options())

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        adapter = OpenAIAdapter()
        _wire(adapter, _response(ValueError("no json"), text="<html>"))
        with pytest.raises(ProviderResponseError, match="non-JSON"):
            await adapter.call_llm(MESSAGES, _options())

    @pytest.mark.asyncio
    async def test_transport_error_becomes_dispatch_error(self):
        adapter = OpenAIAdapter()
        adapter._client = MagicMock()
        adapter._client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(DispatchError, match="refused"):
            await adapter.call_llm(MESSAGES, _options())

    @pytest.mark.asyncio
    async def test_missing_api_key_raises_before_request(self):
        adapter = OpenAIAdapter()
        post = _wire(adapter, _response({}))
        with pytest.raises(ProviderConfigurationError, match="API key"):
            await adapter.call_llm(MESSAGES, _options(api_key=None))
        post.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_base_url_raises(self):
        adapter = OpenAIAdapter()
        _wire(adapter, _response({}))
        with pytest.raises(ProviderConfigurationError, match="base URL"):
            await adapter.call_llm(MESSAGES, _options(base_url=None))

    @pytest.mark.asyncio
    async def test_cancelled_token_skips_request(self):
        adapter = OpenAIAdapter()
        post = _wire(adapter, _response({}))
        token = CancellationToken()
        token.cancel()
        with pytest.raises(RequestCancelledError):
            await adapter.call_llm(MESSAGES, _options(cancel_token=token))
        post.assert_not_called()


@pytest.mark.unit
class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_system_is_lifted_out(self):
        adapter = AnthropicAdapter()
        post = _wire(adapter, _response({"content": [{"type": "text", "text": "claude says"}]}))

        result = await adapter.call_llm(MESSAGES, _options())

        assert result == "claude says"
        kwargs = post.call_args.kwargs
        payload = kwargs["json"]
        assert payload["system"] == "be brief"
        assert payload["max_tokens"] == 1000
        assert [m["role"] for m in payload["messages"]] == ["user", "assistant", "user"]
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"

    @pytest.mark.asyncio
    async def test_no_system_key_without_system_messages(self):
        adapter = AnthropicAdapter()
        post = _wire(adapter, _response({"content": [{"text": "ok"}]}))
        await adapter.call_llm([{"role": "user", "content": "q"}], _options())
        assert "system" not in post.call_args.kwargs["json"]

    @pytest.mark.asyncio
    async def test_missing_text_raises(self):
        adapter = AnthropicAdapter()
        _wire(adapter, _response({"content": []}))
        with pytest.raises(ProviderResponseError):
            await adapter.call_llm(MESSAGES, _options())


@pytest.mark.unit
class TestGoogleAdapter:
    @pytest.mark.asyncio
    async def test_generate_content_request(self):
        adapter = GoogleAdapter()
        post = _wire(
            adapter,
            _response({"candidates": [{"content": {"parts": [{"text": "gemini says"}]}}]}),
        )

        result = await adapter.call_llm(MESSAGES, _options())

        assert result == "gemini says"
        assert post.call_args.args[0] == "https://vendor.test/v1/m-1:generateContent"
        kwargs = post.call_args.kwargs
        assert kwargs["params"] == {"key": "sk-test"}
        assert kwargs["json"]["systemInstruction"] == {"parts": [{"text": "be brief"}]}
        assert [c["role"] for c in kwargs["json"]["contents"]] == ["user", "model", "user"]

    @pytest.mark.asyncio
    async def test_missing_candidates_raises(self):
        adapter = GoogleAdapter()
        _wire(adapter, _response({"candidates": []}))
        with pytest.raises(ProviderResponseError):
            await adapter.call_llm(MESSAGES, _options())


@pytest.mark.unit
class TestHuggingFaceAdapter:
    @pytest.mark.asyncio
    async def test_text_generation_request(self):
        adapter = HuggingFaceAdapter()
        post = _wire(adapter, _response([{"generated_text": "  hf says \n"}]))

        result = await adapter.call_llm(MESSAGES, _options())

        assert result == "hf says"
        assert post.call_args.args[0] == "https://vendor.test/v1/m-1"
        payload = post.call_args.kwargs["json"]
        assert payload["inputs"] == to_transcript_prompt(MESSAGES)
        assert payload["parameters"]["return_full_text"] is False
        assert payload["parameters"]["max_new_tokens"] == 500

    @pytest.mark.asyncio
    async def test_loading_model_has_specific_message(self):
        adapter = HuggingFaceAdapter()
        _wire(adapter, _response({"error": "loading"}, status=503))
        with pytest.raises(ProviderResponseError, match="loading") as exc_info:
            await adapter.call_llm(MESSAGES, _options())
        assert exc_info.value.status == 503


@pytest.mark.unit
class TestMessageShapes:
    def test_transcript_prompt_ends_with_assistant_cue(self):
        prompt = to_transcript_prompt(MESSAGES)
        assert prompt.splitlines()[0] == "System: be brief"
        assert prompt.endswith("Assistant: ")
