"""Adapter protocol and the shared httpx plumbing of built-in adapters."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypedDict, runtime_checkable

import httpx

from switchboard.cancellation import CancellationToken
from switchboard.errors import DispatchError, ProviderConfigurationError, ProviderResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class ProviderMessage(TypedDict):
    role: str
    content: str


@dataclass
class AdapterCallOptions:
    model: str
    api_key: str | None = None
    base_url: str | None = None
    provider_key: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cancel_token: CancellationToken | None = None


@runtime_checkable
class LLMProviderAdapter(Protocol):
    """Anything that turns a provider-shaped conversation into reply text."""

    system_role: str

    async def call_llm(
        self, messages: list[ProviderMessage], options: AdapterCallOptions
    ) -> str: ...


class FunctionAdapter:
    """Wrap a bare ``fn(messages, options)`` (sync or async) as an adapter."""

    def __init__(self, fn: Callable[..., Any], *, system_role: str = "system") -> None:
        if not callable(fn):
            raise TypeError("FunctionAdapter requires a callable")
        self._fn = fn
        self.system_role = system_role

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        result = self._fn(messages, options)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionAdapter({getattr(self._fn, '__name__', self._fn)!r})"


class HTTPProviderAdapter:
    """Base for built-in vendor adapters: one POST per call via httpx."""

    system_role = "system"
    vendor = "provider"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        self._client = client
        self._timeout = timeout

    def _require(self, options: AdapterCallOptions, *, api_key: bool = True) -> tuple[str, str]:
        if not options.model:
            raise ProviderConfigurationError(f"{self.vendor}: a model name is required.")
        if not options.base_url:
            raise ProviderConfigurationError(
                f'{self.vendor}: no base URL configured for model "{options.model}".'
            )
        if api_key and not options.api_key:
            raise ProviderConfigurationError(
                f'{self.vendor}: no API key supplied for model "{options.model}".'
            )
        return options.model, options.base_url.rstrip("/")

    async def _post_json(
        self,
        url: str,
        payload: dict,
        *,
        headers: dict[str, str],
        options: AdapterCallOptions,
        params: dict[str, str] | None = None,
    ) -> Any:
        if options.cancel_token is not None:
            options.cancel_token.raise_if_cancelled()

        merged = {"Content-Type": "application/json", **headers, **options.headers}
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=payload, headers=merged, params=params)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(url, json=payload, headers=merged, params=params)
        except httpx.HTTPError as e:
            raise DispatchError(f"{self.vendor} request failed: {e}") from e

        if resp.status_code >= 400:
            self._raise_for_status(resp)

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ProviderResponseError(
                f"{self.vendor} returned a non-JSON body", status=resp.status_code, body=resp.text
            ) from e

        if isinstance(data, dict) and data.get("error"):
            raise ProviderResponseError(
                f"{self.vendor} error: {_error_message(data['error'])}",
                status=resp.status_code,
                body=resp.text,
            )
        return data

    def _raise_for_status(self, resp: httpx.Response) -> None:
        body = resp.text
        detail = body
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError):
            data = None
        if isinstance(data, dict) and data.get("error"):
            detail = _error_message(data["error"])
        raise ProviderResponseError(
            f"{self.vendor} API error ({resp.status_code}): {detail}",
            status=resp.status_code,
            body=body,
        )

    def _missing(self, data: Any) -> ProviderResponseError:
        preview = json.dumps(data)[:500] if data is not None else "null"
        return ProviderResponseError(f"{self.vendor} response did not contain text: {preview}")


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or json.dumps(error))
    return str(error)
