"""Shared fixtures for switchboard tests."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from switchboard.catalog.loader import normalize_config
from switchboard.providers.base import AdapterCallOptions, ProviderMessage
from switchboard.runtime import Switchboard

BASIC_CONFIG: dict = {
    "providers": {
        "openai": {
            "baseURL": "https://api.openai.test/v1/chat/completions",
            "defaultModel": "gpt-fast",
        },
        "anthropic": {"baseURL": "https://api.anthropic.test/v1/messages"},
    },
    "models": {
        "gpt-fast": {"provider": "openai", "mode": "fast", "alias": "quick"},
        "gpt-deep": {"provider": "openai", "mode": "deep"},
        "claude-deep": {"provider": "anthropic", "mode": "deep"},
    },
}


class ScriptedAdapter:
    """Adapter that replays canned replies and records every call.

    A reply may be a string, an exception instance (raised), or a callable
    ``(messages, options) -> str``. When the script runs out, ``default`` is
    returned.
    """

    system_role = "system"

    def __init__(self, replies: list | None = None, *, default: str = "ok") -> None:
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[tuple[list[ProviderMessage], AdapterCallOptions]] = []

    async def call_llm(self, messages: list[ProviderMessage], options: AdapterCallOptions) -> str:
        self.calls.append((messages, options))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(messages, options)
        return reply

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def last_user_message(self) -> str:
        messages, _ = self.calls[-1]
        return [m for m in messages if m["role"] == "user"][-1]["content"]


@pytest.fixture
def basic_config() -> dict:
    return json.loads(json.dumps(BASIC_CONFIG))


@pytest.fixture
def write_models(tmp_path: Path) -> Callable[[dict], Path]:
    def _write(raw: dict, name: str = "models.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(raw))
        return path

    return _write


@pytest.fixture
def make_switchboard() -> Callable[..., Switchboard]:
    """Build a Switchboard from a raw config dict with scripted adapters only."""

    def _make(
        raw: dict | None = None,
        *,
        env: dict[str, str] | None = None,
        adapters: dict | None = None,
        **kwargs,
    ) -> Switchboard:
        configuration = normalize_config(raw if raw is not None else BASIC_CONFIG)
        return Switchboard(
            configuration,
            adapters=adapters or {},
            environ=env or {},
            load_builtin=False,
            **kwargs,
        )

    return _make


@pytest.fixture
def scripted() -> type[ScriptedAdapter]:
    return ScriptedAdapter
