"""Vendor-specific reshaping of provider messages (system/user/assistant)."""

from __future__ import annotations

from switchboard.providers.base import ProviderMessage

SYSTEM_ROLES = {"system", "developer"}


def to_chat_messages(messages: list[ProviderMessage]) -> list[dict]:
    return [{"role": m["role"], "content": m["content"]} for m in messages]


def split_system(messages: list[ProviderMessage]) -> tuple[str, list[ProviderMessage]]:
    """Pull system messages out; they are joined with blank lines."""
    system_parts = [m["content"] for m in messages if m["role"] in SYSTEM_ROLES and m["content"]]
    rest = [m for m in messages if m["role"] not in SYSTEM_ROLES]
    return "\n\n".join(system_parts), rest


def to_anthropic_messages(messages: list[ProviderMessage]) -> tuple[str, list[dict]]:
    system, rest = split_system(messages)
    converted = [
        {"role": "assistant" if m["role"] == "assistant" else "user", "content": m["content"]}
        for m in rest
    ]
    return system, converted


def to_gemini_contents(messages: list[ProviderMessage]) -> tuple[str, list[dict]]:
    system, rest = split_system(messages)
    contents = [
        {
            "role": "model" if m["role"] == "assistant" else "user",
            "parts": [{"text": m["content"]}],
        }
        for m in rest
    ]
    return system, contents


def to_transcript_prompt(messages: list[ProviderMessage]) -> str:
    """Flatten a conversation into a ``User:/Assistant:`` text prompt."""
    lines = []
    for m in messages:
        if m["role"] in SYSTEM_ROLES:
            label = "System"
        elif m["role"] == "assistant":
            label = "Assistant"
        else:
            label = "User"
        lines.append(f"{label}: {m['content']}")
    lines.append("Assistant: ")
    return "\n".join(lines)
