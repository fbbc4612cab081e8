"""Build the system/human conversation sent for each task step."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from switchboard.agents.models import AgentRecord
from switchboard.dispatch import ChatMessage, Role

CONTEXT_ROLE_ALIASES: dict[str, str] = {
    "system": Role.SYSTEM.value,
    "user": Role.HUMAN.value,
    "human": Role.HUMAN.value,
    "assistant": Role.AI.value,
    "ai": Role.AI.value,
    "tool": Role.AI.value,
    "function": Role.AI.value,
    "observation": Role.AI.value,
}

TOOL_LIKE_ROLES = frozenset({"tool", "function", "observation"})

_MESSAGE_KEYS = ("message", "content", "result", "output")


@dataclass
class TaskContext:
    """Caller context as either free text or prior conversation messages."""

    text: str = ""
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def is_messages(self) -> bool:
        return bool(self.messages)


def limit_preview(value: Any, max_length: int = 400) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value)
        except (TypeError, ValueError):
            text = str(value)
    if len(text) <= max_length:
        return text
    return f"{text[: max(0, max_length - 3)]}..."


def build_suggestion_block(title: str, lines: list[str]) -> str | None:
    if not lines:
        return None
    body = "\n".join(f"- {line}" for line in lines)
    return f"{title}:\n{body}"


def _context_message(entry: Any) -> ChatMessage | None:
    if not isinstance(entry, dict):
        return None
    raw_role = entry.get("role")
    raw_role = raw_role.strip().lower() if isinstance(raw_role, str) else ""
    role = CONTEXT_ROLE_ALIASES.get(raw_role)
    if role is None:
        return None

    message = next((entry[k] for k in _MESSAGE_KEYS if entry.get(k) is not None), None)
    if message is None:
        return None
    if not isinstance(message, str):
        try:
            message = json.dumps(message, indent=2)
        except (TypeError, ValueError):
            message = str(message)

    if raw_role in TOOL_LIKE_ROLES:
        label = f"{raw_role}:{entry['name']}" if entry.get("name") else raw_role
        message = f"[{label}] {message}"
    return {"role": role, "message": message}


def normalize_task_context(context: Any) -> TaskContext:
    """Accept a string or a list of role-tagged dicts.

    Unknown roles and entries without any message text are dropped.
    """
    if isinstance(context, TaskContext):
        return context
    if isinstance(context, list):
        messages = [m for m in (_context_message(e) for e in context) if m is not None]
        return TaskContext(messages=messages)
    if context is None:
        return TaskContext()
    if not isinstance(context, str):
        context = limit_preview(context, max_length=20000)
    return TaskContext(text=context.strip())


def build_agent_description(agent: AgentRecord) -> str:
    details = ["Type: task", "Classification: Expert Task Executor"]
    if agent.role:
        details.append(f"Role: {agent.role.strip()}")
    if agent.job:
        details.append(f"Job: {agent.job.strip()}")
    if agent.expertise:
        details.append(f"Expertise: {agent.expertise.strip()}")
    if agent.instructions:
        details.append(f"Guidance: {agent.instructions.strip()}")
    return " | ".join(details)


def build_system_history(
    agent: AgentRecord,
    *,
    instruction: str,
    context: Any = None,
    description: str | None = None,
    output_shape: dict | None = None,
    extra_context_parts: list[str | None] | None = None,
) -> list[ChatMessage]:
    label = agent.canonical_name or agent.name
    history: list[ChatMessage] = [
        {
            "role": Role.SYSTEM.value,
            "message": f"You are the {label} agent. {build_agent_description(agent)} {instruction}".strip(),
        }
    ]

    normalized = normalize_task_context(context)
    history.extend(dict(m) for m in normalized.messages)  # type: ignore[misc]

    parts: list[str] = []
    if normalized.text:
        parts.append(f"Context:\n{normalized.text}")
    parts.extend(p for p in (extra_context_parts or []) if p)
    if description:
        parts.append(f"Task:\n{description}")
    if output_shape:
        parts.append(f"Desired output schema (JSON Schema):\n{json.dumps(output_shape, indent=2)}")
        parts.append("Respond with JSON that strictly matches the schema.")

    if parts:
        history.append({"role": Role.HUMAN.value, "message": "\n\n".join(parts)})
    return history
