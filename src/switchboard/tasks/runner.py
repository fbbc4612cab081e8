"""Single task steps: fast execution, planning, deep execution, iteration, review."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from switchboard.agents.models import AgentRecord
from switchboard.catalog.models import VALID_MODES, Mode
from switchboard.dispatch import ChatMessage
from switchboard.errors import RequestCancelledError
from switchboard.tasks.context import build_suggestion_block, build_system_history, limit_preview
from switchboard.tasks.models import Candidate, Plan, ReviewVerdict
from switchboard.tasks.parsing import build_task_result, parse_lenient

logger = logging.getLogger(__name__)

Invoke = Callable[[AgentRecord, list[ChatMessage], Mode], Awaitable[str]]

PLAN_SHAPE: dict[str, Any] = {
    "type": "object",
    "properties": {"steps": {"type": "array"}},
    "required": ["steps"],
}
INVALID_REVIEW_FEEDBACK = "Review response invalid; improve the solution with more rigor."
DEFAULT_REVIEW_FEEDBACK = "Improve and correct the prior answer."


def normalize_task_mode(
    mode: str | Mode | None,
    output_shape: dict | None,
    agent: AgentRecord,
    fallback: str | Mode = Mode.FAST,
) -> Mode:
    """Resolve the requested mode against what the agent supports.

    An explicit ``fast`` or ``deep`` always wins; model selection falls back
    across modes when the agent lacks one.
    """
    normalized = str(mode or "").strip().lower()
    if normalized in VALID_MODES:
        return Mode(normalized)

    if normalized in ("any", ""):
        if output_shape and agent.supports_mode(Mode.DEEP):
            return Mode.DEEP
        if agent.supports_mode(Mode.FAST):
            return Mode.FAST
        if agent.supports_mode(Mode.DEEP):
            return Mode.DEEP

    fallback_mode = Mode(str(fallback))
    if agent.supports_mode(fallback_mode):
        return fallback_mode
    for candidate in (Mode.FAST, Mode.DEEP):
        if candidate in agent.supported_modes:
            return candidate
    return fallback_mode


def plan_from_reply(raw: str) -> Plan:
    parsed = parse_lenient(raw)
    if isinstance(parsed, dict) and isinstance(parsed.get("steps"), list):
        return Plan(steps=parsed["steps"])
    lines = [line.strip() for line in str(raw).splitlines() if line.strip()]
    return Plan(
        steps=[{"id": i + 1, "action": line} for i, line in enumerate(lines)],
        synthetic=True,
    )


async def execute_fast_task(
    invoke: Invoke,
    agent: AgentRecord,
    context: Any,
    description: str,
    output_shape: dict | None,
) -> dict:
    history = build_system_history(
        agent,
        instruction="Complete the task in a single response.",
        context=context,
        description=description,
        output_shape=output_shape,
    )
    raw = await invoke(agent, history, Mode.FAST)
    return build_task_result(raw, output_shape)


async def generate_plan(
    invoke: Invoke,
    agent: AgentRecord,
    context: Any,
    description: str,
    hints: list[Any] | None = None,
) -> Plan:
    """Ask for a step plan. Never raises except on cancellation."""
    extra_parts: list[str | None] = []
    if hints:
        lines = []
        for index, hint in enumerate(hints[:3]):
            steps = hint.get("steps") if isinstance(hint, dict) else None
            if isinstance(steps, list):
                summary = " | ".join(
                    f"{i + 1}. {s if isinstance(s, str) else json.dumps(s)}"
                    for i, s in enumerate(steps[:3])
                )
            else:
                summary = limit_preview(hint, 200)
            lines.append(f"Plan #{index + 1}: {summary}")
        extra_parts.append(build_suggestion_block("Candidate plans for reuse", lines))

    history = build_system_history(
        agent,
        instruction="Create a concise step-by-step plan for the task before solving it.",
        context=context,
        description=description,
        output_shape=PLAN_SHAPE,
        extra_context_parts=extra_parts,
    )
    try:
        raw = await invoke(agent, history, Mode.DEEP)
    except RequestCancelledError:
        raise
    except Exception as e:
        logger.warning(f"Plan generation failed for agent {agent.name!r}, continuing without plan: {e}")
        return Plan(synthetic=True)

    plan = plan_from_reply(raw)
    if plan.synthetic:
        logger.debug(f"Plan reply from {agent.name!r} was not JSON; split into {len(plan.steps)} steps")
    return plan


async def execute_deep_task(
    invoke: Invoke,
    agent: AgentRecord,
    context: Any,
    description: str,
    output_shape: dict | None,
) -> dict:
    plan = await generate_plan(invoke, agent, context, description)
    history = build_system_history(
        agent,
        instruction="Follow the plan and produce a final answer. Iterate internally as needed.",
        context=context,
        description=description,
        output_shape=output_shape,
        extra_context_parts=[f"Plan:\n{json.dumps(plan.to_prompt())}"],
    )
    raw = await invoke(agent, history, Mode.DEEP)
    return build_task_result(raw, output_shape)


async def execute_iteration(
    invoke: Invoke,
    agent: AgentRecord,
    context: Any,
    description: str,
    output_shape: dict | None,
    iteration: int,
    feedback: str,
    plan: Plan | None,
    mode: Mode,
) -> Candidate:
    extra_parts: list[str | None] = [f"Task:\n{description}", f"Iteration: {iteration}"]
    if plan is not None:
        extra_parts.append(f"Plan:\n{json.dumps(plan.to_prompt())}")
    if feedback:
        extra_parts.append(f"Prior feedback:\n{feedback}")

    history = build_system_history(
        agent,
        instruction="Work step-by-step, applying the plan and feedback to improve the solution.",
        context=context,
        description="Return only the updated solution, no commentary unless necessary.",
        output_shape=output_shape,
        extra_context_parts=extra_parts,
    )
    raw = await invoke(agent, history, mode)
    return Candidate(raw=raw, parsed=build_task_result(raw, output_shape))


async def review_candidate(
    invoke: Invoke,
    agent: AgentRecord,
    context: Any,
    description: str,
    candidate: str,
    iteration: int,
    mode: Mode,
) -> ReviewVerdict:
    """Ask the agent to approve or reject a candidate.

    A reply without a boolean ``approved`` is a rejection with generic
    feedback.
    """
    history = build_system_history(
        agent,
        instruction="Review the candidate solution for quality, correctness, and alignment with the task.",
        context=context or "N/A",
        description='Return JSON:{"approved":boolean,"feedback":string}.',
        extra_context_parts=[
            f"Task:\n{description}",
            f"Iteration: {iteration}",
            f"Candidate:\n{candidate}",
        ],
    )
    raw = await invoke(agent, history, mode)
    review = parse_lenient(raw)

    if not isinstance(review, dict) or not isinstance(review.get("approved"), bool):
        logger.debug(f"Review reply from {agent.name!r} did not match the verdict shape")
        return ReviewVerdict(approved=False, feedback=INVALID_REVIEW_FEEDBACK)

    feedback = review.get("feedback")
    return ReviewVerdict(
        approved=review["approved"],
        feedback=feedback if isinstance(feedback, str) else "",
    )
