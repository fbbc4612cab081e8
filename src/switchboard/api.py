"""Module-level task functions bound to the process-wide Switchboard."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from switchboard.agents.models import AgentListing, AgentSummary
from switchboard.operators.registry import Operator
from switchboard.runtime import get_switchboard
from switchboard.tasks.models import BrainstormChoice, OperatorChoice


async def do_task(
    agent: str | None,
    context: Any,
    description: str,
    output_shape: dict | None = None,
    mode: str | None = "fast",
    retries: int = 3,
) -> dict:
    return await get_switchboard().do_task(agent, context, description, output_shape, mode, retries)


async def do_task_with_review(
    agent: str | None,
    context: Any,
    description: str,
    output_shape: dict | None = None,
    mode: str | None = "deep",
    max_iterations: int = 5,
) -> dict:
    return await get_switchboard().do_task_with_review(
        agent, context, description, output_shape, mode, max_iterations
    )


async def do_task_with_human_review(
    agent: str | None,
    context: Any,
    description: str,
    output_shape: dict | None = None,
    mode: str | None = "deep",
) -> dict:
    return await get_switchboard().do_task_with_human_review(
        agent, context, description, output_shape, mode
    )


async def brainstorm(
    evaluator: str | None,
    question: str,
    generation_count: int,
    return_count: int,
    criteria: str | None = None,
) -> list[BrainstormChoice]:
    return await get_switchboard().brainstorm(
        evaluator, question, generation_count, return_count, criteria
    )


async def choose_operator(
    agent: str | None,
    task_description: str,
    mode: str | None = "fast",
    confidence_threshold: float = 0.5,
) -> list[OperatorChoice]:
    return await get_switchboard().choose_operator(
        agent, task_description, mode, confidence_threshold
    )


def cancel_tasks() -> int:
    return get_switchboard().cancel_tasks()


def list_agents() -> AgentListing:
    return get_switchboard().list_agents()


def register_agent(name: str, **kwargs: Any) -> AgentSummary:
    return get_switchboard().register_agent(name, **kwargs)


def register_default_agent(**kwargs: Any) -> AgentSummary:
    return get_switchboard().register_default_agent(**kwargs)


def register_operator(name: str, description: str, fn: Callable[..., Any]) -> Operator:
    return get_switchboard().register_operator(name, description, fn)


async def call_operator(name: str, params: dict | None = None) -> Any:
    return await get_switchboard().call_operator(name, params)
