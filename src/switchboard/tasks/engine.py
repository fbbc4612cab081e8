"""Task execution engine: the public task primitives built on agents and dispatch."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from switchboard.agents.invocation import invoke_agent
from switchboard.agents.models import AgentListing, AgentRecord
from switchboard.agents.registry import AgentRegistry
from switchboard.catalog.models import Mode
from switchboard.dispatch import ChatMessage, LLMClient
from switchboard.errors import (
    InvalidModelResponse,
    NoAgentsConfigured,
    RequestCancelledError,
    ReviewIterationsExceeded,
    TaskCancelledError,
    TaskFailedError,
)
from switchboard.operators.registry import OperatorCatalog
from switchboard.tasks.context import build_system_history
from switchboard.tasks.models import BrainstormChoice, Generation, OperatorChoice
from switchboard.tasks.parsing import extract_json_block, parse_lenient, parse_strict
from switchboard.tasks.runner import (
    DEFAULT_REVIEW_FEEDBACK,
    execute_deep_task,
    execute_fast_task,
    execute_iteration,
    generate_plan,
    normalize_task_mode,
    review_candidate,
)

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], Awaitable[str] | str]
OutputFn = Callable[[str], Any]

DEFAULT_REVIEW_CRITERIA = "Use balanced judgement for quality and relevance."
APPROVAL_PROMPT = "Is the result okay? [Y/n/cancel]: "
FEEDBACK_PROMPT = "Please provide feedback for the agent: "


async def _read_stdin(message: str) -> str:
    try:
        return await asyncio.to_thread(input, message)
    except EOFError:
        return "cancel"


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _operator_choices(payload: Any, threshold: float) -> list[OperatorChoice] | None:
    if not isinstance(payload, dict) or not isinstance(payload.get("suitableOperators"), list):
        return None
    choices = []
    for entry in payload["suitableOperators"]:
        if not isinstance(entry, dict):
            continue
        name = entry.get("operatorName")
        confidence = entry.get("confidence")
        if isinstance(name, str) and _is_number(confidence) and confidence >= threshold:
            choices.append(OperatorChoice(operator_name=name, confidence=float(confidence)))
    return choices


class TaskEngine:
    """Runs tasks against agents resolved from an AgentRegistry.

    The engine holds no per-task state; concurrent calls are independent
    apart from sharing the client's cancellation scope.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        client: LLMClient,
        operators: OperatorCatalog | None = None,
        *,
        prompt: PromptFn | None = None,
        output: OutputFn | None = None,
    ) -> None:
        self.registry = registry
        self.client = client
        self.operators = operators if operators is not None else OperatorCatalog()
        self._prompt = prompt or _read_stdin
        self._output = output or print

    async def _invoke(self, agent: AgentRecord, history: list[ChatMessage], mode: Mode) -> str:
        return await invoke_agent(self.client, self.registry, agent, history, mode=mode)

    async def _ask(self, message: str) -> str:
        answer = self._prompt(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return str(answer or "")

    # -- Single task ----------------------------------------------------------

    async def do_task(
        self,
        agent_name: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | Mode | None = "fast",
        retries: int = 3,
    ) -> dict:
        """Run one task, retrying failed attempts.

        Raises ``TaskFailedError`` with the last error's message once every
        attempt has failed. Cancellation is never retried.
        """
        agent = self.registry.get_agent(agent_name)
        task_mode = normalize_task_mode(mode, output_shape, agent)
        attempts = max(int(retries), 1)
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                if task_mode == Mode.DEEP:
                    return await execute_deep_task(
                        self._invoke, agent, context, description, output_shape
                    )
                return await execute_fast_task(
                    self._invoke, agent, context, description, output_shape
                )
            except RequestCancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Task attempt {attempt}/{attempts} on {agent.name!r} failed: {e}")

        raise TaskFailedError(attempts, last_error)

    async def do_task_with_review(
        self,
        agent_name: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | Mode | None = "deep",
        max_iterations: int = 5,
    ) -> dict:
        agent = self.registry.get_agent(agent_name)
        task_mode = normalize_task_mode(mode, output_shape, agent, Mode.DEEP)
        plan = (
            await generate_plan(self._invoke, agent, context, description)
            if task_mode == Mode.DEEP
            else None
        )

        limit = max(int(max_iterations), 1)
        feedback = ""
        for iteration in range(1, limit + 1):
            candidate = await execute_iteration(
                self._invoke,
                agent,
                context,
                description,
                output_shape,
                iteration,
                feedback,
                plan,
                task_mode,
            )
            verdict = await review_candidate(
                self._invoke, agent, context, description, candidate.raw, iteration, task_mode
            )
            if verdict.approved:
                logger.debug(f"Review approved on iteration {iteration}")
                return candidate.parsed
            feedback = verdict.feedback or DEFAULT_REVIEW_FEEDBACK

        raise ReviewIterationsExceeded(limit, feedback)

    async def do_task_with_human_review(
        self,
        agent_name: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | Mode | None = "deep",
    ) -> dict:
        agent = self.registry.get_agent(agent_name)
        task_mode = normalize_task_mode(mode, output_shape, agent, Mode.DEEP)
        plan = (
            await generate_plan(self._invoke, agent, context, description)
            if task_mode == Mode.DEEP
            else None
        )

        feedback = ""
        iteration = 0
        while True:
            iteration += 1
            candidate = await execute_iteration(
                self._invoke,
                agent,
                context,
                description,
                output_shape,
                iteration,
                feedback,
                plan,
                task_mode,
            )
            self._output("----- Agent Result -----")
            self._output(candidate.raw)

            answer = (await self._ask(APPROVAL_PROMPT)).strip().lower()
            if answer in ("", "y", "yes"):
                return candidate.parsed
            if answer == "cancel":
                raise TaskCancelledError()
            feedback = (await self._ask(FEEDBACK_PROMPT)).strip()

    # -- Brainstorm -----------------------------------------------------------

    async def brainstorm(
        self,
        evaluator_name: str | None,
        question: str,
        generation_count: int,
        return_count: int,
        criteria: str | None = None,
    ) -> list[BrainstormChoice]:
        if not question:
            raise ValueError("question is required for brainstorm.")
        if isinstance(generation_count, bool) or not isinstance(generation_count, int) or generation_count < 1:
            raise ValueError("generation_count must be a positive integer.")
        if isinstance(return_count, bool) or not isinstance(return_count, int) or return_count < 1:
            raise ValueError("return_count must be a positive integer.")

        agents = self.registry.agents()
        if not agents:
            raise NoAgentsConfigured("No agents available for brainstorming.")
        evaluator = self.registry.get_agent(evaluator_name)

        async def generate(index: int) -> Generation:
            agent = agents[(index - 1) % len(agents)]
            history = build_system_history(
                agent,
                instruction="Generate one creative, self-contained answer option.",
                description=f"Question: {question}\nYou are variant #{index}.",
            )
            content = await self._invoke(agent, history, Mode.FAST)
            return Generation(index=index, agent=agent.name, content=content)

        tasks = [asyncio.ensure_future(generate(i)) for i in range(1, generation_count + 1)]
        try:
            generations = await asyncio.gather(*tasks)
        except BaseException:
            for pending in tasks:
                pending.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        by_index = {g.index: g for g in generations}

        evaluation_mode = Mode.DEEP if evaluator.supports_mode(Mode.DEEP) else Mode.FAST
        evaluation_context = json.dumps(
            {
                "question": question,
                "reviewCriteria": criteria or DEFAULT_REVIEW_CRITERIA,
                "alternatives": [g.model_dump() for g in generations],
            },
            indent=2,
        )
        history = build_system_history(
            evaluator,
            instruction="Evaluate brainstormed alternatives and return the top choices ranked by quality.",
            context=evaluation_context,
            description=(
                'Return JSON with property "ranked" listing objects '
                '{"index": number, "score": number, "rationale": string}.'
            ),
        )
        raw = await self._invoke(evaluator, history, evaluation_mode)
        evaluation = parse_lenient(raw)

        if not isinstance(evaluation, dict) or not isinstance(evaluation.get("ranked"), list):
            logger.warning("Brainstorm evaluation reply had no ranked list; returning no choices")
            return []

        ranked = [
            entry
            for entry in evaluation["ranked"]
            if isinstance(entry, dict) and _is_number(entry.get("index"))
        ][:return_count]

        choices = []
        for entry in ranked:
            match = by_index.get(entry["index"])
            if match is None:
                logger.debug(f"Dropping ranked entry with unknown index {entry['index']!r}")
                continue
            score = entry.get("score")
            rationale = entry.get("rationale")
            choices.append(
                BrainstormChoice(
                    choice=match.content,
                    agent=match.agent,
                    index=match.index,
                    score=float(score) if _is_number(score) else None,
                    rationale=rationale if isinstance(rationale, str) else None,
                )
            )
        return choices

    # -- Operators ------------------------------------------------------------

    async def choose_operator(
        self,
        agent_name: str | None,
        task_description: str,
        mode: str | Mode | None = "fast",
        confidence_threshold: float = 0.5,
    ) -> list[OperatorChoice]:
        """Ask an agent which catalog operators suit a task.

        The reply is parsed strictly first, then from the first ``{`` to the
        last ``}``; ``InvalidModelResponse`` if neither yields the shape.
        """
        if not self.operators.has_operators():
            return []

        agent = self.registry.get_agent(agent_name)
        task_mode = normalize_task_mode(mode, None, agent, Mode.FAST)
        catalog = [op.describe() for op in self.operators.list_operators()]

        history = build_system_history(
            agent,
            instruction=(
                "Review the operator catalog and select the functions that can help with the task."
                if task_mode == Mode.DEEP
                else "Quickly select operators that can solve the task."
            ),
            context=json.dumps({"operators": catalog}, indent=2),
            description=(
                f"Task description: {task_description}\n"
                'Only return JSON: {"suitableOperators":[{"operatorName": string, "confidence": number}]}. '
                f"Discard operators below confidence {confidence_threshold}."
            ),
        )
        raw = await self._invoke(agent, history, task_mode)

        choices = _operator_choices(parse_strict(raw), confidence_threshold)
        if choices is not None:
            return choices

        block = extract_json_block(raw)
        if block is not None:
            choices = _operator_choices(parse_strict(block), confidence_threshold)
            if choices is not None:
                return choices

        raise InvalidModelResponse("Operator selection response is invalid.", raw)

    # -- Control and introspection --------------------------------------------

    def cancel_tasks(self) -> int:
        return self.client.cancel_requests()

    def list_agents(self) -> AgentListing:
        return self.registry.list_agents()
