"""Tests for tasks/context.py and tasks/parsing.py."""

from __future__ import annotations

import pytest

from switchboard.agents.models import AgentRecord
from switchboard.tasks.context import (
    build_agent_description,
    build_suggestion_block,
    build_system_history,
    limit_preview,
    normalize_task_context,
)
from switchboard.tasks.parsing import (
    build_task_result,
    extract_json_block,
    parse_lenient,
    parse_object,
    parse_strict,
)


def _agent(**overrides) -> AgentRecord:
    values = {
        "name": "openai",
        "canonical_name": "OpenAI",
        "provider_key": "openai",
        "default_model": "gpt-fast",
        "role": "Writer",
        "job": "Draft text.",
        "expertise": "prose",
    }
    values.update(overrides)
    return AgentRecord(**values)


@pytest.mark.unit
class TestNormalizeTaskContext:
    def test_string_context_is_trimmed(self):
        ctx = normalize_task_context("  notes  ")
        assert ctx.text == "notes"
        assert not ctx.is_messages

    def test_role_aliases_and_tool_prefix(self):
        ctx = normalize_task_context(
            [
                {"role": "user", "content": "question"},
                {"role": "assistant", "message": "answer"},
                {"role": "tool", "name": "search", "result": {"hits": 2}},
                {"role": "observation", "output": "seen"},
            ]
        )
        assert [m["role"] for m in ctx.messages] == ["human", "ai", "ai", "ai"]
        assert ctx.messages[0]["message"] == "question"
        assert ctx.messages[2]["message"].startswith("[tool:search] {")
        assert ctx.messages[3]["message"] == "[observation] seen"

    def test_unknown_roles_and_empty_entries_are_dropped(self):
        ctx = normalize_task_context(
            [{"role": "narrator", "message": "x"}, {"role": "user"}, "plain", {"role": "system", "message": "s"}]
        )
        assert ctx.messages == [{"role": "system", "message": "s"}]

    def test_none_is_empty(self):
        ctx = normalize_task_context(None)
        assert ctx.text == ""
        assert ctx.messages == []

    def test_other_values_are_serialized(self):
        assert normalize_task_context({"k": 1}).text == '{"k": 1}'


@pytest.mark.unit
class TestHistoryBuilding:
    def test_agent_description(self):
        agent = _agent(instructions="Be precise.")
        assert build_agent_description(agent) == (
            "Type: task | Classification: Expert Task Executor | Role: Writer | "
            "Job: Draft text. | Expertise: prose | Guidance: Be precise."
        )

    def test_system_history_layout(self):
        history = build_system_history(
            _agent(),
            instruction="Do it.",
            context="background",
            description="write a haiku",
            output_shape={"type": "object"},
            extra_context_parts=["Hints:\n- one", None],
        )

        assert len(history) == 2
        assert history[0]["role"] == "system"
        assert history[0]["message"].startswith("You are the OpenAI agent. Type: task")
        assert history[0]["message"].endswith("Do it.")
        human = history[1]["message"]
        assert history[1]["role"] == "human"
        assert human.index("Context:\nbackground") < human.index("Hints:") < human.index("Task:\nwrite a haiku")
        assert "Desired output schema (JSON Schema):" in human
        assert human.endswith("Respond with JSON that strictly matches the schema.")

    def test_message_context_is_spliced_before_task(self):
        history = build_system_history(
            _agent(),
            instruction="Go.",
            context=[{"role": "user", "content": "earlier"}],
            description="now",
        )
        assert [m["role"] for m in history] == ["system", "human", "human"]
        assert history[1]["message"] == "earlier"
        assert history[2]["message"] == "Task:\nnow"

    def test_limit_preview_truncates(self):
        assert limit_preview("x" * 10, 5) == "xx..."
        assert limit_preview(None) == ""
        assert limit_preview([1, 2]) == "[1, 2]"

    def test_suggestion_block(self):
        assert build_suggestion_block("Ideas", []) is None
        assert build_suggestion_block("Ideas", ["a", "b"]) == "Ideas:\n- a\n- b"


@pytest.mark.unit
class TestParsing:
    def test_strict(self):
        assert parse_strict('{"a": 1}') == {"a": 1}
        assert parse_strict("nope") is None
        assert parse_strict({"already": True}) == {"already": True}

    def test_fenced_block_preferred(self):
        text = 'Sure:\n```json\n{"a": 1}\n```\nand also {"b": 2}'
        assert extract_json_block(text) == '{"a": 1}'

    def test_brace_span(self):
        assert extract_json_block('prefix {"a": {"b": 1}} suffix') == '{"a": {"b": 1}}'
        assert extract_json_block("no json here") is None

    def test_lenient_recovers_wrapped_json(self):
        assert parse_lenient('Here you go: {"x": [1]} cheers') == {"x": [1]}
        assert parse_lenient("{broken") is None

    def test_parse_object_requires_dict(self):
        assert parse_object("[1]") is None
        assert parse_object('{"a": 1}') == {"a": 1}

    def test_task_result_without_shape_is_raw(self):
        assert build_task_result('{"a": 1}', None) == {"result": '{"a": 1}'}

    def test_task_result_with_shape(self):
        shape = {"type": "object"}
        assert build_task_result('{"title": "t"}', shape) == {"title": "t"}
        assert build_task_result('Result: {"title": "t"}', shape) == {"title": "t"}
        assert build_task_result("plain words", shape) == {"result": "plain words"}
        assert build_task_result("[1, 2]", shape) == {"result": "[1, 2]"}
