"""CLI entry point for switchboard."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import cast

from switchboard import __version__
from switchboard.config import SwitchboardConfig, load_config
from switchboard.errors import SwitchboardError
from switchboard.runtime import Switchboard
from switchboard.server.runner import run_server


def _load_settings(args: argparse.Namespace) -> SwitchboardConfig:
    config = load_config(cast(Path | None, args.config))
    models = cast(Path | None, args.models)
    if models is not None:
        config.models_config_path = models
    return config


def _build_switchboard(config: SwitchboardConfig) -> Switchboard:
    return Switchboard(config=config)


def _read_context(value: str | None) -> object:
    """``@path`` reads a file; JSON lists are treated as prior messages."""
    if not value:
        return None
    if value.startswith("@"):
        value = Path(value[1:]).read_text()
    stripped = value.strip()
    if stripped.startswith("["):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    return value


def _print_result(result: object) -> None:
    print(json.dumps(result, indent=2, ensure_ascii=False))


def _cmd_agents(args: argparse.Namespace, config: SwitchboardConfig) -> None:
    listing = _build_switchboard(config).list_agents()
    if args.json:
        print(listing.model_dump_json(indent=2))
        return

    print(f"Default agent: {listing.default_agent or '(none)'}")
    print(f"Active agents: {len(listing.active)}")
    for entry in listing.active:
        models = ", ".join(entry.available_models)
        print(f"  {entry.name:<16} default={entry.default_model}  models=[{models}]")
    if listing.inactive:
        print(f"Inactive agents: {len(listing.inactive)}")
        for entry in listing.inactive:
            print(f"  {entry.name:<16} {entry.reason}")
    for conflict in listing.alias_conflicts:
        print(f"  alias {conflict.alias!r}: {conflict.reason}")


def _cmd_providers(_args: argparse.Namespace, config: SwitchboardConfig) -> None:
    switchboard = _build_switchboard(config)
    issues = switchboard.configuration.issues
    print(f"Config: {switchboard.configuration.path}")
    print(f"Registered adapters: {', '.join(switchboard.providers.list()) or '(none)'}")
    for error in issues.errors:
        print(f"  error: {error}")
    for warning in issues.warnings:
        print(f"  warning: {warning}")


def _cmd_task(args: argparse.Namespace, config: SwitchboardConfig) -> None:
    switchboard = _build_switchboard(config)
    context = _read_context(args.context)
    shape = json.loads(args.output_shape) if args.output_shape else None

    if args.human_review:
        coro = switchboard.do_task_with_human_review(
            args.agent, context, args.description, shape, args.mode or "deep"
        )
    elif args.review:
        coro = switchboard.do_task_with_review(
            args.agent, context, args.description, shape, args.mode or "deep", args.max_iterations
        )
    else:
        coro = switchboard.do_task(
            args.agent, context, args.description, shape, args.mode or "fast", args.retries
        )
    _print_result(asyncio.run(coro))


def _cmd_brainstorm(args: argparse.Namespace, config: SwitchboardConfig) -> None:
    switchboard = _build_switchboard(config)
    choices = asyncio.run(
        switchboard.brainstorm(
            args.evaluator, args.question, args.generations, args.top, args.criteria
        )
    )
    _print_result([c.model_dump() for c in choices])


def _cmd_serve(_args: argparse.Namespace, config: SwitchboardConfig) -> None:
    run_server(config)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="Route LLM tasks across interchangeable provider backends",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"switchboard {__version__}"
    )
    _ = parser.add_argument("--config", type=Path, default=None, help="Settings file (.switchboard.json)")
    _ = parser.add_argument("--models", type=Path, default=None, help="Path to models.json")
    subparsers = parser.add_subparsers(dest="command")

    agents_p = subparsers.add_parser("agents", help="List active and inactive agents")
    _ = agents_p.add_argument("--json", action="store_true", help="Print the listing as JSON")

    _ = subparsers.add_parser("providers", help="Show adapters and configuration diagnostics")

    task_p = subparsers.add_parser("task", help="Run a task against an agent")
    _ = task_p.add_argument("description", help="What the agent should do")
    _ = task_p.add_argument("--agent", default=None, help="Agent name, provider key or model alias")
    _ = task_p.add_argument("--context", default=None, help="Context text, JSON message list, or @file")
    _ = task_p.add_argument("--mode", choices=["fast", "deep", "any"], default=None)
    _ = task_p.add_argument("--output-shape", default=None, help="JSON Schema for the reply")
    _ = task_p.add_argument("--retries", type=int, default=3)
    _ = task_p.add_argument("--review", action="store_true", help="Use the generate/review loop")
    _ = task_p.add_argument("--max-iterations", type=int, default=5)
    _ = task_p.add_argument(
        "--human-review", action="store_true", help="Ask for approval on stdin after each candidate"
    )

    brainstorm_p = subparsers.add_parser("brainstorm", help="Generate and rank alternative answers")
    _ = brainstorm_p.add_argument("question")
    _ = brainstorm_p.add_argument("--evaluator", default=None)
    _ = brainstorm_p.add_argument("--generations", type=int, default=3)
    _ = brainstorm_p.add_argument("--top", type=int, default=1)
    _ = brainstorm_p.add_argument("--criteria", default=None)

    _ = subparsers.add_parser("serve", help="Start the HTTP API server")

    args = parser.parse_args(sys.argv[1:])
    dispatch = {
        "agents": _cmd_agents,
        "providers": _cmd_providers,
        "task": _cmd_task,
        "brainstorm": _cmd_brainstorm,
        "serve": _cmd_serve,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if not handler:
        parser.print_help()
        sys.exit(1)

    config = _load_settings(args)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        handler(args, config)
    except (SwitchboardError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
