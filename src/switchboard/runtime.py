"""Composition root: one object owning every registry, plus an opt-in process default."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from switchboard.agents.models import AgentListing, AgentSummary
from switchboard.agents.registry import AgentRegistry
from switchboard.cancellation import CancellationScope
from switchboard.catalog.loader import load_models_configuration
from switchboard.catalog.models import ModelsConfiguration
from switchboard.config import SwitchboardConfig, load_config
from switchboard.dispatch import LLMClient
from switchboard.operators.registry import Operator, OperatorCatalog
from switchboard.providers.base import LLMProviderAdapter
from switchboard.providers.bootstrap import (
    register_builtin_providers,
    register_providers_from_config,
)
from switchboard.providers.registry import ProviderRegistry
from switchboard.tasks.engine import OutputFn, PromptFn, TaskEngine
from switchboard.tasks.models import BrainstormChoice, OperatorChoice

logger = logging.getLogger(__name__)


class Switchboard:
    """Catalog, provider adapters, agents, operators and the task engine.

    Explicit ``adapters`` are registered before built-ins and config modules,
    so a host can bind its own implementation for any provider key.
    """

    def __init__(
        self,
        configuration: ModelsConfiguration | None = None,
        *,
        config: SwitchboardConfig | None = None,
        adapters: Mapping[str, LLMProviderAdapter] | None = None,
        environ: Mapping[str, str] | None = None,
        load_builtin: bool = True,
        prompt: PromptFn | None = None,
        output: OutputFn | None = None,
    ) -> None:
        self.config = config or SwitchboardConfig()
        if configuration is None:
            configuration = load_models_configuration(self.config.models_config_path)
        self.configuration = configuration

        self.providers = ProviderRegistry()
        for key, adapter in (adapters or {}).items():
            self.providers.register(key, adapter, {"source": "host"})
        if load_builtin:
            register_builtin_providers(
                self.providers,
                skip=self.config.skip_builtin_providers or None,
                timeout=self.config.request_timeout,
            )
        else:
            self.providers.builtins_registered = True
        register_providers_from_config(self.providers, configuration)

        self.scope = CancellationScope()
        self.client = LLMClient(self.providers, scope=self.scope)
        self.agents = AgentRegistry(configuration, self.providers, environ=environ)
        self.operators = OperatorCatalog()
        self.engine = TaskEngine(
            self.agents, self.client, self.operators, prompt=prompt, output=output
        )

    @classmethod
    def from_path(cls, path: str | Path, **kwargs: Any) -> Switchboard:
        return cls(load_models_configuration(path), **kwargs)

    # -- Task surface ---------------------------------------------------------

    async def do_task(
        self,
        agent: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | None = "fast",
        retries: int = 3,
    ) -> dict:
        return await self.engine.do_task(agent, context, description, output_shape, mode, retries)

    async def do_task_with_review(
        self,
        agent: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | None = "deep",
        max_iterations: int = 5,
    ) -> dict:
        return await self.engine.do_task_with_review(
            agent, context, description, output_shape, mode, max_iterations
        )

    async def do_task_with_human_review(
        self,
        agent: str | None,
        context: Any,
        description: str,
        output_shape: dict | None = None,
        mode: str | None = "deep",
    ) -> dict:
        return await self.engine.do_task_with_human_review(
            agent, context, description, output_shape, mode
        )

    async def brainstorm(
        self,
        evaluator: str | None,
        question: str,
        generation_count: int,
        return_count: int,
        criteria: str | None = None,
    ) -> list[BrainstormChoice]:
        return await self.engine.brainstorm(
            evaluator, question, generation_count, return_count, criteria
        )

    async def choose_operator(
        self,
        agent: str | None,
        task_description: str,
        mode: str | None = "fast",
        confidence_threshold: float = 0.5,
    ) -> list[OperatorChoice]:
        return await self.engine.choose_operator(agent, task_description, mode, confidence_threshold)

    def cancel_tasks(self) -> int:
        return self.engine.cancel_tasks()

    def list_agents(self) -> AgentListing:
        return self.engine.list_agents()

    def register_agent(self, name: str, **kwargs: Any) -> AgentSummary:
        return self.agents.register_agent(name, **kwargs)

    def register_default_agent(self, **kwargs: Any) -> AgentSummary:
        return self.agents.register_default_agent(**kwargs)

    # -- Operators ------------------------------------------------------------

    def register_operator(self, name: str, description: str, fn: Any) -> Operator:
        return self.operators.register_operator(name, description, fn)

    async def call_operator(self, name: str, params: dict | None = None) -> Any:
        return await self.operators.call_operator(name, params)

    def reset(self) -> None:
        """Drop the built agent registry; it is rebuilt from the environment on next use."""
        self.agents.reset()


_default: Switchboard | None = None
_default_lock = threading.Lock()


def get_switchboard() -> Switchboard:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = Switchboard(config=load_config())
    return _default


def set_switchboard(instance: Switchboard | None) -> None:
    global _default
    with _default_lock:
        _default = instance


def reset_switchboard() -> None:
    set_switchboard(None)
