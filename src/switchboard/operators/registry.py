"""In-memory catalog of named, described callables an agent can pick from."""

from __future__ import annotations

import inspect
import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from switchboard.errors import DuplicateOperator, InvalidOperatorName, UnknownOperator

logger = logging.getLogger(__name__)

OPERATOR_NAME_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9-]*$")


@dataclass(frozen=True)
class Operator:
    name: str
    description: str
    execute: Callable[..., Any]

    def describe(self) -> dict[str, str]:
        return {"operatorName": self.name, "description": self.description}


class OperatorCatalog:
    def __init__(self) -> None:
        self._operators: dict[str, Operator] = {}
        self._lock = threading.Lock()

    def register_operator(self, name: str, description: str, fn: Callable[..., Any]) -> Operator:
        if not isinstance(name, str) or not OPERATOR_NAME_PATTERN.match(name):
            raise InvalidOperatorName(str(name))
        if not isinstance(description, str) or not description.strip():
            raise ValueError(f'Operator "{name}" requires a non-empty description.')
        if not callable(fn):
            raise TypeError(f'Operator "{name}" must be callable.')

        operator = Operator(name=name, description=description.strip(), execute=fn)
        with self._lock:
            if name in self._operators:
                raise DuplicateOperator(name)
            self._operators[name] = operator
        logger.debug(f"Registered operator {name!r}")
        return operator

    async def call_operator(self, name: str, params: dict[str, Any] | None = None) -> Any:
        """Run an operator with *params*; async operators are awaited."""
        operator = self._operators.get(name)
        if operator is None:
            raise UnknownOperator(name)
        result = operator.execute(dict(params or {}))
        if inspect.isawaitable(result):
            result = await result
        return result

    def get(self, name: str) -> Operator | None:
        return self._operators.get(name)

    def list_operators(self) -> list[Operator]:
        return list(self._operators.values())

    def has_operators(self) -> bool:
        return bool(self._operators)

    def __len__(self) -> int:
        return len(self._operators)

    def reset(self) -> None:
        with self._lock:
            self._operators.clear()
