"""Lookup from provider key to adapter."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from switchboard.errors import ProviderAlreadyRegistered, ProviderNotRegistered
from switchboard.providers.base import LLMProviderAdapter

logger = logging.getLogger(__name__)


def normalize_key(key: object) -> str:
    return key.strip().lower() if isinstance(key, str) else ""


@dataclass
class ProviderRecord:
    key: str
    adapter: LLMProviderAdapter
    metadata: dict[str, Any] = field(default_factory=dict)


class ProviderRegistry:
    """Provider adapters keyed by normalized provider key.

    A key is bound at most once; rebinding requires ``override=True``.
    """

    def __init__(self) -> None:
        self._records: dict[str, ProviderRecord] = {}
        self._lock = threading.Lock()
        self.builtins_registered = False

    def register(
        self,
        key: str,
        adapter: LLMProviderAdapter,
        metadata: dict[str, Any] | None = None,
        *,
        override: bool = False,
    ) -> ProviderRecord:
        normalized = normalize_key(key)
        if not normalized:
            raise ValueError("register requires a non-empty provider key.")
        if not callable(getattr(adapter, "call_llm", None)):
            raise TypeError(f'Provider "{key}" must expose a call_llm method.')
        if not hasattr(adapter, "system_role"):
            adapter.system_role = "system"  # type: ignore[misc]

        with self._lock:
            if normalized in self._records and not override:
                raise ProviderAlreadyRegistered(normalized)
            record = ProviderRecord(key=normalized, adapter=adapter, metadata=dict(metadata or {}))
            self._records[normalized] = record

        logger.debug(f"Registered provider adapter {normalized!r} ({type(adapter).__name__})")
        return record

    def get_record(self, key: str) -> ProviderRecord | None:
        return self._records.get(normalize_key(key))

    def get(self, key: str) -> LLMProviderAdapter | None:
        record = self.get_record(key)
        return record.adapter if record else None

    def ensure(self, key: str) -> LLMProviderAdapter:
        adapter = self.get(key)
        if adapter is None:
            raise ProviderNotRegistered(normalize_key(key) or str(key))
        return adapter

    def metadata(self, key: str) -> dict[str, Any]:
        record = self.get_record(key)
        return dict(record.metadata) if record else {}

    def has(self, key: str) -> bool:
        return normalize_key(key) in self._records

    def list(self) -> list[str]:
        return list(self._records)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self.builtins_registered = False
