"""Staged recovery of JSON from model replies.

1. ``parse_strict``: the whole reply is JSON.
2. ``extract_json_block``: a fenced ```json block, else the span from the
   first ``{`` to the last ``}``.
3. Fallback to raw text, done by the callers (``build_task_result`` wraps it
   as ``{"result": raw}``).
"""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_BRACES_RE = re.compile(r"\{[\s\S]*\}")


def parse_strict(text: Any) -> Any | None:
    if not isinstance(text, str):
        return text
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def extract_json_block(text: Any) -> str | None:
    if not isinstance(text, str):
        return None
    fence = _FENCE_RE.search(text)
    if fence and fence.group(1).strip():
        return fence.group(1).strip()
    match = _BRACES_RE.search(text)
    return match.group(0) if match else None


def parse_lenient(text: Any) -> Any | None:
    parsed = parse_strict(text)
    if parsed is not None:
        return parsed
    block = extract_json_block(text)
    return parse_strict(block) if block is not None else None


def parse_object(text: Any) -> dict | None:
    """Strict parse only; ``None`` unless the reply is a JSON object."""
    parsed = parse_strict(text)
    return parsed if isinstance(parsed, dict) else None


def build_task_result(raw: str, output_shape: dict | None) -> dict:
    if not output_shape:
        return {"result": raw}
    parsed = parse_lenient(raw)
    if not isinstance(parsed, dict):
        return {"result": raw}
    return parsed
