"""Task routes: run, review, brainstorm, operator selection, cancel."""

from __future__ import annotations

import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from switchboard.errors import (
    DispatchError,
    InvalidModelResponse,
    RequestCancelledError,
    ResolutionError,
    ReviewIterationsExceeded,
    TaskFailedError,
)

logger = logging.getLogger(__name__)


def _error_response(e: Exception) -> JSONResponse:
    if isinstance(e, RequestCancelledError):
        status = 409
    elif isinstance(e, ResolutionError):
        status = 404
    elif isinstance(e, ValueError):
        status = 422
    elif isinstance(e, TaskFailedError | ReviewIterationsExceeded | DispatchError | InvalidModelResponse):
        status = 502
    else:
        raise e
    return JSONResponse({"error": str(e), "type": type(e).__name__}, status_code=status)


async def _read_body(request: Request) -> dict | JSONResponse:
    try:
        body = await request.json()
    except Exception:
        return JSONResponse({"error": "Invalid JSON"}, status_code=422)
    if not isinstance(body, dict):
        return JSONResponse({"error": "Body must be a JSON object"}, status_code=422)
    return body


def _shape(body: dict) -> dict | None:
    shape = body.get("outputShape", body.get("output_shape"))
    return shape if isinstance(shape, dict) else None


def _number(body: dict, *keys: str, default: float, cast: type = int) -> Any:
    """First present key converted with *cast*; a non-numeric value is a ValueError."""
    for key in keys:
        if key in body:
            value = body[key]
            if isinstance(value, bool) or not isinstance(value, int | float | str):
                raise ValueError(f"\"{keys[0]}\" must be a number.")
            return cast(value)
    return default


async def run_task(request: Request) -> JSONResponse:
    """POST /api/tasks: single task with retries."""
    body = await _read_body(request)
    if isinstance(body, JSONResponse):
        return body
    description = body.get("description")
    if not description:
        return JSONResponse({"error": "description is required"}, status_code=422)

    switchboard = request.app.state.switchboard
    try:
        result = await switchboard.do_task(
            body.get("agent"),
            body.get("context"),
            description,
            _shape(body),
            body.get("mode", "fast"),
            _number(body, "retries", default=3),
        )
    except Exception as e:
        return _error_response(e)
    return JSONResponse({"result": result})


async def run_reviewed_task(request: Request) -> JSONResponse:
    """POST /api/tasks/review: generate/review loop."""
    body = await _read_body(request)
    if isinstance(body, JSONResponse):
        return body
    description = body.get("description")
    if not description:
        return JSONResponse({"error": "description is required"}, status_code=422)

    switchboard = request.app.state.switchboard
    try:
        result = await switchboard.do_task_with_review(
            body.get("agent"),
            body.get("context"),
            description,
            _shape(body),
            body.get("mode", "deep"),
            _number(body, "maxIterations", "max_iterations", default=5),
        )
    except Exception as e:
        return _error_response(e)
    return JSONResponse({"result": result})


async def run_brainstorm(request: Request) -> JSONResponse:
    """POST /api/brainstorm: fan out generations, rank with an evaluator."""
    body = await _read_body(request)
    if isinstance(body, JSONResponse):
        return body

    switchboard = request.app.state.switchboard
    try:
        choices = await switchboard.brainstorm(
            body.get("evaluator"),
            body.get("question", ""),
            body.get("generationCount", body.get("generation_count", 3)),
            body.get("returnCount", body.get("return_count", 1)),
            body.get("criteria"),
        )
    except Exception as e:
        return _error_response(e)
    return JSONResponse({"choices": [c.model_dump() for c in choices]})


async def select_operators(request: Request) -> JSONResponse:
    """POST /api/operators/select: ask an agent which operators fit a task."""
    body = await _read_body(request)
    if isinstance(body, JSONResponse):
        return body
    description = body.get("description")
    if not description:
        return JSONResponse({"error": "description is required"}, status_code=422)

    switchboard = request.app.state.switchboard
    try:
        choices = await switchboard.choose_operator(
            body.get("agent"),
            description,
            body.get("mode", "fast"),
            _number(body, "threshold", default=0.5, cast=float),
        )
    except Exception as e:
        return _error_response(e)
    return JSONResponse({"suitableOperators": [c.to_wire() for c in choices]})


async def cancel_tasks(request: Request) -> JSONResponse:
    """POST /api/tasks/cancel: cancel every in-flight dispatch."""
    cancelled = request.app.state.switchboard.cancel_tasks()
    logger.info(f"Cancelled {cancelled} in-flight request(s) via API")
    return JSONResponse({"cancelled": cancelled})


routes = [
    Route("/api/tasks", run_task, methods=["POST"]),
    Route("/api/tasks/review", run_reviewed_task, methods=["POST"]),
    Route("/api/tasks/cancel", cancel_tasks, methods=["POST"]),
    Route("/api/brainstorm", run_brainstorm, methods=["POST"]),
    Route("/api/operators/select", select_operators, methods=["POST"]),
]
