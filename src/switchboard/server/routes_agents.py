"""Agent and operator introspection routes."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from switchboard.errors import ResolutionError


async def list_agents(request: Request) -> JSONResponse:
    """GET /api/agents: active and inactive agents with reasons."""
    listing = request.app.state.switchboard.list_agents()
    return JSONResponse(listing.model_dump(mode="json"))


async def get_agent(request: Request) -> JSONResponse:
    """GET /api/agents/{name}: resolve a name or alias to an agent."""
    name = request.path_params["name"]
    try:
        agent = request.app.state.switchboard.agents.get_agent(name)
    except ResolutionError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    return JSONResponse(agent.model_dump(mode="json"))


async def list_operators(request: Request) -> JSONResponse:
    """GET /api/operators: the operator catalog (names and descriptions)."""
    operators = request.app.state.switchboard.operators.list_operators()
    return JSONResponse({"operators": [op.describe() for op in operators]})


routes = [
    Route("/api/agents", list_agents),
    Route("/api/agents/{name}", get_agent),
    Route("/api/operators", list_operators),
]
