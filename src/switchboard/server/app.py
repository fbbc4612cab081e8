"""Starlette app factory with lifespan for the Switchboard runtime."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from starlette.applications import Starlette

from switchboard.config import load_config
from switchboard.runtime import Switchboard
from switchboard.server.routes_agents import routes as agent_routes
from switchboard.server.routes_system import routes as system_routes
from switchboard.server.routes_tasks import routes as task_routes


def create_app(switchboard: Switchboard | None = None) -> Starlette:
    """Create the API app; builds a Switchboard from settings unless one is given."""

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if switchboard is not None:
            app.state.switchboard = switchboard
        else:
            app.state.switchboard = Switchboard(config=load_config())

        app.state.switchboard.list_agents()

        yield

        app.state.switchboard.cancel_tasks()

    return Starlette(
        routes=system_routes + agent_routes + task_routes,
        lifespan=lifespan,
    )
