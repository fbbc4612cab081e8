"""System routes: health, version, providers."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from switchboard import __version__ as VERSION


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def version(request: Request) -> JSONResponse:
    return JSONResponse({"version": VERSION})


async def providers(request: Request) -> JSONResponse:
    """GET /api/providers: registered adapters and configuration diagnostics."""
    switchboard = request.app.state.switchboard
    registry = switchboard.providers
    configuration = switchboard.configuration
    return JSONResponse(
        {
            "registered": [
                {"key": key, "source": registry.metadata(key).get("source")}
                for key in registry.list()
            ],
            "configured": list(configuration.providers),
            "config_path": str(configuration.path) if configuration.path else None,
            "issues": configuration.issues.model_dump(),
        }
    )


routes = [
    Route("/health", health),
    Route("/api/version", version),
    Route("/api/providers", providers),
]
