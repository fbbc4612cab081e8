"""Uvicorn launcher."""

from __future__ import annotations

import logging

from switchboard.config import SwitchboardConfig, load_config

logger = logging.getLogger(__name__)


def run_server(config: SwitchboardConfig | None = None) -> None:
    """Start the HTTP API server with uvicorn."""
    import uvicorn

    if config is None:
        config = load_config()

    logger.info(f"Starting switchboard API on {config.host}:{config.port}")
    uvicorn.run(
        "switchboard.server.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
