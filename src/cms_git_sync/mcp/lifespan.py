"""Lifespan management for MCP server startup and shutdown."""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..config import load_from_sources
from ..sync.app import load_app

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Build the sync application for the lifetime of the server.

    On startup the configuration is loaded (CLI > env vars > .env > YAML >
    defaults) and the ``SyncApp`` is built and booted through the
    configured ``module:attr`` factory.

    Args:
        config_overrides: Optional dict with values from the command line
            (app_factory, repository, branch, debug).

    Yields:
        Dict with an 'app' key holding the booted SyncApp

    Raises:
        RuntimeError: If the configuration is invalid or the factory fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("cms-git-sync MCP server starting...")

    try:
        config, sources = load_from_sources(config_overrides)
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")

        if not config.app_factory:
            raise ValueError(
                "no app factory configured (SYNC_APP_FACTORY, --app or "
                "'app_factory' in config.yml)"
            )
        app = load_app(config.app_factory, config)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    logger.info(
        "Sync app ready for %s@%s",
        config.repository or "(no repository)",
        config.branch,
    )
    _stderr_print(f"  Repository: {config.repository or '(not set)'}")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"app": app}

    logger.info("MCP server shutting down")
    _stderr_print("cms-git-sync MCP server shutting down.")
