"""MCP server for cms-git-sync using stdio transport.

Exposes the sync controller operations as MCP tools so an agent can run
exports and imports, inspect the lock and markers and look at individual
records.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..logger import DEFAULT_LOG_FILE, setup_logging
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
)

if TYPE_CHECKING:
    from ..sync.app import SyncApp

logger = logging.getLogger(__name__)

server = Server("cms-git-sync")

# Initialized in main()
_app: SyncApp | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_app() -> SyncApp:
    """Return the running SyncApp.

    Raises:
        RuntimeError: If the server lifespan has not started.
    """
    if _app is None:
        raise RuntimeError("SyncApp not initialized. Server lifespan not started.")
    return _app


def set_app(app: SyncApp | None) -> None:
    global _app
    _app = app


def get_registry() -> ToolRegistry:
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the registered (and permitted) sync tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch a tool call through the ToolRegistry."""
    app = get_app()
    try:
        return await get_registry().call_tool(name, arguments, app)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def build_registry(permissions_file: str | None = None) -> ToolRegistry:
    """Registry of all sync tools, filtered by *permissions_file* if given."""
    allowed = None
    if permissions_file:
        allowed = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s", len(allowed), permissions_file
        )
    registry = ToolRegistry(ALL_SPECS, allowed)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(ALL_SPECS),
    )
    return registry


async def main(config_overrides: dict | None = None) -> None:
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Values from the command line (app_factory,
            repository, branch, debug, log_file, permissions_file).
    """
    overrides = dict(config_overrides or {})
    log_file = overrides.pop("log_file", None)
    permissions_file = overrides.pop("permissions_file", None)

    # Before stdio_server: nothing may reach stdout
    setup_logging(
        mode="mcp", debug=overrides.get("debug", False), log_file=log_file
    )

    set_registry(build_registry(permissions_file))

    # set_app() is called here rather than inside the lifespan so the
    # module that serves requests is the one holding the app, also when
    # run as ``python -m cms_git_sync.mcp.server``.
    async with server_lifespan(config_overrides=overrides or None) as ctx:
        app = ctx["app"]
        config = app.config
        if config.log_level or (config.log_file and not log_file):
            setup_logging(
                mode="mcp",
                debug=config.debug,
                log_file=log_file or config.log_file or None,
                level=config.log_level or None,
            )
        set_app(app)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="cms-git-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_app(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cms-git-sync-mcp",
        description="cms-git-sync MCP server (stdio transport)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with the app factory from .env or .cms_git_sync/config.yml
  cms-git-sync-mcp

  # Name the app factory explicitly
  cms-git-sync-mcp --app mysite.sync:build_app

  # Read-only agent
  cms-git-sync-mcp --permissions-file /etc/cms-git-sync/view.permissions

Note: stdout carries JSON-RPC. All user-facing messages go to stderr.
        """,
    )
    parser.add_argument("--app", help="module:attr factory building the SyncApp")
    parser.add_argument("--repository", help="Override repository (owner/name)")
    parser.add_argument("--branch", help="Override synced branch")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: 'logging.file' from config.yml, "
        f"CMS_GIT_SYNC_LOG_FILE or {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--permissions-file",
        help="File listing the permissions (SYNC_VIEW, SYNC_EXPORT, "
        "SYNC_IMPORT) whose tools are exposed. Default: all tools.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cms-git-sync-mcp version {__version__}",
    )
    return parser


def run() -> None:
    """Console script entry point."""
    args = build_parser().parse_args()

    config_overrides = {
        key: value
        for key, value in (
            ("app_factory", args.app),
            ("repository", args.repository),
            ("branch", args.branch),
            ("debug", args.debug),
            ("log_file", args.log_file),
            ("permissions_file", args.permissions_file),
        )
        if value
    }

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Already reported on stderr by the lifespan
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
