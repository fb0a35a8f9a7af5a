"""ToolSpec and ToolRegistry for permission-filtered tool dispatch.

- ToolSpec: immutable link between a Tool definition, the sync permissions
  it needs and an async handler ``(app, args) -> CallToolResult``.
- ToolRegistry: keeps the specs whose permissions are allowed and
  dispatches calls, turning stray exceptions into error results.
- load_permissions_file: reads a text file of permission names
  (``SYNC_VIEW``, ``SYNC_EXPORT``, ``SYNC_IMPORT``).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import mcp.types as types

from .errors import build_error_response

if TYPE_CHECKING:
    from ...sync.app import SyncApp

logger = logging.getLogger(__name__)

KNOWN_PERMISSIONS = frozenset({"SYNC_VIEW", "SYNC_EXPORT", "SYNC_IMPORT"})


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        permissions: Permissions required to use this tool.  Empty means
            always available.
        handler: Async handler with signature (app, args) -> CallToolResult.
    """

    tool: types.Tool
    permissions: frozenset[str]
    handler: Callable[[SyncApp, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs with optional permission filtering.

    With ``allowed_permissions=None`` every spec is registered; otherwise
    a spec is kept only when its permissions are a subset of the allowed
    set (or empty).
    """

    def __init__(
        self,
        specs: list[ToolSpec],
        allowed_permissions: frozenset[str] | None = None,
    ):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if allowed_permissions is None
            or spec.permissions <= allowed_permissions
        }

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        app: SyncApp,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its handler.

        Raises:
            ValueError: If *name* is unknown or was filtered out.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return await spec.handler(app, arguments or {})
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and the platform adapter, then retry.",
            )


def load_permissions_file(path: str | Path) -> frozenset[str]:
    """Load permissions from a text file.

    Format: one permission per line, ``#`` for comments, blank lines
    ignored.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line names an unknown permission or the file is
            empty.
    """
    path = Path(path)
    permissions: set[str] = set()
    for line_num, line in enumerate(
        path.read_text(encoding="utf-8").splitlines(), 1
    ):
        name = line.split("#", 1)[0].strip()
        if not name:
            continue
        if name not in KNOWN_PERMISSIONS:
            raise ValueError(
                f"Unknown permission '{name}' at line {line_num} in {path}. "
                f"Expected one of: {', '.join(sorted(KNOWN_PERMISSIONS))}."
            )
        permissions.add(name)
    if not permissions:
        raise ValueError(
            f"No permissions found in {path}. "
            "File must contain at least one permission."
        )
    return frozenset(permissions)
