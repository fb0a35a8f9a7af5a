"""MCP tool handlers for sync operations.

Defines six tools:

- ``sync_export_all`` -- export every eligible record.
- ``sync_import_master`` -- import the head of the configured branch.
- ``sync_export_record`` -- export one record.
- ``sync_delete_record`` -- remove one record's file.
- ``sync_status`` -- semaphore state and persisted markers.
- ``sync_record_info`` -- repository path, hash and eligibility of a record.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...sync.content import ContentItem
from ..async_utils import run_sync
from .errors import build_error_response, outcome_to_result
from .registry import ToolSpec

if TYPE_CHECKING:
    from ...sync.app import SyncApp

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _record_id(args: dict[str, Any]) -> int:
    value = args.get("record_id")
    if value is None:
        raise ValueError("record_id is required")
    try:
        record_id = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid record_id '{value}': must be an integer") from None
    if record_id <= 0:
        raise ValueError(f"Invalid record_id {record_id}: must be positive")
    return record_id


def _user_id(app: SyncApp, args: dict[str, Any]) -> int:
    value = int(args.get("user_id", 0) or 0)
    if value < 0:
        raise ValueError(f"Invalid user_id {value}: must be 0 or a user id")
    return value or app.config.default_user


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_export_all(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    outcome = await run_sync(
        app.controller.export_all,
        user_id=_user_id(app, args),
        force=bool(args.get("force", False)),
    )
    return outcome_to_result(outcome)


async def _handle_import_master(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    outcome = await run_sync(
        app.controller.import_all,
        user_id=_user_id(app, args),
        force=bool(args.get("force", False)),
    )
    return outcome_to_result(outcome)


async def _handle_export_record(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    record_id = _record_id(args)
    outcome = await run_sync(app.controller.export_one, record_id)
    if outcome is None:
        return _revision_result(record_id)
    return outcome_to_result(outcome)


async def _handle_delete_record(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    record_id = _record_id(args)
    outcome = await run_sync(app.controller.delete_one, record_id)
    if outcome is None:
        return _revision_result(record_id)
    return outcome_to_result(outcome)


def _revision_result(record_id: int) -> types.CallToolResult:
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Record {record_id} is a revision; nothing to do.",
            )
        ],
        structuredContent={"ok": True, "payload": None, "revision": True},
    )


async def _handle_status(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    try:
        markers = await run_sync(app.options.markers)
    except ValueError as e:
        return build_error_response(
            "state_error",
            str(e),
            "Repair or delete the sync state file, then retry.",
        )
    locked = not app.semaphore.is_open()

    lines = [
        "Sync status",
        f"  Repository: {app.config.repository or '(not set)'}",
        f"  Branch:     {app.config.branch}",
        f"  Lock:       {'locked' if locked else 'open'}",
    ]
    lines.extend(f"  {key}: {value}" for key, value in markers.items() if value)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "repository": app.config.repository,
            "branch": app.config.branch,
            "locked": locked,
            "markers": markers,
        },
    )


async def _handle_record_info(
    app: SyncApp, args: dict[str, Any]
) -> types.CallToolResult:
    record_id = _record_id(args)

    def collect() -> dict[str, Any] | None:
        try:
            item = ContentItem.load(app, record_id)
        except LookupError:
            return None
        supported = app.store.is_supported(item)
        info: dict[str, Any] = {
            "id": item.id,
            "title": item.title(),
            "type": item.type(),
            "status": item.status(),
            "supported": supported,
            "github_path": item.github_path(),
            "stored_path": item.stored_github_path(),
            "sha": item.sha(),
            "on_github": item.is_on_github(),
        }
        if supported:
            info["needs_sync"] = item.needs_sync()
        if info["on_github"] and app.config.repository:
            info["view_url"] = item.github_view_url()
        if item.diagnostics:
            info["diagnostics"] = list(item.diagnostics)
        return info

    info = await run_sync(collect)
    if info is None:
        return build_error_response(
            "not_found",
            f"Record {record_id} not found",
            "Check the record id on the platform.",
        )

    lines = [f"Record {info['id']}: {info['title']}"]
    lines.extend(
        f"  {key}: {value}" for key, value in info.items() if key not in ("id", "title")
    )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=info,
    )


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_RECORD_SCHEMA = {
    "type": "object",
    "properties": {
        "record_id": {
            "type": "integer",
            "description": "Platform record id",
        },
    },
    "required": ["record_id"],
}

_BULK_SCHEMA = {
    "type": "object",
    "properties": {
        "force": {
            "type": "boolean",
            "default": False,
            "description": "Include records or files already in sync",
        },
        "user_id": {
            "type": "integer",
            "default": 0,
            "description": "User to act as (0: configured default user)",
        },
    },
    "required": [],
}


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=types.Tool(
            name="sync_export_all",
            description=(
                "Export every whitelisted record to the repository. Records "
                "already synced are skipped unless force=true."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_BULK_SCHEMA,
        ),
        permissions=frozenset({"SYNC_EXPORT"}),
        handler=_handle_export_all,
    ),
    ToolSpec(
        tool=types.Tool(
            name="sync_import_master",
            description=(
                "Import every file at the head of the configured branch into "
                "the platform."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_BULK_SCHEMA,
        ),
        permissions=frozenset({"SYNC_IMPORT"}),
        handler=_handle_import_master,
    ),
    ToolSpec(
        tool=types.Tool(
            name="sync_export_record",
            description="Export one record to the repository.",
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_RECORD_SCHEMA,
        ),
        permissions=frozenset({"SYNC_EXPORT"}),
        handler=_handle_export_record,
    ),
    ToolSpec(
        tool=types.Tool(
            name="sync_delete_record",
            description="Remove one record's file from the repository.",
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_RECORD_SCHEMA,
        ),
        permissions=frozenset({"SYNC_EXPORT"}),
        handler=_handle_delete_record,
    ),
    ToolSpec(
        tool=types.Tool(
            name="sync_status",
            description=(
                "Show whether a sync is running and the last import/export "
                "completion and error markers."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=True,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        permissions=frozenset({"SYNC_VIEW"}),
        handler=_handle_status,
    ),
    ToolSpec(
        tool=types.Tool(
            name="sync_record_info",
            description=(
                "Show a record's repository path, last-synced hash, whether it "
                "is eligible for sync and whether it needs a sync."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=True,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema=_RECORD_SCHEMA,
        ),
        permissions=frozenset({"SYNC_VIEW"}),
        handler=_handle_record_info,
    ),
]
