"""Error responses and outcome conversion for MCP tool handlers.

Error results carry a corrective action so an agent can recover without
human help.
"""

from __future__ import annotations

import json

import mcp.types as types

from ...sync.models import SyncOutcome
from ...sync.response import outcome_to_json

# Corrective action per SyncError code
_ACTIONS: dict[str, str] = {
    "semaphore_locked": (
        "Another import or export is running. Check sync_status and retry "
        "once the lock is open."
    ),
    "unsupported_record": (
        "The record is a revision, password protected or not whitelisted. "
        "Use sync_record_info to see why."
    ),
    "no_results": (
        "No record matches the whitelist. Check the whitelist types and "
        "statuses in the config."
    ),
    "db_error": "Check the platform database, then retry.",
    "collaborator_error": (
        "The remote repository or platform adapter failed. Check the server "
        "log and retry."
    ),
}
_DEFAULT_ACTION = "Check the server log and retry."


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (validation_error, not_found,
            server_error, or a SyncError code).
        message: Human-readable error description.
        corrective_action: What the agent can do about it.

    Returns:
        CallToolResult with isError=True
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def outcome_to_result(outcome: SyncOutcome) -> types.CallToolResult:
    """Convert a controller outcome into a tool result."""
    if not outcome.ok:
        code = outcome.error.code
        return build_error_response(
            code, outcome.message, _ACTIONS.get(code, _DEFAULT_ACTION)
        )

    structured = outcome_to_json(outcome)
    payload = structured["payload"]
    if payload is None:
        text = "Done."
    elif isinstance(payload, str):
        text = payload
    else:
        text = json.dumps(payload, indent=2)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )
