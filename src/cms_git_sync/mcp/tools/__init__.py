"""MCP tool handlers for sync operations.

Handlers run the blocking controller in a worker thread and convert each
``SyncOutcome`` into a structured ``CallToolResult``.
"""

from .errors import build_error_response, outcome_to_result
from .registry import ToolRegistry, ToolSpec, load_permissions_file
from .sync import SYNC_SPECS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "build_error_response",
    "outcome_to_result",
    "ToolSpec",
    "ToolRegistry",
    "load_permissions_file",
    "ALL_SPECS",
    "SYNC_SPECS",
]
