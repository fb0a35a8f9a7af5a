"""Persisted sync markers.

The controller records the outcome of full imports and exports as global
options (last error message, completion flags).  ``SyncState`` keeps them
in a single JSON file inside ``state_dir``.

Key design choices:

* **Atomic writes** -- every ``update()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Read-through** -- the file is re-read on each ``get()`` so several
  processes (CLI, webhook server) observe each other's markers.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

IMPORT_ERROR = "_sync_import_error"
EXPORT_ERROR = "_sync_export_error"
IMPORT_COMPLETE = "_sync_import_complete"
EXPORT_COMPLETE = "_sync_export_complete"
FULLY_EXPORTED = "_sync_fully_exported"

MARKER_KEYS = (
    IMPORT_ERROR,
    EXPORT_ERROR,
    IMPORT_COMPLETE,
    EXPORT_COMPLETE,
    FULLY_EXPORTED,
)

STATE_FILENAME = "sync_state.json"


class SyncState:
    """Load, save, and query persisted option markers.

    Args:
        state_dir: Directory holding ``sync_state.json``
            (typically ``.cms_git_sync/``).
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    @property
    def path(self) -> Path:
        return self._state_dir / STATE_FILENAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Return the state dict; an empty state when no file exists yet.

        Raises:
            ValueError: If the file is not a JSON object.
        """
        if not self.path.exists():
            return {"version": 1, "updated": None, "options": {}}
        with open(self.path, encoding="utf-8") as fh:
            try:
                state = json.load(fh)
            except json.JSONDecodeError as exc:
                raise ValueError(
                    f"Corrupt sync state file {self.path}: {exc}"
                ) from exc
        if not isinstance(state, dict):
            raise ValueError(f"Corrupt sync state file {self.path}: not an object")
        return state

    def save(self, state: dict) -> None:
        """Persist *state* atomically, stamping ``updated`` in UTC."""
        self._state_dir.mkdir(parents=True, exist_ok=True)
        state["updated"] = datetime.now(timezone.utc).isoformat()

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Option access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get("options", {}).get(key, default)

    def update(self, key: str, value: Any) -> None:
        state = self.load()
        state.setdefault("options", {})[key] = value
        self.save(state)
        logger.debug("Stored option %s", key)

    def delete(self, key: str) -> None:
        """Remove *key*.  No-op if not present."""
        state = self.load()
        if state.get("options", {}).pop(key, None) is not None:
            self.save(state)

    def markers(self) -> dict[str, Any]:
        """Current value (or ``None``) of every sync marker."""
        options = self.load().get("options", {})
        return {key: options.get(key) for key in MARKER_KEYS}


class MemoryState:
    """In-process option store with the same interface as ``SyncState``."""

    def __init__(self) -> None:
        self._options: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._options.get(key, default)

    def update(self, key: str, value: Any) -> None:
        self._options[key] = value

    def delete(self, key: str) -> None:
        self._options.pop(key, None)

    def markers(self) -> dict[str, Any]:
        return {key: self._options.get(key) for key in MARKER_KEYS}
