"""Named extension points for the surrounding platform.

Two kinds of hook live in one ``HookRegistry``:

* **Filters** -- ``apply_filters(name, value, *context)`` threads *value*
  through every callback registered under *name* (ordered by priority,
  then registration order) and returns the result.  The core resolves its
  overridable values here: whitelists, directory, filename, body, front
  matter, pre-persist arguments and the per-record eligibility veto.
* **Actions** -- ``do_action(name, *args)`` calls every callback for its
  side effect.  The platform fires ``save_record`` / ``delete_record``
  when a record changes; the controller listens on them.

``suppressed()`` temporarily detaches an action callback and re-attaches
it on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

# Filters
WHITELISTED_TYPES = "whitelisted_types"
WHITELISTED_STATUSES = "whitelisted_statuses"
PRE_FETCH_ALL_SUPPORTED = "pre_fetch_all_supported"
IS_RECORD_SUPPORTED = "is_record_supported"
DIRECTORY_PUBLISHED = "directory_published"
FILENAME = "filename"
CONTENT_EXPORT = "content_export"
RECORD_META = "record_meta"
PRE_IMPORT_ARGS = "pre_import_args"
PRE_IMPORT_META = "pre_import_meta"

# Actions
SAVE_RECORD = "save_record"
DELETE_RECORD = "delete_record"

DEFAULT_PRIORITY = 10


class HookRegistry:
    """Registry of filter and action callbacks keyed by hook name."""

    def __init__(self) -> None:
        self._filters: dict[str, list[tuple[int, Callable[..., Any]]]] = {}
        self._actions: dict[str, list[tuple[int, Callable[..., Any]]]] = {}

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def add_filter(
        self,
        name: str,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        _register(self._filters, name, callback, priority)

    def remove_filter(self, name: str, callback: Callable[..., Any]) -> bool:
        return _unregister(self._filters, name, callback)

    def apply_filters(self, name: str, value: Any, *context: Any) -> Any:
        """Pass *value* through every filter registered under *name*."""
        for _, callback in self._filters.get(name, []):
            value = callback(value, *context)
        return value

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def add_action(
        self,
        name: str,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        _register(self._actions, name, callback, priority)

    def remove_action(self, name: str, callback: Callable[..., Any]) -> bool:
        return _unregister(self._actions, name, callback)

    def has_action(self, name: str, callback: Callable[..., Any]) -> bool:
        return any(cb == callback for _, cb in self._actions.get(name, []))

    def do_action(self, name: str, *args: Any) -> None:
        # Copy: a callback may add or remove actions while we iterate.
        for _, callback in list(self._actions.get(name, [])):
            callback(*args)

    @contextmanager
    def suppressed(
        self, name: str, callback: Callable[..., Any]
    ) -> Iterator[None]:
        """Detach *callback* from action *name* for the duration of the block.

        The callback is re-attached (at its original priority) however the
        block exits.  No-op when the callback was not attached.
        """
        priority = None
        for prio, cb in self._actions.get(name, []):
            if cb == callback:
                priority = prio
                break

        if priority is None:
            yield
            return

        self.remove_action(name, callback)
        logger.debug("Suppressed action %s", name)
        try:
            yield
        finally:
            self.add_action(name, callback, priority)
            logger.debug("Restored action %s", name)


def _register(
    table: dict[str, list[tuple[int, Callable[..., Any]]]],
    name: str,
    callback: Callable[..., Any],
    priority: int,
) -> None:
    entries = table.setdefault(name, [])
    entries.append((priority, callback))
    # Stable sort keeps registration order within one priority.
    entries.sort(key=lambda entry: entry[0])


def _unregister(
    table: dict[str, list[tuple[int, Callable[..., Any]]]],
    name: str,
    callback: Callable[..., Any],
) -> bool:
    entries = table.get(name, [])
    for index, (_, cb) in enumerate(entries):
        if cb == callback:
            del entries[index]
            return True
    return False
