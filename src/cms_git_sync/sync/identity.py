"""Explicit "current identity" context.

Replaces a process-wide current-user variable: the active identity is the
top of a stack owned by the application container, and overrides are
pushed and popped around a block with ``impersonate()``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class IdentityContext:
    """Stack of user ids; the top entry is the current identity.

    Args:
        user_id: Identity the context starts with (0 means anonymous).
    """

    def __init__(self, user_id: int = 0) -> None:
        self._stack: list[int] = [user_id]

    @property
    def current(self) -> int:
        return self._stack[-1]

    def push(self, user_id: int) -> None:
        self._stack.append(user_id)

    def pop(self) -> int:
        if len(self._stack) == 1:
            raise RuntimeError("Cannot pop the base identity")
        return self._stack.pop()

    @contextmanager
    def impersonate(self, user_id: int) -> Iterator[int]:
        """Act as *user_id* inside the block; restore on every exit path."""
        previous = self.current
        self.push(user_id)
        logger.debug("Impersonating user %d (was %d)", user_id, previous)
        try:
            yield user_id
        finally:
            self.pop()
            logger.debug("Restored user %d", self.current)
