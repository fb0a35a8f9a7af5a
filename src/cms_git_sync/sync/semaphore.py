"""Single-flight lock guarding one orchestrated sync operation."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class Semaphore:
    """Binary open/locked guard with non-blocking acquisition.

    There is no owner token and no reentrancy: a holder that calls
    ``try_acquire()`` again gets ``False`` like any other caller.  Nothing
    waits and nothing expires; whoever acquires must ``release()``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def is_open(self) -> bool:
        return not self._lock.locked()

    def try_acquire(self) -> bool:
        acquired = self._lock.acquire(blocking=False)
        if acquired:
            logger.debug("Semaphore locked")
        return acquired

    def release(self) -> None:
        """Open the semaphore.  Releasing an open semaphore is a no-op."""
        try:
            self._lock.release()
        except RuntimeError:
            logger.warning("Semaphore released while already open")
            return
        logger.debug("Semaphore unlocked")
