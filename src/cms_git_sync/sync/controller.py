"""Sync controller: the only entry point that mutates sync state.

Every operation follows the same template: acquire the semaphore, do the
work, release, report.  If the semaphore cannot be acquired nothing else
happens and a ``semaphore_locked`` outcome is returned.  Inside the locked
section:

* ``pull`` and ``import_all`` detach the record save/delete triggers so an
  import cannot re-export the records it just wrote;
* ``pull`` acts as the configured default user, ``import_all`` and
  ``export_all`` as the caller-supplied user, if any;
* any exception raised by a collaborator is converted into an error
  outcome.  Triggers, identity and the semaphore are restored on every
  exit path, in that order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any

from .errors import (
    BusyError,
    CollaboratorError,
    InvalidEventError,
    InvalidSecretError,
    SyncError,
)
from .hooks import DELETE_RECORD, SAVE_RECORD
from .models import SyncOutcome
from .state import (
    EXPORT_COMPLETE,
    EXPORT_ERROR,
    FULLY_EXPORTED,
    IMPORT_COMPLETE,
    IMPORT_ERROR,
)

if TYPE_CHECKING:
    from .app import SyncApp
    from .protocols import Request

logger = logging.getLogger(__name__)

PING_RESPONSE = "ready"
MARKER_DONE = "yes"


class SyncController:
    """Dispatches webhook, CLI and record-event triggers.

    Args:
        app: Application container.
    """

    def __init__(self, app: SyncApp) -> None:
        self.app = app

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def pull(self, request: Request) -> SyncOutcome:
        """Import the push described by an inbound webhook *request*.

        Secret and event kind are checked before the semaphore so an
        unauthenticated caller never observes lock contention.  A ping
        succeeds without touching anything.
        """
        response = self.app.response

        try:
            if not request.is_secret_valid():
                return response.error(InvalidSecretError())
            if request.is_ping():
                return response.success(PING_RESPONSE)
            if not request.is_push():
                return response.error(InvalidEventError(request.webhook_event()))
        except Exception as exc:
            return self._failed("pull", "request validation", exc)

        if not self.app.semaphore.is_open():
            return self._busy("pull")

        try:
            payload = request.payload()
            payload.should_import()
        except SyncError as exc:
            return response.error(exc)
        except Exception as exc:
            return self._failed("pull", "payload validation", exc)

        return self._run(
            "pull",
            lambda: self.app.importer.payload(payload),
            suppress_triggers=True,
            user_id=self.app.config.default_user,
        )

    def import_all(self, user_id: int = 0, force: bool = False) -> SyncOutcome:
        """Import the whole tree at the head of the configured branch."""
        return self._run(
            "import_all",
            lambda: self.app.importer.master(force),
            suppress_triggers=True,
            user_id=user_id or None,
            error_marker=IMPORT_ERROR,
            complete_markers=(IMPORT_COMPLETE,),
        )

    def export_all(self, user_id: int = 0, force: bool = False) -> SyncOutcome:
        """Export every eligible record."""
        return self._run(
            "export_all",
            lambda: self.app.exporter.full(force),
            user_id=user_id or None,
            error_marker=EXPORT_ERROR,
            complete_markers=(EXPORT_COMPLETE, FULLY_EXPORTED),
        )

    def export_one(self, record_id: int) -> SyncOutcome | None:
        """Export one record; ``None`` for a revision id."""
        try:
            if self._is_revision("export_one", record_id):
                return None
        except Exception as exc:
            return self._failed("export_one", "revision check", exc)
        return self._run(
            "export_one", lambda: self.app.exporter.update(record_id)
        )

    def delete_one(self, record_id: int) -> SyncOutcome | None:
        """Remove one record's file; ``None`` for a revision id."""
        try:
            if self._is_revision("delete_one", record_id):
                return None
        except Exception as exc:
            return self._failed("delete_one", "revision check", exc)
        return self._run(
            "delete_one", lambda: self.app.exporter.delete(record_id)
        )

    def _is_revision(self, operation: str, record_id: int) -> bool:
        if self.app.backend.is_revision(record_id):
            logger.debug("%s: record %d is a revision", operation, record_id)
            return True
        return False

    # ------------------------------------------------------------------
    # Locked section
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[], Any],
        *,
        suppress_triggers: bool = False,
        user_id: int | None = None,
        error_marker: str | None = None,
        complete_markers: Iterable[str] = (),
    ) -> SyncOutcome:
        app = self.app

        if not app.semaphore.try_acquire():
            return self._busy(operation)

        error: SyncError | None = None
        result: Any = None
        try:
            with ExitStack() as stack:
                if suppress_triggers:
                    stack.enter_context(
                        app.hooks.suppressed(SAVE_RECORD, self.export_one)
                    )
                    stack.enter_context(
                        app.hooks.suppressed(DELETE_RECORD, self.delete_one)
                    )
                if user_id is not None:
                    stack.enter_context(app.identity.impersonate(user_id))

                try:
                    result = work()
                except SyncError as exc:
                    error = exc
                except Exception as exc:
                    logger.exception("%s: collaborator raised", operation)
                    error = CollaboratorError.wrap(operation, exc)

                if error is not None and error_marker:
                    self._mark(error_marker, error.message)
                elif error is None:
                    for key in complete_markers:
                        self._mark(key, MARKER_DONE)
        finally:
            app.semaphore.release()

        if error is not None:
            return app.response.error(error)
        return app.response.success(result)

    def _busy(self, operation: str) -> SyncOutcome:
        logger.warning("%s: semaphore is locked", operation)
        return self.app.response.error(BusyError(operation))

    def _failed(self, operation: str, step: str, exc: Exception) -> SyncOutcome:
        logger.exception("%s: %s raised", operation, step)
        return self.app.response.error(CollaboratorError.wrap(operation, exc))

    def _mark(self, key: str, value: str) -> None:
        """Persist a marker; a failing option store never changes the outcome."""
        try:
            self.app.options.update(key, value)
        except Exception:
            logger.exception("Could not persist marker %s", key)
            return
        logger.info("Marker %s set", key)
