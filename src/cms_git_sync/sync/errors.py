"""Typed error taxonomy for the sync core.

Collaborators signal failure by raising; the ``SyncController`` is the only
boundary that turns these exceptions into a ``SyncOutcome``.

- ``BusyError``: another sync operation holds the lock.
- ``AuthValidationError``: webhook secret or event kind rejected
  (``InvalidSecretError`` / ``InvalidEventError``).
- ``PayloadRejectedError``: a push payload that must not be imported.
- ``UnsupportedRecordError``: record fails the eligibility predicate.
- ``NoResultsError``: the eligible-record query returned nothing.
- ``DbError``: low-level persistence failure.
- ``CollaboratorError``: opaque failure from Import/Export/remote API.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every failure the sync core reports.

    Attributes:
        code: Stable machine-readable error code.
        kind: Taxonomy bucket (``busy``, ``auth``, ``unsupported`` ...).
        message: Human-readable description.
    """

    code = "sync_error"
    kind = "sync"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class BusyError(SyncError):
    code = "semaphore_locked"
    kind = "busy"

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"{operation}: Semaphore is locked, import/export already in progress."
        )
        self.operation = operation


class AuthValidationError(SyncError):
    code = "invalid_headers"
    kind = "auth"


class InvalidSecretError(AuthValidationError):
    def __init__(self, message: str = "Failed to validate secret.") -> None:
        super().__init__(message)


class InvalidEventError(AuthValidationError):
    def __init__(self, event: str) -> None:
        super().__init__(f"Failed to validate webhook event: {event}.")
        self.event = event


class PayloadRejectedError(SyncError):
    """Raised by a webhook payload that should not be imported."""

    code = "invalid_payload"
    kind = "payload"


class UnsupportedRecordError(SyncError):
    code = "unsupported_record"
    kind = "unsupported"

    def __init__(self, record_id: int, title: str) -> None:
        super().__init__(
            f"Record ID {record_id} (name {title}) is not supported at this time."
        )
        self.record_id = record_id
        self.title = title


class NoResultsError(SyncError):
    code = "no_results"
    kind = "no_results"

    def __init__(
        self,
        message: str = "Querying for supported records returned no results.",
    ) -> None:
        super().__init__(message)


class DbError(SyncError):
    code = "db_error"
    kind = "db"


class CollaboratorError(SyncError):
    """Wraps an unexpected exception raised by an external collaborator."""

    code = "collaborator_error"
    kind = "collaborator"

    def __init__(
        self, message: str, cause: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.cause = cause

    @classmethod
    def wrap(cls, operation: str, exc: BaseException) -> CollaboratorError:
        return cls(f"{operation} failed: {exc}", cause=exc)
