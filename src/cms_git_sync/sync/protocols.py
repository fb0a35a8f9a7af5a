"""Contracts for the collaborators the sync core consumes but does not implement.

The content platform's storage engine, the remote repository client and
the Import/Export use cases live outside this package.  They are described
here as ``typing.Protocol`` classes so the core can be wired against any
implementation (and against in-memory fakes in tests).

Failures are signalled by raising; a ``SyncError`` subclass keeps its
code, anything else is wrapped by the controller as a
``CollaboratorError``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import RecordSnapshot, User


@runtime_checkable
class RecordBackend(Protocol):
    """The content platform's native record storage.

    Insert/update arguments follow the platform's slashed-input
    convention: string fields carry one level of backslash escaping which
    the backend strips before storing.
    """

    def get_record(self, record_id: int) -> RecordSnapshot | None: ...

    def is_revision(self, record_id: int) -> bool: ...

    def query_ids(self, query: dict[str, Any]) -> list[int]:
        """Return ids matching ``query`` (keys ``types``, ``statuses``)."""
        ...

    def get_meta(self, record_id: int, key: str) -> str | None: ...

    def update_meta(self, record_id: int, key: str, value: str) -> None: ...

    def insert_record(self, args: dict[str, Any]) -> int:
        """Create a record and return its id. Raises ``DbError``.

        ``args["content"]`` arrives escaped by ``store.add_slashes`` and
        must be stored after ``store.strip_slashes`` so the body round-trips
        literally.
        """
        ...

    def update_record(self, args: dict[str, Any]) -> int:
        """Update the record named by ``args["id"]``. Raises ``DbError``.

        ``args["content"]`` is slashed as for ``insert_record``.
        """
        ...

    def update_author(self, record_id: int, user_id: int) -> int:
        """Set the author column directly; return the affected row count.

        Must bypass revisioning and derived-field recomputation.  Raises
        ``DbError`` when the write fails.
        """
        ...

    def clean_cache(self, record_id: int) -> None: ...

    def record_terms(self, record_id: int, taxonomy: str) -> list[str]: ...

    def find_terms(self, taxonomy: str, names: list[str]) -> dict[int, str]:
        """Return ``{term_id: name}`` for existing terms among ``names``."""
        ...

    def insert_term(self, name: str, taxonomy: str, parent: int = 0) -> int: ...

    def search_users(self, search: str, columns: list[str]) -> list[User]: ...

    def get_user(self, user_id: int) -> User | None: ...

    def permalink(self, record: RecordSnapshot) -> str: ...

    def type_label(self, record_type: str) -> str | None:
        """Plural human-readable label of a record type, if registered."""
        ...


class CourseStructure(Protocol):
    """Course/lesson/module hierarchy of the learning-management plugin."""

    def lesson_course_id(self, lesson_id: int) -> int | None: ...

    def lesson_module(self, lesson_id: int) -> str | None:
        """Display name of the lesson's module, or ``None``."""
        ...


class Commit(Protocol):
    def sha(self) -> str: ...


class Fetch(Protocol):
    def master(self) -> Commit: ...

    def commit(self, sha: str) -> Commit: ...

    def repository(self) -> str: ...

    def branch(self) -> str: ...


class RemoteApi(Protocol):
    """Client for the remote repository host."""

    def fetch(self) -> Fetch: ...


class Payload(Protocol):
    def should_import(self) -> None:
        """Return normally when the push must be imported, else raise."""
        ...


class Request(Protocol):
    """Validator for one inbound webhook request."""

    def is_secret_valid(self) -> bool: ...

    def is_ping(self) -> bool: ...

    def is_push(self) -> bool: ...

    def webhook_event(self) -> str: ...

    def payload(self) -> Payload: ...


class Importer(Protocol):
    def payload(self, payload: Payload) -> Any: ...

    def master(self, force: bool = False) -> Any: ...


class Exporter(Protocol):
    def full(self, force: bool = False) -> Any: ...

    def update(self, record_id: int) -> Any: ...

    def delete(self, record_id: int) -> Any: ...


class OptionStore(Protocol):
    """Persisted global options (completion/error markers)."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def update(self, key: str, value: Any) -> None: ...

    def markers(self) -> dict[str, Any]:
        """Current value (or ``None``) of every sync marker."""
        ...
