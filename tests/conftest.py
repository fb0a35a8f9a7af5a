"""Shared pytest fixtures for cms-git-sync tests.

The platform backend and the Import/Export/remote API collaborators are
replaced by small in-memory fakes that record every call.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from cms_git_sync.config import Config
from cms_git_sync.sync.app import SyncApp
from cms_git_sync.sync.content import DATE_FORMAT
from cms_git_sync.sync.models import RecordSnapshot, User
from cms_git_sync.sync.state import MemoryState
from cms_git_sync.sync.store import strip_slashes

DEFAULT_DATE = datetime(2024, 3, 5, 10, 30, 0)


# ---------------------------------------------------------------------------
# Record backend
# ---------------------------------------------------------------------------


class FakeBackend:
    """Dict-backed ``RecordBackend``."""

    def __init__(self) -> None:
        self.records: dict[int, RecordSnapshot] = {}
        self.revisions: set[int] = set()
        self.meta: dict[int, dict[str, str]] = {}
        self.terms: dict[str, dict[int, str]] = {"post_tag": {}, "category": {}}
        self.attached_terms: dict[tuple[int, str], list[str]] = {}
        self.users: dict[int, User] = {}
        self.labels: dict[str, str] = {}
        self.inserted: list[dict[str, Any]] = []
        self.updated: list[dict[str, Any]] = []
        self.cache_cleaned: list[int] = []
        self.calls: list[str] = []
        self._next_id = 100
        self._next_term = 1

    # -- test helpers --------------------------------------------------

    def add(self, record_id: int, **fields: Any) -> RecordSnapshot:
        fields.setdefault("type", "post")
        fields.setdefault("status", "publish")
        fields.setdefault("title", f"Record {record_id}")
        fields.setdefault("date", DEFAULT_DATE)
        record = RecordSnapshot(id=record_id, **fields)
        self.records[record_id] = record
        return record

    def add_user(self, user_id: int, display_name: str, **fields: Any) -> User:
        user = User(id=user_id, display_name=display_name, **fields)
        self.users[user_id] = user
        return user

    def add_revision(self, record_id: int) -> None:
        self.add(record_id, type="revision", status="inherit")
        self.revisions.add(record_id)

    # -- RecordBackend -------------------------------------------------

    def get_record(self, record_id: int) -> RecordSnapshot | None:
        self.calls.append("get_record")
        return self.records.get(record_id)

    def is_revision(self, record_id: int) -> bool:
        self.calls.append("is_revision")
        return record_id in self.revisions

    def query_ids(self, query: dict[str, Any]) -> list[int]:
        self.calls.append("query_ids")
        return sorted(
            record.id
            for record in self.records.values()
            if record.type in query["types"]
            and record.status in query["statuses"]
        )

    def get_meta(self, record_id: int, key: str) -> str | None:
        self.calls.append("get_meta")
        return self.meta.get(record_id, {}).get(key)

    def update_meta(self, record_id: int, key: str, value: str) -> None:
        self.calls.append("update_meta")
        self.meta.setdefault(record_id, {})[key] = value

    def insert_record(self, args: dict[str, Any]) -> int:
        self.calls.append("insert_record")
        self.inserted.append(args)
        record_id = self._next_id
        self._next_id += 1
        self.records[record_id] = self._snapshot(record_id, args)
        return record_id

    def update_record(self, args: dict[str, Any]) -> int:
        self.calls.append("update_record")
        self.updated.append(args)
        record_id = args["id"]
        current = self.records[record_id].model_dump()
        current.update(self._fields(args))
        self.records[record_id] = RecordSnapshot(**current)
        return record_id

    def update_author(self, record_id: int, user_id: int) -> int:
        self.calls.append("update_author")
        record = self.records[record_id]
        if record.author == user_id:
            return 0
        self.records[record_id] = record.model_copy(update={"author": user_id})
        return 1

    def clean_cache(self, record_id: int) -> None:
        self.cache_cleaned.append(record_id)

    def record_terms(self, record_id: int, taxonomy: str) -> list[str]:
        return list(self.attached_terms.get((record_id, taxonomy), []))

    def find_terms(self, taxonomy: str, names: list[str]) -> dict[int, str]:
        return {
            term_id: name
            for term_id, name in self.terms[taxonomy].items()
            if name in names
        }

    def insert_term(self, name: str, taxonomy: str, parent: int = 0) -> int:
        term_id = self._next_term
        self._next_term += 1
        self.terms[taxonomy][term_id] = name
        return term_id

    def search_users(self, search: str, columns: list[str]) -> list[User]:
        return [
            user
            for user in self.users.values()
            if search in (user.display_name, user.login)
        ]

    def get_user(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    def permalink(self, record: RecordSnapshot) -> str:
        return f"https://example.com/?p={record.id}"

    def type_label(self, record_type: str) -> str | None:
        return self.labels.get(record_type)

    # -- internals -----------------------------------------------------

    @staticmethod
    def _fields(args: dict[str, Any]) -> dict[str, Any]:
        fields = {
            key: args[key]
            for key in ("type", "status", "name", "title", "content", "excerpt")
            if key in args
        }
        if "content" in fields:
            fields["content"] = strip_slashes(fields["content"])
        if "date" in args:
            date = args["date"]
            fields["date"] = (
                datetime.strptime(date, DATE_FORMAT)
                if isinstance(date, str)
                else date
            )
        return fields

    def _snapshot(self, record_id: int, args: dict[str, Any]) -> RecordSnapshot:
        fields = {"type": "post", "status": "draft", "date": DEFAULT_DATE}
        fields.update(self._fields(args))
        return RecordSnapshot(id=record_id, **fields)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class FakeCommit:
    def __init__(self, sha: str) -> None:
        self._sha = sha

    def sha(self) -> str:
        return self._sha


class FakeFetch:
    def __init__(self, repository: str, branch: str) -> None:
        self._repository = repository
        self._branch = branch
        self.fetched: list[str] = []

    def master(self) -> FakeCommit:
        self.fetched.append("master")
        return FakeCommit("headsha")

    def commit(self, sha: str) -> FakeCommit:
        self.fetched.append(sha)
        return FakeCommit(sha)

    def repository(self) -> str:
        return self._repository

    def branch(self) -> str:
        return self._branch


class FakeApi:
    def __init__(self, repository: str = "owner/site", branch: str = "master"):
        self.fetcher = FakeFetch(repository, branch)

    def fetch(self) -> FakeFetch:
        return self.fetcher


class _Recorder:
    """Base for collaborators that record calls and observe the app state."""

    def __init__(self) -> None:
        self.app: SyncApp | None = None
        self.calls: list[tuple] = []
        self.seen: list[dict[str, Any]] = []
        self.error: BaseException | None = None
        self.result: Any = None

    def _record(self, *call: Any) -> Any:
        self.calls.append(call)
        if self.app is not None:
            controller = self.app.controller
            self.seen.append(
                {
                    "user": self.app.identity.current,
                    "locked": not self.app.semaphore.is_open(),
                    "save_hooked": self.app.hooks.has_action(
                        "save_record", controller.export_one
                    ),
                    "delete_hooked": self.app.hooks.has_action(
                        "delete_record", controller.delete_one
                    ),
                }
            )
        if self.error is not None:
            raise self.error
        return self.result


class FakeImporter(_Recorder):
    def payload(self, payload: Any) -> Any:
        return self._record("payload", payload)

    def master(self, force: bool = False) -> Any:
        return self._record("master", force)


class FakeExporter(_Recorder):
    def full(self, force: bool = False) -> Any:
        return self._record("full", force)

    def update(self, record_id: int) -> Any:
        return self._record("update", record_id)

    def delete(self, record_id: int) -> Any:
        return self._record("delete", record_id)


class FakeCourseStructure:
    def __init__(self) -> None:
        self.courses: dict[int, int] = {}
        self.modules: dict[int, str] = {}

    def lesson_course_id(self, lesson_id: int) -> int | None:
        return self.courses.get(lesson_id)

    def lesson_module(self, lesson_id: int) -> str | None:
        return self.modules.get(lesson_id)


class FakePayload:
    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error
        self.checked = False

    def should_import(self) -> None:
        self.checked = True
        if self.error is not None:
            raise self.error


class FakeRequest:
    """Webhook request validator with fixed answers."""

    def __init__(
        self,
        secret_valid: bool = True,
        event: str = "push",
        payload: FakePayload | None = None,
    ) -> None:
        self.secret_valid = secret_valid
        self.event = event
        self.fake_payload = payload or FakePayload()
        self.payload_calls = 0

    def is_secret_valid(self) -> bool:
        return self.secret_valid

    def is_ping(self) -> bool:
        return self.event == "ping"

    def is_push(self) -> bool:
        return self.event == "push"

    def webhook_event(self) -> str:
        return self.event

    def payload(self) -> FakePayload:
        self.payload_calls += 1
        return self.fake_payload


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    """Config with a repository, a webhook secret and a default user."""
    return Config(
        repository="owner/site",
        branch="master",
        default_user=7,
        webhook_secret="s3cret",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def importer():
    return FakeImporter()


@pytest.fixture
def exporter():
    return FakeExporter()


@pytest.fixture
def course_structure():
    return FakeCourseStructure()


@pytest.fixture
def app(config, backend, importer, exporter, course_structure):
    """Booted SyncApp wired to the in-memory fakes."""
    sync_app = SyncApp(
        config=config,
        backend=backend,
        api=FakeApi(),
        importer=importer,
        exporter=exporter,
        options=MemoryState(),
        course_structure=course_structure,
    )
    importer.app = sync_app
    exporter.app = sync_app
    sync_app.boot()
    return sync_app


@pytest.fixture
def make_request():
    """Factory fixture for webhook request validators."""

    def _make(
        secret_valid: bool = True,
        event: str = "push",
        error: BaseException | None = None,
    ) -> FakeRequest:
        return FakeRequest(secret_valid, event, FakePayload(error))

    return _make
