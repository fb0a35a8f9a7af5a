"""Content item: one platform record on its way to or from the repository.

A ``ContentItem`` is created for the duration of one sync operation and
is either

* **backed** by a persisted record (non-zero ``id`` and a loaded
  ``RecordSnapshot``), or
* **pending** creation: raw field values from an imported file and no id
  until the ``RecordStore`` persists it.

Everything derived from a record -- repository path, front matter, file
content, blob -- requires the snapshot and raises ``RuntimeError`` on a
pending item.

Repository path rules (directory + ``<slug>.md``):

=================  ===================================================
type               directory
=================  ===================================================
post               ``posts/<year>``
page               ``pages``
glossary           ``glossary``
fieldatlas         ``fieldatlas``
newsletters        ``newsletters/<year>``
course             ``courses/<course title slug>``
lesson             ``courses/<course title slug>/<module name slug>``
anything else      slug of the type's plural label, or nothing
=================  ===================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .blob import RepositoryBlob, dump_front_matter, git_blob_sha
from .hooks import CONTENT_EXPORT, DIRECTORY_PUBLISHED, FILENAME, RECORD_META
from .models import RecordSnapshot, RecordStatus, RecordType
from .slug import sanitize_title

if TYPE_CHECKING:
    from .app import SyncApp

logger = logging.getLogger(__name__)

META_SHA = "_sync_sha"
META_GITHUB_PATH = "_sync_github_path"
META_EDIT_LAST = "_edit_last"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

TAG_TAXONOMY = "post_tag"
CATEGORY_TAXONOMY = "category"


class ContentItem:
    """In-memory representation of one record being synchronized.

    Use ``load()`` for an existing record, ``from_args()`` for raw field
    values and ``from_blob()`` for a file fetched from the repository.
    """

    def __init__(
        self,
        app: SyncApp,
        record: RecordSnapshot | None = None,
        args: dict[str, Any] | None = None,
    ) -> None:
        self.app = app
        self.record = record
        self.id = record.id if record is not None else 0
        self.blob: RepositoryBlob | None = None
        self.diagnostics: list[str] = []
        self._new = record is None
        self._args: dict[str, Any] = dict(args or {})
        self._import_meta: dict[str, Any] = {}
        self._old_github_path: str | None = None

    def __repr__(self) -> str:
        state = "pending" if self._new else f"id={self.id}"
        return f"<ContentItem {state}>"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, app: SyncApp, record_id: int) -> ContentItem:
        """Wrap the persisted record *record_id*.

        Raises:
            LookupError: If no such record exists.
        """
        record = app.backend.get_record(record_id)
        if record is None:
            raise LookupError(f"Record {record_id} not found")
        return cls(app, record=record)

    @classmethod
    def from_args(cls, app: SyncApp, args: dict[str, Any]) -> ContentItem:
        """Build an item from raw field values.

        An ``id`` naming an existing record makes the item an update of
        that record; an unknown ``id`` is dropped and the item stays
        pending.
        """
        args = dict(args)
        record = None
        if args.get("id"):
            record = app.backend.get_record(int(args["id"]))
            if record is None:
                args.pop("id")
        else:
            args.pop("id", None)
        return cls(app, record=record, args=args)

    @classmethod
    def from_blob(cls, app: SyncApp, blob: RepositoryBlob) -> ContentItem:
        """Build an item from a repository file's front matter and body."""
        meta = dict(blob.meta)
        args: dict[str, Any] = {"content": blob.body}

        if "layout" in meta:
            args["type"] = meta.pop("layout")
        if "published" in meta:
            published = meta.pop("published")
            args["status"] = (
                RecordStatus.PUBLISH.value
                if published is True
                else RecordStatus.DRAFT.value
            )
        # Legacy keys first so the current names win when both are present
        for key, field in (
            ("ID", "id"),
            ("post_title", "title"),
            ("post_name", "name"),
            ("post_excerpt", "excerpt"),
            ("post_date", "date"),
            ("id", "id"),
            ("title", "title"),
            ("slug", "name"),
            ("excerpt", "excerpt"),
            ("date", "date"),
        ):
            if key in meta:
                args[field] = meta.pop(key)

        meta[META_SHA] = blob.sha

        item = cls.from_args(app, args)
        item.set_old_github_path(blob.path)
        item.set_import_meta(meta)
        item.set_blob(blob)
        return item

    # ------------------------------------------------------------------
    # Record fields
    # ------------------------------------------------------------------

    def _snapshot(self) -> RecordSnapshot:
        if self.record is None:
            raise RuntimeError(
                "Content item has no record snapshot; persist it first"
            )
        return self.record

    def type(self) -> str:
        return self._snapshot().type

    def status(self) -> str:
        return self._snapshot().status

    def name(self) -> str:
        return self._snapshot().name

    def title(self) -> str:
        return self._snapshot().title

    def has_password(self) -> bool:
        return bool(self._snapshot().password)

    def is_new(self) -> bool:
        return self._new

    def set_record(self, record: RecordSnapshot) -> ContentItem:
        """Attach a freshly loaded snapshot (after the store persisted it)."""
        self.record = record
        self.id = record.id
        self._new = False
        return self

    @property
    def args(self) -> dict[str, Any]:
        return self._args

    @property
    def import_meta(self) -> dict[str, Any]:
        return self._import_meta

    def set_import_meta(self, meta: dict[str, Any]) -> None:
        self._import_meta = meta

    def set_blob(self, blob: RepositoryBlob) -> None:
        self.blob = blob

    # ------------------------------------------------------------------
    # Repository path
    # ------------------------------------------------------------------

    def github_path(self) -> str:
        """Path of the record's file relative to the repository root."""
        return self.github_directory() + self.github_filename()

    def github_directory(self) -> str:
        """Directory for the record, with a trailing ``/`` when non-empty."""
        record = self._snapshot()

        match record.type:
            case RecordType.POST.value:
                name = f"posts/{record.date.year:04d}"
            case RecordType.PAGE.value:
                name = "pages"
            case RecordType.GLOSSARY.value:
                name = "glossary"
            case RecordType.FIELDATLAS.value:
                name = "fieldatlas"
            case RecordType.NEWSLETTERS.value:
                name = f"newsletters/{record.date.year:04d}"
            case RecordType.COURSE.value:
                # Title rather than slug: a renamed course keeps one directory
                # shared with its lessons.
                name = f"courses/{sanitize_title(record.title)}"
            case RecordType.LESSON.value:
                name = self._lesson_directory()
            case _:
                label = self.app.backend.type_label(record.type)
                name = sanitize_title(label) if label else ""

        if name:
            name = name + "/"

        return self.app.hooks.apply_filters(DIRECTORY_PUBLISHED, name, self)

    def _lesson_directory(self) -> str:
        structure = self.app.course_structure
        parts = ["courses"]

        course_id = structure.lesson_course_id(self.id) if structure else None
        course = (
            self.app.backend.get_record(course_id) if course_id else None
        )
        if course is not None:
            parts.append(sanitize_title(course.title))
        else:
            self._note(f"Course for lesson {self._get_name()} could not be found")

        module = structure.lesson_module(self.id) if structure else None
        if module:
            # The course plugin appends "(Instructor Name)" for admins.
            parts.append(sanitize_title(module.split("(")[0]))
        else:
            self._note(
                f"Module for lesson {self._get_name()} could not be grabbed"
            )

        return "/".join(part for part in parts if part)

    def github_filename(self) -> str:
        filename = self._get_name() + ".md"
        return self.app.hooks.apply_filters(FILENAME, filename, self)

    def _get_name(self) -> str:
        record = self._snapshot()
        if record.name:
            return record.name
        return sanitize_title(record.title)

    def old_github_path(self) -> str | None:
        """Previous repository path, if known (used to handle renames)."""
        if self._old_github_path is not None:
            return self._old_github_path
        return self.stored_github_path() or None

    def set_old_github_path(self, path: str) -> None:
        self._old_github_path = path
        if self.id:
            self.app.backend.update_meta(self.id, META_GITHUB_PATH, path)

    def stored_github_path(self) -> str:
        if not self.id:
            return ""
        return self.app.backend.get_meta(self.id, META_GITHUB_PATH) or ""

    def is_renamed(self) -> bool:
        stored = self.stored_github_path()
        return bool(stored) and stored != self.github_path()

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def github_content(self) -> str:
        """Front matter followed by the body."""
        use_blob = self.app.config.dont_export_content and self.blob is not None
        content = self.blob.body if use_blob else self.record_content()
        return self.front_matter() + content

    def front_matter(self) -> str:
        return dump_front_matter(self.meta())

    def record_content(self) -> str:
        """The record body, converted to the document format when possible."""
        content = self._snapshot().content
        if self.app.converter is not None:
            content = self.app.converter(content)
        return self.app.hooks.apply_filters(CONTENT_EXPORT, content, self)

    def meta(self) -> dict[str, Any]:
        """Front matter fields, in serialization order."""
        record = self._snapshot()
        backend = self.app.backend

        author = backend.get_user(record.author) if record.author else None
        meta: dict[str, Any] = {
            "id": self.id,
            "title": record.title,
            "slug": record.name,
            "author": author.display_name if author else "",
            "date": record.date.strftime(DATE_FORMAT),
            "excerpt": record.excerpt,
            "layout": record.type,
            "link": backend.permalink(record),
            "published": record.status == RecordStatus.PUBLISH.value,
            "tags": backend.record_terms(self.id, TAG_TAXONOMY),
            "categories": backend.record_terms(self.id, CATEGORY_TAXONOMY),
        }
        if not record.name:
            del meta["slug"]
        if not record.excerpt:
            del meta["excerpt"]
        if self.app.config.ignore_author:
            del meta["author"]

        return self.app.hooks.apply_filters(RECORD_META, meta, self)

    # ------------------------------------------------------------------
    # Sync state
    # ------------------------------------------------------------------

    def sha(self) -> str:
        """Last-synced content hash; empty string when absent or unreadable."""
        if not self.id:
            return ""
        try:
            sha = self.app.backend.get_meta(self.id, META_SHA)
        except Exception as exc:
            logger.warning("Could not read hash for record %d: %s", self.id, exc)
            return ""
        return sha or ""

    def set_sha(self, sha: str) -> None:
        self.app.backend.update_meta(self.id, META_SHA, sha)

    def is_on_github(self) -> bool:
        return bool(self.sha()) and bool(self.stored_github_path())

    def needs_sync(self) -> bool:
        """True when the record's current file differs from the last push."""
        if not self.is_on_github():
            return True
        if self.is_renamed():
            return True
        return self.to_blob().sha != self.sha()

    def to_blob(self) -> RepositoryBlob:
        content = self.github_content()
        return RepositoryBlob(
            path=self.github_path(),
            content=content,
            sha=git_blob_sha(content),
        )

    # ------------------------------------------------------------------
    # Links and authorship
    # ------------------------------------------------------------------

    def github_view_url(self) -> str:
        return self._github_url("blob")

    def github_edit_url(self) -> str:
        return self._github_url("edit")

    def _github_url(self, action: str) -> str:
        fetch = self.app.api.fetch()
        return (
            f"https://github.com/{fetch.repository()}/{action}/"
            f"{fetch.branch()}/{self.stored_github_path()}"
        )

    def last_modified_author(self) -> dict[str, str]:
        """Name and email of the last editor, or ``{}``."""
        last_id = self.app.backend.get_meta(self.id, META_EDIT_LAST)
        if last_id:
            user = self.app.backend.get_user(int(last_id))
            if user is not None:
                return {"name": user.display_name, "email": user.email}
        return {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _note(self, message: str) -> None:
        logger.warning(message)
        self.diagnostics.append(message)
