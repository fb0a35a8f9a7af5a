"""Record store: eligibility and persistence mapping for content items.

``RecordStore`` sits between the sync use cases and the platform's native
storage (``RecordBackend``):

* ``list_eligible()`` / ``fetch_eligible()`` -- which records take part in
  sync, per the whitelist policy and per-record guards.
* ``save()`` -- persist an imported item (create or update), resolving
  taxonomy terms and commit authorship.
* ``set_author()`` -- direct author update that bypasses the normal save
  pipeline.

Eligibility is an ordered, short-circuit predicate; every rejection is
logged with the reason:

1. revision snapshots are rejected;
2. ``trash`` is accepted, otherwise the status must be whitelisted;
3. the type must be whitelisted;
4. password-protected records are rejected;
5. the ``is_record_supported`` filter has the final veto.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from .content import (
    CATEGORY_TAXONOMY,
    META_GITHUB_PATH,
    META_SHA,
    ContentItem,
)
from .errors import DbError, NoResultsError, UnsupportedRecordError
from .hooks import (
    IS_RECORD_SUPPORTED,
    PRE_FETCH_ALL_SUPPORTED,
    PRE_IMPORT_ARGS,
    PRE_IMPORT_META,
)
from .models import User
from .whitelist import WhitelistPolicy

if TYPE_CHECKING:
    from .app import SyncApp

logger = logging.getLogger(__name__)

USER_SEARCH_COLUMNS = ["display_name", "user_nicename", "user_login"]


def add_slashes(value: str) -> str:
    """Escape backslashes and quotes for the platform's slashed input."""
    return (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace('"', '\\"')
        .replace("\0", "\\0")
    )


_SLASHED = re.compile(r"\\(.)", re.DOTALL)


def strip_slashes(value: str) -> str:
    """Inverse of ``add_slashes``; backends apply it to slashed input."""
    return _SLASHED.sub(
        lambda match: "\0" if match.group(1) == "0" else match.group(1), value
    )


class RecordStore:
    """Query and persist content items through the platform backend.

    Args:
        app: Application container (backend, hooks, whitelist, config).
    """

    def __init__(self, app: SyncApp) -> None:
        self.app = app

    # ------------------------------------------------------------------
    # Whitelist
    # ------------------------------------------------------------------

    def whitelist(self) -> WhitelistPolicy:
        """The whitelist policy after platform filters are applied."""
        return self.app.whitelist.resolve(self.app.hooks)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_eligible(self, force: bool = False) -> list[ContentItem]:
        """Return items for every whitelisted record still needing a sync.

        Records that already carry both a persisted hash and a persisted
        repository path are skipped unless *force* is set.

        Raises:
            NoResultsError: If the whitelist query itself matches nothing.
                A query whose matches are all already synced returns an
                empty list instead.
        """
        policy = self.whitelist()
        query: dict[str, Any] = {
            "types": list(policy.types),
            "statuses": list(policy.statuses),
        }
        query = self.app.hooks.apply_filters(PRE_FETCH_ALL_SUPPORTED, query)

        record_ids = self.app.backend.query_ids(query)
        if not record_ids:
            raise NoResultsError()

        results: list[ContentItem] = []
        for record_id in record_ids:
            if not force and self._already_synced(record_id):
                logger.debug("Record %d already synced, skipping", record_id)
                continue
            item = ContentItem.load(self.app, record_id)
            if self.is_supported(item):
                results.append(item)

        logger.info(
            "%d of %d whitelisted records eligible (force=%s)",
            len(results),
            len(record_ids),
            force,
        )
        return results

    def fetch_eligible(self, record_id: int) -> ContentItem:
        """Return the item for *record_id* if it passes eligibility.

        Raises:
            UnsupportedRecordError: Naming the id and title of the record.
        """
        try:
            item = ContentItem.load(self.app, record_id)
        except LookupError:
            logger.info("Record ID %d does not exist", record_id)
            raise UnsupportedRecordError(record_id, "") from None

        if not self.is_supported(item):
            raise UnsupportedRecordError(record_id, item.title())

        return item

    def is_supported(self, item: ContentItem) -> bool:
        """Evaluate the eligibility predicate for *item*."""
        if self.app.backend.is_revision(item.id):
            logger.info("Record ID %d is a revision", item.id)
            return False

        policy = self.whitelist()

        if not policy.allows_status(item.status()):
            logger.info(
                "Record ID %d has status %s, which is not whitelisted",
                item.id,
                item.status(),
            )
            return False

        if not policy.allows_type(item.type()):
            logger.info(
                "Record ID %d has type %s, which is not whitelisted",
                item.id,
                item.type(),
            )
            return False

        if item.has_password():
            logger.info("Record ID %d has a password", item.id)
            return False

        supported = self.app.hooks.apply_filters(IS_RECORD_SUPPORTED, True, item)
        if not supported:
            logger.info("Record ID %d was vetoed by a filter", item.id)
        return bool(supported)

    def _already_synced(self, record_id: int) -> bool:
        backend = self.app.backend
        return bool(backend.get_meta(record_id, META_SHA)) and bool(
            backend.get_meta(record_id, META_GITHUB_PATH)
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, item: ContentItem) -> bool:
        """Create or update the record behind *item*.

        On create the commit author named in the import metadata (or the
        configured default user) is stamped on the new record.  On both
        paths the fresh snapshot is re-loaded into *item* and the imported
        hash is persisted.

        Raises:
            DbError: If the backend rejects the write.
        """
        is_new = item.is_new()
        args = self.app.hooks.apply_filters(
            PRE_IMPORT_ARGS, self._record_args(item), item
        )

        backend = self.app.backend
        record_id = (
            backend.insert_record(args) if is_new else backend.update_record(args)
        )
        if not record_id:
            raise DbError(f"Backend did not return a record id for {item!r}")

        if is_new:
            author_name = item.import_meta.get("author") or None
            user = self.fetch_commit_user(author_name)
            user_id = user.id if user is not None else 0
            # The record exists by now; a failed stamp leaves attribution unset
            try:
                self.set_author(record_id, user_id)
            except DbError as exc:
                logger.warning(
                    "Could not set author of record %d to %d: %s",
                    record_id,
                    user_id,
                    exc,
                )

        record = backend.get_record(record_id)
        if record is None:
            raise DbError(f"Record {record_id} vanished after save")
        item.set_record(record)

        meta = self.app.hooks.apply_filters(
            PRE_IMPORT_META, item.import_meta, item
        )
        if meta.get(META_SHA):
            backend.update_meta(record_id, META_SHA, meta[META_SHA])

        logger.info(
            "%s record %d", "Created" if is_new else "Updated", record_id
        )
        return True

    def _record_args(self, item: ContentItem) -> dict[str, Any]:
        args = dict(item.args)
        meta = item.import_meta

        if item.id:
            args["id"] = item.id

        # Slashed on the way in, un-slashed by the backend; markup filtering off
        args["content"] = add_slashes(args.get("content", ""))
        args["filter_content"] = False

        tags = meta.get("tags")
        if tags:
            args["tags_input"] = list(tags) if isinstance(tags, list) else [tags]

        categories = meta.get("categories")
        if categories:
            if not isinstance(categories, list):
                categories = [categories]
            args["category_ids"] = self._resolve_categories(
                [str(name) for name in categories]
            )

        return args

    def _resolve_categories(self, names: list[str]) -> list[int]:
        """Term ids for *names*, creating the categories that do not exist."""
        backend = self.app.backend
        existing = backend.find_terms(CATEGORY_TAXONOMY, names)

        ids = list(existing)
        known = set(existing.values())
        for name in names:
            if name in known:
                continue
            term_id = backend.insert_term(name, CATEGORY_TAXONOMY, parent=0)
            logger.info("Created category %r (term %d)", name, term_id)
            ids.append(term_id)
            known.add(name)
        return ids

    def fetch_commit_user(self, display_name: str | None) -> User | None:
        """Find the user named *display_name*, else the default user.

        Returns ``None`` when neither resolves; attribution is then left
        unset.
        """
        backend = self.app.backend
        user = None

        if display_name:
            users = backend.search_users(display_name, USER_SEARCH_COLUMNS)
            user = users[0] if users else None

        if user is None and self.app.config.default_user:
            user = backend.get_user(self.app.config.default_user)

        if user is None:
            logger.warning(
                "Commit user not found for %r and no default user",
                display_name,
            )
        return user

    def set_author(self, record_id: int, user_id: int) -> str:
        """Set the author of *record_id* without triggering a full save.

        Returns:
            A message saying whether the stored value changed.

        Raises:
            DbError: If the backend write fails.
        """
        try:
            affected = self.app.backend.update_author(record_id, user_id)
        except DbError:
            raise
        except Exception as exc:
            raise DbError(str(exc)) from exc

        if affected == 0:
            return f"No change for record ID {record_id}."

        self.app.backend.clean_cache(record_id)
        return f"Successfully updated record ID {record_id}."
