"""Synchronization orchestration and record-to-file mapping.

Public API for keeping a content platform's records and a remote git
repository in step.

Architecture
------------
All mutation goes through ``SyncController``, guarded by a non-blocking
``Semaphore`` so at most one import or export runs at a time.  The
controller delegates tree walking to Import/Export collaborators, which in
turn use ``RecordStore`` (eligibility and persistence) and ``ContentItem``
(path, front matter, blob) from this package.

Modules:

- ``app``        -- ``SyncApp``: container wiring collaborators together.
- ``controller`` -- ``SyncController``: the five sync operations.
- ``store``      -- ``RecordStore``: eligibility, save, author stamping.
- ``content``    -- ``ContentItem``: one record on its way to or from git.
- ``blob``       -- ``RepositoryBlob``, git blob hashing, front matter.
- ``webhook``    -- ``WebhookRequest`` / ``WebhookPayload`` validation.
- ``hooks``      -- ``HookRegistry``: filters and record actions.
- ``state``      -- ``SyncState``: persisted completion/error markers.
- ``errors``     -- ``SyncError`` taxonomy.

Usage example
-------------
::

    from cms_git_sync.config import load_config
    from cms_git_sync.sync import SyncApp

    app = SyncApp(
        config=load_config(),
        backend=backend,
        api=api,
        importer=importer,
        exporter=exporter,
    )
    app.boot()
    outcome = app.controller.export_all(force=True)
    print(outcome.ok, outcome.message)
"""

from .app import SyncApp, load_app
from .blob import RepositoryBlob, git_blob_sha
from .content import ContentItem
from .controller import SyncController
from .errors import (
    AuthValidationError,
    BusyError,
    CollaboratorError,
    DbError,
    InvalidEventError,
    InvalidSecretError,
    NoResultsError,
    PayloadRejectedError,
    SyncError,
    UnsupportedRecordError,
)
from .hooks import HookRegistry
from .identity import IdentityContext
from .models import (
    ErrorInfo,
    RecordSnapshot,
    RecordStatus,
    RecordType,
    SyncOutcome,
    User,
)
from .response import Response, outcome_to_json
from .semaphore import Semaphore
from .state import MemoryState, SyncState
from .store import RecordStore
from .webhook import WebhookPayload, WebhookRequest
from .whitelist import WhitelistPolicy

__all__ = [
    "SyncApp",
    "load_app",
    "SyncController",
    "RecordStore",
    "ContentItem",
    "RepositoryBlob",
    "git_blob_sha",
    "HookRegistry",
    "IdentityContext",
    "Semaphore",
    "SyncState",
    "MemoryState",
    "WhitelistPolicy",
    "WebhookRequest",
    "WebhookPayload",
    "Response",
    "outcome_to_json",
    # Models
    "RecordSnapshot",
    "RecordStatus",
    "RecordType",
    "User",
    "ErrorInfo",
    "SyncOutcome",
    # Errors
    "SyncError",
    "BusyError",
    "AuthValidationError",
    "InvalidSecretError",
    "InvalidEventError",
    "PayloadRejectedError",
    "UnsupportedRecordError",
    "NoResultsError",
    "DbError",
    "CollaboratorError",
]
