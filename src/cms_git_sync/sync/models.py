"""Pydantic models shared across the sync core.

- ``RecordStatus`` / ``RecordType``: well-known enumerated tags.
- ``RecordSnapshot``: a loaded copy of one platform record's fields.
- ``User``: a platform identity (commit authorship, impersonation).
- ``ErrorInfo`` / ``SyncOutcome``: the normalized two-shape result every
  controller operation returns.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class RecordStatus(str, Enum):
    """Record statuses the core reasons about explicitly."""

    PUBLISH = "publish"
    DRAFT = "draft"
    TRASH = "trash"


class RecordType(str, Enum):
    """Record types with a dedicated repository directory."""

    POST = "post"
    PAGE = "page"
    GLOSSARY = "glossary"
    FIELDATLAS = "fieldatlas"
    NEWSLETTERS = "newsletters"
    COURSE = "course"
    LESSON = "lesson"


class RecordSnapshot(BaseModel):
    """Fields of one persisted platform record.

    Attributes:
        id: Record id (always non-zero for a persisted record).
        type: Record type tag (``post``, ``page``, ``lesson`` ...).
        status: Record status tag (``publish``, ``draft``, ``trash`` ...).
        name: Platform-assigned slug, may be empty.
        title: Display title.
        content: Stored body (rich text).
        excerpt: Optional excerpt.
        password: Non-empty when the record is password protected.
        author: Author user id, 0 when unset.
        date: Publish timestamp.
    """

    id: int
    type: str
    status: str
    name: str = ""
    title: str = ""
    content: str = ""
    excerpt: str = ""
    password: str = ""
    author: int = 0
    date: datetime

    model_config = {"frozen": True}


class User(BaseModel):
    """A platform identity."""

    id: int
    login: str = ""
    display_name: str = ""
    email: str = ""

    model_config = {"frozen": True}


class ErrorInfo(BaseModel):
    """Typed reason attached to a failed ``SyncOutcome``."""

    code: str
    kind: str
    message: str

    model_config = {"frozen": True}


class SyncOutcome(BaseModel):
    """Normalized result of one controller operation.

    Exactly one of ``payload`` (on success) or ``error`` (on failure) is
    meaningful; ``ok`` tells which.
    """

    ok: bool
    payload: Any = None
    error: ErrorInfo | None = None

    model_config = {"frozen": True}

    @property
    def message(self) -> str:
        """Human-readable one-liner for CLI and tool output."""
        if self.error is not None:
            return self.error.message
        if self.payload is None:
            return ""
        return str(self.payload)
