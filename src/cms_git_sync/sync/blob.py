"""Repository blob: the file-shaped representation of a content item.

A blob is ``{path, content, sha}``.  ``content`` is a YAML front matter
block followed by the body; ``sha`` is the git blob hash of the content's
UTF-8 bytes, the same digest the repository host reports for the file, so
a locally computed hash can be compared with the last-synced one.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

import yaml
from pydantic import BaseModel

FRONT_MATTER_DELIMITER = "---\n"

_FRONT_MATTER_PATTERN = re.compile(
    r"\A---\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)


def git_blob_sha(content: str) -> str:
    """Git object id of a blob holding *content* (SHA-1 over header + bytes)."""
    data = content.encode("utf-8")
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()


def dump_front_matter(meta: dict[str, Any]) -> str:
    """Serialize *meta* as a delimited YAML block, keys in insertion order."""
    body = yaml.safe_dump(
        meta,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    return FRONT_MATTER_DELIMITER + body + FRONT_MATTER_DELIMITER


def split_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Split *content* into ``(meta, body)``.

    Content without a leading front matter block yields ``({}, content)``.
    A block whose YAML root is not a mapping is treated as empty meta.
    """
    match = _FRONT_MATTER_PATTERN.match(content)
    if match is None:
        return {}, content
    meta = yaml.safe_load(match.group(1)) or {}
    if not isinstance(meta, dict):
        meta = {}
    return meta, content[match.end() :]


class RepositoryBlob(BaseModel):
    """One file in the remote repository.

    Attributes:
        path: Forward-slash separated path, no leading slash.
        content: Full file content (front matter + body).
        sha: Git blob hash of ``content`` (or the hash reported by the
            repository host for a fetched blob).
    """

    path: str
    content: str
    sha: str

    model_config = {"frozen": True}

    @classmethod
    def from_content(cls, path: str, content: str) -> RepositoryBlob:
        return cls(
            path=path.lstrip("/"), content=content, sha=git_blob_sha(content)
        )

    @property
    def has_front_matter(self) -> bool:
        return _FRONT_MATTER_PATTERN.match(self.content) is not None

    @property
    def meta(self) -> dict[str, Any]:
        return split_front_matter(self.content)[0]

    @property
    def body(self) -> str:
        return split_front_matter(self.content)[1]
