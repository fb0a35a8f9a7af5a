"""Unified configuration schema for cms_git_sync.

Defines Pydantic models for the YAML config file with dedicated sections
for the sync settings, the whitelist and logging.

Usage:
    from cms_git_sync.config_schema import build_config, yaml_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from .sync.whitelist import DEFAULT_STATUSES, DEFAULT_TYPES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Repository and sync behaviour settings.

    All fields are optional so env vars and CLI args can supply them at
    runtime instead.
    """

    repository: str | None = Field(
        default=None, description="Remote repository as owner/name"
    )
    branch: str | None = Field(default=None, description="Synced branch")
    default_user: int | None = Field(
        default=None,
        ge=0,
        description="User id imports run as and commit-author fallback",
    )
    ignore_author: bool = Field(
        default=False, description="Omit author from front matter"
    )
    dont_export_content: bool = Field(
        default=False,
        description="Reuse the fetched file body instead of re-rendering it",
    )
    webhook_secret: str | None = Field(
        default=None, description="Shared secret for webhook signatures"
    )
    commit_marker: str | None = Field(
        default=None,
        description="Suffix the exporter appends to its commit messages",
    )
    state_dir: str | None = Field(
        default=None, description="Directory for persisted sync markers"
    )
    app_factory: str | None = Field(
        default=None,
        description="module:attr callable building the SyncApp",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class WhitelistConfig(BaseModel):
    """Record types and statuses that take part in sync."""

    types: list[str] = Field(default_factory=lambda: list(DEFAULT_TYPES))
    statuses: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STATUSES)
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unset means the per-mode default.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    whitelist: WhitelistConfig = Field(default_factory=WhitelistConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten the sections into ``load_config()`` fallbacks.

    ``None`` values are dropped so they never shadow built-in defaults.
    """
    fallbacks = {
        k: v for k, v in unified.sync.model_dump().items() if v is not None
    }
    fallbacks["whitelist_types"] = list(unified.whitelist.types)
    fallbacks["whitelist_statuses"] = list(unified.whitelist.statuses)
    if unified.logging.level:
        fallbacks["log_level"] = unified.logging.level
    if unified.logging.file:
        fallbacks["log_file"] = unified.logging.file
    return fallbacks
