"""Runtime configuration for cms-git-sync.

Reads sync settings from CLI args, environment variables, .env files and
YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SYNC_REPOSITORY: Remote repository as owner/name
    SYNC_BRANCH: Synced branch (default: master)
    SYNC_DEFAULT_USER: User id imports run as (default: 0, none)
    SYNC_IGNORE_AUTHOR: Omit author from front matter (default: false)
    SYNC_DONT_EXPORT_CONTENT: Reuse fetched file bodies on export (default: false)
    SYNC_WEBHOOK_SECRET: Shared webhook secret
    SYNC_STATE_DIR: Directory for persisted markers (default: .cms_git_sync)
    SYNC_APP_FACTORY: module:attr callable building the SyncApp
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field

from .sync.whitelist import DEFAULT_STATUSES, DEFAULT_TYPES

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"
DEFAULT_STATE_DIR = ".cms_git_sync"
DEFAULT_COMMIT_MARKER = "- cms-git-sync"

_REPOSITORY_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")
_FACTORY_PATTERN = re.compile(r"^[\w.]+:[\w.]+$")


@dataclass
class Config:
    repository: str = ""
    branch: str = DEFAULT_BRANCH
    default_user: int = 0
    ignore_author: bool = False
    dont_export_content: bool = False
    webhook_secret: str = ""
    commit_marker: str = DEFAULT_COMMIT_MARKER
    state_dir: str = DEFAULT_STATE_DIR
    app_factory: str = ""
    debug: bool = False
    whitelist_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_TYPES)
    )
    whitelist_statuses: list[str] = field(
        default_factory=lambda: list(DEFAULT_STATUSES)
    )
    log_level: str = ""
    log_file: str = ""


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the repository is not ``owner/name``, the branch is
            empty, the default user is negative or the app factory is not
            ``module:attr``.
    """
    config.repository = config.repository.strip().strip("/")
    if config.repository and not _REPOSITORY_PATTERN.match(config.repository):
        raise ValueError(
            f"Invalid repository '{config.repository}': expected owner/name"
        )

    config.branch = config.branch.strip()
    if not config.branch:
        raise ValueError(
            "Branch cannot be empty. Set SYNC_BRANCH or 'branch' in config.yml."
        )

    if config.default_user < 0:
        raise ValueError(
            f"Invalid default user {config.default_user}: must be 0 or a user id"
        )

    if config.app_factory and not _FACTORY_PATTERN.match(config.app_factory):
        raise ValueError(
            f"Invalid app factory '{config.app_factory}': expected module:attr"
        )

    if not config.webhook_secret:
        logger.warning(
            "No webhook secret configured; every webhook will be rejected"
        )


def _env_bool(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _pick_bool(cli: bool, env_key: str, fallback: object) -> bool:
    if cli:
        return True
    env = _env_bool(env_key)
    if env is not None:
        return env
    return bool(fallback)


def load_config(
    repository: str | None = None,
    branch: str | None = None,
    default_user: int | None = None,
    app_factory: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        repository: Override repository (owner/name).
        branch: Override branch.
        default_user: Override default user id.
        app_factory: Override ``module:attr`` app factory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened ``sync``, ``whitelist`` and ``logging``
            values from the YAML config (see ``config_schema.yaml_fallbacks``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed after checking all sources.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_repository = (
        repository or os.getenv("SYNC_REPOSITORY") or fb.get("repository") or ""
    )
    final_branch = (
        branch or os.getenv("SYNC_BRANCH") or fb.get("branch") or DEFAULT_BRANCH
    )
    final_secret = (
        os.getenv("SYNC_WEBHOOK_SECRET") or fb.get("webhook_secret") or ""
    )
    final_state_dir = (
        os.getenv("SYNC_STATE_DIR") or fb.get("state_dir") or DEFAULT_STATE_DIR
    )
    final_factory = (
        app_factory
        or os.getenv("SYNC_APP_FACTORY")
        or fb.get("app_factory")
        or ""
    )
    final_marker = fb.get("commit_marker") or DEFAULT_COMMIT_MARKER

    # --- Numeric fields: CLI > env > YAML > default ---

    if default_user is not None:
        final_default_user = default_user
    else:
        raw_user = os.getenv("SYNC_DEFAULT_USER")
        if raw_user is not None:
            try:
                final_default_user = int(raw_user)
            except ValueError:
                raise ValueError(
                    f"Invalid SYNC_DEFAULT_USER '{raw_user}': must be a user id"
                ) from None
        else:
            final_default_user = int(fb.get("default_user", 0))

    # --- Boolean fields: CLI > env > YAML > default ---

    config = Config(
        repository=final_repository,
        branch=final_branch,
        default_user=final_default_user,
        ignore_author=_pick_bool(
            False, "SYNC_IGNORE_AUTHOR", fb.get("ignore_author", False)
        ),
        dont_export_content=_pick_bool(
            False,
            "SYNC_DONT_EXPORT_CONTENT",
            fb.get("dont_export_content", False),
        ),
        webhook_secret=final_secret,
        commit_marker=final_marker,
        state_dir=final_state_dir,
        app_factory=final_factory,
        debug=_pick_bool(debug, "SYNC_DEBUG", fb.get("debug", False)),
        whitelist_types=list(fb.get("whitelist_types", DEFAULT_TYPES)),
        whitelist_statuses=list(
            fb.get("whitelist_statuses", DEFAULT_STATUSES)
        ),
        log_level=fb.get("log_level", ""),
        log_file=fb.get("log_file", ""),
    )

    validate_config(config)

    return config


def load_from_sources(
    overrides: dict | None = None,
) -> tuple[Config, list[str]]:
    """Run the whole config pipeline: .env, YAML files, env vars, overrides.

    Returns:
        The validated config and a description of each source used.
    """
    from dotenv import load_dotenv

    from .config_loader import discover_config_files, load_hierarchical_config
    from .config_schema import build_config, yaml_fallbacks

    # .env first so ${VAR} references in YAML can see its values
    load_dotenv()

    sources: list[str] = []
    fallbacks = None
    files = discover_config_files()
    if files:
        fallbacks = yaml_fallbacks(build_config(load_hierarchical_config()))
        sources.append(f"config file: {files[0]}")

    opts = overrides or {}
    config = load_config(
        repository=opts.get("repository"),
        branch=opts.get("branch"),
        default_user=opts.get("default_user"),
        app_factory=opts.get("app_factory"),
        debug=opts.get("debug", False),
        yaml_fallbacks=fallbacks,
    )

    if opts:
        sources.append("CLI arguments")
    sources.append("environment variables")
    return config, sources
