"""
YAML config file discovery and loading for cms_git_sync.

Config files are looked up by convention, may pull in other files with
``!include`` and may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  Several files merge with "project wins" semantics.

Usage:
    from cms_git_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CMS_GIT_SYNC_CONFIG"
PROJECT_DIR = ".cms_git_sync"

# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<fallback>.*?))?\}")


def interpolate_env_vars(text: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-fallback}`` references in *text*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    there is none.  An unterminated ``${`` is kept as is.
    """

    def _expand(match: re.Match) -> str:
        value = os.environ.get(match.group("name"))
        if value:
            return value
        return match.group("fallback") or ""

    return _ENV_REF.sub(_expand, text)


def _expand_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _expand_tree(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_expand_tree(value) for value in node]
    if isinstance(node, str):
        return interpolate_env_vars(node)
    return node


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    Each loader carries the chain of files currently being read so an
    include cycle is reported instead of recursing forever.
    """

    include_chain: tuple[Path, ...] = ()


def _construct_include(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    target = Path(loader.construct_scalar(node)).expanduser()
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    if target in loader.include_chain:
        cycle = " -> ".join(str(p) for p in (*loader.include_chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )

    return read_yaml(target, chain=loader.include_chain)


ConfigLoader.add_constructor("!include", _construct_include)


def read_yaml(path: Path, chain: tuple[Path, ...] = ()) -> Any:
    """Parse one YAML file, resolving ``!include`` tags relative to it."""
    path = Path(path).resolve()
    with open(path, encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader.include_chain = (*chain, path)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def candidate_paths() -> list[Path]:
    """Every place a config file may live, highest precedence first."""
    paths: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        paths.append(Path(explicit).expanduser().resolve())

    project = Path.cwd() / PROJECT_DIR
    paths.append(project / "config.yml")
    paths.append(project / "config.yaml")
    paths.append(Path.home() / ".config" / "cms_git_sync" / "config.yml")
    return paths


def discover_config_files() -> list[Path]:
    """Existing config files, highest precedence first."""
    return [path for path in candidate_paths() if path.exists()]


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# cms-git-sync configuration
#
# Values may reference environment variables: ${SYNC_WEBHOOK_SECRET}
# Every sync setting can also be set with a SYNC_* environment variable.
#
# sync:
#   repository: owner/site-content
#   branch: master
#   default_user: 1
#   ignore_author: false
#   dont_export_content: false
#   webhook_secret: ${SYNC_WEBHOOK_SECRET}
#   commit_marker: "- cms-git-sync"
#   state_dir: .cms_git_sync
#   app_factory: mysite.sync:build_app
#
# whitelist:
#   types: [post, page, glossary, newsletters, course, lesson, fieldatlas]
#   statuses: [publish]
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to create the starter file.  Defaults to
            ``./.cms_git_sync/config.yml``.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]

    path = target or Path.cwd() / PROJECT_DIR / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge every discovered config file.

    Files are applied from lowest to highest precedence; a top-level key in
    a higher file replaces the whole section from a lower one.  Environment
    references are expanded after the merge.  With no files the result is
    ``{}``.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Loading config: %s", path)
        data = read_yaml(path)
        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Ignoring config file %s: root is %s, not a mapping",
                path,
                type(data).__name__,
            )
    return _expand_tree(merged)
