"""Command line interface: ``cms-git-sync``.

Sub-commands map onto the controller operations plus two helpers:

* ``export <record_id|all> <user_id>`` -- export one record or everything.
* ``import <user_id>`` -- import the tree at the head of the branch.
* ``prime --branch | --sha SHA`` -- fetch a commit through the remote API
  so its tree is cached before a large import.
* ``status`` -- semaphore state and persisted markers.
* ``init`` -- write a commented starter config file (no app needed).

A ``user_id`` of 0 means the configured default user.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TYPE_CHECKING

from . import __version__
from .config import load_from_sources
from .config_loader import ensure_config
from .logger import setup_logging
from .sync.app import load_app
from .sync.errors import CollaboratorError
from .sync.models import SyncOutcome
from .sync.response import outcome_to_json

if TYPE_CHECKING:
    from .sync.app import SyncApp

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  # Export everything as user 3 (re-export records already synced)
  cms-git-sync export all 3 --force

  # Export a single record as the default user
  cms-git-sync export 42 0

  # Import the head of the configured branch
  cms-git-sync import 0

  # Warm the remote API cache before importing
  cms-git-sync prime --branch

  # Show lock state and markers as JSON
  cms-git-sync --json status

  # Create .cms_git_sync/config.yml
  cms-git-sync init

The application container is built by the module:attr factory given with
--app, SYNC_APP_FACTORY or 'app_factory' in .cms_git_sync/config.yml.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cms-git-sync",
        description="Synchronize content platform records with a git repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument(
        "--app",
        help="module:attr factory building the SyncApp "
        "(takes precedence over SYNC_APP_FACTORY and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cms-git-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export records to the repository")
    export.add_argument("target", help="Record id, or 'all'")
    export.add_argument("user_id", type=int, help="User to act as (0: default)")
    export.add_argument(
        "--force",
        action="store_true",
        help="Include records that are already synced",
    )

    imp = sub.add_parser("import", help="Import the branch head")
    imp.add_argument("user_id", type=int, help="User to act as (0: default)")
    imp.add_argument(
        "--force", action="store_true", help="Re-import unchanged files"
    )

    prime = sub.add_parser("prime", help="Fetch a commit to warm the cache")
    which = prime.add_mutually_exclusive_group(required=True)
    which.add_argument(
        "--branch", action="store_true", help="Head of the configured branch"
    )
    which.add_argument("--sha", help="A specific commit")

    sub.add_parser("status", help="Show lock state and sync markers")
    sub.add_parser("init", help="Write a starter config file")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _resolve_user(app: SyncApp, user_id: int) -> int:
    return user_id or app.config.default_user


def _cmd_export(app: SyncApp, args: argparse.Namespace) -> SyncOutcome | None:
    user_id = _resolve_user(app, args.user_id)
    if args.target == "all":
        return app.controller.export_all(user_id=user_id, force=args.force)

    try:
        record_id = int(args.target)
    except ValueError:
        raise ValueError(
            f"Invalid export target '{args.target}': expected a record id or 'all'"
        ) from None

    if not user_id:
        return app.controller.export_one(record_id)
    with app.identity.impersonate(user_id):
        return app.controller.export_one(record_id)


def _cmd_import(app: SyncApp, args: argparse.Namespace) -> SyncOutcome:
    return app.controller.import_all(
        user_id=_resolve_user(app, args.user_id), force=args.force
    )


def _cmd_prime(app: SyncApp, args: argparse.Namespace) -> SyncOutcome:
    fetch = app.api.fetch()
    try:
        commit = fetch.commit(args.sha) if args.sha else fetch.master()
    except Exception as exc:
        logger.exception("Failed to prime commit")
        return app.response.error(CollaboratorError.wrap("prime", exc))
    return app.response.success(f"Primed commit {commit.sha()}")


def _cmd_status(app: SyncApp, args: argparse.Namespace) -> SyncOutcome:
    return SyncOutcome(
        ok=True,
        payload={
            "locked": not app.semaphore.is_open(),
            "repository": app.config.repository,
            "branch": app.config.branch,
            "markers": app.options.markers(),
        },
    )


_COMMANDS = {
    "export": _cmd_export,
    "import": _cmd_import,
    "prime": _cmd_prime,
    "status": _cmd_status,
}


def _print_outcome(outcome: SyncOutcome, as_json: bool) -> None:
    if as_json:
        print(json.dumps(outcome_to_json(outcome), indent=2))
        return
    if outcome.ok:
        payload = outcome.payload
        if isinstance(payload, dict):
            print(json.dumps(payload, indent=2, default=str))
        elif payload is not None:
            print(payload)
    else:
        print(f"Error ({outcome.error.code}): {outcome.message}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None, app: SyncApp | None = None) -> int:
    """Run the CLI and return the process exit code.

    Args:
        argv: Arguments (default: ``sys.argv[1:]``).
        app: Pre-built container; skips config loading and the factory.
    """
    args = build_parser().parse_args(argv)
    setup_logging(mode="cli", debug=args.debug, log_file=args.log_file)

    if args.command == "init":
        print(f"Config file: {ensure_config()}")
        return 0

    if app is None:
        try:
            overrides = {
                key: value
                for key, value in (("app_factory", args.app), ("debug", args.debug))
                if value
            }
            config, sources = load_from_sources(overrides)
            if config.log_level or config.log_file:
                setup_logging(
                    mode="cli",
                    debug=config.debug,
                    log_file=args.log_file or config.log_file or None,
                    level=config.log_level or None,
                )
            logger.info("Configuration loaded from: %s", ", ".join(sources))
            if not config.app_factory:
                raise ValueError(
                    "No app factory configured. Pass --app, set "
                    "SYNC_APP_FACTORY or add 'app_factory' to config.yml."
                )
            app = load_app(config.app_factory, config)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2

    try:
        outcome = _COMMANDS[args.command](app, args)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if outcome is None:
        print("Record is a revision; nothing to do.")
        return 0

    _print_outcome(outcome, args.json)
    return 0 if outcome.ok else 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
