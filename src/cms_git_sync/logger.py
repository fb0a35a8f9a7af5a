"""Logging setup for the CLI and the MCP server."""

from __future__ import annotations

import json
import logging
import os
import sys

DEFAULT_LOG_FILE = "/tmp/cms-git-sync.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def resolve_level(
    mode: str, debug: bool = False, level: str | None = None
) -> int:
    """Level from ``CMS_GIT_SYNC_LOG_LEVEL``, else *level*; ``debug`` forces DEBUG.

    Without either, defaults to WARNING in MCP mode and INFO in CLI mode.
    """
    if debug:
        return logging.DEBUG
    default = level or ("WARNING" if mode == "mcp" else "INFO")
    name = os.getenv("CMS_GIT_SYNC_LOG_LEVEL", default).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging based on execution mode.

    May be called again once the config files are read; handlers are
    replaced.

    Args:
        mode: "mcp" logs to a file only (stdout carries JSON-RPC),
            "cli" logs to stderr and optionally to *log_file* as well.
        debug: Force DEBUG level.
        log_file: Log file path (overrides ``CMS_GIT_SYNC_LOG_FILE``).
        debug_format: "text" (default) or "json".
        level: Level name from the ``logging`` config section; the
            environment variable still wins.

    Environment variables:
        CMS_GIT_SYNC_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR.
        CMS_GIT_SYNC_LOG_FILE: Log file for MCP mode.
            Default: /tmp/cms-git-sync.log
    """
    numeric_level = resolve_level(mode, debug, level)
    formatter = _formatter(debug_format)
    handlers: list[logging.Handler] = []

    if mode == "mcp":
        path = log_file or os.getenv("CMS_GIT_SYNC_LOG_FILE", DEFAULT_LOG_FILE)
        handlers.append(logging.FileHandler(path, mode="a"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))
        if log_file:
            handlers.append(logging.FileHandler(log_file, mode="a"))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    # The MCP SDK is chatty below WARNING
    if numeric_level != logging.DEBUG:
        logging.getLogger("mcp").setLevel(logging.WARNING)
