"""Normalize collaborator results and errors into ``SyncOutcome``."""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import SyncError
from .models import ErrorInfo, SyncOutcome

logger = logging.getLogger(__name__)


class Response:
    """Builds the two-shape outcome every controller operation returns."""

    def success(self, payload: Any) -> SyncOutcome:
        if payload is not None:
            logger.info("%s", payload)
        return SyncOutcome(ok=True, payload=payload)

    def error(self, error: SyncError) -> SyncOutcome:
        logger.error("%s (%s)", error.message, error.code)
        return SyncOutcome(
            ok=False,
            error=ErrorInfo(
                code=error.code, kind=error.kind, message=error.message
            ),
        )


def outcome_to_json(outcome: SyncOutcome) -> dict[str, Any]:
    """JSON-safe dict of *outcome*; payloads json can't encode become strings."""
    data: dict[str, Any] = {"ok": outcome.ok}
    if outcome.error is not None:
        data["error"] = outcome.error.model_dump()
        return data

    payload = outcome.payload
    try:
        json.dumps(payload)
    except (TypeError, ValueError):
        payload = str(payload)
    data["payload"] = payload
    return data
