"""Inbound webhook request validation.

``WebhookRequest`` answers the questions the controller asks before it
touches the lock: is the signature valid, is this a ping, is this a push.
``WebhookPayload`` wraps the parsed push body and decides whether the push
should be imported at all.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs

from .errors import PayloadRejectedError

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

EVENT_HEADER = "x-github-event"
SIGNATURE_256_HEADER = "x-hub-signature-256"
SIGNATURE_HEADER = "x-hub-signature"


class WebhookPayload:
    """Parsed push event body.

    Args:
        data: Decoded JSON body, or ``None`` when it could not be decoded.
        config: Sync configuration (repository, branch, commit marker).
    """

    def __init__(self, data: dict[str, Any] | None, config: Config) -> None:
        self.data = data
        self.config = config

    def ref(self) -> str:
        return (self.data or {}).get("ref", "")

    def sha(self) -> str:
        data = self.data or {}
        return data.get("after") or self._head_commit().get("id", "")

    def message(self) -> str:
        return self._head_commit().get("message", "")

    def repository(self) -> str:
        repo = (self.data or {}).get("repository") or {}
        return repo.get("full_name", "")

    def commits(self) -> list[dict[str, Any]]:
        return list((self.data or {}).get("commits") or [])

    def is_from_sync(self) -> bool:
        """True when the head commit was written by the exporter itself."""
        marker = self.config.commit_marker
        return bool(marker) and marker in self.message()

    def should_import(self) -> None:
        """Return normally when the push must be imported.

        Raises:
            PayloadRejectedError: For a malformed body, a push to another
                repository or branch, or a commit created by this sync.
        """
        if not self.data or "ref" not in self.data:
            raise PayloadRejectedError(
                "Webhook payload could not be decoded.", code="invalid_payload"
            )

        expected_repo = self.config.repository
        if expected_repo and self.repository().lower() != expected_repo.lower():
            raise PayloadRejectedError(
                f"Payload is for repository {self.repository()}, "
                f"expected {expected_repo}.",
                code="invalid_repository",
            )

        expected_ref = f"refs/heads/{self.config.branch}"
        if self.ref() != expected_ref:
            raise PayloadRejectedError(
                f"Payload is for ref {self.ref()}, expected {expected_ref}.",
                code="invalid_branch",
            )

        if self.is_from_sync():
            raise PayloadRejectedError(
                f"Commit {self.sha()} was created by this sync; skipping import.",
                code="payload_from_self",
            )

    def _head_commit(self) -> dict[str, Any]:
        return (self.data or {}).get("head_commit") or {}


class WebhookRequest:
    """One inbound webhook delivery.

    Args:
        headers: Request headers (any case).
        body: Raw request body.
        config: Sync configuration providing the shared secret.
    """

    def __init__(
        self,
        headers: Mapping[str, str],
        body: bytes | str,
        config: Config,
    ) -> None:
        self.headers = {k.lower(): v for k, v in headers.items()}
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.config = config

    def webhook_event(self) -> str:
        return self.headers.get(EVENT_HEADER, "")

    def is_ping(self) -> bool:
        return self.webhook_event() == "ping"

    def is_push(self) -> bool:
        return self.webhook_event() == "push"

    def is_secret_valid(self) -> bool:
        """Check the HMAC signature of the body against the shared secret.

        ``X-Hub-Signature-256`` is preferred; the legacy SHA-1
        ``X-Hub-Signature`` is accepted when it is the only one present.
        Without a configured secret every request is rejected.
        """
        secret = self.config.webhook_secret
        if not secret:
            logger.warning("Webhook secret is not configured")
            return False

        header = self.headers.get(SIGNATURE_256_HEADER)
        algorithm = hashlib.sha256
        if header is None:
            header = self.headers.get(SIGNATURE_HEADER)
            algorithm = hashlib.sha1
        if not header or "=" not in header:
            return False

        _, received = header.split("=", 1)
        expected = hmac.new(
            secret.encode("utf-8"), self.body, algorithm
        ).hexdigest()
        return hmac.compare_digest(expected, received.strip())

    def payload(self) -> WebhookPayload:
        return WebhookPayload(self._decode_body(), self.config)

    def _decode_body(self) -> dict[str, Any] | None:
        text = self.body.decode("utf-8", errors="replace")
        content_type = self.headers.get("content-type", "")
        if content_type.startswith("application/x-www-form-urlencoded"):
            text = parse_qs(text).get("payload", [""])[0]
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Webhook body is not valid JSON")
            return None
        return data if isinstance(data, dict) else None
