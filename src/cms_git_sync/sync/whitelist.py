"""Whitelist policy: which record types and statuses take part in sync."""

from __future__ import annotations

from dataclasses import dataclass

from .hooks import WHITELISTED_STATUSES, WHITELISTED_TYPES, HookRegistry
from .models import RecordStatus

DEFAULT_TYPES: tuple[str, ...] = (
    "post",
    "page",
    "glossary",
    "newsletters",
    "course",
    "lesson",
    "fieldatlas",
)
DEFAULT_STATUSES: tuple[str, ...] = (RecordStatus.PUBLISH.value,)


@dataclass(frozen=True)
class WhitelistPolicy:
    """Eligible record types and statuses.

    Both sets are ordered.  The platform may extend or shrink them through
    the ``whitelisted_types`` / ``whitelisted_statuses`` filters; call
    ``resolve()`` to get the policy the core should actually enforce.
    """

    types: tuple[str, ...] = DEFAULT_TYPES
    statuses: tuple[str, ...] = DEFAULT_STATUSES

    def resolve(self, hooks: HookRegistry) -> WhitelistPolicy:
        types = hooks.apply_filters(WHITELISTED_TYPES, list(self.types))
        statuses = hooks.apply_filters(
            WHITELISTED_STATUSES, list(self.statuses)
        )
        return WhitelistPolicy(types=tuple(types), statuses=tuple(statuses))

    def allows_type(self, record_type: str) -> bool:
        return record_type in self.types

    def allows_status(self, status: str) -> bool:
        """Whitelisted statuses, plus ``trash`` so deletes can propagate."""
        return status in self.statuses or status == RecordStatus.TRASH.value
