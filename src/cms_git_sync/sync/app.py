"""Application container wiring the sync core to its collaborators.

``SyncApp`` replaces the global service locator of a plugin runtime: every
component receives the container and reaches its collaborators through it.
The platform adapter builds one ``SyncApp`` (usually from an ``app_factory``
named in the config), then calls ``boot()`` so record save/delete events
propagate to the controller.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING

from .hooks import DELETE_RECORD, SAVE_RECORD, HookRegistry
from .identity import IdentityContext
from .protocols import (
    CourseStructure,
    Exporter,
    Importer,
    OptionStore,
    RecordBackend,
    RemoteApi,
)
from .response import Response
from .semaphore import Semaphore
from .state import SyncState
from .webhook import WebhookRequest
from .whitelist import WhitelistPolicy

if TYPE_CHECKING:
    from ..config import Config
    from .controller import SyncController
    from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class SyncApp:
    """Holds configuration, collaborators and the shared sync resources.

    The semaphore, identity context and hook registry are process-wide for
    one container; create one ``SyncApp`` per platform instance.  Markers
    go to ``SyncState`` under ``config.state_dir`` unless an option store
    is given.
    """

    config: Config
    backend: RecordBackend
    api: RemoteApi
    importer: Importer
    exporter: Exporter
    options: OptionStore | None = None
    hooks: HookRegistry = field(default_factory=HookRegistry)
    semaphore: Semaphore = field(default_factory=Semaphore)
    identity: IdentityContext = field(default_factory=IdentityContext)
    whitelist: WhitelistPolicy | None = None
    response: Response = field(default_factory=Response)
    course_structure: CourseStructure | None = None
    converter: Callable[[str], str] | None = None

    def __post_init__(self) -> None:
        if self.options is None:
            self.options = SyncState(self.config.state_dir)
        if self.whitelist is None:
            self.whitelist = WhitelistPolicy(
                types=tuple(self.config.whitelist_types),
                statuses=tuple(self.config.whitelist_statuses),
            )

    @cached_property
    def store(self) -> RecordStore:
        from .store import RecordStore

        return RecordStore(self)

    @cached_property
    def controller(self) -> SyncController:
        from .controller import SyncController

        return SyncController(self)

    def boot(self) -> None:
        """Attach the controller to the platform's record change events."""
        controller = self.controller
        if not self.hooks.has_action(SAVE_RECORD, controller.export_one):
            self.hooks.add_action(SAVE_RECORD, controller.export_one)
        if not self.hooks.has_action(DELETE_RECORD, controller.delete_one):
            self.hooks.add_action(DELETE_RECORD, controller.delete_one)
        logger.debug("Registered record save/delete triggers")

    def request(
        self, headers: Mapping[str, str], body: bytes | str
    ) -> WebhookRequest:
        """Wrap an inbound webhook delivery for ``controller.pull()``."""
        return WebhookRequest(headers, body, self.config)


def load_app(factory_path: str, config: Config) -> SyncApp:
    """Build a ``SyncApp`` from a ``module:attr`` factory.

    The factory is called with the loaded ``Config`` and must return a
    ``SyncApp``.  The returned container is booted.

    Raises:
        ValueError: If *factory_path* is malformed or does not resolve to a
            callable returning a ``SyncApp``.
    """
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"Invalid app factory '{factory_path}': expected 'module:attr'"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(
            f"Cannot import app factory module '{module_name}': {exc}"
        ) from exc

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(
            f"App factory '{factory_path}' is not a callable attribute"
        )

    app = factory(config)
    if not isinstance(app, SyncApp):
        raise ValueError(
            f"App factory '{factory_path}' returned {type(app).__name__}, "
            "expected SyncApp"
        )

    app.boot()
    logger.info("Loaded sync app from %s", factory_path)
    return app
