"""Bridge the blocking sync core into async MCP handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call *func* in a worker thread so the event loop keeps serving.

    Controller operations hold the sync semaphore for their whole run and
    may block on the remote API for a long time.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
