"""Background sweep that fails rigging jobs stuck in PROCESSING."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from rigforge.errors import RigforgeError

if TYPE_CHECKING:
    from rigforge.lifecycle import RiggingLifecycleManager

logger = logging.getLogger(__name__)


async def sweep_forever(
    manager: RiggingLifecycleManager,
    interval: float,
    stop_event: asyncio.Event,
) -> int:
    """Run :meth:`RiggingLifecycleManager.sweep_expired` every ``interval`` seconds.

    Store access happens in a worker thread. A sweep that fails (for example
    on an unreadable document) is logged and retried on the next tick.
    Returns the total number of jobs failed once ``stop_event`` is set.
    """
    total = 0
    while not stop_event.is_set():
        try:
            expired = await asyncio.to_thread(manager.sweep_expired)
        except RigforgeError:
            logger.exception("Rigging sweep failed")
            expired = []
        if expired:
            logger.info("Timed out %d rigging job(s): %s", len(expired), ", ".join(expired))
        total += len(expired)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except TimeoutError:
            pass
    return total
