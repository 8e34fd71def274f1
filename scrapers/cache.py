"""Single-slot, time-boxed memo of the last rendered summary."""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache")


@dataclass(frozen=True)
class CacheEntry:
    key: str
    message: str
    computed_at: float


class ResultCache:
    """
    Holds at most one entry: the summary for the most recently computed day.

    A lookup is a hit only when the key matches and the entry is younger than
    ``ttl_seconds``. Any successful computation overwrites the slot, whatever
    its key. Failures are never stored.

    With ``single_flight`` on, concurrent misses for the same key await one
    shared computation instead of each driving the browser.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
        single_flight: bool = True,
    ):
        self.ttl_seconds = ttl_seconds
        self.single_flight = single_flight
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._inflight: dict[str, asyncio.Task] = {}

    def peek(self) -> Optional[CacheEntry]:
        return self._entry

    def clear(self) -> None:
        self._entry = None

    def lookup(self, key: str) -> Optional[str]:
        """Return the cached message if it is fresh for ``key``."""
        entry = self._entry
        if entry is None or entry.key != key:
            return None
        if self._clock() - entry.computed_at >= self.ttl_seconds:
            return None
        return entry.message

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[str]]) -> str:
        message = self.lookup(key)
        if message is not None:
            logger.info("Cache hit for %s", key)
            return message

        if not self.single_flight:
            return await self._refresh(key, compute)

        task = self._inflight.get(key)
        if task is None:
            logger.info("Cache miss for %s", key)
            task = asyncio.ensure_future(self._refresh(key, compute))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._settle(key, t))
        else:
            logger.info("Joining in-flight extraction for %s", key)
        # shield: one cancelled waiter must not cancel the run for the others
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # every waiter may have been cancelled; mark the failure as retrieved
        if not task.cancelled():
            task.exception()

    async def _refresh(self, key: str, compute: Callable[[], Awaitable[str]]) -> str:
        message = await compute()
        self._entry = CacheEntry(key=key, message=message, computed_at=self._clock())
        return message
