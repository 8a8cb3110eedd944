from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

log = logging.getLogger(__name__)


class MonitorScheduler:
    """Fires ``tick`` on a fixed interval without waiting for the previous tick.

    Ticks that overlap are expected to drop themselves (the monitor mutex does
    that); the scheduler never queues them. ``stop`` lets an in-flight tick
    finish instead of cancelling it. Errors raised by a tick are logged.
    """

    def __init__(self, tick: Callable[[], Awaitable[object]], interval_seconds: float, name: str = "-"):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.tick = tick
        self.interval_seconds = interval_seconds
        self.name = name
        self._stopping = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._loop_task = asyncio.create_task(self._run(), name=f"monitor-{self.name}")
        log.info("Started monitoring execution (interval: %ss)", self.interval_seconds,
                 extra={"tenant": self.name})

    async def _run(self) -> None:
        # First tick fires one interval after start.
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                self._fire()

    def _fire(self) -> None:
        task = asyncio.create_task(self.tick())
        self._inflight.add(task)
        task.add_done_callback(self._tick_done)

    def _tick_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error("Monitor tick raised: %s", error, exc_info=error, extra={"tenant": self.name})

    async def stop(self) -> None:
        self._stopping.set()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        log.info("Stopped monitoring execution", extra={"tenant": self.name})
