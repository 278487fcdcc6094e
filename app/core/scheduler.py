# app/core/scheduler.py
"""
Fixed-interval background job.

A tick starts the job body as its own task; if the previous body is still
running the tick is skipped, so one job never overlaps itself.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("call-center.core.scheduler")


class PeriodicJob:
    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[object]]):
        self.name = name
        self.interval = interval
        self.func = func
        self._loop_task: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._current is not None and not self._current.done()

    def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop(), name=f"{self.name}-loop")
            logger.info("Scheduled job %s every %ss", self.name, self.interval)

    async def stop(self) -> None:
        for task in (self._loop_task, self._current):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._current = None
        logger.info("Stopped job %s", self.name)

    def tick(self) -> bool:
        """Start one run unless the previous one is still active. Returns True if started."""
        if self.running:
            logger.warning("Job %s still running; skipping tick", self.name)
            return False
        self._current = asyncio.create_task(self._run_once(), name=self.name)
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    async def _run_once(self) -> None:
        try:
            await self.func()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Job %s failed", self.name)
