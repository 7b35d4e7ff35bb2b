from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class Ticker:
    """Calls ``step`` every ``interval`` seconds on the running event loop.

    Deadlines are kept on the loop clock, so a slow step shortens the next
    sleep instead of shifting the schedule. Steps never overlap; if one
    overruns, the next starts as soon as it returns.
    """

    def __init__(self, interval: float, step: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.step = step
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="swarm-ticker")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            try:
                self.step()
            except Exception:
                logger.exception("Tick step failed")
            self.ticks += 1
            deadline += self.interval
            delay = deadline - loop.time()
            if delay < 0:
                # Behind schedule: run serially without trying to catch up.
                deadline = loop.time()
                delay = 0
            await asyncio.sleep(delay)
