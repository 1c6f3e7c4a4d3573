"""
Repeating refresh ticker on asyncio.
Ticks only trigger re-rendering; elapsed time always comes from wall-clock anchors.
start() replaces any running task; cancel() is a no-op when nothing runs.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("outage_tracker.ticker")


class RefreshTicker:
    def __init__(self, callback: Callable[[], None], interval_ms: int = 1000) -> None:
        self._callback = callback
        self.interval_ms = max(1, int(interval_ms))
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Must be called with a running event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        interval = self.interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            try:
                self._callback()
            except Exception as e:
                logger.exception("Tick callback failed: %s", e)
