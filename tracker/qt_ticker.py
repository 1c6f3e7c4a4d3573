"""Refresh ticker on a PySide6 QTimer, for hosts that run a Qt event loop instead of asyncio."""
import logging
from typing import Callable, Optional

from PySide6.QtCore import QTimer

logger = logging.getLogger("outage_tracker.ticker")


class QtRefreshTicker:
    """Same interface as RefreshTicker. Needs a QCoreApplication in the calling thread."""

    def __init__(self, callback: Callable[[], None], interval_ms: int = 1000) -> None:
        self._callback = callback
        self.interval_ms = max(1, int(interval_ms))
        self._timer: Optional[QTimer] = None

    @property
    def is_active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def start(self) -> None:
        self.cancel()
        timer = QTimer()
        timer.setInterval(self.interval_ms)
        timer.timeout.connect(self._fire)
        timer.start()
        self._timer = timer

    def cancel(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()

    def _fire(self) -> None:
        try:
            self._callback()
        except Exception as e:
            logger.exception("Tick callback failed: %s", e)
