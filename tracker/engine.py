"""
Outage duration state machine.
States: EMPTY, RUNNING, PAUSED (derived from the single active slot).
Transitions: EMPTY -> RUNNING (start), RUNNING <-> PAUSED (pause/resume), RUNNING/PAUSED -> EMPTY (stop).
Elapsed time = accumulator + (now - last resume anchor) while running; ticks only drive UI refresh.
Every transition is persisted before the call returns. On write failure the in-memory
transition stands and PersistenceWriteError is raised with the affected outage attached.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from tracker.clock import now_ms
from tracker.errors import (
    AlreadyActiveError,
    MalformedRecordError,
    NoActiveOutageError,
    NotPausedError,
    NotRunningError,
    PersistenceError,
    PersistenceWriteError,
)
from tracker.outage import Outage, OutageStatus, new_outage_id, prepend_unique, sort_by_start_desc
from tracker.stats import OutageStats, compute_stats
from tracker.store import OutageRecordStore
from tracker.ticker import RefreshTicker

logger = logging.getLogger("outage_tracker.engine")

Listener = Callable[[str, "OutageTracker"], None]


class TrackerState(Enum):
    EMPTY = "empty"
    RUNNING = "running"
    PAUSED = "paused"


class OutageTracker:
    """
    Owns at most one in-progress outage and the completed history.
    Listeners are called as listener(event, tracker) with events:
    started, paused, resumed, stopped, recovered, location_changed, tick.
    """

    def __init__(
        self,
        store: OutageRecordStore,
        *,
        clock: Callable[[], int] = now_ms,
        tick_interval_ms: int = 1000,
        ticker_factory: Callable[[Callable[[], None], int], RefreshTicker] = RefreshTicker,
        id_factory: Callable[[], str] = new_outage_id,
    ) -> None:
        self.store = store
        self._clock = clock
        self._new_id = id_factory
        self._active: Optional[Outage] = None
        self._history: list[Outage] = []
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._ticker = ticker_factory(self._on_tick, tick_interval_ms)
        self._disposed = False

    # --- read-only views ---

    @property
    def state(self) -> TrackerState:
        if self._active is None:
            return TrackerState.EMPTY
        if self._active.status == OutageStatus.PAUSED:
            return TrackerState.PAUSED
        return TrackerState.RUNNING

    @property
    def active(self) -> Optional[Outage]:
        return self._active.copy() if self._active is not None else None

    @property
    def history(self) -> tuple[Outage, ...]:
        return tuple(o.copy() for o in self._history)

    def elapsed_ms(self) -> int:
        if self._active is None:
            return 0
        return self._active.elapsed_ms(self._clock())

    def compute_stats(self) -> OutageStats:
        return compute_stats(self._history, self._active)

    # --- observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception as e:
                logger.exception("Listener failed on %s: %s", event, e)

    def _on_tick(self) -> None:
        self._emit("tick")

    def _start_ticker(self) -> None:
        if self._disposed:
            return
        self._ticker.start()

    # --- persistence helpers ---

    async def _save_active(self, outage: Outage) -> None:
        try:
            await self.store.save_active(outage)
        except PersistenceError as e:
            logger.warning("Outage %s not saved: %s", outage.id, e)
            raise PersistenceWriteError(f"Outage {outage.id} not saved: {e}", outage=outage.copy()) from e

    async def _discard_active_slot(self) -> None:
        try:
            await self.store.clear_active()
        except PersistenceError as e:
            logger.warning("Could not clear active slot: %s", e)

    # --- transitions ---

    async def start(self, location: str = "") -> Outage:
        async with self._lock:
            if self._active is not None:
                raise AlreadyActiveError(self.state)
            now = self._clock()
            outage = Outage(
                id=self._new_id(),
                location=(location or "").strip(),
                start_time=now,
                resumed_at=now,
            )
            self._active = outage
            self._start_ticker()
            logger.info("Outage %s started (%s)", outage.id, outage.location or "no location")
            try:
                await self._save_active(outage)
            finally:
                self._emit("started")
            return outage.copy()

    async def pause(self) -> None:
        async with self._lock:
            outage = self._active
            if outage is None or outage.status != OutageStatus.ACTIVE:
                raise NotRunningError(self.state)
            now = self._clock()
            outage.accumulated_ms = outage.elapsed_ms(now)
            outage.resumed_at = None
            outage.paused_at = now
            outage.status = OutageStatus.PAUSED
            self._ticker.cancel()
            logger.info("Outage %s paused at %d ms elapsed", outage.id, outage.accumulated_ms)
            try:
                await self._save_active(outage)
            finally:
                self._emit("paused")

    async def resume(self) -> None:
        async with self._lock:
            outage = self._active
            if outage is None or outage.status != OutageStatus.PAUSED:
                raise NotPausedError(self.state)
            outage.resumed_at = self._clock()
            outage.paused_at = None
            outage.status = OutageStatus.ACTIVE
            self._start_ticker()
            logger.info("Outage %s resumed", outage.id)
            try:
                await self._save_active(outage)
            finally:
                self._emit("resumed")

    async def stop(self) -> Outage:
        """
        Complete the active outage and move it to the head of history.
        History is written before the active slot is cleared; if the history write
        fails the slot is kept, so a restart finds the outage still in progress.
        """
        async with self._lock:
            outage = self._active
            if outage is None:
                raise NoActiveOutageError(self.state)
            now = self._clock()
            end_time = max(now, outage.start_time)
            done = Outage(
                id=outage.id,
                location=outage.location,
                start_time=outage.start_time,
                status=OutageStatus.COMPLETED,
                end_time=end_time,
                duration=min(outage.elapsed_ms(now), end_time - outage.start_time),
            )
            self._ticker.cancel()
            self._active = None
            previous = self._history
            self._history = prepend_unique(done, previous)
            logger.info("Outage %s stopped after %d ms", done.id, done.duration)
            try:
                try:
                    await self.store.prepend_history(done, previous)
                except PersistenceError as e:
                    logger.warning("History not saved, keeping active slot for %s: %s", done.id, e)
                    raise PersistenceWriteError(f"Outage {done.id} not saved to history: {e}", outage=done.copy()) from e
                try:
                    await self.store.clear_active()
                except PersistenceError as e:
                    logger.warning("Active slot not cleared for %s: %s", done.id, e)
                    raise PersistenceWriteError(f"Active slot not cleared for {done.id}: {e}", outage=done.copy()) from e
            finally:
                self._emit("stopped")
            return done.copy()

    async def set_location(self, location: str) -> Outage:
        async with self._lock:
            outage = self._active
            if outage is None:
                raise NoActiveOutageError(self.state, "No outage in progress to relabel")
            outage.location = (location or "").strip()
            logger.info("Outage %s location set to %s", outage.id, outage.location)
            try:
                await self._save_active(outage)
            finally:
                self._emit("location_changed")
            return outage.copy()

    async def resort_history(self) -> None:
        """Re-sort history by start time, newest first, and persist it."""
        async with self._lock:
            self._history = sort_by_start_desc(self._history)
            try:
                await self.store.save_history(self._history)
            except PersistenceError as e:
                logger.warning("Sorted history not saved: %s", e)
                raise PersistenceWriteError(f"Sorted history not saved: {e}") from e

    async def recover_on_startup(self) -> None:
        """
        Rebuild state from the store. Never raises: unreadable data degrades to an
        empty history and/or no active outage. An active record already present in
        history was completed before a crash and is discarded.
        """
        async with self._lock:
            self._ticker.cancel()
            try:
                history = await self.store.load_history()
            except PersistenceError as e:
                logger.warning("Could not read history, starting empty: %s", e)
                history = []

            active: Optional[Outage] = None
            try:
                active = await self.store.load_active()
            except MalformedRecordError as e:
                logger.warning("Discarding malformed active outage: %s", e)
                await self._discard_active_slot()
            except PersistenceError as e:
                logger.warning("Could not read active outage, starting empty: %s", e)

            if active is not None and any(o.id == active.id for o in history):
                logger.warning("Active outage %s is already in history; discarding duplicate", active.id)
                await self._discard_active_slot()
                active = None

            self._history = history
            self._active = active
            if active is not None and active.status == OutageStatus.ACTIVE:
                self._start_ticker()
            logger.info(
                "Recovered: %s, %d completed outages, %d ms elapsed",
                self.state.value,
                len(history),
                self.elapsed_ms(),
            )
            self._emit("recovered")

    # --- lifecycle ---

    def suspend(self) -> None:
        """Host going to background: stop refreshing. Call recover_on_startup() when it returns."""
        self._ticker.cancel()
        logger.debug("Refresh suspended")

    def dispose(self) -> None:
        """Teardown: cancel the ticker and drop listeners. Safe to call more than once."""
        self._disposed = True
        self._ticker.cancel()
        self._listeners.clear()
