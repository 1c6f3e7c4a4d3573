"""Shared fakes: a settable wall clock and a ticker that records start/cancel calls."""
import pytest

from tracker.engine import OutageTracker
from tracker.store import MemoryKeyValueStore, OutageRecordStore

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingTicker:
    def __init__(self, callback, interval_ms: int = 1000):
        self.callback = callback
        self.interval_ms = interval_ms
        self.is_active = False
        self.starts = 0

    def start(self) -> None:
        self.starts += 1
        self.is_active = True

    def cancel(self) -> None:
        self.is_active = False

    def fire(self) -> None:
        self.callback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def make_tracker(clock, kv):
    """Build trackers over the same store and clock, as a restarted process would."""
    created = []

    def _make(store_kv=None) -> OutageTracker:
        tracker = OutageTracker(
            OutageRecordStore(store_kv if store_kv is not None else kv),
            clock=clock,
            ticker_factory=RecordingTicker,
        )
        created.append(tracker)
        return tracker

    yield _make
    for t in created:
        t.dispose()
