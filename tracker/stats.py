"""Aggregate statistics over completed outages plus the in-progress one."""
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from tracker.outage import Outage


@dataclass(frozen=True)
class OutageStats:
    total_events: int = 0
    total_duration_ms: int = 0
    average_duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEvents": self.total_events,
            "totalDurationMs": self.total_duration_ms,
            "averageDurationMs": self.average_duration_ms,
        }


def compute_stats(history: Iterable[Outage], active: Optional[Outage] = None) -> OutageStats:
    """
    The active outage counts as an event but not toward duration:
    only completed durations are totalled and averaged.
    """
    completed = list(history)
    total = sum(o.duration or 0 for o in completed)
    average = total // len(completed) if completed else 0
    return OutageStats(
        total_events=len(completed) + (1 if active is not None else 0),
        total_duration_ms=total,
        average_duration_ms=average,
    )
