"""
Outage record and its stored form.
Keys: id, location, startTime, endTime, duration, status, accumulatedMs, resumedAt, pausedAt.
In-progress records carry the accumulator and anchors so elapsed time survives a restart.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import uuid4

from tracker.errors import MalformedRecordError


class OutageStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def new_outage_id() -> str:
    return uuid4().hex


@dataclass
class Outage:
    id: str
    location: str
    start_time: int
    status: OutageStatus = OutageStatus.ACTIVE
    end_time: Optional[int] = None
    duration: Optional[int] = None
    accumulated_ms: int = 0
    resumed_at: Optional[int] = None
    paused_at: Optional[int] = None

    @property
    def in_progress(self) -> bool:
        return self.status in (OutageStatus.ACTIVE, OutageStatus.PAUSED)

    def elapsed_ms(self, now: int) -> int:
        """Elapsed time from wall-clock anchors; intervals that run backwards count as zero."""
        if self.status == OutageStatus.COMPLETED:
            return self.duration or 0
        if self.status == OutageStatus.ACTIVE and self.resumed_at is not None:
            return self.accumulated_ms + max(0, now - self.resumed_at)
        return self.accumulated_ms

    def copy(self) -> "Outage":
        return replace(self)


def outage_to_dict(o: Outage) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": o.id,
        "location": o.location,
        "startTime": o.start_time,
        "status": o.status.value,
    }
    if o.status == OutageStatus.COMPLETED:
        d["endTime"] = o.end_time
        d["duration"] = o.duration
    else:
        d["accumulatedMs"] = o.accumulated_ms
        if o.resumed_at is not None:
            d["resumedAt"] = o.resumed_at
        if o.paused_at is not None:
            d["pausedAt"] = o.paused_at
    return d


def _int_field(d: dict[str, Any], key: str, required: bool = True) -> Optional[int]:
    v = d.get(key)
    if v is None:
        if required:
            raise MalformedRecordError(f"Missing {key}")
        return None
    # bool is an int subclass; reject it along with floats and strings
    if isinstance(v, bool) or not isinstance(v, int):
        raise MalformedRecordError(f"{key} must be an integer, got {v!r}")
    if v < 0:
        raise MalformedRecordError(f"{key} must not be negative, got {v!r}")
    return v


def dict_to_outage(d: Any) -> Outage:
    """Validate and build an Outage. Raises MalformedRecordError."""
    if not isinstance(d, dict):
        raise MalformedRecordError(f"Record must be an object, got {type(d).__name__}")
    oid = d.get("id")
    if not isinstance(oid, str) or not oid:
        raise MalformedRecordError("Missing id")
    location = d.get("location", "")
    if not isinstance(location, str):
        raise MalformedRecordError("location must be a string")
    try:
        status = OutageStatus(d.get("status"))
    except ValueError as e:
        raise MalformedRecordError(f"Unknown status {d.get('status')!r}") from e
    start_time = _int_field(d, "startTime")

    if status == OutageStatus.COMPLETED:
        end_time = _int_field(d, "endTime")
        duration = _int_field(d, "duration")
        if end_time < start_time:
            raise MalformedRecordError("endTime before startTime")
        if duration > end_time - start_time:
            raise MalformedRecordError("duration longer than endTime - startTime")
        return Outage(
            id=oid,
            location=location,
            start_time=start_time,
            status=status,
            end_time=end_time,
            duration=duration,
        )

    if d.get("endTime") is not None or d.get("duration") is not None:
        raise MalformedRecordError("In-progress record has endTime/duration")
    accumulated = _int_field(d, "accumulatedMs", required=False)
    if status == OutageStatus.ACTIVE:
        # Records holding only startTime: assume running continuously since start
        resumed_at = _int_field(d, "resumedAt", required=False)
        if resumed_at is None:
            resumed_at = start_time
        if resumed_at < start_time:
            raise MalformedRecordError("resumedAt before startTime")
        return Outage(
            id=oid,
            location=location,
            start_time=start_time,
            status=status,
            accumulated_ms=accumulated or 0,
            resumed_at=resumed_at,
        )
    if accumulated is None:
        raise MalformedRecordError("Paused record without accumulatedMs")
    return Outage(
        id=oid,
        location=location,
        start_time=start_time,
        status=status,
        accumulated_ms=accumulated,
        paused_at=_int_field(d, "pausedAt", required=False),
    )


def sort_by_start_desc(outages: Iterable[Outage]) -> list[Outage]:
    return sorted(outages, key=lambda o: o.start_time, reverse=True)


def prepend_unique(outage: Outage, history: Iterable[Outage]) -> list[Outage]:
    """outage at the head, any other record with the same id dropped."""
    return [outage] + [o for o in history if o.id != outage.id]
