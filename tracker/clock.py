"""
Wall-clock source and duration/time formatting.
Elapsed durations use integer division only; clock time and dates use the viewer's local time.
"""
import time
from datetime import datetime, tzinfo
from typing import Optional

DURATION_STYLES = ("verbose", "clock")
DEFAULT_DURATION_STYLE = "verbose"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch. Single source of 'now'."""
    return time.time_ns() // 1_000_000


def _split(ms: int) -> tuple[int, int, int]:
    total_seconds = max(0, int(ms)) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return hours, minutes, seconds


def format_duration(ms: int, style: str = DEFAULT_DURATION_STYLE) -> str:
    """
    Elapsed duration: 'verbose' -> '02h 05min 09s', 'clock' -> '02:05:09'.
    Negative input is shown as zero.
    """
    h, m, s = _split(ms)
    if style == "verbose":
        return f"{h:02d}h {m:02d}min {s:02d}s"
    if style == "clock":
        return f"{h:02d}:{m:02d}:{s:02d}"
    raise ValueError(f"Unknown duration style: {style!r}")


def format_short_duration(ms: int) -> str:
    """Card style: '2h 30min', or '45min' under an hour."""
    h, m, _ = _split(ms)
    if h:
        return f"{h}h {m}min"
    return f"{m}min"


def format_hours(ms: int) -> str:
    """Hours with one decimal, e.g. '3.2h'."""
    return f"{max(0, int(ms)) / 3_600_000:.1f}h"


def _local(timestamp_ms: int, tz: Optional[tzinfo]) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz)


def format_clock_time(timestamp_ms: int, tz: Optional[tzinfo] = None) -> str:
    """'HH:MM' in local time (or tz when given)."""
    return _local(timestamp_ms, tz).strftime("%H:%M")


def format_calendar_date(timestamp_ms: int, with_year: bool = False, tz: Optional[tzinfo] = None) -> str:
    """'DD/MM' or 'DD/MM/YYYY' in local time (or tz when given)."""
    fmt = "%d/%m/%Y" if with_year else "%d/%m"
    return _local(timestamp_ms, tz).strftime(fmt)


class OutageFormatter:
    """Formatting bound to one duration style and date format, so a tracker's views stay consistent."""

    __slots__ = ("duration_style", "date_with_year", "tz")

    def __init__(
        self,
        duration_style: str = DEFAULT_DURATION_STYLE,
        date_with_year: bool = False,
        tz: Optional[tzinfo] = None,
    ):
        if duration_style not in DURATION_STYLES:
            raise ValueError(f"Unknown duration style: {duration_style!r}")
        self.duration_style = duration_style
        self.date_with_year = bool(date_with_year)
        self.tz = tz

    def duration(self, ms: int) -> str:
        return format_duration(ms, self.duration_style)

    def clock_time(self, timestamp_ms: int) -> str:
        return format_clock_time(timestamp_ms, self.tz)

    def date(self, timestamp_ms: int) -> str:
        return format_calendar_date(timestamp_ms, self.date_with_year, self.tz)
