"""
Tracker config (JSON) beside the outage store in the user data directory.
Keys: tick interval, duration display style, date format, store and log locations.
Unknown keys are dropped on load and save; unreadable files fall back to defaults.
"""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from tracker.clock import DEFAULT_DURATION_STYLE, DURATION_STYLES

logger = logging.getLogger("outage_tracker.config")

# Default config
DEFAULT_TICK_INTERVAL_MS = 1000
MIN_TICK_INTERVAL_MS = 100
DATE_WITH_YEAR_DEFAULT = False
STORE_FILENAME = "outages.json"
HOME_ENV = "OUTAGE_TRACKER_HOME"


def get_config_dir() -> Path:
    """
    Data directory for config, outage store and logs.
    OUTAGE_TRACKER_HOME wins; else %APPDATA% on Windows, $XDG_DATA_HOME elsewhere, else ~/OutageTracker.
    """
    override = os.environ.get(HOME_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", "")
        if base:
            return Path(base) / "OutageTracker"
    else:
        base = os.environ.get("XDG_DATA_HOME", "")
        if base:
            return Path(base) / "outage-tracker"
    return Path(os.path.expanduser("~")) / "OutageTracker"


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


def get_default_config() -> dict[str, Any]:
    return {
        "tick_interval_ms": DEFAULT_TICK_INTERVAL_MS,
        "duration_style": DEFAULT_DURATION_STYLE,
        "date_with_year": DATE_WITH_YEAR_DEFAULT,
        "store_path": "",
        "log_path": "",
    }


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Known keys from the file over the defaults. Missing, corrupt or non-object files give the defaults."""
    path = Path(path) if path is not None else get_config_path()
    config = get_default_config()
    if not path.exists():
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        logger.warning("Config %s unreadable, using defaults: %s", path, e)
        return config
    if not isinstance(data, dict):
        logger.warning("Config %s is not an object, using defaults", path)
        return config
    unknown = sorted(k for k in data if k not in config)
    if unknown:
        logger.info("Ignoring unknown config keys: %s", ", ".join(unknown))
    config.update((k, v) for k, v in data.items() if k in config)
    return config


def save_config(config: dict[str, Any], path: Optional[Path] = None) -> Path:
    """Write known keys (missing ones filled from defaults); temp file then os.replace."""
    path = Path(path) if path is not None else get_config_path()
    data = get_default_config()
    data.update((k, v) for k, v in config.items() if k in data)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)
    return path


class TrackerSettings:
    __slots__ = ("tick_interval_ms", "duration_style", "date_with_year", "store_path", "log_path")

    def __init__(
        self,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        duration_style: str = DEFAULT_DURATION_STYLE,
        date_with_year: bool = DATE_WITH_YEAR_DEFAULT,
        store_path: str = "",
        log_path: str = "",
    ):
        self.tick_interval_ms = max(MIN_TICK_INTERVAL_MS, int(tick_interval_ms))
        self.duration_style = duration_style if duration_style in DURATION_STYLES else DEFAULT_DURATION_STYLE
        self.date_with_year = bool(date_with_year)
        self.store_path = str(store_path or "").strip()
        self.log_path = str(log_path or "").strip()

    def resolved_store_path(self) -> Path:
        if self.store_path:
            return Path(self.store_path)
        return get_config_dir() / STORE_FILENAME


def settings_to_dict(s: TrackerSettings) -> dict[str, Any]:
    return {
        "tick_interval_ms": s.tick_interval_ms,
        "duration_style": s.duration_style,
        "date_with_year": s.date_with_year,
        "store_path": s.store_path,
        "log_path": s.log_path,
    }


def dict_to_settings(d: dict[str, Any]) -> TrackerSettings:
    try:
        tick = int(d.get("tick_interval_ms", DEFAULT_TICK_INTERVAL_MS))
    except (TypeError, ValueError):
        tick = DEFAULT_TICK_INTERVAL_MS
    return TrackerSettings(
        tick_interval_ms=tick,
        duration_style=str(d.get("duration_style", DEFAULT_DURATION_STYLE)),
        date_with_year=bool(d.get("date_with_year", DATE_WITH_YEAR_DEFAULT)),
        store_path=d.get("store_path") or "",
        log_path=d.get("log_path") or "",
    )
