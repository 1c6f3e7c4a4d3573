"""
Wiring for host applications: build a tracker and its formatter from the user config.
Hosts call open_tracker() once at startup and tracker.dispose() at teardown.
"""
import logging
from typing import Any, Optional

from tracker.clock import OutageFormatter
from tracker.config import TrackerSettings, dict_to_settings, load_config
from tracker.engine import OutageTracker
from tracker.logging_setup import setup_logging
from tracker.store import JsonFileKeyValueStore, OutageRecordStore

logger = logging.getLogger("outage_tracker.app")


def _settings(config: Optional[dict[str, Any]]) -> TrackerSettings:
    return dict_to_settings(config if config is not None else load_config())


def create_tracker(config: Optional[dict[str, Any]] = None, **tracker_kwargs: Any) -> OutageTracker:
    """Tracker backed by the JSON store file; extra kwargs go to OutageTracker (clock, ticker_factory...)."""
    settings = _settings(config)
    store = OutageRecordStore(JsonFileKeyValueStore(settings.resolved_store_path()))
    tracker_kwargs.setdefault("tick_interval_ms", settings.tick_interval_ms)
    return OutageTracker(store, **tracker_kwargs)


def formatter_from_config(config: Optional[dict[str, Any]] = None) -> OutageFormatter:
    settings = _settings(config)
    return OutageFormatter(settings.duration_style, settings.date_with_year)


async def open_tracker(
    config: Optional[dict[str, Any]] = None,
    configure_logging: bool = True,
    **tracker_kwargs: Any,
) -> OutageTracker:
    """Load config, optionally set up logging, build the tracker and recover persisted state."""
    if config is None:
        config = load_config()
    if configure_logging:
        settings = _settings(config)
        setup_logging(settings.log_path or None, store_name=settings.resolved_store_path().stem)
    tracker = create_tracker(config, **tracker_kwargs)
    logger.info("Outage tracker started (store: %s)", tracker.store.kv.path)
    await tracker.recover_on_startup()
    return tracker
