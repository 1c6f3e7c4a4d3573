"""
Daily logs via TimedRotatingFileHandler (midnight), attached to the 'outage_tracker' logger only.
The host's root handlers are left alone; calling again replaces only the handlers installed here.
Log: outage transitions (start, pause, resume, stop), startup recovery, discarded records, store errors.
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from tracker.config import get_config_dir

APP_LOGGER = "outage_tracker"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Store and engine decisions are kept at DEBUG in the file; tick failures and config notes need no more than INFO
DEFAULT_LEVELS = {
    "outage_tracker.engine": logging.DEBUG,
    "outage_tracker.store": logging.DEBUG,
    "outage_tracker.ticker": logging.INFO,
    "outage_tracker.config": logging.INFO,
    "outage_tracker.app": logging.INFO,
}

_INSTALLED_MARK = "_outage_tracker_handler"


def setup_logging(
    log_path: Optional[str] = None,
    store_name: str = "outages",
    console: bool = True,
    levels: Optional[dict[str, int]] = None,
) -> logging.Logger:
    """
    Log to <log dir>/<store_name>.log (one file per store) and, optionally, stdout.
    levels overrides DEFAULT_LEVELS per child logger. Returns the app logger.
    """
    log_dir = Path(log_path) if log_path else get_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{store_name or 'outages'}.log"

    logger = logging.getLogger(APP_LOGGER)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        if getattr(h, _INSTALLED_MARK, False):
            logger.removeHandler(h)
            h.close()

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    fh = TimedRotatingFileHandler(log_file, when="midnight", backupCount=30, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    setattr(fh, _INSTALLED_MARK, True)
    logger.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(logging.INFO)
        ch.setFormatter(fmt)
        setattr(ch, _INSTALLED_MARK, True)
        logger.addHandler(ch)

    for name, level in {**DEFAULT_LEVELS, **(levels or {})}.items():
        logging.getLogger(name).setLevel(level)

    # Our handlers already write these records; don't hand them to the host's root handlers too
    logger.propagate = False
    return logger
