# oil_monitor/config/logging_config.py

"""Per-command log files for scrape runs, history queries and the API.

A daily cron scrape leaves one file per invocation in ``logs/``, named
after the command and its start time (``logs/scrape_20261019_064500.log``),
holding the fetch attempts, parsed supplier counts, the trend and any
price alert, and the email delivery result.  The console only shows
warnings and above unless ``OIL_LOG_LEVEL`` lowers it, so a cron mail
contains just failures and alerts.
"""

import logging
import sys
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from oil_monitor.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_level(name: str) -> int:
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(
    command: str = "scrape",
    extra_loggers: Iterable[str] = (),
) -> Path:
    """Attach the run-file and console handlers to ``oil_monitor``.

    Args:
        command: Prefix for the log file name (``scrape``, ``history``,
            ``serve``).
        extra_loggers: Third-party logger names (e.g. ``uvicorn``) whose
            records should also land in the run file.

    Returns:
        Path of the log file for this invocation.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"{command}_{stamp}.log"

    app_logger = logging.getLogger("oil_monitor")
    app_logger.setLevel(logging.DEBUG)

    # Handlers from an earlier call stay in place
    if app_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_console_level(Settings.LOG_CONSOLE_LEVEL))
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    app_logger.addHandler(file_handler)
    app_logger.addHandler(console_handler)

    for name in extra_loggers:
        logging.getLogger(name).addHandler(file_handler)

    app_logger.info(
        "%s started, target %s, db %s",
        command,
        Settings.TARGET_URL,
        Settings.PRICE_DB_PATH,
    )
    return log_file
