"""Loguru sinks for the API and CLI.

Human-readable lines go to stderr.  Records bound with ``json_output=True``
(fraud triggers) are emitted as serialized JSON instead so they can be
shipped to a SIEM untouched.  ``log_dir`` adds a daily-rotated file.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "gig-api.log"
_TEXT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"


def _is_json(record: dict) -> bool:
    return bool(record["extra"].get("json_output"))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace all loguru sinks.

    Args:
        log_level: Threshold for every sink (case-insensitive).
        log_dir: Directory for ``gig-api.log``; kept for a week.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_TEXT_FORMAT, filter=lambda r: not _is_json(r))
    logger.add(sys.stderr, level=level, serialize=True, filter=_is_json)

    if not log_dir:
        return
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    logger.add(directory / LOG_FILE_NAME, level=level, format=_TEXT_FORMAT, rotation="1 day", retention="7 days")
