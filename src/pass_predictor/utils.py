"""
Utility functions for the pass predictor.

Logging setup and the UTC time helpers used throughout the package. All
times handled by the engine are timezone-naive UTC datetimes, which is the
convention of the orbit-predictor library.
"""

from datetime import datetime, timezone
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Environment Variables:
        PASS_PREDICTOR_LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_level = os.environ.get("PASS_PREDICTOR_LOG_LEVEL")
    if env_level:
        level = env_level
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging configured at {level} level")


def to_naive_utc(when: datetime) -> datetime:
    """
    Normalize a datetime to timezone-naive UTC.

    Naive datetimes are assumed to already be UTC and are returned unchanged.
    """
    if when.tzinfo is None:
        return when
    return when.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(date_string: str) -> datetime:
    """
    Parse a UTC time given on the command line.

    Accepts `YYYY-MM-DD HH:MM:SS`, a bare date, or ISO 8601 with a `Z`
    suffix or an explicit offset.

    Args:
        date_string: Date string to parse

    Returns:
        Parsed datetime object (naive UTC)

    Raises:
        ValueError: If date string cannot be parsed
    """
    try:
        dt = datetime.fromisoformat(date_string.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Could not parse datetime string: {date_string}") from e
    return to_naive_utc(dt)


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def get_current_utc() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current UTC datetime (timezone-naive)
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
