import re
import sys
from datetime import datetime, timezone
from loguru import logger as loguru_logger

from src.config.settings_env import settings


_PLATE_SEPARATORS = re.compile(r"[\s\-\.]")


def initialize_logger():
    """Initialize the logger based on DEV_MODE setting."""
    loguru_logger.remove()

    if settings.DEV_MODE:
        loguru_logger.add(sys.stderr, level="TRACE")
    else:
        loguru_logger.add(sys.stderr, level="INFO")

    return loguru_logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_plate(plate: str) -> str:
    """ABC-1234, abc 1234 and abc1234 all map to ABC1234."""
    return _PLATE_SEPARATORS.sub("", plate).upper()


# Initialize logger
logger = initialize_logger()
