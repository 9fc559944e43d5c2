import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(utc_now().timestamp() * 1000)


def to_epoch_ms(value: Any) -> int | float | None:
    """
    Normalize a stored record timestamp to epoch milliseconds.

    Handles:
    - int/float epoch milliseconds -> returned as-is
    - datetime with timezone -> converted
    - naive datetime -> treated as UTC
    - ISO string (e.g., "2024-01-01T00:00:00Z") -> parsed
    - None, booleans or anything unparseable -> None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return value

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Failed to parse datetime string: {value}")
            return None
        return to_epoch_ms(parsed)

    logger.warning(f"Unexpected timestamp type: {type(value)}")
    return None


def in_range(value: Any, start: int | float, end: int | float) -> bool:
    """True when ``value`` converts to epoch ms inside ``[start, end]``."""
    ts = to_epoch_ms(value)
    return ts is not None and start <= ts <= end
