from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
)


def format_duration(seconds: float | int | None) -> str:
    if seconds is None or isinstance(seconds, bool) or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def time_since(timestamp: str | datetime, now: datetime | None = None) -> str:
    try:
        then = _parse_timestamp(timestamp)
        current = _parse_timestamp(now) if now is not None else datetime.now(UTC)
    except (AttributeError, TypeError, ValueError):
        logger.warning("Invalid timestamp passed to time_since: %r", timestamp)
        return "Invalid date"

    elapsed = int((current - then).total_seconds())
    if elapsed < 1:
        return "just now"

    for unit, size in _UNITS:
        if elapsed >= size:
            return _plural(elapsed // size, unit)
    return _plural(elapsed, "second")
