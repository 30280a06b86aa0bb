from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Optional, Protocol

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import settings


logger = logging.getLogger(__name__)


def resolve_timezone(name: Optional[str]) -> Optional[dt.tzinfo]:
    """IANA zone for ``name``; ``None`` stands for the system local time."""
    if not name:
        return None
    try:
        return ZoneInfo(name.lstrip(":"))
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Unknown timezone %r, using system local time", name)
        return None


UTC = dt.timezone.utc
LOCAL_TZ = resolve_timezone(settings.timezone)

DAY_KEY_FORMAT = "%Y-%m-%d"
CLOCK_TIME_FORMAT = "%I:%M:%S %p"


class Clock(Protocol):
    def now(self) -> dt.datetime: ...


class SystemClock:
    """Wall clock returning timezone-aware UTC instants."""

    def now(self) -> dt.datetime:
        return dt.datetime.now(UTC)


def new_identifier() -> str:
    return str(uuid.uuid4())


def _to_local(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None and LOCAL_TZ is not None:
        value = value.replace(tzinfo=LOCAL_TZ)
    # astimezone(None) converts to the system local zone
    return value.astimezone(LOCAL_TZ)


def format_clock_time(instant: Optional[dt.datetime]) -> str:
    """Render an instant as ``hh:mm:ss AM/PM`` in local time, or ``""`` when absent."""
    if instant is None:
        return ""
    return _to_local(instant).strftime(CLOCK_TIME_FORMAT)


def format_duration(milliseconds: int | float) -> str:
    """Render a duration as zero-padded ``HH:MM:SS``, floored to whole seconds."""
    if milliseconds < 0:
        milliseconds = 0
    seconds = int(milliseconds // 1000)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def day_key(instant: dt.datetime) -> str:
    return _to_local(instant).strftime(DAY_KEY_FORMAT)


def today_key(clock: Optional[Clock] = None) -> str:
    """Current local calendar day as ``YYYY-MM-DD``."""
    now = clock.now() if clock is not None else dt.datetime.now(UTC)
    return day_key(now)


def elapsed_ms(start: dt.datetime, end: dt.datetime) -> int:
    """Milliseconds between two clock readings; never negative."""
    delta = _to_local(end) - _to_local(start)
    return max(delta // dt.timedelta(milliseconds=1), 0)


def epoch_ms(instant: dt.datetime) -> int:
    return int(_to_local(instant).timestamp() * 1000)


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()
