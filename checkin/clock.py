# checkin/clock.py

from __future__ import annotations

import os
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Seoul"


def local_zone() -> ZoneInfo:
    return ZoneInfo(os.getenv("CHECKIN_TIMEZONE", DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE)


def now_local(tz: ZoneInfo | None = None) -> datetime:
    return datetime.now(tz or local_zone())


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Returns [start of today, start of tomorrow) for the calendar day of `now`."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def format_sheet_timestamp(moment: datetime) -> str:
    """Renders the timestamp the way a ko-KR locale prints it: `2026. 10. 18. 오후 3:04:05`."""
    meridiem = "오전" if moment.hour < 12 else "오후"
    hour = moment.hour % 12 or 12
    return f"{moment.year}. {moment.month}. {moment.day}. {meridiem} {hour}:{moment.minute:02d}:{moment.second:02d}"
