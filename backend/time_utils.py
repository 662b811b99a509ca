import os
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo


def _timezone() -> ZoneInfo:
    name = os.environ.get("APP_TIMEZONE", "Asia/Kolkata")
    return ZoneInfo(name)


def now_tz() -> datetime:
    return datetime.now(_timezone())


def ensure_timezone(dt: datetime) -> datetime:
    tz = _timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def event_date() -> date:
    raw = os.environ.get("EVENT_DATE")
    if raw:
        return date.fromisoformat(raw.strip())
    return now_tz().date()


def parse_event_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a schedule cell: ISO datetime, "YYYY-MM-DD HH:MM" or a bare time.

    Bare times ("10:30", "10:30 AM") are placed on EVENT_DATE. Raises
    ValueError on anything else.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return ensure_timezone(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in ("%Y-%m-%d %H:%M", "%d-%m-%Y %H:%M", "%d/%m/%Y %H:%M"):
        try:
            return ensure_timezone(datetime.strptime(raw, fmt))
        except ValueError:
            continue
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p"):
        try:
            parsed: time = datetime.strptime(raw.upper(), fmt).time()
        except ValueError:
            continue
        return ensure_timezone(datetime.combine(event_date(), parsed))
    raise ValueError(f"Unrecognised time '{raw}'")


def format_event_time(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    return ensure_timezone(dt).strftime("%Y-%m-%d %H:%M")
