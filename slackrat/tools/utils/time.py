"""
Time helpers
Conversions between Slack message timestamps and timezone-aware datetimes
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple, Union
import pytz


DISPLAY_FORMAT = "%d/%m/%Y %H:%M:%S"


def get_timezone(name: Optional[str] = None):
    """Return a pytz timezone, falling back to UTC for unknown names"""
    if not name:
        return pytz.UTC
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def ts_to_datetime(ts: Union[str, float, None]) -> datetime:
    """Convert a Slack ts ("1712345678.000100") to an aware UTC datetime"""
    try:
        seconds = float(ts) if ts is not None else 0.0
    except (TypeError, ValueError):
        seconds = 0.0
    return datetime.fromtimestamp(seconds, tz=pytz.UTC)


def to_slack_ts(value: datetime) -> str:
    """Convert a datetime to the whole-second string Slack expects for oldest/latest"""
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return str(int(value.timestamp()))


def localize(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Express an aware datetime in the given timezone"""
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return value.astimezone(get_timezone(tz_name))


def format_timestamp(ts: Union[str, float, datetime, None], tz_name: Optional[str] = None) -> str:
    """Human readable timestamp used in bot replies"""
    value = ts if isinstance(ts, datetime) else ts_to_datetime(ts)
    return localize(value, tz_name).strftime(DISPLAY_FORMAT)


def days_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return (start, end) covering the last `days` days"""
    end = now or datetime.now(pytz.UTC)
    return end - timedelta(days=days), end
