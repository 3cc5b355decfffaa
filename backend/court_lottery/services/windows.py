"""
Temporal booking windows.

Both the target and "now" are reduced to calendar days in the reference
timezone before differencing, so time of day never changes the outcome:

  d < 0          -> INVALID
  0 <= d < 2     -> DIRECT_WINDOW   (first come, first served)
  2 <= d <= 5    -> REQUEST_WINDOW  (pooled, resolved by lottery)
  d > 5          -> TOO_FAR
"""

import enum
from datetime import date, datetime
from zoneinfo import ZoneInfo

from court_lottery.core.config import get_settings


class BookingWindow(str, enum.Enum):
    INVALID = "invalid"
    DIRECT_WINDOW = "direct_window"
    REQUEST_WINDOW = "request_window"
    TOO_FAR = "too_far"


def reference_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def current_time() -> datetime:
    return datetime.now(reference_tz())


def to_local_date(value: date | datetime) -> date:
    """Calendar day of `value` in the reference timezone. Naive datetimes are taken as local."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(reference_tz())
        return value.date()
    return value


def days_until(target: date | datetime, now: date | datetime) -> int:
    return (to_local_date(target) - to_local_date(now)).days


def classify(
    target: date | datetime,
    now: date | datetime | None = None,
    *,
    direct_days: int | None = None,
    request_max_days: int | None = None,
) -> BookingWindow:
    settings = get_settings()
    direct_days = settings.DIRECT_WINDOW_DAYS if direct_days is None else direct_days
    request_max_days = (
        settings.REQUEST_WINDOW_MAX_DAYS if request_max_days is None else request_max_days
    )

    d = days_until(target, now if now is not None else current_time())
    if d < 0:
        return BookingWindow.INVALID
    if d < direct_days:
        return BookingWindow.DIRECT_WINDOW
    if d <= request_max_days:
        return BookingWindow.REQUEST_WINDOW
    return BookingWindow.TOO_FAR
