from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone


def get_business_timezone_name() -> str:
    return getattr(settings, "POS_BUSINESS_TIMEZONE", "America/Guatemala")


def get_business_timezone() -> ZoneInfo:
    name = get_business_timezone_name()
    try:
        return ZoneInfo(name)
    except Exception:
        return ZoneInfo("UTC")


def _aware(value: datetime | None) -> datetime:
    current = value if value is not None else timezone.now()
    if timezone.is_naive(current):
        current = timezone.make_aware(current, get_business_timezone())
    return current


def get_business_today(now: datetime | None = None) -> date:
    return _aware(now).astimezone(get_business_timezone()).date()


def to_business_date(value: datetime) -> date:
    return _aware(value).astimezone(get_business_timezone()).date()


def to_business_datetime(value: datetime) -> datetime:
    return _aware(value).astimezone(get_business_timezone())


def get_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Aware [start, end) of a business-timezone calendar day."""
    tz = get_business_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)


def get_range_bounds(date_from: date | None, date_to: date | None) -> tuple[datetime | None, datetime | None]:
    start = get_day_bounds(date_from)[0] if date_from else None
    end = get_day_bounds(date_to)[1] if date_to else None
    return start, end
