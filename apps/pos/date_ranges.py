from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from .business_date import get_business_today


class RangeFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7 = "last_7"
    LAST_30 = "last_30"
    THIS_MONTH = "this_month"
    CUSTOM = "custom"


# Preset names used by the SPA.
RANGE_ALIASES = {
    "todo": RangeFilter.ALL,
    "hoy": RangeFilter.TODAY,
    "ayer": RangeFilter.YESTERDAY,
    "ultimos_7": RangeFilter.LAST_7,
    "ultimos_30": RangeFilter.LAST_30,
    "este_mes": RangeFilter.THIS_MONTH,
}


def parse_range_filter(raw: str | None) -> RangeFilter:
    text = (raw or "").strip().lower()
    if not text:
        return RangeFilter.ALL
    if text in RANGE_ALIASES:
        return RANGE_ALIASES[text]
    return RangeFilter(text)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date bounds; ``None`` on either side means unbounded."""

    date_from: date | None = None
    date_to: date | None = None

    @property
    def is_bounded(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    def contains(self, day: date) -> bool:
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True


def resolve_date_range(
    range_filter: RangeFilter | str,
    custom_from: date | None = None,
    custom_to: date | None = None,
    now: datetime | None = None,
) -> DateRange:
    if not isinstance(range_filter, RangeFilter):
        range_filter = parse_range_filter(range_filter)
    today = get_business_today(now)

    if range_filter == RangeFilter.TODAY:
        return DateRange(today, today)
    if range_filter == RangeFilter.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return DateRange(yesterday, yesterday)
    if range_filter == RangeFilter.LAST_7:
        return DateRange(today - timedelta(days=7), today)
    if range_filter == RangeFilter.LAST_30:
        return DateRange(today - timedelta(days=30), today)
    if range_filter == RangeFilter.THIS_MONTH:
        return DateRange(today.replace(day=1), today)
    if range_filter == RangeFilter.CUSTOM and custom_from and custom_to:
        return DateRange(custom_from, custom_to)
    # "all", or a custom range still missing one of its ends.
    return DateRange()
