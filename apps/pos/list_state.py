"""Explicit, immutable list state for the reconciliation and sales-history screens.

Every change produces a new state value. Toggling the sort resets the page to 1,
the same way the screen does when the user clicks a column header.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional

from .date_ranges import RangeFilter
from .pagination import get_default_page_size


class SortKey(str, Enum):
    ID = "id"
    DATE = "date"
    TOTAL = "total"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


SORT_KEY_ALIASES = {"fecha": SortKey.DATE}


def parse_sort_key(raw: str | None) -> SortKey | None:
    text = (raw or "").strip().lower()
    if not text:
        return None
    return SORT_KEY_ALIASES.get(text) or SortKey(text)


@dataclass(frozen=True)
class ReconciliationListState:
    range_filter: RangeFilter = RangeFilter.ALL
    custom_from: Optional[date] = None
    custom_to: Optional[date] = None
    search: str = ""
    page: int = 1
    page_size: int = field(default_factory=get_default_page_size)


@dataclass(frozen=True)
class SalesHistoryState:
    range_filter: RangeFilter = RangeFilter.ALL
    custom_from: Optional[date] = None
    custom_to: Optional[date] = None
    search: str = ""
    methods: frozenset = frozenset()
    sort_key: Optional[SortKey] = None
    sort_order: SortOrder = SortOrder.ASC
    page: int = 1
    page_size: int = field(default_factory=get_default_page_size)

    def toggle_sort(self, key: SortKey) -> "SalesHistoryState":
        """Same key while ascending flips to descending; anything else sorts ascending."""
        if self.sort_key == key and self.sort_order == SortOrder.ASC:
            order = SortOrder.DESC
        else:
            order = SortOrder.ASC
        return replace(self, sort_key=key, sort_order=order, page=1)
