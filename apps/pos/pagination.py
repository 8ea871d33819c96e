from __future__ import annotations

from dataclasses import dataclass, field
from math import ceil
from typing import Generic, Sequence, TypeVar

from django.conf import settings

T = TypeVar("T")


def _int_setting(name: str, default: int, *, minimum: int = 1) -> int:
    raw = getattr(settings, name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value < minimum:
        return default
    return value


def get_default_page_size() -> int:
    return _int_setting("POS_DEFAULT_PAGE_SIZE", 10)


def get_max_page_size() -> int:
    return _int_setting("POS_MAX_PAGE_SIZE", 100)


def clamp_page_size(page_size: int | None) -> int:
    if not page_size or page_size < 1:
        return get_default_page_size()
    return min(page_size, get_max_page_size())


@dataclass(frozen=True)
class Page(Generic[T]):
    items: tuple = field(default_factory=tuple)
    page: int = 1
    page_size: int = 10
    total_items: int = 0

    @property
    def total_pages(self) -> int:
        # An empty list still renders as "Página 1 de 1".
        return max(1, ceil(self.total_items / self.page_size))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def start_index(self) -> int:
        """1-based index of the first item on the page, 0 when the page is empty."""
        if not self.items:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        if not self.items:
            return 0
        return self.start_index + len(self.items) - 1

    @property
    def label(self) -> str:
        return f"Página {self.page} de {self.total_pages}"

    @property
    def summary(self) -> str:
        return f"Mostrando {self.start_index} - {self.end_index} de {self.total_items} registro(s)"

    def as_dict(self) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "has_previous": self.has_previous,
            "has_next": self.has_next,
            "label": self.label,
            "summary": self.summary,
        }


def paginate(items: Sequence[T], page: int = 1, page_size: int | None = None) -> Page[T]:
    """Slice ``items`` into one page; out-of-range page numbers are clamped."""
    size = clamp_page_size(page_size)
    total = len(items)
    total_pages = max(1, ceil(total / size))
    current = min(max(1, int(page or 1)), total_pages)
    start = (current - 1) * size
    return Page(items=tuple(items[start:start + size]), page=current, page_size=size, total_items=total)
