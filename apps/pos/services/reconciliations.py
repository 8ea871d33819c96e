from __future__ import annotations

import logging
from datetime import datetime

from ..business_date import to_business_date, to_business_datetime
from ..date_ranges import resolve_date_range
from ..list_state import ReconciliationListState
from ..pagination import Page, paginate
from ..records import ReconciliationRecord
from .provider import DataProvider, get_data_provider

logger = logging.getLogger(__name__)


def matches_search(record: ReconciliationRecord, search: str) -> bool:
    """Id substring, or substring of the local ISO timestamp (e.g. "2024-05-01T18")."""
    needle = (search or "").strip()
    if not needle:
        return True
    if needle in str(record.reconciliation_id):
        return True
    return needle in to_business_datetime(record.reconciled_at).isoformat()


def filter_reconciliations(
    records: list[ReconciliationRecord],
    state: ReconciliationListState,
    now: datetime | None = None,
) -> list[ReconciliationRecord]:
    date_range = resolve_date_range(state.range_filter, state.custom_from, state.custom_to, now=now)
    return [
        record
        for record in records
        if date_range.contains(to_business_date(record.reconciled_at)) and matches_search(record, state.search)
    ]


def list_reconciliations(
    state: ReconciliationListState,
    provider: DataProvider | None = None,
    now: datetime | None = None,
) -> Page[ReconciliationRecord]:
    """Fetch, filter and paginate reconciliations. Provider errors propagate as FetchError."""
    provider = provider or get_data_provider()
    date_range = resolve_date_range(state.range_filter, state.custom_from, state.custom_to, now=now)
    records = provider.list_reconciliations(date_range.date_from, date_range.date_to)
    # Remote backends may treat the bounds loosely; keep only what the range allows.
    filtered = filter_reconciliations(records, state, now=now)
    logger.debug(
        "Listed reconciliations range=%s from=%s to=%s fetched=%s kept=%s",
        state.range_filter.value,
        date_range.date_from,
        date_range.date_to,
        len(records),
        len(filtered),
    )
    return paginate(filtered, state.page, state.page_size)


def get_reconciliation(reconciliation_id: int, provider: DataProvider | None = None) -> ReconciliationRecord:
    provider = provider or get_data_provider()
    return provider.get_reconciliation(reconciliation_id)


def delete_reconciliation(reconciliation_id: int, provider: DataProvider | None = None) -> None:
    provider = provider or get_data_provider()
    provider.delete_reconciliation(reconciliation_id)
    logger.info("Deleted reconciliation %s", reconciliation_id)
