from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List

from ..business_date import to_business_date
from ..date_ranges import resolve_date_range
from ..list_state import SalesHistoryState, SortKey, SortOrder
from ..pagination import Page, paginate
from ..payloads import PAYMENT_METHOD_TO_WIRE, SALE_STATUS_TO_WIRE, datetime_to_wire
from ..records import PaymentMethod, SaleRecord, SaleStatus, to_money
from .provider import DataProvider, get_data_provider

logger = logging.getLogger(__name__)

CSV_FIELDNAMES = [
    "id_venta",
    "fecha_venta",
    "cliente",
    "tipo_pago",
    "estado",
    "total_venta",
    "productos",
]


@dataclass(frozen=True)
class SalesHistoryResult:
    page: Page[SaleRecord]
    sales: tuple[SaleRecord, ...] = ()
    method_totals: Dict[PaymentMethod, Decimal] = field(default_factory=dict)
    total_amount: Decimal = Decimal("0.00")


def matches_search(sale: SaleRecord, search: str) -> bool:
    needle = (search or "").strip()
    if not needle:
        return True
    if needle in str(sale.sale_id):
        return True
    return needle.lower() in (sale.products_summary or "").lower()


def filter_sales(sales: Iterable[SaleRecord], search: str = "", methods: Iterable[PaymentMethod] = ()) -> List[SaleRecord]:
    selected = set(methods)
    return [
        sale
        for sale in sales
        if matches_search(sale, search) and (not selected or sale.payment_method in selected)
    ]


_SORT_FIELDS = {
    SortKey.ID: lambda sale: sale.sale_id,
    SortKey.DATE: lambda sale: sale.sold_at,
    SortKey.TOTAL: lambda sale: sale.total_amount,
}


def sort_sales(sales: Iterable[SaleRecord], sort_key: SortKey | None, sort_order: SortOrder = SortOrder.ASC) -> List[SaleRecord]:
    """Stable single-key sort; no key keeps provider order."""
    items = list(sales)
    if sort_key is None:
        return items
    return sorted(items, key=_SORT_FIELDS[sort_key], reverse=sort_order == SortOrder.DESC)


def method_totals(sales: Iterable[SaleRecord]) -> Dict[PaymentMethod, Decimal]:
    totals = {method: Decimal("0.00") for method in PaymentMethod}
    for sale in sales:
        totals[sale.payment_method] = to_money(totals[sale.payment_method] + sale.total_amount)
    return totals


def query_sales_history(
    state: SalesHistoryState,
    provider: DataProvider | None = None,
    now: datetime | None = None,
) -> SalesHistoryResult:
    provider = provider or get_data_provider()
    date_range = resolve_date_range(state.range_filter, state.custom_from, state.custom_to, now=now)
    sales = provider.list_sales(
        status=SaleStatus.CONFIRMED,
        date_from=date_range.date_from,
        date_to=date_range.date_to,
    )
    in_range = [
        sale
        for sale in sales
        if sale.status == SaleStatus.CONFIRMED and date_range.contains(to_business_date(sale.sold_at))
    ]
    filtered = filter_sales(in_range, state.search, state.methods)
    ordered = sort_sales(filtered, state.sort_key, state.sort_order)
    totals = method_totals(ordered)
    logger.debug(
        "Sales history range=%s fetched=%s kept=%s sort=%s/%s",
        state.range_filter.value,
        len(sales),
        len(ordered),
        state.sort_key.value if state.sort_key else None,
        state.sort_order.value,
    )
    return SalesHistoryResult(
        page=paginate(ordered, state.page, state.page_size),
        sales=tuple(ordered),
        method_totals=totals,
        total_amount=to_money(sum((sale.total_amount for sale in ordered), Decimal("0"))),
    )


def export_sales_csv(sales: Iterable[SaleRecord]) -> str:
    buffer = io.StringIO()
    w = csv.DictWriter(buffer, fieldnames=CSV_FIELDNAMES, extrasaction="ignore")
    w.writeheader()
    for sale in sales:
        w.writerow(
            {
                "id_venta": sale.sale_id,
                "fecha_venta": datetime_to_wire(sale.sold_at),
                "cliente": sale.customer_name,
                "tipo_pago": PAYMENT_METHOD_TO_WIRE[sale.payment_method],
                "estado": SALE_STATUS_TO_WIRE[sale.status],
                "total_venta": f"{to_money(sale.total_amount):.2f}",
                "productos": sale.products_summary,
            }
        )
    return buffer.getvalue()


def get_sale_detail(sale_id: int, provider: DataProvider | None = None) -> SaleRecord:
    provider = provider or get_data_provider()
    return provider.get_sale_detail(sale_id)


def delete_sale(sale_id: int, provider: DataProvider | None = None) -> None:
    """Delete through the provider, which decides whether the sale may go."""
    provider = provider or get_data_provider()
    provider.delete_sale(sale_id)
    logger.info("Deleted sale %s", sale_id)
