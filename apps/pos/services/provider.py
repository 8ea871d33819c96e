"""Data providers backing the reconciliation and sales-history endpoints.

``OrmDataProvider`` reads the local models; ``HttpDataProvider`` talks to the
remote POS API using its ``{"success", "data"}`` envelope. Both hand out the
immutable records from ``apps.pos.records`` and report failures as
``FetchError`` / ``DeleteError`` so callers never see ORM or transport
exceptions.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Protocol

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, transaction

from ..business_date import get_range_bounds
from ..models import CashSession, Reconciliation, Sale
from ..payloads import (
    PayloadError,
    SALE_STATUS_TO_WIRE,
    decode_list,
    decode_reconciliation,
    decode_sale,
    unwrap_envelope,
)
from ..records import (
    CashSessionRecord,
    DenominationCount,
    PaymentMethod,
    ReconciliationRecord,
    ReconciliationStatus,
    SaleLineItem,
    SaleRecord,
    SaleStatus,
    TransferRecord,
    all_denominations,
    denomination_kind,
    to_money,
)

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    def __init__(self, message: str, *, not_found: bool = False):
        super().__init__(message)
        self.not_found = not_found


class FetchError(ProviderError):
    """A list or detail read failed (transport, HTTP status, bad payload, missing row)."""


class DeleteError(ProviderError):
    """A delete failed. ``not_found``: the row is already gone; ``refused``: the row may not be deleted."""

    def __init__(self, message: str, *, not_found: bool = False, refused: bool = False):
        super().__init__(message, not_found=not_found)
        self.refused = refused


class DataProvider(Protocol):
    def list_reconciliations(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> list[ReconciliationRecord]: ...

    def get_reconciliation(self, reconciliation_id: int) -> ReconciliationRecord: ...

    def delete_reconciliation(self, reconciliation_id: int) -> None: ...

    def list_sales(
        self,
        status: Optional[SaleStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        cashier_id: Optional[int] = None,
    ) -> list[SaleRecord]: ...

    def get_sale_detail(self, sale_id: int) -> SaleRecord: ...

    def delete_sale(self, sale_id: int) -> None: ...


# ---------------------------------------------------------------------------
# ORM rows -> records
# ---------------------------------------------------------------------------


def denominations_from_json(raw: dict | None) -> tuple[DenominationCount, ...]:
    raw = raw or {}
    items = []
    for value in all_denominations():
        blank = DenominationCount(value=value, kind=denomination_kind(value), count=0, subtotal=Decimal("0.00"))
        entry = raw.get(blank.key) or {}
        items.append(
            DenominationCount(
                value=value,
                kind=blank.kind,
                count=int(entry.get("count") or 0),
                subtotal=to_money(entry.get("subtotal")),
            )
        )
    return tuple(items)


def denominations_to_json(items) -> dict:
    return {item.key: {"count": item.count, "subtotal": str(to_money(item.subtotal))} for item in items}


def reconciliation_to_record(row: Reconciliation) -> ReconciliationRecord:
    return ReconciliationRecord(
        reconciliation_id=row.pk,
        cashier_id=row.cashier_id,
        reconciled_at=row.reconciled_at,
        opened_at=row.opened_at,
        closed_at=row.closed_at,
        system_total=to_money(row.system_total),
        counted_total=to_money(row.counted_total),
        difference=to_money(row.difference),
        denominations=denominations_from_json(row.denominations_json),
        status=ReconciliationStatus(row.status),
        notes=row.notes or "",
        transfers=tuple(
            TransferRecord(
                transfer_id=str(transfer.pk),
                customer_name=transfer.customer_name,
                amount=to_money(transfer.amount),
                payment_method=transfer.payment_method,
                reference_number=transfer.reference_number,
                bank_name=transfer.bank_name,
            )
            for transfer in row.transfers.all()
        ),
    )


def sale_to_record(row: Sale, *, include_lines: bool = False) -> SaleRecord:
    lines = ()
    if include_lines:
        lines = tuple(
            SaleLineItem(
                line_id=line.pk,
                product_name=line.product_name,
                variant_name=line.variant_name,
                quantity=line.quantity,
                unit_price=to_money(line.unit_price),
                discount=to_money(line.discount),
                subtotal=to_money(line.subtotal),
            )
            for line in row.lines.all()
        )
    return SaleRecord(
        sale_id=row.pk,
        sold_at=row.sold_at,
        payment_method=PaymentMethod(row.payment_method),
        status=SaleStatus(row.status),
        total_amount=to_money(row.total_amount),
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        cashier_id=row.cashier_id,
        products_summary=row.products_summary,
        lines=lines,
    )


def session_to_record(row: CashSession) -> CashSessionRecord:
    return CashSessionRecord(
        session_id=row.pk,
        opened_by=row.opened_by,
        closed_by=row.closed_by,
        opened_at=row.opened_at,
        closed_at=row.closed_at,
        opening_amount=to_money(row.opening_amount),
        closing_amount=to_money(row.closing_amount) if row.closing_amount is not None else None,
        notes=row.notes,
        status=row.status,
        auto_closed=row.auto_closed,
    )


class OrmDataProvider:
    def list_reconciliations(self, date_from=None, date_to=None) -> list[ReconciliationRecord]:
        start, end = get_range_bounds(date_from, date_to)
        try:
            qs = Reconciliation.objects.prefetch_related("transfers").order_by("-reconciled_at", "-id")
            if start is not None:
                qs = qs.filter(reconciled_at__gte=start)
            if end is not None:
                qs = qs.filter(reconciled_at__lt=end)
            return [reconciliation_to_record(row) for row in qs]
        except DatabaseError as exc:
            raise FetchError(f"Could not read reconciliations: {exc}") from exc

    def get_reconciliation(self, reconciliation_id: int) -> ReconciliationRecord:
        try:
            row = Reconciliation.objects.prefetch_related("transfers").filter(pk=reconciliation_id).first()
            record = reconciliation_to_record(row) if row is not None else None
        except DatabaseError as exc:
            raise FetchError(f"Could not read reconciliation {reconciliation_id}: {exc}") from exc
        if record is None:
            raise FetchError(f"Reconciliation {reconciliation_id} not found.", not_found=True)
        return record

    def delete_reconciliation(self, reconciliation_id: int) -> None:
        try:
            deleted, _ = Reconciliation.objects.filter(pk=reconciliation_id).delete()
        except DatabaseError as exc:
            raise DeleteError(f"Could not delete reconciliation {reconciliation_id}: {exc}") from exc
        if not deleted:
            raise DeleteError(f"Reconciliation {reconciliation_id} not found.", not_found=True)

    def list_sales(self, status=None, date_from=None, date_to=None, cashier_id=None) -> list[SaleRecord]:
        start, end = get_range_bounds(date_from, date_to)
        try:
            qs = Sale.objects.order_by("-sold_at", "-id")
            if status is not None:
                qs = qs.filter(status=SaleStatus(status).value)
            if start is not None:
                qs = qs.filter(sold_at__gte=start)
            if end is not None:
                qs = qs.filter(sold_at__lt=end)
            if cashier_id is not None:
                qs = qs.filter(cashier_id=cashier_id)
            return [sale_to_record(row) for row in qs]
        except DatabaseError as exc:
            raise FetchError(f"Could not read sales: {exc}") from exc

    def get_sale_detail(self, sale_id: int) -> SaleRecord:
        try:
            row = Sale.objects.prefetch_related("lines").filter(pk=sale_id).first()
            sale = sale_to_record(row, include_lines=True) if row is not None else None
        except DatabaseError as exc:
            raise FetchError(f"Could not read sale {sale_id}: {exc}") from exc
        if sale is None:
            raise FetchError(f"Sale {sale_id} not found.", not_found=True)
        return sale

    def delete_sale(self, sale_id: int) -> None:
        try:
            with transaction.atomic():
                row = Sale.objects.select_for_update().filter(pk=sale_id).first()
                if row is None:
                    raise DeleteError(f"Sale {sale_id} not found.", not_found=True)
                if row.status != Sale.STATUS_PENDING:
                    raise DeleteError(f"Sale {sale_id} is {row.status}; only pending sales can be deleted.", refused=True)
                row.delete()
        except DatabaseError as exc:
            raise DeleteError(f"Could not delete sale {sale_id}: {exc}") from exc


class HttpDataProvider:
    """Remote POS API client (``/caja/arqueos`` and ``/ventas`` endpoints)."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls) -> "HttpDataProvider":
        base_url = str(getattr(settings, "POS_PROVIDER_BASE_URL", "") or "").strip()
        if not base_url:
            raise ImproperlyConfigured("POS_PROVIDER_BASE_URL is required when POS_DATA_PROVIDER=http.")
        return cls(
            base_url,
            token=str(getattr(settings, "POS_PROVIDER_TOKEN", "") or ""),
            timeout=float(getattr(settings, "POS_PROVIDER_TIMEOUT_SECONDS", 10.0)),
        )

    def _request(self, method: str, path: str, *, params: dict | None = None, error_cls=FetchError):
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.Timeout as exc:
            raise error_cls(f"{method} {path} timed out after {self.timeout}s") from exc
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise error_cls(f"{method} {path} returned HTTP {status}", not_found=status == 404) from exc
        except requests.exceptions.RequestException as exc:
            raise error_cls(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError as exc:
            raise error_cls(f"{method} {path} returned invalid JSON") from exc
        try:
            return unwrap_envelope(body)
        except PayloadError as exc:
            raise error_cls(f"{method} {path}: {exc}") from exc

    def list_reconciliations(self, date_from=None, date_to=None) -> list[ReconciliationRecord]:
        params = {}
        if date_from:
            params["fechaInicio"] = date_from.isoformat()
        if date_to:
            params["fechaFin"] = date_to.isoformat()
        data = self._request("GET", "/caja/arqueos", params=params)
        try:
            return decode_list(data, decode_reconciliation)
        except PayloadError as exc:
            raise FetchError(f"Invalid reconciliation payload: {exc}") from exc

    def get_reconciliation(self, reconciliation_id: int) -> ReconciliationRecord:
        data = self._request("GET", f"/caja/arqueos/{reconciliation_id}")
        if data is None:
            raise FetchError(f"Reconciliation {reconciliation_id} not found.", not_found=True)
        try:
            return decode_reconciliation(data)
        except PayloadError as exc:
            raise FetchError(f"Invalid reconciliation payload: {exc}") from exc

    def delete_reconciliation(self, reconciliation_id: int) -> None:
        self._request("DELETE", f"/caja/arqueos/{reconciliation_id}", error_cls=DeleteError)

    def list_sales(self, status=None, date_from=None, date_to=None, cashier_id=None) -> list[SaleRecord]:
        params = {}
        if status is not None:
            params["estado"] = SALE_STATUS_TO_WIRE[SaleStatus(status)]
        if date_from:
            params["fechaInicio"] = f"{date_from.isoformat()} 00:00:00"
        if date_to:
            params["fechaFin"] = f"{date_to.isoformat()} 23:59:59"
        if cashier_id:
            params["idCajero"] = str(cashier_id)
        data = self._request("GET", "/ventas", params=params)
        try:
            return decode_list(data, decode_sale)
        except PayloadError as exc:
            raise FetchError(f"Invalid sale payload: {exc}") from exc

    def get_sale_detail(self, sale_id: int) -> SaleRecord:
        data = self._request("GET", f"/ventas/{sale_id}", params={"completa": "true"})
        if data is None:
            raise FetchError(f"Sale {sale_id} not found.", not_found=True)
        try:
            return decode_sale(data)
        except PayloadError as exc:
            raise FetchError(f"Invalid sale payload: {exc}") from exc

    def delete_sale(self, sale_id: int) -> None:
        self._request("DELETE", f"/ventas/{sale_id}", error_cls=DeleteError)


def get_data_provider() -> DataProvider:
    name = str(getattr(settings, "POS_DATA_PROVIDER", "orm") or "orm").strip().lower()
    if name == "orm":
        return OrmDataProvider()
    if name == "http":
        return HttpDataProvider.from_settings()
    raise ImproperlyConfigured(f"Unknown POS_DATA_PROVIDER: {name!r} (expected 'orm' or 'http').")
