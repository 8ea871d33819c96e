from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from apps.pos.records import (
    DenominationCount,
    PaymentMethod,
    ReconciliationRecord,
    SaleRecord,
    SaleStatus,
    TransferRecord,
    denomination_kind,
)
from apps.pos.services.provider import DeleteError, FetchError


def make_reconciliation(reconciliation_id: int, reconciled_at: datetime, **overrides) -> ReconciliationRecord:
    values = {
        "reconciliation_id": reconciliation_id,
        "cashier_id": 3,
        "reconciled_at": reconciled_at,
        "opened_at": None,
        "closed_at": None,
        "system_total": Decimal("500.00"),
        "counted_total": Decimal("498.50"),
        "difference": Decimal("-1.50"),
        "denominations": (
            DenominationCount(Decimal("100"), denomination_kind(Decimal("100")), 4, Decimal("400.00")),
            DenominationCount(Decimal("50"), denomination_kind(Decimal("50")), 1, Decimal("50.00")),
            DenominationCount(Decimal("20"), denomination_kind(Decimal("20")), 2, Decimal("40.00")),
            DenominationCount(Decimal("5"), denomination_kind(Decimal("5")), 1, Decimal("5.00")),
            DenominationCount(Decimal("1"), denomination_kind(Decimal("1")), 3, Decimal("3.00")),
            DenominationCount(Decimal("0.50"), denomination_kind(Decimal("0.50")), 1, Decimal("0.50")),
        ),
    }
    values.update(overrides)
    return ReconciliationRecord(**values)


def make_transfer(amount: str, **overrides) -> TransferRecord:
    values = {
        "transfer_id": "D-1",
        "customer_name": "Ana López",
        "amount": Decimal(amount),
        "payment_method": "Transferencia",
        "reference_number": "REF-1",
        "bank_name": "Banco Industrial",
    }
    values.update(overrides)
    return TransferRecord(**values)


def make_sale(sale_id: int, sold_at: datetime, total: str = "10.00", **overrides) -> SaleRecord:
    values = {
        "sale_id": sale_id,
        "sold_at": sold_at,
        "payment_method": PaymentMethod.CASH,
        "status": SaleStatus.CONFIRMED,
        "total_amount": Decimal(total),
        "customer_name": "",
        "cashier_id": 3,
        "products_summary": "",
    }
    values.update(overrides)
    return SaleRecord(**values)


class FakeProvider:
    """In-memory provider that records calls and can be told to fail."""

    def __init__(self, reconciliations=(), sales=()):
        self.reconciliations = {record.reconciliation_id: record for record in reconciliations}
        self.sales = {sale.sale_id: sale for sale in sales}
        self.calls = []
        self.fail_fetch = False
        self.ignore_status = False

    def _check(self):
        if self.fail_fetch:
            raise FetchError("upstream unavailable")

    def list_reconciliations(self, date_from=None, date_to=None):
        self.calls.append(("list_reconciliations", date_from, date_to))
        self._check()
        return list(self.reconciliations.values())

    def get_reconciliation(self, reconciliation_id):
        self._check()
        if reconciliation_id not in self.reconciliations:
            raise FetchError("missing", not_found=True)
        return self.reconciliations[reconciliation_id]

    def delete_reconciliation(self, reconciliation_id):
        if self.reconciliations.pop(reconciliation_id, None) is None:
            raise DeleteError("missing", not_found=True)

    def list_sales(self, status=None, date_from=None, date_to=None, cashier_id=None):
        self.calls.append(("list_sales", status, date_from, date_to, cashier_id))
        self._check()
        if self.ignore_status:
            return list(self.sales.values())
        return [sale for sale in self.sales.values() if status is None or sale.status == status]

    def get_sale_detail(self, sale_id):
        self._check()
        if sale_id not in self.sales:
            raise FetchError("missing", not_found=True)
        return self.sales[sale_id]

    def delete_sale(self, sale_id):
        if self.sales.pop(sale_id, None) is None:
            raise DeleteError("missing", not_found=True)
