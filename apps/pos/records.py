"""Immutable records handed out by data providers: reconciliations, transfers, sales."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

CENT = Decimal("0.01")

BILL_DENOMINATIONS = (Decimal("100"), Decimal("50"), Decimal("20"), Decimal("10"), Decimal("5"))
COIN_DENOMINATIONS = (Decimal("1"), Decimal("0.50"), Decimal("0.25"))


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a Decimal rounded to cents."""
    if value is None or value == "":
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class ReconciliationStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class SaleStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    VOUCHER = "voucher"  # points redemption ("canje")
    COUPON = "coupon"


class DenominationKind(str, Enum):
    BILL = "bill"
    COIN = "coin"


@dataclass(frozen=True)
class DenominationCount:
    """Physical count of one bill or coin value and its precomputed subtotal."""

    value: Decimal
    kind: DenominationKind
    count: int
    subtotal: Decimal

    @property
    def key(self) -> str:
        """Stable key used in storage and on the wire, e.g. "100" or "0.25"."""
        if self.value == self.value.to_integral():
            return str(int(self.value))
        return str(self.value.quantize(CENT))

    @property
    def label(self) -> str:
        prefix = "Billetes" if self.kind == DenominationKind.BILL else "Monedas"
        return f"{prefix} Q{self.key}"


def denomination_kind(value: Decimal) -> DenominationKind:
    return DenominationKind.BILL if value in BILL_DENOMINATIONS else DenominationKind.COIN


def all_denominations() -> tuple[Decimal, ...]:
    return BILL_DENOMINATIONS + COIN_DENOMINATIONS


@dataclass(frozen=True)
class TransferRecord:
    """Bank transfer line attached to a reconciliation."""

    transfer_id: Optional[str]
    customer_name: str
    amount: Decimal
    payment_method: str
    reference_number: str
    bank_name: str


@dataclass(frozen=True)
class ReconciliationRecord:
    """Stored cash-register reconciliation (arqueo). Totals are precomputed upstream."""

    reconciliation_id: int
    cashier_id: Optional[int]
    reconciled_at: datetime
    opened_at: Optional[datetime]
    closed_at: Optional[datetime]
    system_total: Decimal
    counted_total: Decimal
    difference: Decimal  # counted - system, as stored
    denominations: tuple[DenominationCount, ...] = ()
    status: ReconciliationStatus = ReconciliationStatus.CLOSED
    notes: str = ""
    transfers: tuple[TransferRecord, ...] = ()

    def denomination(self, value: Decimal) -> DenominationCount:
        for item in self.denominations:
            if item.value == value:
                return item
        return DenominationCount(value=value, kind=denomination_kind(value), count=0, subtotal=Decimal("0.00"))


@dataclass(frozen=True)
class SaleLineItem:
    line_id: Optional[int]
    product_name: str
    variant_name: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class SaleRecord:
    """Sale as listed by the provider; `lines` is only filled on detail fetches."""

    sale_id: int
    sold_at: datetime
    payment_method: PaymentMethod
    status: SaleStatus
    total_amount: Decimal
    customer_id: Optional[int] = None
    customer_name: str = ""
    cashier_id: Optional[int] = None
    products_summary: str = ""
    lines: tuple[SaleLineItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CashSessionRecord:
    session_id: int
    opened_by: Optional[int]
    closed_by: Optional[int]
    opened_at: datetime
    closed_at: Optional[datetime]
    opening_amount: Decimal
    closing_amount: Optional[Decimal]
    notes: str
    status: str
    auto_closed: bool
