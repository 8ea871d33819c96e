"""Cash-register session lifecycle and recording of reconciliations from a physical count.

A session stays open until it is closed, or until ``POS_CASH_SESSION_AUTO_CLOSE_HOURS``
have passed since it was opened. At that point the next state check marks it
``expired`` with ``closed_at`` set to the expiry instant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from ..models import CashSession, Reconciliation, Sale, Transfer
from ..records import (
    CashSessionRecord,
    DenominationCount,
    ReconciliationRecord,
    all_denominations,
    denomination_kind,
    to_money,
)
from .provider import denominations_to_json, reconciliation_to_record, session_to_record

logger = logging.getLogger(__name__)


class CashSessionError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class CashSessionState:
    open: bool
    session: Optional[CashSessionRecord] = None
    expired: bool = False


def get_auto_close_hours() -> int:
    raw = getattr(settings, "POS_CASH_SESSION_AUTO_CLOSE_HOURS", 12)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 12
    return value if value >= 1 else 12


def compute_expiration(opened_at: datetime) -> datetime:
    return opened_at + timedelta(hours=get_auto_close_hours())


def _now(now: datetime | None) -> datetime:
    current = now if now is not None else timezone.now()
    if timezone.is_naive(current):
        current = timezone.make_aware(current)
    return current


def _latest_open_session() -> CashSession | None:
    return CashSession.objects.filter(status=CashSession.STATUS_OPEN).order_by("-opened_at", "-id").first()


def _ensure_active_session(now: datetime) -> tuple[CashSession | None, bool]:
    """Return (open session or expired one, expired flag)."""
    session = _latest_open_session()
    if session is None:
        return None, False
    expires_at = compute_expiration(session.opened_at)
    if session.closed_at is None and expires_at <= now:
        session.status = CashSession.STATUS_EXPIRED
        session.closed_at = expires_at
        session.auto_closed = True
        session.closed_by = session.opened_by
        session.save(update_fields=["status", "closed_at", "auto_closed", "closed_by"])
        logger.info("Cash session %s expired at %s", session.pk, expires_at.isoformat())
        return session, True
    return session, False


def get_session_state(now: datetime | None = None) -> CashSessionState:
    with transaction.atomic():
        session, expired = _ensure_active_session(_now(now))
    if session is None:
        return CashSessionState(open=False)
    if expired:
        return CashSessionState(open=False, session=session_to_record(session), expired=True)
    return CashSessionState(open=True, session=session_to_record(session))


def open_session(cashier_id: int | None, opening_amount=Decimal("0.00"), now: datetime | None = None) -> CashSessionRecord:
    amount = to_money(opening_amount)
    if amount < 0:
        raise CashSessionError("El monto inicial no puede ser negativo.", 400)
    current = _now(now)
    with transaction.atomic():
        session, expired = _ensure_active_session(current)
        if session is not None and not expired:
            raise CashSessionError("Ya existe una caja abierta actualmente.", 409)
        created = CashSession.objects.create(
            opened_by=cashier_id,
            opened_at=current,
            opening_amount=amount,
            status=CashSession.STATUS_OPEN,
            auto_closed=False,
        )
    logger.info("Cash session %s opened by cashier=%s amount=%s", created.pk, cashier_id, amount)
    return session_to_record(created)


def close_session(
    cashier_id: int | None,
    closing_amount=None,
    notes: str = "",
    now: datetime | None = None,
) -> CashSessionRecord:
    current = _now(now)
    with transaction.atomic():
        session, expired = _ensure_active_session(current)
        if session is None or expired:
            raise CashSessionError("No hay una caja abierta para cerrar.", 400)
        session.status = CashSession.STATUS_CLOSED
        session.closed_at = current
        session.closing_amount = to_money(closing_amount) if closing_amount is not None else None
        session.notes = notes or ""
        session.auto_closed = False
        session.closed_by = cashier_id
        session.save()
    logger.info("Cash session %s closed by cashier=%s", session.pk, cashier_id)
    return session_to_record(session)


def require_open_session(now: datetime | None = None) -> CashSession:
    session, expired = _ensure_active_session(_now(now))
    if session is None or expired:
        raise CashSessionError("Debes abrir la caja antes de registrar movimientos.", 403)
    return session


def count_denominations(counts: Mapping) -> tuple[DenominationCount, ...]:
    """Exact decimal subtotals for each known denomination; unknown keys are rejected."""
    normalized = {}
    for raw_value, raw_count in (counts or {}).items():
        value = Decimal(str(raw_value))
        if value not in all_denominations():
            raise CashSessionError(f"Denominación desconocida: {raw_value}", 400)
        count = int(raw_count or 0)
        if count < 0:
            raise CashSessionError(f"Cantidad negativa para la denominación {raw_value}", 400)
        normalized[value] = count
    items = []
    for value in all_denominations():
        count = normalized.get(value, 0)
        items.append(
            DenominationCount(
                value=value,
                kind=denomination_kind(value),
                count=count,
                subtotal=to_money(value * count),
            )
        )
    return tuple(items)


def cash_sales_since(opened_at: datetime, until: datetime) -> Decimal:
    total = (
        Sale.objects.filter(
            status=Sale.STATUS_CONFIRMED,
            payment_method=Sale.METHOD_CASH,
            sold_at__gte=opened_at,
            sold_at__lte=until,
        ).aggregate(total=Sum("total_amount"))["total"]
    )
    return to_money(total)


def record_reconciliation(
    cashier_id: int | None,
    counts: Mapping,
    transfers: Iterable[Mapping] = (),
    notes: str = "",
    now: datetime | None = None,
) -> ReconciliationRecord:
    current = _now(now)
    denominations = count_denominations(counts)
    counted_total = to_money(sum((item.subtotal for item in denominations), Decimal("0")))
    with transaction.atomic():
        session = require_open_session(current)
        system_total = to_money(session.opening_amount + cash_sales_since(session.opened_at, current))
        row = Reconciliation.objects.create(
            cashier_id=cashier_id,
            session=session,
            reconciled_at=current,
            opened_at=session.opened_at,
            closed_at=current,
            system_total=system_total,
            counted_total=counted_total,
            difference=to_money(counted_total - system_total),
            denominations_json=denominations_to_json(denominations),
            status=Reconciliation.STATUS_CLOSED,
            notes=notes or "",
        )
        for item in transfers or ():
            Transfer.objects.create(
                reconciliation=row,
                customer_name=str(item.get("customer_name") or ""),
                amount=to_money(item.get("amount")),
                payment_method=str(item.get("payment_method") or "Transferencia"),
                reference_number=str(item.get("reference_number") or ""),
                bank_name=str(item.get("bank_name") or ""),
            )
    logger.info(
        "Recorded reconciliation %s session=%s system=%s counted=%s difference=%s",
        row.pk,
        session.pk,
        system_total,
        counted_total,
        row.difference,
    )
    return reconciliation_to_record(Reconciliation.objects.prefetch_related("transfers").get(pk=row.pk))
