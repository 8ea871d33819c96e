from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_tz
from decimal import Decimal

from django.test import TestCase, override_settings

from apps.pos.models import CashSession, Reconciliation, Sale
from apps.pos.records import ReconciliationStatus
from apps.pos.services.cash_session import (
    CashSessionError,
    close_session,
    count_denominations,
    get_session_state,
    open_session,
    record_reconciliation,
)

OPENED = datetime(2026, 3, 14, 14, 0, tzinfo=dt_tz.utc)


@override_settings(POS_CASH_SESSION_AUTO_CLOSE_HOURS=12)
class CashSessionLifecycleTests(TestCase):
    def test_no_session_is_closed_state(self):
        state = get_session_state(now=OPENED)
        self.assertFalse(state.open)
        self.assertIsNone(state.session)

    def test_open_then_second_open_conflicts(self):
        record = open_session(3, Decimal("200.00"), now=OPENED)
        self.assertEqual(record.opening_amount, Decimal("200.00"))
        self.assertEqual(record.opened_by, 3)

        with self.assertRaises(CashSessionError) as ctx:
            open_session(4, Decimal("50"), now=OPENED + timedelta(hours=1))
        self.assertEqual(ctx.exception.status_code, 409)

    def test_negative_opening_amount_is_rejected(self):
        with self.assertRaises(CashSessionError) as ctx:
            open_session(3, Decimal("-1"), now=OPENED)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertFalse(CashSession.objects.exists())

    def test_close_without_open_session(self):
        with self.assertRaises(CashSessionError) as ctx:
            close_session(3, Decimal("10"), now=OPENED)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_close_records_cashier_amount_and_notes(self):
        open_session(3, Decimal("100"), now=OPENED)
        record = close_session(5, Decimal("180.25"), notes="Turno tarde", now=OPENED + timedelta(hours=8))

        self.assertEqual(record.status, CashSession.STATUS_CLOSED)
        self.assertEqual(record.closed_by, 5)
        self.assertEqual(record.closing_amount, Decimal("180.25"))
        self.assertEqual(record.closed_at, OPENED + timedelta(hours=8))
        self.assertFalse(record.auto_closed)
        self.assertFalse(get_session_state(now=OPENED + timedelta(hours=9)).open)

    def test_session_expires_after_auto_close_hours(self):
        open_session(3, Decimal("100"), now=OPENED)

        still_open = get_session_state(now=OPENED + timedelta(hours=11, minutes=59))
        self.assertTrue(still_open.open)

        state = get_session_state(now=OPENED + timedelta(hours=13))
        self.assertFalse(state.open)
        self.assertTrue(state.expired)
        self.assertEqual(state.session.status, CashSession.STATUS_EXPIRED)
        self.assertEqual(state.session.closed_at, OPENED + timedelta(hours=12))
        self.assertTrue(state.session.auto_closed)
        self.assertEqual(state.session.closed_by, 3)

        # A new session may be opened once the old one expired.
        reopened = open_session(3, Decimal("0"), now=OPENED + timedelta(hours=14))
        self.assertEqual(reopened.status, CashSession.STATUS_OPEN)

    @override_settings(POS_CASH_SESSION_AUTO_CLOSE_HOURS=2)
    def test_auto_close_hours_setting(self):
        open_session(3, Decimal("0"), now=OPENED)
        self.assertTrue(get_session_state(now=OPENED + timedelta(hours=3)).expired)


class CountDenominationsTests(TestCase):
    def test_counts_every_denomination_exactly(self):
        items = count_denominations({"100": 2, "0.25": 3, "0.5": 1})
        by_value = {item.value: item for item in items}
        self.assertEqual(len(items), 8)
        self.assertEqual(by_value[Decimal("100")].subtotal, Decimal("200.00"))
        self.assertEqual(by_value[Decimal("0.25")].subtotal, Decimal("0.75"))
        self.assertEqual(by_value[Decimal("0.50")].count, 1)
        self.assertEqual(by_value[Decimal("10")].count, 0)

    def test_unknown_or_negative_counts_are_rejected(self):
        with self.assertRaises(CashSessionError):
            count_denominations({"200": 1})
        with self.assertRaises(CashSessionError):
            count_denominations({"20": -1})


@override_settings(POS_CASH_SESSION_AUTO_CLOSE_HOURS=12)
class RecordReconciliationTests(TestCase):
    def test_requires_open_session(self):
        with self.assertRaises(CashSessionError) as ctx:
            record_reconciliation(3, {"100": 1}, now=OPENED)
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertFalse(Reconciliation.objects.exists())

    def test_totals_use_opening_amount_and_confirmed_cash_sales(self):
        open_session(3, Decimal("100.00"), now=OPENED)
        Sale.objects.create(
            sold_at=OPENED + timedelta(hours=1),
            status=Sale.STATUS_CONFIRMED,
            payment_method=Sale.METHOD_CASH,
            total_amount=Decimal("45.50"),
        )
        # Ignored: card payment, pending status, and a sale before the session opened.
        Sale.objects.create(
            sold_at=OPENED + timedelta(hours=1),
            status=Sale.STATUS_CONFIRMED,
            payment_method=Sale.METHOD_CARD,
            total_amount=Decimal("80.00"),
        )
        Sale.objects.create(
            sold_at=OPENED + timedelta(hours=2),
            status=Sale.STATUS_PENDING,
            payment_method=Sale.METHOD_CASH,
            total_amount=Decimal("12.00"),
        )
        Sale.objects.create(
            sold_at=OPENED - timedelta(hours=1),
            status=Sale.STATUS_CONFIRMED,
            payment_method=Sale.METHOD_CASH,
            total_amount=Decimal("99.00"),
        )

        record = record_reconciliation(
            3,
            {"100": 1, "20": 2, "1": 5, "0.25": 2},
            transfers=[
                {
                    "customer_name": "Ana",
                    "amount": "75.00",
                    "reference_number": "REF-9",
                    "bank_name": "BAM",
                }
            ],
            notes="Sin novedad",
            now=OPENED + timedelta(hours=3),
        )

        self.assertEqual(record.system_total, Decimal("145.50"))
        self.assertEqual(record.counted_total, Decimal("145.50"))
        self.assertEqual(record.difference, Decimal("0.00"))
        self.assertEqual(record.status, ReconciliationStatus.CLOSED)
        self.assertEqual(record.opened_at, OPENED)
        self.assertEqual(record.notes, "Sin novedad")
        self.assertEqual(record.denomination(Decimal("20")).subtotal, Decimal("40.00"))
        self.assertEqual(len(record.transfers), 1)
        self.assertEqual(record.transfers[0].amount, Decimal("75.00"))
        self.assertEqual(record.transfers[0].payment_method, "Transferencia")

        row = Reconciliation.objects.get(pk=record.reconciliation_id)
        self.assertIsNotNone(row.session_id)

    def test_shortage_gives_negative_difference(self):
        open_session(3, Decimal("50.00"), now=OPENED)
        record = record_reconciliation(3, {"20": 2, "5": 1, "0.50": 3}, now=OPENED + timedelta(minutes=30))
        self.assertEqual(record.counted_total, Decimal("46.50"))
        self.assertEqual(record.difference, Decimal("-3.50"))
