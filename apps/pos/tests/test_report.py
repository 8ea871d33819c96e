from __future__ import annotations

from datetime import date, datetime, timezone as dt_tz
from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from apps.pos.records import PaymentMethod, SaleStatus
from apps.pos.services.provider import FetchError
from apps.pos.services.report import build_report, build_report_sheet, format_money, report_subtitle, report_summary

from .helpers import FakeProvider, make_reconciliation, make_sale, make_transfer

# 2026-03-14 23:30 in Guatemala; the UTC date is already the 15th.
RECONCILED_AT = datetime(2026, 3, 15, 5, 30, tzinfo=dt_tz.utc)


@override_settings(POS_BUSINESS_TIMEZONE="America/Guatemala", POS_CURRENCY_SYMBOL="Q")
class BuildReportTests(SimpleTestCase):
    def setUp(self):
        self.record = make_reconciliation(
            7,
            RECONCILED_AT,
            transfers=(make_transfer("100"), make_transfer("50", transfer_id="D-2")),
        )
        self.sales = [
            make_sale(1, datetime(2026, 3, 14, 16, 0, tzinfo=dt_tz.utc), "999.99"),
            make_sale(2, datetime(2026, 3, 14, 17, 0, tzinfo=dt_tz.utc), "1.00", payment_method=PaymentMethod.CARD),
        ]
        self.provider = FakeProvider(sales=self.sales)

    def test_totals_pass_through_from_the_stored_record(self):
        report = build_report(self.record, provider=self.provider)

        self.assertEqual(report.transfer_total, Decimal("150.00"))
        self.assertEqual(report.difference, Decimal("-1.50"))
        self.assertEqual(report.total_sales, Decimal("500.00"))
        self.assertEqual(report.cash_sales, Decimal("500.00"))
        self.assertEqual(report.expected_cash, Decimal("500.00"))
        self.assertEqual(report.counted_cash, Decimal("498.50"))
        # Sales are listed, never summed into the totals.
        self.assertEqual(len(report.sales), 2)

    def test_fetches_confirmed_sales_for_the_local_day_and_cashier(self):
        build_report(self.record, provider=self.provider)
        self.assertEqual(
            self.provider.calls,
            [("list_sales", SaleStatus.CONFIRMED, date(2026, 3, 14), date(2026, 3, 14), 3)],
        )

    def test_record_without_cashier_is_not_scoped(self):
        record = make_reconciliation(8, RECONCILED_AT, cashier_id=None)
        build_report(record, provider=self.provider)
        self.assertIsNone(self.provider.calls[-1][-1])

    def test_service_drops_sales_the_provider_should_have_filtered(self):
        provider = FakeProvider(
            sales=self.sales
            + [
                make_sale(3, datetime(2026, 1, 2, 16, 0, tzinfo=dt_tz.utc)),
                make_sale(4, datetime(2026, 3, 14, 18, 0, tzinfo=dt_tz.utc), cashier_id=9),
                make_sale(5, datetime(2026, 3, 14, 18, 0, tzinfo=dt_tz.utc), status=SaleStatus.PENDING),
                make_sale(6, datetime(2026, 3, 15, 5, 0, tzinfo=dt_tz.utc)),
                make_sale(7, datetime(2026, 3, 15, 7, 0, tzinfo=dt_tz.utc)),
            ]
        )
        provider.ignore_status = True

        report = build_report(self.record, provider=provider)
        self.assertEqual([sale.sale_id for sale in report.sales], [1, 2, 6])

        unscoped = build_report(make_reconciliation(8, RECONCILED_AT, cashier_id=None), provider=provider)
        self.assertEqual([sale.sale_id for sale in unscoped.sales], [1, 2, 4, 6])

    def test_sales_fetch_failure_produces_no_report(self):
        self.provider.fail_fetch = True
        with self.assertRaises(FetchError):
            build_report(self.record, provider=self.provider)

    def test_sheet_sections_and_formatting(self):
        report = build_report(self.record, provider=self.provider)
        sections = build_report_sheet(report)

        self.assertEqual(
            [section.title for section in sections],
            ["Información del Arqueo", "Conteo Físico", "Resumen de Ventas", "Transferencias", "Ventas Detalladas"],
        )
        self.assertEqual(report_subtitle(report), "Arqueo #7 - 14/03/2026")
        info = dict(sections[0].rows)
        self.assertEqual(info["Diferencia"], "Q-1.50")
        self.assertEqual(info["Observaciones"], "Ninguna")
        counts = dict(sections[1].rows)
        self.assertEqual(counts["Billetes Q100"], "4 x Q100 = Q400.00")
        self.assertEqual(counts["Monedas Q0.50"], "1 x Q0.50 = Q0.50")
        self.assertEqual(counts["Monedas Q0.25"], "0 x Q0.25 = Q0.00")
        summary = dict(sections[2].rows)
        self.assertEqual(summary["Transferencias"], "Q150.00")
        self.assertEqual(summary["Efectivo Contado"], "Q498.50")
        self.assertTrue(sections[3].is_table)
        self.assertEqual(len(sections[3].rows), 2)
        self.assertEqual(sections[4].rows[0][-1], "Q999.99")
        self.assertEqual(sections[4].rows[1][3], "Tarjeta")

    def test_transfers_section_is_omitted_when_there_are_none(self):
        record = make_reconciliation(9, RECONCILED_AT)
        sections = build_report_sheet(build_report(record, provider=self.provider))
        self.assertNotIn("Transferencias", [section.title for section in sections])

    def test_summary_uses_plain_numbers(self):
        summary = report_summary(build_report(self.record, provider=self.provider))
        self.assertEqual(summary["transferTotal"], 150.0)
        self.assertEqual(summary["ventasTotales"], 500.0)
        self.assertEqual(summary["ventasEfectivo"], 500.0)
        self.assertEqual(summary["diferencia"], -1.5)

    def test_format_money(self):
        self.assertEqual(format_money(Decimal("3")), "Q3.00")
        self.assertEqual(format_money(None), "Q0.00")
