"""Reconciliation (arqueo) report: aggregation and the fixed-format sheet.

The expected, counted and difference figures always come from the stored
reconciliation. The same-day sales are fetched only to list them; they are never
used to recompute totals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings

from ..business_date import to_business_date, to_business_datetime
from ..payloads import PAYMENT_METHOD_TO_WIRE, RECONCILIATION_STATUS_TO_WIRE
from ..records import (
    ReconciliationRecord,
    SaleRecord,
    SaleStatus,
    TransferRecord,
    all_denominations,
    to_money,
)
from .provider import DataProvider, get_data_provider

logger = logging.getLogger(__name__)

REPORT_TITLE = "REPORTE DE ARQUEO DE CAJA"
NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class ArqueoReport:
    record: ReconciliationRecord
    sales: tuple[SaleRecord, ...]
    transfers: tuple[TransferRecord, ...]
    total_sales: Decimal
    cash_sales: Decimal
    transfer_total: Decimal
    expected_cash: Decimal
    counted_cash: Decimal
    difference: Decimal


@dataclass(frozen=True)
class ReportSection:
    """One titled block of the sheet: label/value rows, or a table when ``columns`` is set."""

    title: str
    rows: tuple[tuple[str, ...], ...] = field(default_factory=tuple)
    columns: tuple[str, ...] = ()

    @property
    def is_table(self) -> bool:
        return bool(self.columns)


def in_report_scope(sale: SaleRecord, day: date, cashier_id: int | None) -> bool:
    """Confirmed, sold on ``day`` in business time, and by ``cashier_id`` when one is given."""
    if sale.status != SaleStatus.CONFIRMED:
        return False
    if cashier_id is not None and sale.cashier_id != cashier_id:
        return False
    return to_business_date(sale.sold_at) == day


def build_report(record: ReconciliationRecord, provider: DataProvider | None = None) -> ArqueoReport:
    """Aggregate one reconciliation. A failed sales fetch raises FetchError; no partial report."""
    provider = provider or get_data_provider()
    day = to_business_date(record.reconciled_at)
    fetched = provider.list_sales(
        status=SaleStatus.CONFIRMED,
        date_from=day,
        date_to=day,
        cashier_id=record.cashier_id,
    )
    sales = [sale for sale in fetched if in_report_scope(sale, day, record.cashier_id)]
    transfers = tuple(record.transfers)
    transfer_total = to_money(sum((transfer.amount for transfer in transfers), Decimal("0")))
    logger.debug(
        "Built report for reconciliation %s: %s sales on %s, %s transfers",
        record.reconciliation_id,
        len(sales),
        day,
        len(transfers),
    )
    return ArqueoReport(
        record=record,
        sales=tuple(sales),
        transfers=transfers,
        total_sales=record.system_total,
        cash_sales=record.system_total,
        transfer_total=transfer_total,
        expected_cash=record.system_total,
        counted_cash=record.counted_total,
        difference=record.difference,
    )


def format_money(value: Decimal | None) -> str:
    symbol = getattr(settings, "POS_CURRENCY_SYMBOL", "Q")
    return f"{symbol}{to_money(value):.2f}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return to_business_datetime(value).strftime("%d/%m/%Y")


def format_datetime(value: datetime | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return to_business_datetime(value).strftime("%d/%m/%Y %H:%M")


def report_subtitle(report: ArqueoReport) -> str:
    return f"Arqueo #{report.record.reconciliation_id} - {format_date(report.record.reconciled_at)}"


def _denomination_value_label(value: Decimal) -> str:
    symbol = getattr(settings, "POS_CURRENCY_SYMBOL", "Q")
    if value == value.to_integral():
        return f"{symbol}{int(value)}"
    return f"{symbol}{value:.2f}"


def build_report_sheet(report: ArqueoReport) -> list[ReportSection]:
    record = report.record
    sections = [
        ReportSection(
            title="Información del Arqueo",
            rows=(
                ("ID Arqueo", str(record.reconciliation_id)),
                ("ID Cajero", str(record.cashier_id) if record.cashier_id else NOT_AVAILABLE),
                ("Fecha Arqueo", format_date(record.reconciled_at)),
                ("Fecha Apertura", format_datetime(record.opened_at)),
                ("Fecha Cierre", format_datetime(record.closed_at)),
                ("Estado", RECONCILIATION_STATUS_TO_WIRE[record.status]),
                ("Total Sistema", format_money(record.system_total)),
                ("Total Contado", format_money(record.counted_total)),
                ("Diferencia", format_money(record.difference)),
                ("Observaciones", record.notes or "Ninguna"),
            ),
        ),
    ]

    count_rows = []
    for value in all_denominations():
        item = record.denomination(value)
        count_rows.append(
            (item.label, f"{item.count} x {_denomination_value_label(value)} = {format_money(item.subtotal)}")
        )
    sections.append(ReportSection(title="Conteo Físico", rows=tuple(count_rows)))

    sections.append(
        ReportSection(
            title="Resumen de Ventas",
            rows=(
                ("Total Ventas", format_money(report.total_sales)),
                ("Ventas en Efectivo", format_money(report.cash_sales)),
                ("Transferencias", format_money(report.transfer_total)),
                ("Efectivo Esperado", format_money(report.expected_cash)),
                ("Efectivo Contado", format_money(report.counted_cash)),
                ("Diferencia", format_money(report.difference)),
            ),
        )
    )

    if report.transfers:
        sections.append(
            ReportSection(
                title="Transferencias",
                columns=("ID Depósito", "Cliente", "Monto", "Tipo Pago", "Referencia", "Banco"),
                rows=tuple(
                    (
                        transfer.transfer_id or "",
                        transfer.customer_name or NOT_AVAILABLE,
                        format_money(transfer.amount),
                        transfer.payment_method,
                        transfer.reference_number or NOT_AVAILABLE,
                        transfer.bank_name or NOT_AVAILABLE,
                    )
                    for transfer in report.transfers
                ),
            )
        )

    sections.append(
        ReportSection(
            title="Ventas Detalladas",
            columns=("ID Venta", "Fecha", "Cliente", "Tipo Pago", "Total"),
            rows=tuple(
                (
                    str(sale.sale_id),
                    format_date(sale.sold_at),
                    sale.customer_name or NOT_AVAILABLE,
                    PAYMENT_METHOD_TO_WIRE[sale.payment_method],
                    format_money(sale.total_amount),
                )
                for sale in report.sales
            ),
        )
    )
    return sections


def report_summary(report: ArqueoReport) -> dict:
    """Plain-number summary of a report, as served by the API and written next to the PDF."""
    return {
        "id_arqueo": report.record.reconciliation_id,
        "id_cajero": report.record.cashier_id,
        "fecha_arqueo": to_business_datetime(report.record.reconciled_at).isoformat(),
        "ventasTotales": float(report.total_sales),
        "ventasEfectivo": float(report.cash_sales),
        "transferTotal": float(report.transfer_total),
        "efectivoEsperado": float(report.expected_cash),
        "efectivoContado": float(report.counted_cash),
        "diferencia": float(report.difference),
        "cantidadVentas": len(report.sales),
        "cantidadTransferencias": len(report.transfers),
    }
