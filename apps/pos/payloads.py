"""Wire format of the POS REST API.

Field names and enumerations are the Spanish ones the SPA and the remote backend
already speak (``id_arqueo``, ``total_sistema``, ``tipo_pago`` = ``"Cash"`` ...).
Decoding is used by the HTTP provider, encoding by the JSON views, so both sides of
the portal agree on a single representation. Money goes out as floats with two
decimals and comes back in through ``to_money``.
"""

from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from typing import Any, Iterable

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .business_date import get_business_timezone, to_business_datetime
from .records import (
    CashSessionRecord,
    DenominationCount,
    DenominationKind,
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

PAYMENT_METHOD_TO_WIRE = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Tarjeta",
    PaymentMethod.TRANSFER: "Transferencia",
    PaymentMethod.VOUCHER: "Canje",
    PaymentMethod.COUPON: "Cupon",
}
PAYMENT_METHOD_FROM_WIRE = {wire.lower(): method for method, wire in PAYMENT_METHOD_TO_WIRE.items()}
# Legacy card terminal label and accented spellings seen in older rows.
PAYMENT_METHOD_FROM_WIRE.update(
    {
        "paggo": PaymentMethod.CARD,
        "efectivo": PaymentMethod.CASH,
        "cupón": PaymentMethod.COUPON,
    }
)

SALE_STATUS_TO_WIRE = {
    SaleStatus.PENDING: "pendiente",
    SaleStatus.CONFIRMED: "confirmada",
    SaleStatus.COMPLETED: "completada",
    SaleStatus.CANCELLED: "cancelada",
}
SALE_STATUS_FROM_WIRE = {wire: status for status, wire in SALE_STATUS_TO_WIRE.items()}

RECONCILIATION_STATUS_TO_WIRE = {
    ReconciliationStatus.OPEN: "abierto",
    ReconciliationStatus.CLOSED: "cerrado",
}
RECONCILIATION_STATUS_FROM_WIRE = {
    "abierto": ReconciliationStatus.OPEN,
    "abierta": ReconciliationStatus.OPEN,
    "cerrado": ReconciliationStatus.CLOSED,
    "cerrada": ReconciliationStatus.CLOSED,
}

SESSION_STATUS_TO_WIRE = {
    "open": "abierta",
    "closed": "cerrada",
    "expired": "expirada",
}


class PayloadError(ValueError):
    """Raised when a remote payload cannot be turned into a record."""


def unwrap_envelope(body: Any) -> Any:
    """Return ``data`` from a ``{"success": ..., "data": ...}`` body."""
    if not isinstance(body, dict):
        raise PayloadError("Response body is not a JSON object.")
    if body.get("success") is False:
        raise PayloadError(str(body.get("message") or "Remote API reported failure."))
    if "data" not in body:
        raise PayloadError("Response body has no 'data' field.")
    return body["data"]


def money_to_wire(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(to_money(value))


def datetime_to_wire(value: datetime | None) -> str | None:
    if value is None:
        return None
    return to_business_datetime(value).isoformat()


def parse_wire_datetime(raw: Any) -> datetime | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        value = raw
    else:
        text = str(raw).strip()
        try:
            value = parse_datetime(text)
            day = parse_date(text) if value is None else None
        except ValueError as exc:
            # Well formed but out of range, e.g. "2026-02-30".
            raise PayloadError(f"Invalid datetime: {raw!r}") from exc
        if value is None:
            if day is None:
                raise PayloadError(f"Invalid datetime: {raw!r}")
            value = datetime.combine(day, time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value, get_business_timezone())
    return value


def _required_datetime(payload: dict, key: str) -> datetime:
    value = parse_wire_datetime(payload.get(key))
    if value is None:
        raise PayloadError(f"Missing '{key}'.")
    return value


def _optional_int(raw: Any) -> int | None:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        raise PayloadError(f"Invalid integer: {raw!r}") from exc


def _money(raw: Any) -> Decimal:
    try:
        value = to_money(raw)
    except (ArithmeticError, ValueError) as exc:
        raise PayloadError(f"Invalid amount: {raw!r}") from exc
    if not value.is_finite():
        raise PayloadError(f"Invalid amount: {raw!r}")
    return value


def _object(payload: dict, key: str) -> dict:
    """Nested object field; missing or null reads as empty."""
    raw = payload.get(key)
    if raw in (None, ""):
        return {}
    if not isinstance(raw, dict):
        raise PayloadError(f"'{key}' is not an object.")
    return raw


def _objects(payload: dict, key: str) -> list[dict]:
    raw = payload.get(key)
    if raw in (None, ""):
        return []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise PayloadError(f"'{key}' is not a list of objects.")
    return raw


def denomination_wire_suffix(key: str) -> str:
    """Suffix of the wire field names: "0.50" becomes "050" as in ``monedas_050``."""
    return key.replace(".", "")


def _denomination_fields(value: Decimal) -> tuple[str, str]:
    blank = DenominationCount(value=value, kind=denomination_kind(value), count=0, subtotal=Decimal("0.00"))
    prefix = "billetes" if blank.kind == DenominationKind.BILL else "monedas"
    suffix = denomination_wire_suffix(blank.key)
    return f"{prefix}_{suffix}", f"total_{prefix}_{suffix}"


def parse_payment_method(raw: Any) -> PaymentMethod:
    method = PAYMENT_METHOD_FROM_WIRE.get(str(raw or "").strip().lower())
    if method is None:
        try:
            return PaymentMethod(str(raw))
        except ValueError as exc:
            raise PayloadError(f"Unknown payment method: {raw!r}") from exc
    return method


def parse_sale_status(raw: Any) -> SaleStatus:
    status = SALE_STATUS_FROM_WIRE.get(str(raw or "").strip().lower())
    if status is None:
        try:
            return SaleStatus(str(raw))
        except ValueError as exc:
            raise PayloadError(f"Unknown sale status: {raw!r}") from exc
    return status


def decode_transfer(payload: dict) -> TransferRecord:
    if not isinstance(payload, dict):
        raise PayloadError("Transfer payload is not an object.")
    transfer_id = payload.get("id_deposito")
    return TransferRecord(
        transfer_id=str(transfer_id) if transfer_id not in (None, "") else None,
        customer_name=str(payload.get("nombre_cliente") or ""),
        amount=_money(payload.get("monto")),
        payment_method=str(payload.get("tipo_pago") or ""),
        reference_number=str(payload.get("numero_referencia") or ""),
        bank_name=str(payload.get("nombre_banco") or ""),
    )


def encode_transfer(transfer: TransferRecord) -> dict:
    return {
        "id_deposito": transfer.transfer_id,
        "nombre_cliente": transfer.customer_name,
        "monto": money_to_wire(transfer.amount),
        "tipo_pago": transfer.payment_method,
        "numero_referencia": transfer.reference_number,
        "nombre_banco": transfer.bank_name,
    }


def decode_reconciliation(payload: dict) -> ReconciliationRecord:
    if not isinstance(payload, dict):
        raise PayloadError("Reconciliation payload is not an object.")
    reconciliation_id = _optional_int(payload.get("id_arqueo"))
    if reconciliation_id is None:
        raise PayloadError("Missing 'id_arqueo'.")

    denominations = []
    for value in all_denominations():
        count_field, total_field = _denomination_fields(value)
        count = _optional_int(payload.get(count_field)) or 0
        subtotal = _money(payload.get(total_field))
        denominations.append(
            DenominationCount(value=value, kind=denomination_kind(value), count=count, subtotal=subtotal)
        )

    raw_status = str(payload.get("estado") or "cerrado").strip().lower()
    status = RECONCILIATION_STATUS_FROM_WIRE.get(raw_status)
    if status is None:
        raise PayloadError(f"Unknown reconciliation status: {raw_status!r}")

    return ReconciliationRecord(
        reconciliation_id=reconciliation_id,
        cashier_id=_optional_int(payload.get("id_cajero")),
        reconciled_at=_required_datetime(payload, "fecha_arqueo"),
        opened_at=parse_wire_datetime(payload.get("fecha_apertura")),
        closed_at=parse_wire_datetime(payload.get("fecha_cierre")),
        system_total=_money(payload.get("total_sistema")),
        counted_total=_money(payload.get("total_contado")),
        difference=_money(payload.get("diferencia")),
        denominations=tuple(denominations),
        status=status,
        notes=str(payload.get("observaciones") or ""),
        transfers=tuple(decode_transfer(item) for item in _objects(payload, "transferencias")),
    )


def encode_reconciliation(record: ReconciliationRecord) -> dict:
    data = {
        "id_arqueo": record.reconciliation_id,
        "id_cajero": record.cashier_id,
        "fecha_arqueo": datetime_to_wire(record.reconciled_at),
        "fecha_apertura": datetime_to_wire(record.opened_at),
        "fecha_cierre": datetime_to_wire(record.closed_at),
        "total_sistema": money_to_wire(record.system_total),
        "total_contado": money_to_wire(record.counted_total),
        "diferencia": money_to_wire(record.difference),
    }
    for value in all_denominations():
        item = record.denomination(value)
        count_field, total_field = _denomination_fields(value)
        data[count_field] = item.count
        data[total_field] = money_to_wire(item.subtotal)
    data["estado"] = RECONCILIATION_STATUS_TO_WIRE[record.status]
    data["observaciones"] = record.notes
    data["transferencias"] = [encode_transfer(transfer) for transfer in record.transfers]
    return data


def decode_sale_line(payload: dict) -> SaleLineItem:
    if not isinstance(payload, dict):
        raise PayloadError("Sale line payload is not an object.")
    product = _object(payload, "producto")
    variant = _object(payload, "variante")
    return SaleLineItem(
        line_id=_optional_int(payload.get("id_detalle")),
        product_name=str(product.get("nombre") or product.get("nombre_producto") or ""),
        variant_name=str(variant.get("nombre_variante") or ""),
        quantity=_optional_int(payload.get("cantidad")) or 0,
        unit_price=_money(payload.get("precio_unitario")),
        discount=_money(payload.get("descuento")),
        subtotal=_money(payload.get("subtotal")),
    )


def encode_sale_line(line: SaleLineItem) -> dict:
    return {
        "id_detalle": line.line_id,
        "cantidad": line.quantity,
        "precio_unitario": money_to_wire(line.unit_price),
        "descuento": money_to_wire(line.discount),
        "subtotal": money_to_wire(line.subtotal),
        "producto": {"nombre": line.product_name},
        "variante": {"nombre_variante": line.variant_name} if line.variant_name else None,
    }


def decode_sale(payload: dict) -> SaleRecord:
    if not isinstance(payload, dict):
        raise PayloadError("Sale payload is not an object.")
    sale_id = _optional_int(payload.get("id_venta"))
    if sale_id is None:
        raise PayloadError("Missing 'id_venta'.")
    customer = _object(payload, "cliente")
    summary = payload.get("productos_resumen") or payload.get("productos") or ""
    return SaleRecord(
        sale_id=sale_id,
        sold_at=_required_datetime(payload, "fecha_venta"),
        payment_method=parse_payment_method(payload.get("tipo_pago")),
        status=parse_sale_status(payload.get("estado")),
        total_amount=_money(payload.get("total_venta")),
        customer_id=_optional_int(payload.get("id_cliente")),
        customer_name=str(customer.get("nombre") or ""),
        cashier_id=_optional_int(payload.get("id_cajero")),
        products_summary=str(summary),
        lines=tuple(decode_sale_line(item) for item in _objects(payload, "detalles")),
    )


def encode_sale(sale: SaleRecord, *, include_lines: bool = False) -> dict:
    data = {
        "id_venta": sale.sale_id,
        "fecha_venta": datetime_to_wire(sale.sold_at),
        "id_cliente": sale.customer_id,
        "cliente": {"nombre": sale.customer_name} if sale.customer_name else None,
        "estado": SALE_STATUS_TO_WIRE[sale.status],
        "tipo_pago": PAYMENT_METHOD_TO_WIRE[sale.payment_method],
        "total_venta": money_to_wire(sale.total_amount),
        "id_cajero": sale.cashier_id,
        "productos_resumen": sale.products_summary,
    }
    if include_lines:
        data["detalles"] = [encode_sale_line(line) for line in sale.lines]
    return data


def encode_session(session: CashSessionRecord | None) -> dict | None:
    if session is None:
        return None
    return {
        "id_sesion": session.session_id,
        "id_cajero_apertura": session.opened_by,
        "id_cajero_cierre": session.closed_by,
        "fecha_apertura": datetime_to_wire(session.opened_at),
        "fecha_cierre": datetime_to_wire(session.closed_at),
        "monto_inicial": money_to_wire(session.opening_amount),
        "monto_cierre": money_to_wire(session.closing_amount),
        "observaciones": session.notes or None,
        "estado": SESSION_STATUS_TO_WIRE.get(session.status, session.status),
        "auto_cierre": session.auto_closed,
    }


def decode_list(items: Any, decoder) -> list:
    if not isinstance(items, list):
        raise PayloadError("Expected a list in 'data'.")
    return [decoder(item) for item in items]


def encode_list(records: Iterable, encoder) -> list[dict]:
    return [encoder(record) for record in records]
