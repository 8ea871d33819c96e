from __future__ import annotations

import json
import logging

from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .forms import (
    CloseSessionForm,
    OpenSessionForm,
    ReconciliationCountForm,
    ReconciliationFilterForm,
    SalesHistoryFilterForm,
)
from .payloads import (
    PAYMENT_METHOD_TO_WIRE,
    encode_list,
    encode_reconciliation,
    encode_sale,
    encode_session,
    money_to_wire,
)
from .services.cash_session import (
    CashSessionError,
    close_session,
    get_session_state,
    open_session,
    record_reconciliation,
)
from .services.pdf_export import ExportError, export_report_pdf
from .services.provider import DeleteError, FetchError
from .services.reconciliations import delete_reconciliation, get_reconciliation, list_reconciliations
from .services.report import REPORT_TITLE, build_report, build_report_sheet, report_subtitle, report_summary
from .services.sales_history import delete_sale, export_sales_csv, get_sale_detail, query_sales_history

logger = logging.getLogger(__name__)

MSG_INVALID_FILTERS = "Filtros no válidos."
MSG_INVALID_DATA = "Datos no válidos."
MSG_LOAD_RECONCILIATIONS_FAILED = "Error al cargar arqueos de caja"
MSG_LOAD_REPORT_FAILED = "Error al cargar datos del reporte"
MSG_RECONCILIATION_NOT_FOUND = "Arqueo no encontrado"
MSG_RECONCILIATION_DELETED = "Arqueo eliminado"
MSG_DELETE_RECONCILIATION_FAILED = "Error eliminando arqueo"
MSG_LOAD_SALES_FAILED = "Error cargando ventas"
MSG_SALE_NOT_FOUND = "Venta no encontrada"
MSG_LOAD_SALE_FAILED = "Error cargando detalle de venta"
MSG_SALE_DELETED = "Venta eliminada"
MSG_DELETE_SALE_FAILED = "Error eliminando venta"
MSG_SALE_NOT_DELETABLE = "Solo se pueden eliminar ventas pendientes"
MSG_PDF_FAILED = "Error generando PDF"


def _error(message: str, status: int, **extra) -> JsonResponse:
    payload = {"success": False, "message": message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def _form_error(form, message: str = MSG_INVALID_DATA) -> JsonResponse:
    return _error(message, 400, errors=form.errors.get_json_data())


def _request_data(request) -> dict:
    if request.content_type == "application/json":
        if not request.body:
            return {}
        try:
            body = json.loads(request.body)
        except (TypeError, ValueError):
            return {}
        return body if isinstance(body, dict) else {}
    return request.POST


def _generation(form) -> int | None:
    return form.cleaned_data.get("generation")


@require_GET
def reconciliation_list(request):
    form = ReconciliationFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form, MSG_INVALID_FILTERS)
    generation = _generation(form)
    try:
        page = list_reconciliations(form.to_state())
    except FetchError:
        logger.exception("Failed to load reconciliations")
        return _error(MSG_LOAD_RECONCILIATIONS_FAILED, 502, data=[], generation=generation)
    return JsonResponse(
        {
            "success": True,
            "data": encode_list(page.items, encode_reconciliation),
            "pagination": page.as_dict(),
            "generation": generation,
        }
    )


@require_POST
def reconciliation_create(request):
    form = ReconciliationCountForm(_request_data(request))
    if not form.is_valid():
        return _form_error(form)
    cleaned = form.cleaned_data
    try:
        record = record_reconciliation(
            cleaned.get("id_cajero"),
            cleaned["conteo"],
            cleaned.get("transferencias") or [],
            notes=cleaned.get("observaciones") or "",
        )
    except CashSessionError as exc:
        logger.warning("Reconciliation rejected: %s", exc)
        return _error(str(exc), exc.status_code)
    return JsonResponse({"success": True, "data": encode_reconciliation(record)}, status=201)


@require_GET
def reconciliation_detail(request, reconciliation_id: int):
    try:
        record = get_reconciliation(reconciliation_id)
    except FetchError as exc:
        if exc.not_found:
            return _error(MSG_RECONCILIATION_NOT_FOUND, 404, data=None)
        logger.exception("Failed to load reconciliation %s", reconciliation_id)
        return _error(MSG_LOAD_RECONCILIATIONS_FAILED, 502, data=None)
    return JsonResponse({"success": True, "data": encode_reconciliation(record)})


@require_http_methods(["POST", "DELETE"])
def reconciliation_delete(request, reconciliation_id: int):
    try:
        delete_reconciliation(reconciliation_id)
    except DeleteError as exc:
        logger.warning("Failed to delete reconciliation %s: %s", reconciliation_id, exc)
        return _error(MSG_DELETE_RECONCILIATION_FAILED, 404 if exc.not_found else 502)
    return JsonResponse({"success": True, "message": MSG_RECONCILIATION_DELETED})


def _load_report(reconciliation_id: int):
    record = get_reconciliation(reconciliation_id)
    return build_report(record)


@require_GET
def reconciliation_report(request, reconciliation_id: int):
    try:
        report = _load_report(reconciliation_id)
    except FetchError as exc:
        if exc.not_found:
            return _error(MSG_RECONCILIATION_NOT_FOUND, 404, data=None)
        logger.exception("Failed to build report for reconciliation %s", reconciliation_id)
        return _error(MSG_LOAD_REPORT_FAILED, 502, data=None)
    data = report_summary(report)
    data["arqueo"] = encode_reconciliation(report.record)
    data["ventas"] = encode_list(report.sales, encode_sale)
    data["transferencias"] = data["arqueo"]["transferencias"]
    data["titulo"] = REPORT_TITLE
    data["subtitulo"] = report_subtitle(report)
    data["secciones"] = [
        {"titulo": section.title, "columnas": list(section.columns), "filas": [list(row) for row in section.rows]}
        for section in build_report_sheet(report)
    ]
    return JsonResponse({"success": True, "data": data})


@require_GET
def reconciliation_report_pdf(request, reconciliation_id: int):
    try:
        report = _load_report(reconciliation_id)
    except FetchError as exc:
        if exc.not_found:
            return _error(MSG_RECONCILIATION_NOT_FOUND, 404, data=None)
        logger.exception("Failed to build report for reconciliation %s", reconciliation_id)
        return _error(MSG_LOAD_REPORT_FAILED, 502, data=None)
    try:
        document = export_report_pdf(report)
    except ExportError:
        return _error(MSG_PDF_FAILED, 500)
    response = HttpResponse(document.content, content_type=document.content_type)
    response["Content-Disposition"] = f'attachment; filename="{document.filename}"'
    return response


@require_GET
def sales_history(request):
    form = SalesHistoryFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form, MSG_INVALID_FILTERS)
    generation = _generation(form)
    try:
        result = query_sales_history(form.to_state())
    except FetchError:
        logger.exception("Failed to load sales history")
        return _error(MSG_LOAD_SALES_FAILED, 502, data=[], generation=generation)
    return JsonResponse(
        {
            "success": True,
            "data": encode_list(result.page.items, encode_sale),
            "pagination": result.page.as_dict(),
            "totales": {
                "total": money_to_wire(result.total_amount),
                "por_metodo": {
                    PAYMENT_METHOD_TO_WIRE[method]: money_to_wire(amount)
                    for method, amount in result.method_totals.items()
                },
            },
            "generation": generation,
        }
    )


@require_GET
def sales_history_csv(request):
    form = SalesHistoryFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form, MSG_INVALID_FILTERS)
    try:
        result = query_sales_history(form.to_state())
    except FetchError:
        logger.exception("Failed to export sales history")
        return _error(MSG_LOAD_SALES_FAILED, 502)
    response = HttpResponse(export_sales_csv(result.sales), content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = 'attachment; filename="historial-ventas.csv"'
    return response


@require_GET
def sale_detail(request, sale_id: int):
    try:
        sale = get_sale_detail(sale_id)
    except FetchError as exc:
        if exc.not_found:
            return _error(MSG_SALE_NOT_FOUND, 404, data=None)
        logger.exception("Failed to load sale %s", sale_id)
        return _error(MSG_LOAD_SALE_FAILED, 502, data=None)
    return JsonResponse({"success": True, "data": encode_sale(sale, include_lines=True)})


@require_http_methods(["POST", "DELETE"])
def sale_delete(request, sale_id: int):
    try:
        delete_sale(sale_id)
    except DeleteError as exc:
        logger.warning("Failed to delete sale %s: %s", sale_id, exc)
        if exc.refused:
            return _error(MSG_SALE_NOT_DELETABLE, 409)
        return _error(MSG_DELETE_SALE_FAILED, 404 if exc.not_found else 502)
    return JsonResponse({"success": True, "message": MSG_SALE_DELETED})


@require_GET
def cash_session_state(request):
    state = get_session_state()
    data = {"abierta": state.open, "sesion": encode_session(state.session)}
    if state.expired:
        data["expirada"] = True
    return JsonResponse({"success": True, "data": data})


@require_POST
def cash_session_open(request):
    form = OpenSessionForm(_request_data(request))
    if not form.is_valid():
        return _form_error(form)
    try:
        session = open_session(form.cleaned_data.get("id_cajero"), form.cleaned_data["monto_inicial"])
    except CashSessionError as exc:
        logger.warning("Cash session open rejected: %s", exc)
        return _error(str(exc), exc.status_code)
    return JsonResponse({"success": True, "data": encode_session(session)}, status=201)


@require_POST
def cash_session_close(request):
    form = CloseSessionForm(_request_data(request))
    if not form.is_valid():
        return _form_error(form)
    cleaned = form.cleaned_data
    try:
        session = close_session(
            cleaned.get("id_cajero"),
            closing_amount=cleaned.get("monto_cierre"),
            notes=cleaned.get("observaciones") or "",
        )
    except CashSessionError as exc:
        logger.warning("Cash session close rejected: %s", exc)
        return _error(str(exc), exc.status_code)
    return JsonResponse({"success": True, "data": encode_session(session)})
