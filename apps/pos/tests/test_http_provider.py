from __future__ import annotations

from datetime import date
from unittest import mock

import requests
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from apps.pos.records import PaymentMethod, SaleStatus
from apps.pos.services.provider import (
    DeleteError,
    FetchError,
    HttpDataProvider,
    OrmDataProvider,
    get_data_provider,
)


def _response(status_code=200, body=None, content=b"x"):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.content = content
    resp.json.return_value = body
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} error")
        error.response = resp
        resp.raise_for_status.side_effect = error
    else:
        resp.raise_for_status.return_value = None
    return resp


class HttpDataProviderTests(SimpleTestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.session.headers = {}
        self.provider = HttpDataProvider(
            "http://pos.local/api/",
            token="secret",
            timeout=4.0,
            session=self.session,
        )

    def test_sets_auth_header_and_strips_base_url(self):
        self.assertEqual(self.session.headers["Authorization"], "Bearer secret")
        self.assertEqual(self.provider.base_url, "http://pos.local/api")

    def test_list_reconciliations_sends_date_params(self):
        self.session.request.return_value = _response(
            body={
                "success": True,
                "data": [{"id_arqueo": 1, "fecha_arqueo": "2026-03-14T10:00:00Z", "total_sistema": 10}],
            }
        )

        records = self.provider.list_reconciliations(date(2026, 3, 1), date(2026, 3, 14))

        self.assertEqual(records[0].reconciliation_id, 1)
        self.session.request.assert_called_once_with(
            "GET",
            "http://pos.local/api/caja/arqueos",
            params={"fechaInicio": "2026-03-01", "fechaFin": "2026-03-14"},
            timeout=4.0,
        )

    def test_list_sales_uses_day_bounds_status_and_cashier(self):
        self.session.request.return_value = _response(
            body={
                "success": True,
                "data": [
                    {
                        "id_venta": 5,
                        "fecha_venta": "2026-03-14T10:00:00Z",
                        "tipo_pago": "Cash",
                        "estado": "confirmada",
                        "total_venta": 10,
                    }
                ],
            }
        )

        sales = self.provider.list_sales(SaleStatus.CONFIRMED, date(2026, 3, 14), date(2026, 3, 14), 3)

        self.assertEqual(sales[0].payment_method, PaymentMethod.CASH)
        _, kwargs = self.session.request.call_args
        self.assertEqual(
            kwargs["params"],
            {
                "estado": "confirmada",
                "fechaInicio": "2026-03-14 00:00:00",
                "fechaFin": "2026-03-14 23:59:59",
                "idCajero": "3",
            },
        )

    def test_sale_detail_requests_full_payload(self):
        self.session.request.return_value = _response(
            body={
                "success": True,
                "data": {
                    "id_venta": 5,
                    "fecha_venta": "2026-03-14T10:00:00Z",
                    "tipo_pago": "Tarjeta",
                    "estado": "pendiente",
                    "total_venta": 10,
                    "detalles": [],
                },
            }
        )
        self.provider.get_sale_detail(5)
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("GET", "http://pos.local/api/ventas/5"))
        self.assertEqual(kwargs["params"], {"completa": "true"})

    def test_timeout_becomes_fetch_error(self):
        self.session.request.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(FetchError):
            self.provider.list_reconciliations()

    def test_connection_error_becomes_fetch_error(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(FetchError) as ctx:
            self.provider.list_sales()
        self.assertFalse(ctx.exception.not_found)

    def test_envelope_failure_and_invalid_json(self):
        self.session.request.return_value = _response(body={"success": False, "message": "db down"})
        with self.assertRaises(FetchError):
            self.provider.list_reconciliations()

        bad = _response()
        bad.json.side_effect = ValueError("no json")
        self.session.request.return_value = bad
        with self.assertRaises(FetchError):
            self.provider.list_reconciliations()

    def test_malformed_record_becomes_fetch_error(self):
        self.session.request.return_value = _response(body={"success": True, "data": [{"id_arqueo": 1}]})
        with self.assertRaises(FetchError):
            self.provider.list_reconciliations()

    def test_non_object_nested_values_become_fetch_errors(self):
        self.session.request.return_value = _response(
            body={
                "success": True,
                "data": [{"id_arqueo": 1, "fecha_arqueo": "2026-03-14T10:00:00Z", "transferencias": ["x"]}],
            }
        )
        with self.assertRaises(FetchError):
            self.provider.list_reconciliations()

        self.session.request.return_value = _response(
            body={
                "success": True,
                "data": [
                    {
                        "id_venta": 5,
                        "fecha_venta": "2026-03-14T10:00:00Z",
                        "tipo_pago": "Cash",
                        "estado": "confirmada",
                        "cliente": "Ana",
                    }
                ],
            }
        )
        with self.assertRaises(FetchError):
            self.provider.list_sales()

    def test_delete_404_is_not_found(self):
        self.session.request.return_value = _response(status_code=404, body={"success": False})
        with self.assertRaises(DeleteError) as ctx:
            self.provider.delete_reconciliation(8)
        self.assertTrue(ctx.exception.not_found)

    def test_delete_with_empty_body_succeeds(self):
        self.session.request.return_value = _response(status_code=204, content=b"")
        self.provider.delete_sale(8)
        args, _ = self.session.request.call_args
        self.assertEqual(args, ("DELETE", "http://pos.local/api/ventas/8"))


class GetDataProviderTests(SimpleTestCase):
    @override_settings(POS_DATA_PROVIDER="orm")
    def test_orm_by_default(self):
        self.assertIsInstance(get_data_provider(), OrmDataProvider)

    @override_settings(
        POS_DATA_PROVIDER="http",
        POS_PROVIDER_BASE_URL="http://pos.local/api",
        POS_PROVIDER_TOKEN="",
        POS_PROVIDER_TIMEOUT_SECONDS=2.5,
    )
    def test_http_from_settings(self):
        provider = get_data_provider()
        self.assertIsInstance(provider, HttpDataProvider)
        self.assertEqual(provider.timeout, 2.5)
        self.assertNotIn("Authorization", provider.session.headers)

    @override_settings(POS_DATA_PROVIDER="ftp")
    def test_unknown_provider(self):
        with self.assertRaises(ImproperlyConfigured):
            get_data_provider()
