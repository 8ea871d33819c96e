from __future__ import annotations

from decimal import Decimal

from django import forms

from .date_ranges import RangeFilter, parse_range_filter
from .list_state import ReconciliationListState, SalesHistoryState, SortOrder, parse_sort_key
from .pagination import clamp_page_size, get_default_page_size
from .payloads import PAYMENT_METHOD_TO_WIRE, parse_payment_method
from .records import all_denominations, to_money

METHOD_CHOICES = [(method.value, label) for method, label in PAYMENT_METHOD_TO_WIRE.items()] + [
    (label, label) for label in PAYMENT_METHOD_TO_WIRE.values()
]


class _ListFilterForm(forms.Form):
    range = forms.CharField(required=False)
    date_from = forms.DateField(required=False)
    date_to = forms.DateField(required=False)
    search = forms.CharField(required=False, strip=True)
    page = forms.IntegerField(required=False, min_value=1)
    page_size = forms.IntegerField(required=False, min_value=1)
    generation = forms.IntegerField(required=False, min_value=0)

    def clean_range(self):
        raw = self.cleaned_data.get("range")
        try:
            return parse_range_filter(raw)
        except ValueError as exc:
            raise forms.ValidationError("Rango de fechas no válido.") from exc

    def clean(self):
        cleaned = super().clean()
        range_filter = cleaned.get("range")
        date_from = cleaned.get("date_from")
        date_to = cleaned.get("date_to")
        if range_filter == RangeFilter.CUSTOM and date_from and date_to and date_from > date_to:
            self.add_error("date_to", "La fecha final debe ser igual o posterior a la inicial.")
        cleaned["page"] = cleaned.get("page") or 1
        cleaned["page_size"] = clamp_page_size(cleaned.get("page_size") or get_default_page_size())
        return cleaned

    def _state_kwargs(self) -> dict:
        cleaned = self.cleaned_data
        return {
            "range_filter": cleaned.get("range") or RangeFilter.ALL,
            "custom_from": cleaned.get("date_from"),
            "custom_to": cleaned.get("date_to"),
            "search": cleaned.get("search") or "",
            "page": cleaned["page"],
            "page_size": cleaned["page_size"],
        }


class ReconciliationFilterForm(_ListFilterForm):
    def to_state(self) -> ReconciliationListState:
        return ReconciliationListState(**self._state_kwargs())


class SalesHistoryFilterForm(_ListFilterForm):
    method = forms.MultipleChoiceField(required=False, choices=METHOD_CHOICES)
    sort = forms.CharField(required=False)
    order = forms.ChoiceField(
        required=False,
        choices=[(SortOrder.ASC.value, "Ascendente"), (SortOrder.DESC.value, "Descendente")],
    )

    def clean_method(self):
        return frozenset(parse_payment_method(value) for value in self.cleaned_data.get("method") or [])

    toggle = forms.CharField(required=False)

    def _sort_key(self, name):
        try:
            return parse_sort_key(self.cleaned_data.get(name))
        except ValueError as exc:
            raise forms.ValidationError("Campo de orden no válido.") from exc

    def clean_sort(self):
        return self._sort_key("sort")

    def clean_toggle(self):
        return self._sort_key("toggle")

    def to_state(self) -> SalesHistoryState:
        """Current sort from ``sort``/``order``; ``toggle`` applies a column click on top of it."""
        cleaned = self.cleaned_data
        state = SalesHistoryState(
            methods=cleaned.get("method") or frozenset(),
            sort_key=cleaned.get("sort"),
            sort_order=SortOrder(cleaned.get("order") or SortOrder.ASC.value),
            **self._state_kwargs(),
        )
        if cleaned.get("toggle") is not None:
            state = state.toggle_sort(cleaned["toggle"])
        return state


class OpenSessionForm(forms.Form):
    id_cajero = forms.IntegerField(required=False, min_value=1)
    monto_inicial = forms.DecimalField(required=False, min_value=Decimal("0"), max_digits=12, decimal_places=2)

    def clean_monto_inicial(self):
        return to_money(self.cleaned_data.get("monto_inicial") or Decimal("0"))


class CloseSessionForm(forms.Form):
    id_cajero = forms.IntegerField(required=False, min_value=1)
    monto_cierre = forms.DecimalField(required=False, min_value=Decimal("0"), max_digits=12, decimal_places=2)
    observaciones = forms.CharField(required=False)


def _whole_count(value) -> int:
    """A banknote/coin count: a whole number, given as int, integral float or numeric string."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise TypeError(value)
    number = Decimal(str(value).strip())
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(value)
    return int(number)


class ReconciliationCountForm(forms.Form):
    """Physical count posted as ``{"conteo": {"100": 2, "0.25": 3}, "transferencias": [...]}``."""

    id_cajero = forms.IntegerField(required=False, min_value=1)
    conteo = forms.JSONField()
    transferencias = forms.JSONField(required=False)
    observaciones = forms.CharField(required=False)

    def clean_conteo(self):
        raw = self.cleaned_data.get("conteo")
        if not isinstance(raw, dict):
            raise forms.ValidationError("El conteo debe ser un objeto denominación -> cantidad.")
        counts = {}
        for key, value in raw.items():
            try:
                denomination = Decimal(str(key))
                if not denomination.is_finite() or denomination not in all_denominations():
                    raise forms.ValidationError(f"Denominación desconocida: {key}.")
                count = _whole_count(value)
            except (ArithmeticError, TypeError, ValueError) as exc:
                raise forms.ValidationError(f"Conteo no válido para {key}.") from exc
            if count < 0:
                raise forms.ValidationError(f"Cantidad negativa para {key}.")
            counts[denomination] = count
        return counts

    def clean_transferencias(self):
        raw = self.cleaned_data.get("transferencias") or []
        if not isinstance(raw, list):
            raise forms.ValidationError("Las transferencias deben ser una lista.")
        transfers = []
        for item in raw:
            if not isinstance(item, dict):
                raise forms.ValidationError("Transferencia no válida.")
            try:
                amount = to_money(item.get("monto"))
                if not amount.is_finite():
                    raise ValueError(item.get("monto"))
            except (ArithmeticError, TypeError, ValueError) as exc:
                raise forms.ValidationError("Monto de transferencia no válido.") from exc
            if amount <= 0:
                raise forms.ValidationError("El monto de cada transferencia debe ser mayor que cero.")
            transfers.append(
                {
                    "customer_name": str(item.get("nombre_cliente") or ""),
                    "amount": amount,
                    "payment_method": str(item.get("tipo_pago") or "Transferencia"),
                    "reference_number": str(item.get("numero_referencia") or ""),
                    "bank_name": str(item.get("nombre_banco") or ""),
                }
            )
        return transfers
