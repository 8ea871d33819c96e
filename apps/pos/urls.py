from django.urls import path

from . import views

app_name = "pos"

urlpatterns = [
    path("reconciliations/", views.reconciliation_list, name="reconciliation-list"),
    path("reconciliations/create", views.reconciliation_create, name="reconciliation-create"),
    path("reconciliations/<int:reconciliation_id>/", views.reconciliation_detail, name="reconciliation-detail"),
    path("reconciliations/<int:reconciliation_id>/delete", views.reconciliation_delete, name="reconciliation-delete"),
    path("reconciliations/<int:reconciliation_id>/report", views.reconciliation_report, name="reconciliation-report"),
    path(
        "reconciliations/<int:reconciliation_id>/report.pdf",
        views.reconciliation_report_pdf,
        name="reconciliation-report-pdf",
    ),
    path("sales/", views.sales_history, name="sales-history"),
    path("sales/export.csv", views.sales_history_csv, name="sales-history-csv"),
    path("sales/<int:sale_id>/", views.sale_detail, name="sale-detail"),
    path("sales/<int:sale_id>/delete", views.sale_delete, name="sale-delete"),
    path("cash-session/", views.cash_session_state, name="cash-session-state"),
    path("cash-session/open", views.cash_session_open, name="cash-session-open"),
    path("cash-session/close", views.cash_session_close, name="cash-session-close"),
]
