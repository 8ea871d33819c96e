from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class CashSession(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"
    STATUS_EXPIRED = "expired"
    STATUS_CHOICES = [
        (STATUS_OPEN, "Abierta"),
        (STATUS_CLOSED, "Cerrada"),
        (STATUS_EXPIRED, "Expirada"),
    ]

    opened_by = models.IntegerField(null=True, blank=True)
    closed_by = models.IntegerField(null=True, blank=True)
    opened_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)
    opening_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"), validators=[MinValueValidator(Decimal("0.00"))]
    )
    closing_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_OPEN)
    auto_closed = models.BooleanField(default=False)

    class Meta:
        ordering = ["-opened_at", "-id"]
        indexes = [
            models.Index(fields=["status", "-opened_at"], name="pos_cashsess_status_open_idx"),
        ]

    def __str__(self) -> str:
        return f"CashSession {self.pk} [{self.status}]"


class Sale(models.Model):
    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pendiente"),
        (STATUS_CONFIRMED, "Confirmada"),
        (STATUS_COMPLETED, "Completada"),
        (STATUS_CANCELLED, "Cancelada"),
    ]

    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_TRANSFER = "transfer"
    METHOD_VOUCHER = "voucher"
    METHOD_COUPON = "coupon"
    METHOD_CHOICES = [
        (METHOD_CASH, "Efectivo"),
        (METHOD_CARD, "Tarjeta"),
        (METHOD_TRANSFER, "Transferencia"),
        (METHOD_VOUCHER, "Canje"),
        (METHOD_COUPON, "Cupón"),
    ]

    sold_at = models.DateTimeField(default=timezone.now)
    customer_id = models.IntegerField(null=True, blank=True)
    customer_name = models.CharField(max_length=255, blank=True)
    cashier_id = models.IntegerField(null=True, blank=True)
    payment_method = models.CharField(max_length=16, choices=METHOD_CHOICES, default=METHOD_CASH)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    products_summary = models.TextField(blank=True)

    class Meta:
        ordering = ["-sold_at", "-id"]
        indexes = [
            models.Index(fields=["status", "sold_at"], name="pos_sale_status_sold_idx"),
            models.Index(fields=["cashier_id", "sold_at"], name="pos_sale_cashier_sold_idx"),
        ]

    def __str__(self) -> str:
        return f"Sale {self.pk} [{self.status}]"


class SaleLine(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="lines")
    product_name = models.CharField(max_length=255)
    variant_name = models.CharField(max_length=255, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["id"]


class Reconciliation(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"
    STATUS_CHOICES = [
        (STATUS_OPEN, "Abierto"),
        (STATUS_CLOSED, "Cerrado"),
    ]

    cashier_id = models.IntegerField(null=True, blank=True)
    session = models.ForeignKey(
        CashSession,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reconciliations",
    )
    reconciled_at = models.DateTimeField(default=timezone.now)
    opened_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    system_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    counted_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    difference = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    # {"100": {"count": 2, "subtotal": "200.00"}, "0.25": {...}}
    denominations_json = models.JSONField(default=dict)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_CLOSED)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-reconciled_at", "-id"]
        indexes = [
            models.Index(fields=["-reconciled_at"], name="pos_recon_reconciled_idx"),
        ]

    def __str__(self) -> str:
        return f"Reconciliation {self.pk} [{self.status}]"


class Transfer(models.Model):
    reconciliation = models.ForeignKey(Reconciliation, on_delete=models.CASCADE, related_name="transfers")
    customer_name = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=32, blank=True, default="Transferencia")
    reference_number = models.CharField(max_length=64, blank=True)
    bank_name = models.CharField(max_length=128, blank=True)

    class Meta:
        ordering = ["id"]
