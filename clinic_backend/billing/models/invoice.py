# billing/models/invoice.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


def generate_invoice_number() -> str:
    prefix = timezone.now().strftime("INV-%Y%m%d")
    return f"{prefix}-{uuid.uuid4().hex[:6].upper()}"


class Invoice(models.Model):
    """
    Client invoice for a consultation / dispensing visit.

    GUARANTEES:
    - Becoming "paid" is the ONLY event that consumes inventory
      (billing.services.invoice_payment), and it happens once.
    - paid and cancelled are terminal: the status never leaves them.
    - Inventory problems found while allocating stock are persisted
      (needs_reconciliation + inventory_errors), never only returned.
    """

    STATUS_DRAFT = "draft"
    STATUS_SENT = "sent"
    STATUS_PAID = "paid"
    STATUS_OVERDUE = "overdue"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SENT, "Sent"),
        (STATUS_PAID, "Paid"),
        (STATUS_OVERDUE, "Overdue"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    TERMINAL_STATUSES = (STATUS_PAID, STATUS_CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_number = models.CharField(
        max_length=32,
        unique=True,
        blank=True,
        help_text="System-generated invoice number",
    )

    client_name = models.CharField(max_length=255)
    pet_name = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
        db_index=True,
    )

    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    paid_at = models.DateTimeField(null=True, blank=True)

    needs_reconciliation = models.BooleanField(
        default=False,
        help_text="Stock allocation for this invoice was incomplete; inventory needs review",
    )
    inventory_errors = models.JSONField(default=list, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="billing_inv_created_5d2c11_idx"),
            models.Index(fields=["needs_reconciliation"], name="billing_inv_needs_r_8e0b47_idx"),
        ]

    def clean(self):
        if self.tax_amount is not None and self.tax_amount < Decimal("0.00"):
            raise ValidationError({"tax_amount": "tax_amount cannot be negative"})

        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            raise ValidationError({"due_date": "due_date cannot be before invoice_date"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            previous_status = (
                Invoice.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            )
            if previous_status in self.TERMINAL_STATUSES and self.status != previous_status:
                raise ValidationError(
                    {"status": f"A {previous_status} invoice cannot change status"}
                )

        if not self.invoice_number:
            self.invoice_number = generate_invoice_number()

        if self.status == self.STATUS_PAID and not self.paid_at:
            self.paid_at = timezone.now()

        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"updated_at"}

        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_paid(self) -> bool:
        return self.status == self.STATUS_PAID

    def __str__(self):
        return f"{self.invoice_number} | {self.client_name} | {self.status}"
