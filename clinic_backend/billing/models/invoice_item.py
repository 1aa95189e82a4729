# billing/models/invoice_item.py

"""
INVOICE LINE ITEM

- product is optional: service lines (consultation, surgery) carry none.
- Only lines with a product and quantity > 0 take part in stock allocation.
- total is always quantity * unit_price (derived on save).
"""

from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import models

from products.models import Product

from .invoice import Invoice

TWOPLACES = Decimal("0.01")


class InvoiceItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoice_items",
    )

    quantity = models.PositiveIntegerField(default=1)

    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    total = models.DecimalField(max_digits=12, decimal_places=2, editable=False, default=Decimal("0.00"))

    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def clean(self):
        if self.unit_price is not None and self.unit_price < Decimal("0.00"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

        if not self.product_id and not (self.description or "").strip():
            raise ValidationError("A line needs a product or a description")

    def save(self, *args, **kwargs):
        self.total = (Decimal(int(self.quantity or 0)) * Decimal(self.unit_price or 0)).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        label = self.description or getattr(self.product, "name", "Item")
        return f"{label} x {self.quantity}"
