# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable inventory ledger entry.

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity is SIGNED: negative = outflow, positive = inflow, never zero
- Sign is validated against movement_type
- new_stock == max(0, previous_stock + quantity)
- Sale movements must carry the originating invoice id as reference_id
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .product import Product
from .product_batch import ProductBatch


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        SALE = "sale", "Sale"
        RECEIPT = "receipt", "Stock Receipt"
        INITIAL = "initial", "Initial Stock"
        ADJUSTMENT = "adjustment", "Adjustment"

    # +1 => inflow only, -1 => outflow only, None => either direction
    TYPE_TO_SIGN = {
        MovementType.SALE: -1,
        MovementType.RECEIPT: 1,
        MovementType.INITIAL: 1,
        MovementType.ADJUSTMENT: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_movements"
    )
    batch = models.ForeignKey(
        ProductBatch,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    movement_type = models.CharField(
        max_length=16, choices=MovementType.choices, db_index=True
    )

    quantity = models.IntegerField(help_text="Signed quantity; negative for outflow")

    reference_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="Originating record id (invoice id for sales, batch label for receipts)",
    )

    movement_date = models.DateField(default=timezone.localdate)

    actor = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Display name of whoever triggered the movement",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    previous_stock = models.PositiveIntegerField()
    new_stock = models.PositiveIntegerField()

    note = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="products_st_created_4e8a1d_idx"),
            models.Index(fields=["product", "created_at"], name="products_st_product_7c2f90_idx"),
            models.Index(fields=["batch", "created_at"], name="products_st_batch_i_3a9e52_idx"),
            models.Index(fields=["reference_id", "movement_type"], name="products_st_referen_b61d07_idx"),
        ]

    def clean(self):
        if self.quantity is None or int(self.quantity) == 0:
            raise ValidationError({"quantity": "quantity must be non-zero"})

        expected_sign = self.TYPE_TO_SIGN.get(self.movement_type)
        if expected_sign is not None and int(self.quantity) * expected_sign < 0:
            direction = "negative" if expected_sign < 0 else "positive"
            raise ValidationError(
                {"quantity": f"{self.movement_type} movements must be {direction}"}
            )

        if self.batch_id and self.product_id:
            batch_product_id = (
                ProductBatch.objects.filter(id=self.batch_id)
                .values_list("product_id", flat=True)
                .first()
            )
            if batch_product_id and batch_product_id != self.product_id:
                raise ValidationError("Batch does not belong to product")

        if self.previous_stock is not None and self.new_stock is not None:
            expected_new = max(0, int(self.previous_stock) + int(self.quantity))
            if int(self.new_stock) != expected_new:
                raise ValidationError(
                    {"new_stock": f"new_stock must equal {expected_new}"}
                )

        if self.movement_type == self.MovementType.SALE and not self.reference_id:
            raise ValidationError({"reference_id": "sale movements must reference an invoice"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    @property
    def is_outflow(self) -> bool:
        return int(self.quantity or 0) < 0

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.movement_type} | {self.quantity}"
