# products/models/product_batch.py

"""
PRODUCT BATCH (LOT-BASED INVENTORY)

Represents ONE received lot of a product: one expiry date, one cost basis.

CANONICAL MODEL:
- quantity_received is immutable after creation
- quantity_on_hand is mutated ONLY via services (allocation / receipt)
- status is ALWAYS derived from quantity_on_hand:
    depleted  <=> quantity_on_hand == 0
- a depleted batch is never re-activated
- batches are never deleted (audit safety)
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .product import Product


class ProductBatch(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        DEPLETED = "depleted", "Depleted"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="batches",
    )

    batch_id = models.CharField(
        max_length=64,
        help_text="Human-readable batch label (auto-generated on receipt when blank)",
    )

    lot_number = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Manufacturer lot number",
    )

    expiry_date = models.DateField()
    received_date = models.DateField(default=timezone.localdate)

    quantity_received = models.PositiveIntegerField(
        help_text="Quantity delivered (immutable)"
    )

    quantity_on_hand = models.PositiveIntegerField(
        default=0,
        help_text="Remaining quantity (service-managed only)",
    )

    cost_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    supplier_invoice = models.CharField(max_length=128, blank=True, default="")

    # Derived field, NEVER edited directly
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["expiry_date", "received_date", "created_at"]
        indexes = [
            models.Index(fields=["product", "status", "expiry_date"], name="products_pr_product_5b7e21_idx"),
            models.Index(fields=["expiry_date"], name="products_pr_expiry__0d4f6c_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "batch_id"],
                name="unique_batch_label_per_product",
            ),
            models.CheckConstraint(
                condition=Q(quantity_received__gt=0),
                name="chk_batch_qty_received_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_on_hand__lte=F("quantity_received")),
                name="chk_batch_on_hand_lte_received",
            ),
        ]

    # -------------------------------------------------
    # VALIDATION
    # -------------------------------------------------

    def clean(self):
        if self.quantity_received is None or self.quantity_received <= 0:
            raise ValidationError(
                {"quantity_received": "quantity_received must be greater than zero"}
            )

        if self.quantity_on_hand is None or self.quantity_on_hand < 0:
            raise ValidationError(
                {"quantity_on_hand": "quantity_on_hand cannot be negative"}
            )

        if self.quantity_on_hand > self.quantity_received:
            raise ValidationError(
                {"quantity_on_hand": "quantity_on_hand cannot exceed quantity_received"}
            )

        if not self.expiry_date:
            raise ValidationError({"expiry_date": "expiry_date is required"})

        if self.cost_per_unit is not None and self.cost_per_unit < Decimal("0.00"):
            raise ValidationError({"cost_per_unit": "cost_per_unit cannot be negative"})

    # -------------------------------------------------
    # IMMUTABILITY + DERIVED STATE
    # -------------------------------------------------

    def save(self, *args, **kwargs):
        if not self._state.adding:
            original = ProductBatch.objects.only("quantity_received", "status").get(pk=self.pk)

            if self.quantity_received != original.quantity_received:
                raise ValidationError({"quantity_received": "quantity_received is immutable"})

            if original.status == self.Status.DEPLETED and int(self.quantity_on_hand or 0) > 0:
                raise ValidationError({"status": "A depleted batch cannot be re-activated"})

        # status is ALWAYS derived
        self.status = (
            self.Status.ACTIVE if int(self.quantity_on_hand or 0) > 0 else self.Status.DEPLETED
        )

        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"status", "updated_at"}

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Product batches are audit artifacts and cannot be deleted.")

    # -------------------------------------------------
    # READ-ONLY HELPERS
    # -------------------------------------------------

    @property
    def is_depleted(self) -> bool:
        return self.status == self.Status.DEPLETED

    def days_to_expiry(self, today=None) -> int:
        today = today or timezone.localdate()
        return (self.expiry_date - today).days

    @property
    def total_remaining_value(self) -> Decimal:
        unit_cost = self.cost_per_unit if self.cost_per_unit is not None else Decimal("0.00")
        return unit_cost * Decimal(int(self.quantity_on_hand or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | Batch {self.batch_id}"
