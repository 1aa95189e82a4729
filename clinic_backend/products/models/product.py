# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum


class Product(models.Model):
    """
    Represents a stocked clinic product (medication, vaccine, consumable, food).

    STOCK MODEL (IMPORTANT):
    - Physical stock lives in ProductBatch rows (one per received lot).
    - total_stock is a DENORMALIZED aggregate kept alongside the batches:
        total_stock SHOULD equal sum(quantity_on_hand) over ACTIVE batches,
        whenever the product has batch records.
    - Products without any batch records are tracked on total_stock alone.
    - total_stock is mutated ONLY via products.services
      (allocation, receipt, initial stock, reconciliation).
    - Products are never deleted, only deactivated.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=100, blank=True, default="")
    unit = models.CharField(
        max_length=32,
        default="unit",
        help_text="Dispensing unit, e.g. tablet, ml, vial, bag.",
    )

    selling_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    cost_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    reorder_point = models.PositiveIntegerField(default=10)

    total_stock = models.PositiveIntegerField(
        default=0,
        help_text="Aggregate on-hand quantity (service-managed only)",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="products_pr_name_9ff0a3_idx"),
            models.Index(fields=["category"], name="products_pr_categor_9c1b4e_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_stock__gte=0),
                name="chk_product_total_stock_gte_zero",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.selling_price is not None and Decimal(self.selling_price) < Decimal("0.00"):
            raise ValidationError({"selling_price": "selling_price cannot be negative"})

        if self.cost_price is not None and Decimal(self.cost_price) < Decimal("0.00"):
            raise ValidationError({"cost_price": "cost_price cannot be negative"})

        if self.reorder_point is None:
            raise ValidationError({"reorder_point": "reorder_point is required"})

    @property
    def active_batch_stock(self) -> int:
        """Sum of quantity_on_hand over ACTIVE batches (the ledger truth)."""
        from products.models.product_batch import ProductBatch

        return int(
            self.batches.filter(status=ProductBatch.Status.ACTIVE)
            .aggregate(total=Sum("quantity_on_hand"))
            .get("total")
            or 0
        )

    @property
    def is_low_stock(self) -> bool:
        return int(self.total_stock or 0) <= int(self.reorder_point or 0)
