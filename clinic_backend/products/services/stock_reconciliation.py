# products/services/stock_reconciliation.py

"""
STOCK RECONCILIATION

Repairs drift between Product.total_stock and the sum of quantity_on_hand
over the product's ACTIVE batches.

- Products with no batch records at all are skipped (total_stock is their
  only source of truth).
- A correction writes one ADJUSTMENT movement; no drift, no movement.
- dry_run reports the drift without writing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from products.models import Product, StockMovement

from .exceptions import ReconciliationError
from .stock_ledger import record_movement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    product_id: str
    product_name: str
    recorded_stock: int
    batch_stock: int
    adjusted: bool
    skipped: bool = False

    @property
    def drift(self) -> int:
        return self.batch_stock - self.recorded_stock


@transaction.atomic
def reconcile_product_stock(*, product, user=None, dry_run: bool = False) -> ReconciliationResult:
    product_id = getattr(product, "pk", product)
    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise ReconciliationError(f"Unknown product: {product_id}")

    recorded = int(product.total_stock or 0)

    if not product.batches.exists():
        return ReconciliationResult(
            product_id=str(product.pk),
            product_name=product.name,
            recorded_stock=recorded,
            batch_stock=recorded,
            adjusted=False,
            skipped=True,
        )

    batch_stock = product.active_batch_stock
    result = ReconciliationResult(
        product_id=str(product.pk),
        product_name=product.name,
        recorded_stock=recorded,
        batch_stock=batch_stock,
        adjusted=False,
    )

    if batch_stock == recorded or dry_run:
        return result

    product.total_stock = batch_stock
    product.save(update_fields=["total_stock", "updated_at"])

    record_movement(
        product=product,
        movement_type=StockMovement.MovementType.ADJUSTMENT,
        quantity=batch_stock - recorded,
        previous_stock=recorded,
        new_stock=batch_stock,
        reference_id=str(product.pk),
        user=user,
        note="Reconciled total_stock to active batch quantities",
    )

    logger.info(
        "Product stock reconciled",
        extra={"product_id": str(product.pk), "from": recorded, "to": batch_stock},
    )
    return ReconciliationResult(
        product_id=result.product_id,
        product_name=result.product_name,
        recorded_stock=recorded,
        batch_stock=batch_stock,
        adjusted=True,
    )


def reconcile_all(*, user=None, dry_run: bool = False, queryset=None) -> list[ReconciliationResult]:
    """One transaction per product so a failure never blocks the rest."""
    qs = queryset if queryset is not None else Product.objects.all()
    return [
        reconcile_product_stock(product=pk, user=user, dry_run=dry_run)
        for pk in qs.order_by("pk").values_list("pk", flat=True)
    ]
