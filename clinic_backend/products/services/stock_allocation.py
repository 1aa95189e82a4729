# products/services/stock_allocation.py

"""
STOCK ALLOCATION ENGINE (FEFO)

Consumes inventory for the line items of an invoice that has just become
paid.

Policy:
- FEFO: active batches are consumed earliest-expiry first
  (ties: received_date, then created_at).
- Best-effort: every line item is attempted. Failures are collected as
  human-readable messages and returned; they never roll back allocations
  that already succeeded.
- Products with no active batches are deducted directly from total_stock
  (clamped at zero). Whether a clamp is reported is controlled by
  settings.INVENTORY["NO_BATCH_SHORTFALL_POLICY"] ("flag" | "clamp").

Atomicity:
- Each batch step (batch write + product write + movement append) runs in
  ONE savepoint. A failed step leaves no partial write behind.
- Batch rows are locked FOR UPDATE; the caller is expected to hold the
  product row locks (billing.services.invoice_payment does).
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from products.models import Product, ProductBatch, StockMovement

from .line_items import normalize_line_items
from .product_index import ProductIndex
from .stock_ledger import record_movement

logger = logging.getLogger(__name__)

POLICY_FLAG = "flag"
POLICY_CLAMP = "clamp"
SHORTFALL_POLICIES = {POLICY_FLAG, POLICY_CLAMP}

FEFO_ORDERING = ("expiry_date", "received_date", "created_at")

# Per-step failures that are converted into messages. Anything else propagates.
STEP_ERRORS = (DatabaseError, ValidationError)


def resolve_shortfall_policy(policy: str | None = None) -> str:
    if policy is None:
        policy = getattr(settings, "INVENTORY", {}).get("NO_BATCH_SHORTFALL_POLICY", POLICY_FLAG)

    policy = (policy or POLICY_FLAG).strip().lower()
    if policy not in SHORTFALL_POLICIES:
        raise ValueError(
            f"Unknown NO_BATCH_SHORTFALL_POLICY {policy!r}; expected one of {sorted(SHORTFALL_POLICIES)}"
        )
    return policy


def shortfall_message(product_name: str, short: int) -> str:
    return f"Not enough stock deducted for {product_name} (short {short})."


def _lock_product(product_id) -> Product | None:
    return Product.objects.select_for_update().filter(pk=product_id).first()


def _active_batches(product) -> list[ProductBatch]:
    return list(
        ProductBatch.objects.select_for_update()
        .filter(product=product, status=ProductBatch.Status.ACTIVE)
        .order_by(*FEFO_ORDERING)
    )


def _save_total_stock(product, value: int) -> None:
    product.total_stock = value
    product.save(update_fields=["total_stock", "updated_at"])


# ============================================================
# NO-BATCH FALLBACK
# ============================================================

def _deduct_without_batches(*, product, quantity, reference_id, user, policy) -> list[str]:
    errors: list[str] = []

    previous_stock = int(product.total_stock or 0)
    applied = min(quantity, previous_stock)
    new_stock = previous_stock - applied

    if applied > 0:
        try:
            with transaction.atomic():
                _save_total_stock(product, new_stock)
                record_movement(
                    product=product,
                    batch=None,
                    movement_type=StockMovement.MovementType.SALE,
                    quantity=-applied,
                    previous_stock=previous_stock,
                    new_stock=new_stock,
                    reference_id=reference_id,
                    user=user,
                )
        except STEP_ERRORS:
            product.total_stock = previous_stock
            logger.exception(
                "Direct stock deduction failed",
                extra={"product_id": str(product.pk), "reference_id": reference_id},
            )
            errors.append(f"Stock update failed for {product.name}")
            return errors

    short = quantity - applied
    if short > 0:
        logger.warning(
            "No-batch deduction clamped at zero",
            extra={
                "product_id": str(product.pk),
                "reference_id": reference_id,
                "requested": quantity,
                "applied": applied,
                "policy": policy,
            },
        )
        if policy == POLICY_FLAG:
            errors.append(shortfall_message(product.name, short))

    return errors


# ============================================================
# FEFO BATCH LOOP
# ============================================================

def _consume_batches(*, product, batches, quantity, reference_id, user) -> list[str]:
    errors: list[str] = []
    remaining = quantity

    for batch in batches:
        if remaining <= 0:
            break

        on_hand = int(batch.quantity_on_hand or 0)
        if on_hand <= 0:
            continue

        take = min(on_hand, remaining)
        previous_stock = int(product.total_stock or 0)
        new_stock = max(0, previous_stock - take)

        stage = "batch"
        try:
            with transaction.atomic():
                batch.quantity_on_hand = on_hand - take
                batch.save(update_fields=["quantity_on_hand"])

                stage = "product"
                _save_total_stock(product, new_stock)
                record_movement(
                    product=product,
                    batch=batch,
                    movement_type=StockMovement.MovementType.SALE,
                    quantity=-take,
                    previous_stock=previous_stock,
                    new_stock=new_stock,
                    reference_id=reference_id,
                    user=user,
                )
        except STEP_ERRORS:
            batch.quantity_on_hand = on_hand
            batch.status = ProductBatch.Status.ACTIVE
            product.total_stock = previous_stock
            logger.exception(
                "Batch allocation step failed",
                extra={
                    "product_id": str(product.pk),
                    "batch_id": batch.batch_id,
                    "reference_id": reference_id,
                    "stage": stage,
                },
            )
            if stage == "batch":
                errors.append(f"Batch update failed ({batch.batch_id})")
            else:
                errors.append(f"Product stock update failed ({product.name})")
            continue

        if previous_stock < take:
            logger.warning(
                "total_stock below batch quantity; clamped at zero",
                extra={
                    "product_id": str(product.pk),
                    "batch_id": batch.batch_id,
                    "total_stock": previous_stock,
                    "take": take,
                },
            )
            errors.append(
                f"Stock total for {product.name} was lower than its batches; reconciliation required."
            )

        remaining -= take

    if remaining > 0:
        errors.append(shortfall_message(product.name, remaining))

    return errors


# ============================================================
# PUBLIC ENTRYPOINT
# ============================================================

@transaction.atomic
def allocate_stock_for_invoice(
    *,
    invoice_id,
    items,
    user=None,
    product_index: ProductIndex | None = None,
    shortfall_policy: str | None = None,
) -> list[str]:
    """
    Consume stock for every line item. Returns the accumulated error
    messages (empty list when everything was fully allocated).
    """
    if invoice_id in (None, ""):
        raise ValueError("invoice_id is required")

    policy = resolve_shortfall_policy(shortfall_policy)
    index = product_index or ProductIndex()
    reference_id = str(invoice_id)
    errors: list[str] = []

    for item in normalize_line_items(items):
        if not item.product_id or item.quantity <= 0:
            continue

        resolved = index.get(item.product_id)
        product = _lock_product(resolved.pk) if resolved is not None else None
        if product is None:
            errors.append(f"Missing product ({item.product_id}).")
            continue

        try:
            with transaction.atomic():
                batches = _active_batches(product)
        except DatabaseError:
            logger.exception(
                "Batch lookup failed",
                extra={"product_id": str(product.pk), "reference_id": reference_id},
            )
            errors.append(f"Batch lookup failed for {product.name}")
            continue

        if not batches:
            item_errors = _deduct_without_batches(
                product=product,
                quantity=item.quantity,
                reference_id=reference_id,
                user=user,
                policy=policy,
            )
        else:
            item_errors = _consume_batches(
                product=product,
                batches=batches,
                quantity=item.quantity,
                reference_id=reference_id,
                user=user,
            )

        # Keep the index coherent for any later line naming the same product
        index.prime([product])
        errors.extend(item_errors)

    if errors:
        logger.warning(
            "Stock allocation completed with errors",
            extra={"reference_id": reference_id, "error_count": len(errors)},
        )
    else:
        logger.info("Stock allocated", extra={"reference_id": reference_id})

    return errors
