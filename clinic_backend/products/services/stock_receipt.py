# products/services/stock_receipt.py

"""
STOCK RECEIPT (SHIPMENT INTAKE)

Canonical inflow path:
- creates a ProductBatch (quantity_on_hand == quantity_received)
- increments Product.total_stock in the SAME transaction
- appends a RECEIPT movement referencing the batch label

Also hosts set_initial_stock() for products created with opening stock
and no batch records.
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from products.models import Product, ProductBatch, StockMovement

from .exceptions import StockReceiptError
from .line_items import to_int_qty
from .stock_ledger import record_movement

logger = logging.getLogger(__name__)


def generate_batch_label() -> str:
    """BATCH-<last 6 digits of epoch millis>-<4 hex chars>."""
    millis = str(int(time.time() * 1000))[-6:]
    suffix = uuid.uuid4().hex[:4].upper()
    return f"BATCH-{millis}-{suffix}"


def _to_cost(value) -> Decimal:
    if value in (None, ""):
        return Decimal("0.00")
    try:
        cost = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise StockReceiptError("cost_per_unit must be a valid decimal") from exc
    if cost < Decimal("0.00"):
        raise StockReceiptError("cost_per_unit cannot be negative")
    return cost


def _to_positive_qty(value, *, field_name: str) -> int:
    try:
        qty = to_int_qty(value)
    except ValueError as exc:
        raise StockReceiptError(f"{field_name} must be a whole integer unit") from exc
    if qty <= 0:
        raise StockReceiptError(f"{field_name} must be greater than zero")
    return qty


def _lock_product(product) -> Product:
    product_id = getattr(product, "pk", product)
    try:
        return Product.objects.select_for_update().get(pk=product_id)
    except (Product.DoesNotExist, ValidationError, ValueError) as exc:
        raise StockReceiptError(f"Unknown product: {product_id}") from exc


@transaction.atomic
def receive_batch(
    *,
    product,
    quantity_received,
    expiry_date,
    batch_id: str | None = None,
    lot_number: str = "",
    received_date=None,
    cost_per_unit=None,
    supplier_invoice: str = "",
    user=None,
) -> ProductBatch:
    if not expiry_date:
        raise StockReceiptError("expiry_date is required")

    qty = _to_positive_qty(quantity_received, field_name="quantity_received")
    cost = _to_cost(cost_per_unit)
    product = _lock_product(product)

    label = (batch_id or "").strip() or generate_batch_label()

    if ProductBatch.objects.filter(product=product, batch_id=label).exists():
        raise StockReceiptError(f"Batch {label} already exists for {product.name}")

    try:
        with transaction.atomic():
            batch = ProductBatch.objects.create(
                product=product,
                batch_id=label,
                lot_number=(lot_number or "").strip() or label,
                expiry_date=expiry_date,
                received_date=received_date or timezone.localdate(),
                quantity_received=qty,
                quantity_on_hand=qty,
                cost_per_unit=cost,
                supplier_invoice=(supplier_invoice or "").strip(),
            )
    except (IntegrityError, ValidationError) as exc:
        raise StockReceiptError(f"Could not record batch {label}: {exc}") from exc

    previous_stock = int(product.total_stock or 0)
    new_stock = previous_stock + qty
    product.total_stock = new_stock
    product.save(update_fields=["total_stock", "updated_at"])

    record_movement(
        product=product,
        batch=batch,
        movement_type=StockMovement.MovementType.RECEIPT,
        quantity=qty,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reference_id=label,
        user=user,
        note=f"Supplier invoice {batch.supplier_invoice}" if batch.supplier_invoice else "",
    )

    logger.info(
        "Batch received",
        extra={"product_id": str(product.pk), "batch_id": label, "quantity": qty},
    )
    return batch


@transaction.atomic
def receive_shipment(*, lines, received_date=None, supplier_invoice: str = "", user=None) -> list[ProductBatch]:
    """
    Receive a whole delivery. All-or-nothing: one bad line rejects the
    shipment.

    lines: [{"product_id", "quantity_received", "expiry_date",
             "lot_number"?, "batch_id"?, "cost_per_unit"?}, ...]
    """
    if not lines:
        raise StockReceiptError("A shipment needs at least one line")

    batches = []
    for position, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise StockReceiptError(f"Line {position}: must be an object")

        product_ref = line.get("product_id") or line.get("product")
        if not product_ref:
            raise StockReceiptError(f"Line {position}: product_id is required")

        batches.append(
            receive_batch(
                product=product_ref,
                quantity_received=line.get("quantity_received"),
                expiry_date=line.get("expiry_date"),
                batch_id=line.get("batch_id"),
                lot_number=line.get("lot_number") or "",
                received_date=received_date,
                cost_per_unit=line.get("cost_per_unit"),
                supplier_invoice=supplier_invoice,
                user=user,
            )
        )

    return batches


@transaction.atomic
def set_initial_stock(*, product, quantity, user=None) -> StockMovement | None:
    """
    Opening stock for a product tracked without batches.
    Zero is a no-op; negatives are rejected.
    """
    try:
        qty = to_int_qty(quantity)
    except ValueError as exc:
        raise StockReceiptError("initial stock must be a whole integer unit") from exc

    if qty < 0:
        raise StockReceiptError("initial stock cannot be negative")
    if qty == 0:
        return None

    product = _lock_product(product)
    previous_stock = int(product.total_stock or 0)
    new_stock = previous_stock + qty
    product.total_stock = new_stock
    product.save(update_fields=["total_stock", "updated_at"])

    return record_movement(
        product=product,
        movement_type=StockMovement.MovementType.INITIAL,
        quantity=qty,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reference_id=str(product.pk),
        user=user,
        note="Initial stock",
    )
