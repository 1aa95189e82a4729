# products/services/stock_ledger.py

"""
STOCK MOVEMENT WRITER

Single entrypoint for appending to the inventory ledger so every service
stamps movements the same way (actor label, movement date, snapshots).
"""

from __future__ import annotations

from django.utils import timezone

from products.models import StockMovement

SYSTEM_ACTOR = "System"


def actor_label(user=None) -> str:
    if user is None or not getattr(user, "is_authenticated", False):
        return SYSTEM_ACTOR
    return getattr(user, "display_name", None) or str(user)


def record_movement(
    *,
    product,
    movement_type: str,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    batch=None,
    reference_id="",
    user=None,
    note: str = "",
) -> StockMovement:
    performed_by = user if getattr(user, "is_authenticated", False) else None

    return StockMovement.objects.create(
        product=product,
        batch=batch,
        movement_type=movement_type,
        quantity=int(quantity),
        reference_id=str(reference_id or ""),
        movement_date=timezone.localdate(),
        actor=actor_label(user),
        performed_by=performed_by,
        previous_stock=int(previous_stock),
        new_stock=int(new_stock),
        note=note or "",
    )
