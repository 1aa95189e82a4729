# products/services/line_items.py

"""
LINE ITEM NORMALIZATION

Both the availability checker and the allocation engine consume the SAME
submitted line items. They accept dicts ({"product_id"/"product", "quantity"})
or objects exposing product_id + quantity (e.g. InvoiceItem rows).

HARD RULE: quantities are integer units.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LineItem:
    product_id: str | None
    quantity: int


def to_int_qty(value) -> int:
    """
    Quantity normalizer.
    Accepts ints, integral floats and digit strings; rejects bools.
    """
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise ValueError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, float) and value.is_integer():
        return int(value)

    if isinstance(value, str):
        s = value.strip()
        if s.lstrip("-").isdigit():
            return int(s)

    raise ValueError("quantity must be a whole integer unit")


def _product_ref(raw):
    if isinstance(raw, dict):
        ref = raw.get("product_id")
        if ref in (None, ""):
            ref = raw.get("product")
    else:
        ref = getattr(raw, "product_id", None)

    # Accept model instances as well as ids
    ref = getattr(ref, "pk", ref)
    if ref in (None, ""):
        return None
    return str(ref)


def _quantity(raw):
    if isinstance(raw, dict):
        return raw.get("quantity")
    return getattr(raw, "quantity", None)


def normalize_line_items(items) -> list[LineItem]:
    """Preserves submission order; never drops items (callers decide what to skip)."""
    return [LineItem(product_id=_product_ref(raw), quantity=to_int_qty(_quantity(raw))) for raw in (items or [])]
