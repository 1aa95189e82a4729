# products/services/stock_availability.py

"""
AVAILABILITY CHECKER

Advisory, read-only check run before an invoice becomes paid.

- Compares Product.total_stock against the quantity requested.
- Fail-fast: reports the FIRST product found short, nothing else.
- Demand for the same product across several lines is summed before
  comparing, so split lines cannot slip past the check.
- Unresolvable product ids are a hard failure named "Unknown Product".

This is NOT a reservation. Callers that need the result to hold must lock
the product rows first (see billing.services.invoice_payment).
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from .line_items import normalize_line_items
from .product_index import ProductIndex

UNKNOWN_PRODUCT = "Unknown Product"


@dataclass(frozen=True)
class StockCheckResult:
    sufficient: bool
    product_name: str | None = None
    product_id: str | None = None
    requested: int = 0
    available: int = 0

    def __bool__(self) -> bool:
        return self.sufficient


SUFFICIENT = StockCheckResult(sufficient=True)


def check_stock_for_items(items, product_index: ProductIndex | None = None) -> StockCheckResult:
    index = product_index or ProductIndex()
    demanded = defaultdict(int)

    for item in normalize_line_items(items):
        if not item.product_id or item.quantity <= 0:
            continue

        product = index.get(item.product_id)
        if product is None:
            return StockCheckResult(
                sufficient=False,
                product_name=UNKNOWN_PRODUCT,
                product_id=item.product_id,
                requested=item.quantity,
                available=0,
            )

        key = str(product.pk)
        demanded[key] += item.quantity
        available = int(product.total_stock or 0)

        if available < demanded[key]:
            return StockCheckResult(
                sufficient=False,
                product_name=product.name,
                product_id=key,
                requested=demanded[key],
                available=available,
            )

    return SUFFICIENT
