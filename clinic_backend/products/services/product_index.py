# products/services/product_index.py

"""
PRODUCT INDEX (READ-THROUGH CACHE)

Resolves product ids to Product rows for the availability checker and the
allocation engine.

- Seeded from rows the caller has already loaded (e.g. locked rows).
- Misses fall back to a fetch-by-id and are cached.
- Entries older than ttl_seconds are re-fetched on next access.
- Unknown or malformed ids resolve to None (never raise).
"""

from __future__ import annotations

import logging
import time

from django.conf import settings
from django.core.exceptions import ValidationError

from products.models import Product

logger = logging.getLogger(__name__)


def _default_ttl() -> float:
    return float(getattr(settings, "INVENTORY", {}).get("PRODUCT_INDEX_TTL_SECONDS", 30))


class ProductIndex:
    def __init__(self, products=None, *, ttl_seconds: float | None = None, clock=time.monotonic):
        self.ttl_seconds = _default_ttl() if ttl_seconds is None else float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, tuple[Product, float]] = {}
        self.prime(products or [])

    def prime(self, products) -> None:
        now = self._clock()
        for product in products:
            self._entries[str(product.pk)] = (product, now)

    def invalidate(self, product_id=None) -> None:
        if product_id is None:
            self._entries.clear()
            return
        self._entries.pop(str(product_id), None)

    def _is_fresh(self, loaded_at: float) -> bool:
        return (self._clock() - loaded_at) <= self.ttl_seconds

    def _fetch(self, product_id: str) -> Product | None:
        try:
            return Product.objects.filter(pk=product_id).first()
        except (ValidationError, ValueError):
            logger.warning("Malformed product id", extra={"product_id": product_id})
            return None

    def get(self, product_id) -> Product | None:
        if product_id in (None, ""):
            return None

        key = str(product_id)
        cached = self._entries.get(key)
        if cached is not None and self._is_fresh(cached[1]):
            return cached[0]

        product = self._fetch(key)
        if product is None:
            self._entries.pop(key, None)
            return None

        self._entries[key] = (product, self._clock())
        return product
