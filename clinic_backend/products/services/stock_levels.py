# products/services/stock_levels.py

"""
STOCK LEVELS + EXPIRY ALERTS (READ-ONLY)

Stock status buckets (per product):
- out_of_stock: total_stock == 0
- low_stock:    0 < total_stock <= reorder_point
- in_stock:     otherwise

Expiry urgency (per batch, relative to today):
- expired:  expiry_date < today
- critical: <= EXPIRY_CRITICAL_DAYS days left
- warning:  <= EXPIRY_WARNING_DAYS days left
- ok
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from products.models import Product, ProductBatch

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"
STOCK_STATUSES = (OUT_OF_STOCK, LOW_STOCK, IN_STOCK)

EXPIRED = "expired"
CRITICAL = "critical"
WARNING = "warning"
OK = "ok"


def _inventory_setting(key: str, default: int) -> int:
    return int(getattr(settings, "INVENTORY", {}).get(key, default))


def stock_status(product) -> str:
    stock = int(product.total_stock or 0)
    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= int(product.reorder_point or 0):
        return LOW_STOCK
    return IN_STOCK


def products_by_stock_status(status: str, queryset=None):
    if status not in STOCK_STATUSES:
        raise ValueError(f"Unknown stock status {status!r}")

    qs = queryset if queryset is not None else Product.objects.filter(is_active=True)

    if status == OUT_OF_STOCK:
        return qs.filter(total_stock=0)
    if status == LOW_STOCK:
        return qs.filter(total_stock__gt=0, total_stock__lte=F("reorder_point"))
    return qs.filter(total_stock__gt=F("reorder_point"))


def stock_level_summary(queryset=None) -> dict:
    qs = queryset if queryset is not None else Product.objects.filter(is_active=True)
    summary = {status: products_by_stock_status(status, qs).count() for status in STOCK_STATUSES}
    summary["total"] = qs.count()
    return summary


def expiry_status(batch, today=None) -> str:
    today = today or timezone.localdate()
    days_left = (batch.expiry_date - today).days

    if days_left < 0:
        return EXPIRED
    if days_left <= _inventory_setting("EXPIRY_CRITICAL_DAYS", 7):
        return CRITICAL
    if days_left <= _inventory_setting("EXPIRY_WARNING_DAYS", 30):
        return WARNING
    return OK


def expiring_batches(days: int | None = None, today=None):
    """Active batches (already expired included) expiring within `days`, soonest first."""
    today = today or timezone.localdate()
    if days is None:
        days = _inventory_setting("EXPIRY_WARNING_DAYS", 30)

    return (
        ProductBatch.objects.select_related("product")
        .filter(
            status=ProductBatch.Status.ACTIVE,
            quantity_on_hand__gt=0,
            expiry_date__lte=today + timedelta(days=int(days)),
        )
        .order_by("expiry_date", "received_date", "created_at")
    )
