# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe inventory):

- Products are editable, but total_stock is read-only (service-managed).
- Batches are view-only: intake goes through receive_shipment() (API),
  quantities through the allocation engine.
- Stock movements are an append-only ledger: view-only, never deleted.
- Admin action "Reconcile stock" routes through reconcile_product_stock().
"""

from __future__ import annotations

from django.contrib import admin, messages

from products.models import Product, ProductBatch, StockMovement
from products.services.stock_levels import expiry_status, stock_status
from products.services.stock_reconciliation import reconcile_product_stock


# =====================================================
# PRODUCT
# =====================================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "category",
        "unit",
        "selling_price",
        "total_stock",
        "reorder_point",
        "stock_level",
        "is_active",
    )
    list_filter = ("is_active", "category")
    search_fields = ("name", "category")
    ordering = ("name",)
    readonly_fields = ("total_stock", "created_at", "updated_at")
    actions = ["reconcile_stock"]

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Stock Level")
    def stock_level(self, obj):
        return stock_status(obj)

    @admin.action(description="Reconcile stock with active batches")
    def reconcile_stock(self, request, queryset):
        adjusted = 0
        for product in queryset:
            result = reconcile_product_stock(product=product, user=request.user)
            adjusted += int(result.adjusted)
        self.message_user(request, f"{adjusted} product(s) adjusted.", messages.SUCCESS)


# =====================================================
# PRODUCT BATCH (VIEW-ONLY)
# =====================================================

@admin.register(ProductBatch)
class ProductBatchAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "batch_id",
        "lot_number",
        "expiry_date",
        "quantity_received",
        "quantity_on_hand",
        "status",
        "expiry_urgency",
    )
    list_filter = ("status", "expiry_date")
    search_fields = ("batch_id", "lot_number", "product__name")
    ordering = ("expiry_date", "received_date")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Expiry")
    def expiry_urgency(self, obj):
        return expiry_status(obj)


# =====================================================
# STOCK MOVEMENT (VIEW-ONLY LEDGER)
# =====================================================

@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "batch",
        "movement_type",
        "quantity",
        "previous_stock",
        "new_stock",
        "reference_id",
        "actor",
    )
    list_filter = ("movement_type", "movement_date")
    search_fields = ("product__name", "reference_id", "batch__batch_id")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
