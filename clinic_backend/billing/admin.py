# billing/admin.py

from django.contrib import admin

from billing.models import Invoice, InvoiceItem


# ======================================================
# INVOICE ADMIN (read-mostly)
# ======================================================
# Status changes must go through save_invoice() so stock is allocated;
# the admin never edits status or totals.


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    can_delete = False
    readonly_fields = ("description", "product", "quantity", "unit_price", "total")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "client_name",
        "pet_name",
        "status",
        "total_amount",
        "needs_reconciliation",
        "created_at",
    )
    readonly_fields = (
        "invoice_number",
        "status",
        "subtotal",
        "tax_amount",
        "total_amount",
        "paid_at",
        "needs_reconciliation",
        "inventory_errors",
        "created_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("invoice_number", "client_name", "pet_name")
    list_filter = ("status", "needs_reconciliation", "created_at")
    inlines = [InvoiceItemInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
