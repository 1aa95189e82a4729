# billing/serializers/invoice.py

"""
INVOICE SERIALIZERS

- InvoiceSerializer: read shape (items nested, totals derived server-side).
- InvoiceWriteSerializer: create/update payload handed to save_invoice().
  Totals, invoice_number, paid_at and the reconciliation flags are never
  accepted from the client.
"""

from rest_framework import serializers

from billing.models import Invoice, InvoiceItem
from products.models import Product


class InvoiceItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True, default=None)

    class Meta:
        model = InvoiceItem
        fields = [
            "id",
            "description",
            "product",
            "product_name",
            "quantity",
            "unit_price",
            "total",
        ]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "client_name",
            "pet_name",
            "status",
            "invoice_date",
            "due_date",
            "subtotal",
            "tax_amount",
            "total_amount",
            "notes",
            "paid_at",
            "needs_reconciliation",
            "inventory_errors",
            "items",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceItemWriteSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    product = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), required=False, allow_null=True, default=None
    )
    quantity = serializers.IntegerField(min_value=0, default=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)

    def validate(self, attrs):
        if attrs.get("product") is None and not (attrs.get("description") or "").strip():
            raise serializers.ValidationError("A line needs a product or a description")
        return attrs


class InvoiceWriteSerializer(serializers.Serializer):
    client_name = serializers.CharField(max_length=255, required=False)
    pet_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES, required=False)
    invoice_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = InvoiceItemWriteSerializer(many=True, required=False)

    def validate(self, attrs):
        creating = self.instance is None
        if creating and not (attrs.get("client_name") or "").strip():
            raise serializers.ValidationError({"client_name": "client_name is required"})
        return attrs
