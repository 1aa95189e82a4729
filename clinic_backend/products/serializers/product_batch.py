# products/serializers/product_batch.py

"""
PRODUCT BATCH SERIALIZERS

- ProductBatchSerializer: read + metadata-only PATCH
  (lot_number, expiry_date, supplier_invoice). Quantities and status are
  service-managed and never writable here.
- ShipmentReceiptSerializer: POST payload for receiving a delivery.
"""

from rest_framework import serializers

from products.models import ProductBatch
from products.services.stock_levels import expiry_status


class ProductBatchSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    expiry_status = serializers.SerializerMethodField(read_only=True)
    days_to_expiry = serializers.SerializerMethodField(read_only=True)
    remaining_value = serializers.DecimalField(
        source="total_remaining_value", max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = ProductBatch
        fields = [
            "id",
            "product",
            "product_name",
            "batch_id",
            "lot_number",
            "expiry_date",
            "received_date",
            "quantity_received",
            "quantity_on_hand",
            "cost_per_unit",
            "remaining_value",
            "supplier_invoice",
            "status",
            "expiry_status",
            "days_to_expiry",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "product",
            "product_name",
            "batch_id",
            "received_date",
            "quantity_received",
            "quantity_on_hand",
            "cost_per_unit",
            "remaining_value",
            "status",
            "expiry_status",
            "days_to_expiry",
            "created_at",
            "updated_at",
        ]

    def get_expiry_status(self, obj) -> str:
        return expiry_status(obj)

    def get_days_to_expiry(self, obj) -> int:
        return obj.days_to_expiry()


class ShipmentLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity_received = serializers.IntegerField(min_value=1)
    expiry_date = serializers.DateField()
    batch_id = serializers.CharField(required=False, allow_blank=True, max_length=64)
    lot_number = serializers.CharField(required=False, allow_blank=True, max_length=128)
    cost_per_unit = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0
    )


class ShipmentReceiptSerializer(serializers.Serializer):
    received_date = serializers.DateField(required=False, allow_null=True)
    supplier_invoice = serializers.CharField(required=False, allow_blank=True, max_length=128)
    lines = ShipmentLineSerializer(many=True, allow_empty=False)
