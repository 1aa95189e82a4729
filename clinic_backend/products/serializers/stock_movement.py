# products/serializers/stock_movement.py

from rest_framework import serializers

from products.models import StockMovement


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    batch_label = serializers.CharField(source="batch.batch_id", read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_name",
            "batch",
            "batch_label",
            "movement_type",
            "quantity",
            "reference_id",
            "movement_date",
            "actor",
            "performed_by",
            "previous_stock",
            "new_stock",
            "note",
            "created_at",
        ]
        read_only_fields = fields
