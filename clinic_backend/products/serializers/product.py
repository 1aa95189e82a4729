# products/serializers/product.py

"""
PRODUCT SERIALIZER

- total_stock is READ-ONLY: it only moves through products.services.
- initial_stock (write-only, create only) seeds opening stock for products
  tracked without batches; it is recorded as an INITIAL movement.
"""

from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from products.models import Product
from products.services.stock_levels import stock_status
from products.services.stock_receipt import set_initial_stock


class ProductSerializer(serializers.ModelSerializer):
    initial_stock = serializers.IntegerField(
        write_only=True, required=False, min_value=0, default=0
    )
    stock_status = serializers.SerializerMethodField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "category",
            "unit",
            "selling_price",
            "cost_price",
            "reorder_point",
            "total_stock",
            "initial_stock",
            "stock_status",
            "is_low_stock",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "total_stock",
            "stock_status",
            "is_low_stock",
            "created_at",
            "updated_at",
        ]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value

    def validate_selling_price(self, value):
        if value is None or value < Decimal("0.00"):
            raise serializers.ValidationError("Selling price must be non-negative")
        return value

    def validate_cost_price(self, value):
        if value is None or value < Decimal("0.00"):
            raise serializers.ValidationError("Cost price must be non-negative")
        return value

    def validate(self, attrs):
        if self.instance is not None and attrs.get("initial_stock"):
            raise serializers.ValidationError(
                {"initial_stock": "initial_stock can only be set when creating a product"}
            )
        return attrs

    def get_stock_status(self, obj) -> str:
        return stock_status(obj)

    @transaction.atomic
    def create(self, validated_data):
        initial_stock = validated_data.pop("initial_stock", 0) or 0
        product = super().create(validated_data)

        if initial_stock:
            request = self.context.get("request")
            set_initial_stock(
                product=product,
                quantity=initial_stock,
                user=getattr(request, "user", None),
            )
            product.refresh_from_db()

        return product

    def update(self, instance, validated_data):
        validated_data.pop("initial_stock", None)
        return super().update(instance, validated_data)
