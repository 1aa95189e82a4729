# products/views/stock_movement.py

"""
STOCK MOVEMENT LEDGER (READ-ONLY)

GET /api/products/stock-movements/?product=&batch=&movement_type=&reference_id=&date_from=&date_to=
"""

import django_filters
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
)
from products.models import StockMovement
from products.serializers import StockMovementSerializer


class StockMovementFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="movement_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="movement_date", lookup_expr="lte")
    reference_id = django_filters.CharFilter(field_name="reference_id")

    class Meta:
        model = StockMovement
        fields = ["product", "batch", "movement_type", "reference_id"]


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
        CAP_INVENTORY_ADJUST,
    }
    filterset_class = StockMovementFilter
    queryset = StockMovement.objects.select_related("product", "batch").order_by("-created_at")
