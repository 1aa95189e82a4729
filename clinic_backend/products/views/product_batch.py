"""
======================================================
PATH: products/views/product_batch.py
======================================================
PRODUCT BATCH VIEWSET

RULES:
- POST is a SHIPMENT RECEIPT: batches + total_stock + RECEIPT movements,
  all-or-nothing (receive_shipment()).
- Quantities and status are service-managed; PUT is refused.
- PATCH is metadata-only (lot_number, expiry_date, supplier_invoice).
- Batches are never deleted.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.responses import error_response
from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
    HasCapability,
)
from products.models import ProductBatch
from products.serializers import ProductBatchSerializer, ShipmentReceiptSerializer
from products.services.exceptions import StockReceiptError
from products.services.stock_levels import expiring_batches
from products.services.stock_receipt import receive_shipment


class ProductBatchViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ProductBatchSerializer
    permission_classes = [IsAuthenticated]

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in {"list", "retrieve", "expiry_alerts"}:
            self.required_any_capabilities = {
                CAP_INVENTORY_VIEW,
                CAP_INVENTORY_EDIT,
                CAP_INVENTORY_ADJUST,
            }
            return [IsAuthenticated(), HasAnyCapability()]

        self.required_capability = CAP_INVENTORY_EDIT
        return [IsAuthenticated(), HasCapability()]

    def get_serializer_class(self):
        if self.action == "create":
            return ShipmentReceiptSerializer
        return ProductBatchSerializer

    def get_queryset(self):
        qs = ProductBatch.objects.select_related("product").order_by(
            "expiry_date", "received_date", "created_at"
        )

        product_id = (self.request.query_params.get("product_id") or "").strip()
        if product_id:
            qs = qs.filter(product_id=product_id)

        batch_status = (self.request.query_params.get("status") or "").strip().lower()
        if batch_status in ProductBatch.Status.values:
            qs = qs.filter(status=batch_status)

        return qs

    # -------------------------------------------------
    # CREATE (shipment receipt)
    # -------------------------------------------------
    @extend_schema(request=ShipmentReceiptSerializer, responses=ProductBatchSerializer(many=True))
    def create(self, request, *args, **kwargs):
        """
        POST /api/products/batches/

        {"received_date": "...", "supplier_invoice": "...",
         "lines": [{"product_id", "quantity_received", "expiry_date", ...}]}
        """
        serializer = ShipmentReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            batches = receive_shipment(
                lines=[dict(line) for line in v["lines"]],
                received_date=v.get("received_date"),
                supplier_invoice=v.get("supplier_invoice") or "",
                user=request.user,
            )
        except StockReceiptError as exc:
            return error_response(
                code="STOCK_RECEIPT_FAILED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            ProductBatchSerializer(batches, many=True).data,
            status=status.HTTP_201_CREATED,
        )

    # -------------------------------------------------
    # UPDATE (metadata only)
    # -------------------------------------------------
    def update(self, request, *args, **kwargs):
        if not kwargs.get("partial"):
            return error_response(
                code="METHOD_NOT_ALLOWED",
                message=(
                    "PUT is not allowed for batches. Use PATCH for metadata only "
                    "(lot_number, expiry_date, supplier_invoice)."
                ),
                http_status=status.HTTP_405_METHOD_NOT_ALLOWED,
            )
        return super().update(request, *args, **kwargs)

    # -------------------------------------------------
    # EXPIRY ALERTS
    # -------------------------------------------------
    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="days",
                type=int,
                required=False,
                description="Look-ahead window in days (default from INVENTORY settings)",
            )
        ]
    )
    @action(detail=False, methods=["get"], url_path="expiry-alerts")
    def expiry_alerts(self, request):
        raw_days = (request.query_params.get("days") or "").strip()
        days = None
        if raw_days:
            try:
                days = int(raw_days)
            except ValueError:
                days = -1
            if days < 0:
                return error_response(
                    code="INVALID_DAYS",
                    message="days must be a non-negative integer",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )

        batches = expiring_batches(days=days)
        return Response(ProductBatchSerializer(batches, many=True).data)
