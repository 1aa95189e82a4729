# products/views/product.py

"""
PRODUCT VIEWSET

- Catalog CRUD (DELETE deactivates; products are never removed)
- Stock level buckets: GET /products/products/stock-levels/?status=
- Drift repair:        POST /products/products/{id}/reconcile/
"""

from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
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
from products.models import Product
from products.serializers import ProductSerializer
from products.services.exceptions import ReconciliationError
from products.services.stock_levels import (
    STOCK_STATUSES,
    products_by_stock_status,
    stock_level_summary,
)
from products.services.stock_reconciliation import reconcile_product_stock


def _truthy(raw) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes")


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        # reset per request
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in {"list", "retrieve", "stock_levels"}:
            self.required_any_capabilities = {
                CAP_INVENTORY_VIEW,
                CAP_INVENTORY_EDIT,
                CAP_INVENTORY_ADJUST,
            }
            return [IsAuthenticated(), HasAnyCapability()]

        if self.action == "reconcile":
            self.required_capability = CAP_INVENTORY_ADJUST
            return [IsAuthenticated(), HasCapability()]

        self.required_capability = CAP_INVENTORY_EDIT
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = Product.objects.all().order_by("name")
        params = self.request.query_params

        if not _truthy(params.get("include_inactive")):
            qs = qs.filter(is_active=True)

        q = (params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(category__icontains=q))

        category = (params.get("category") or "").strip()
        if category:
            qs = qs.filter(category__iexact=category)

        return qs

    def destroy(self, request, *args, **kwargs):
        """Deactivate instead of delete (movements and batches reference products)."""
        product = self.get_object()
        if product.is_active:
            product.is_active = False
            product.save(update_fields=["is_active", "updated_at"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="status",
                type=str,
                required=False,
                enum=list(STOCK_STATUSES),
                description="Restrict to one stock bucket",
            )
        ]
    )
    @action(detail=False, methods=["get"], url_path="stock-levels")
    def stock_levels(self, request):
        qs = self.get_queryset()
        wanted = (request.query_params.get("status") or "").strip().lower()

        if wanted:
            if wanted not in STOCK_STATUSES:
                return error_response(
                    code="INVALID_STOCK_STATUS",
                    message=f"status must be one of: {', '.join(STOCK_STATUSES)}",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )
            qs = products_by_stock_status(wanted, qs)

        return Response(
            {
                "summary": stock_level_summary(self.get_queryset()),
                "results": self.get_serializer(qs, many=True).data,
            }
        )

    @extend_schema(
        parameters=[
            OpenApiParameter(name="dry_run", type=bool, required=False),
        ]
    )
    @action(detail=True, methods=["post"], url_path="reconcile")
    def reconcile(self, request, pk=None):
        product = self.get_object()
        dry_run = _truthy(str(request.query_params.get("dry_run") or request.data.get("dry_run") or ""))

        try:
            result = reconcile_product_stock(product=product, user=request.user, dry_run=dry_run)
        except ReconciliationError as exc:
            return error_response(
                code="RECONCILIATION_FAILED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "product_id": result.product_id,
                "product_name": result.product_name,
                "recorded_stock": result.recorded_stock,
                "batch_stock": result.batch_stock,
                "drift": result.drift,
                "adjusted": result.adjusted,
                "skipped": result.skipped,
                "dry_run": dry_run,
            },
            status=status.HTTP_200_OK,
        )
