# products/urls.py

"""
PRODUCTS URLS

Registered under /api/products/:
    products/         catalog (+ stock-levels/, {id}/reconcile/)
    batches/          shipment receipt, metadata PATCH, expiry-alerts/
    stock-movements/  read-only ledger
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import ProductBatchViewSet, ProductViewSet, StockMovementViewSet

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"batches", ProductBatchViewSet, basename="batches")
router.register(r"stock-movements", StockMovementViewSet, basename="stock-movements")

urlpatterns = [
    path("", include(router.urls)),
]
