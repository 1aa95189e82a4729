# products/serializers/__init__.py

from .product import ProductSerializer
from .product_batch import ProductBatchSerializer, ShipmentReceiptSerializer
from .stock_movement import StockMovementSerializer

__all__ = [
    "ProductSerializer",
    "ProductBatchSerializer",
    "ShipmentReceiptSerializer",
    "StockMovementSerializer",
]
