from .exceptions import (
    InsufficientStockError,
    InventoryError,
    ReconciliationError,
    StockReceiptError,
)
from .product_index import ProductIndex
from .stock_allocation import allocate_stock_for_invoice
from .stock_availability import StockCheckResult, check_stock_for_items
from .stock_receipt import receive_batch, receive_shipment, set_initial_stock
from .stock_reconciliation import reconcile_all, reconcile_product_stock

__all__ = [
    "InventoryError",
    "InsufficientStockError",
    "StockReceiptError",
    "ReconciliationError",
    "ProductIndex",
    "StockCheckResult",
    "check_stock_for_items",
    "allocate_stock_for_invoice",
    "receive_batch",
    "receive_shipment",
    "set_initial_stock",
    "reconcile_product_stock",
    "reconcile_all",
]
