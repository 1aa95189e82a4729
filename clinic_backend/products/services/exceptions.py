# products/services/exceptions.py

"""
INVENTORY DOMAIN ERRORS

Hard failures only. Soft allocation failures are NOT exceptions: the
allocation engine returns them as a list of messages.
"""

from __future__ import annotations


class InventoryError(Exception):
    pass


class InsufficientStockError(InventoryError):
    """
    Raised by the paid-transition orchestrator when the availability check
    fails. Carries the short product so callers can name it.
    """

    def __init__(self, product_name: str, *, product_id=None, requested: int = 0, available: int = 0):
        self.product_name = product_name
        self.product_id = product_id
        self.requested = int(requested or 0)
        self.available = int(available or 0)
        super().__init__(f'Insufficient stock for "{product_name}". Cannot complete sale.')


class StockReceiptError(InventoryError):
    pass


class ReconciliationError(InventoryError):
    pass
