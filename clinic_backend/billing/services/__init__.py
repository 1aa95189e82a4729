from .exceptions import (
    InvalidInvoiceTransitionError,
    InvoiceError,
    InvoiceLockedError,
    InvoicePersistenceError,
)
from .invoice_lifecycle import can_transition, is_becoming_paid, validate_transition
from .invoice_payment import InvoiceSaveResult, save_invoice

__all__ = [
    "InvoiceError",
    "InvalidInvoiceTransitionError",
    "InvoicePersistenceError",
    "InvoiceLockedError",
    "can_transition",
    "validate_transition",
    "is_becoming_paid",
    "InvoiceSaveResult",
    "save_invoice",
]
