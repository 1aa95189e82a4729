# billing/services/exceptions.py


class InvoiceError(Exception):
    pass


class InvalidInvoiceTransitionError(InvoiceError):
    pass


class InvoicePersistenceError(InvoiceError):
    """Invoice could not be saved. Nothing was persisted and no stock moved."""


class InvoiceLockedError(InvoiceError):
    """Line items of a paid or cancelled invoice cannot change."""
