from .invoice import InvoiceSerializer, InvoiceWriteSerializer

__all__ = [
    "InvoiceSerializer",
    "InvoiceWriteSerializer",
]
