# billing/services/invoice_payment.py

"""
INVOICE SAVE + PAID-TRANSITION ORCHESTRATOR (APPLICATION SERVICE)

Every invoice create/update goes through save_invoice().

When the invoice is BECOMING paid (new status "paid", old status anything
else, new invoices included):
1) lock the Product rows named by the submitted items (ordered by pk)
2) availability check against those locked rows
     insufficient -> InsufficientStockError, nothing persisted
3) persist the invoice (create/update, items replaced)
     failure -> InvoicePersistenceError, no stock moved
4) allocate stock for the SAME submitted items
5) allocation errors -> invoice stays saved and paid, flagged with
   needs_reconciliation + inventory_errors, errors returned as warnings

All steps share one transaction. The product row locks are held from the
check through the allocation, so two concurrent paid transitions on the
same product serialize instead of both passing the check.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from billing.models import Invoice, InvoiceItem
from products.models import Product
from products.services.exceptions import InsufficientStockError
from products.services.line_items import normalize_line_items, to_int_qty
from products.services.product_index import ProductIndex
from products.services.stock_allocation import allocate_stock_for_invoice
from products.services.stock_availability import check_stock_for_items

from .exceptions import InvoiceLockedError, InvoicePersistenceError
from .invoice_lifecycle import is_becoming_paid, validate_transition

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

PERSISTENCE_FAILED_MESSAGE = "Failed to save invoice. Please try again."

# Header fields accepted from callers (everything else is derived)
INVOICE_FIELDS = (
    "client_name",
    "pet_name",
    "status",
    "invoice_date",
    "due_date",
    "tax_amount",
    "notes",
)


@dataclass
class InvoiceSaveResult:
    invoice: Invoice
    warnings: list[str] = field(default_factory=list)
    allocated: bool = False

    @property
    def needs_reconciliation(self) -> bool:
        return bool(self.warnings)


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _item_value(raw, key, default=None):
    if isinstance(raw, dict):
        return raw.get(key, default)
    return getattr(raw, key, default)


def _stored_items(invoice: Invoice) -> list[dict]:
    return [
        {
            "description": item.description,
            "product_id": str(item.product_id) if item.product_id else None,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        }
        for item in invoice.items.all()
    ]


def _valid_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _lock_products(items) -> list[Product]:
    """SELECT ... FOR UPDATE on every product named by the items, in pk order."""
    product_ids = {
        line.product_id
        for line in normalize_line_items(items)
        if line.product_id and line.quantity > 0 and _valid_uuid(line.product_id)
    }
    if not product_ids:
        return []
    return list(Product.objects.select_for_update().filter(pk__in=product_ids).order_by("pk"))


# ============================================================
# PERSISTENCE
# ============================================================

def _replace_items(*, invoice: Invoice, items) -> Decimal:
    invoice.items.all().delete()

    subtotal = Decimal("0.00")
    for position, raw in enumerate(items or []):
        product = _item_value(raw, "product")
        product_id = getattr(product, "pk", product) or _item_value(raw, "product_id")

        if product_id and not Product.objects.filter(pk=product_id).exists():
            raise ValidationError({"items": f"Unknown product: {product_id}"})

        line = InvoiceItem.objects.create(
            invoice=invoice,
            position=position,
            description=(_item_value(raw, "description") or "").strip(),
            product_id=product_id or None,
            quantity=to_int_qty(_item_value(raw, "quantity", 1)),
            unit_price=_money(_item_value(raw, "unit_price")),
        )
        subtotal += line.total

    return subtotal


def _persist_invoice(*, invoice: Invoice | None, data: dict, items, user) -> Invoice:
    if invoice is None:
        invoice = Invoice(created_by=user if getattr(user, "is_authenticated", False) else None)

    for name in INVOICE_FIELDS:
        if name in data:
            setattr(invoice, name, data[name])

    invoice.tax_amount = _money(invoice.tax_amount)
    invoice.save()

    if items is not None:
        subtotal = _replace_items(invoice=invoice, items=items)
    else:
        subtotal = sum((item.total for item in invoice.items.all()), Decimal("0.00"))

    invoice.subtotal = _money(subtotal)
    invoice.total_amount = _money(invoice.subtotal + invoice.tax_amount)
    invoice.save(update_fields=["subtotal", "total_amount"])
    return invoice


# ============================================================
# ORCHESTRATOR
# ============================================================

@transaction.atomic
def save_invoice(*, data: dict, items=None, invoice: Invoice | None = None, user=None) -> InvoiceSaveResult:
    """
    Create (invoice=None) or update an invoice.

    items=None keeps the stored items (e.g. "mark paid"); a list replaces
    them. Stock checks and allocation use exactly these items. Items of a
    paid or cancelled invoice are frozen; header-only re-saves still work.

    Raises:
    - InvalidInvoiceTransitionError
    - InvoiceLockedError (items sent for a paid/cancelled invoice)
    - InsufficientStockError (nothing persisted)
    - InvoicePersistenceError (nothing persisted)
    """
    data = dict(data or {})

    old_status = None
    if invoice is not None:
        # re-read under lock: a concurrent "pay" of the same invoice waits here
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
        old_status = invoice.status

    new_status = data.get("status") or old_status or Invoice.STATUS_DRAFT
    data["status"] = new_status
    validate_transition(from_status=old_status, to_status=new_status)

    if items is not None and old_status in Invoice.TERMINAL_STATUSES:
        raise InvoiceLockedError(f"Items of a {old_status} invoice cannot be changed")

    if items is not None:
        try:
            normalize_line_items(items)
        except ValueError as exc:
            logger.warning("Invoice rejected: malformed line item", extra={"status": new_status})
            raise InvoicePersistenceError(PERSISTENCE_FAILED_MESSAGE) from exc

    becoming_paid = is_becoming_paid(from_status=old_status, to_status=new_status)
    allocation_items = items if items is not None else (_stored_items(invoice) if invoice else [])

    product_index = None
    if becoming_paid:
        product_index = ProductIndex(_lock_products(allocation_items))
        check = check_stock_for_items(allocation_items, product_index=product_index)
        if not check.sufficient:
            logger.info(
                "Invoice payment blocked by stock check",
                extra={
                    "invoice_id": str(invoice.pk) if invoice else None,
                    "product_id": check.product_id,
                    "requested": check.requested,
                    "available": check.available,
                },
            )
            raise InsufficientStockError(
                check.product_name,
                product_id=check.product_id,
                requested=check.requested,
                available=check.available,
            )

    try:
        with transaction.atomic():
            invoice = _persist_invoice(invoice=invoice, data=data, items=items, user=user)
    except (DatabaseError, ValidationError, ValueError) as exc:
        logger.exception("Invoice save failed", extra={"status": new_status})
        raise InvoicePersistenceError(PERSISTENCE_FAILED_MESSAGE) from exc

    if not becoming_paid:
        return InvoiceSaveResult(invoice=invoice)

    warnings = allocate_stock_for_invoice(
        invoice_id=invoice.pk,
        items=allocation_items,
        user=user,
        product_index=product_index,
    )

    if warnings:
        invoice.needs_reconciliation = True
        invoice.inventory_errors = list(invoice.inventory_errors or []) + list(warnings)
        invoice.save(update_fields=["needs_reconciliation", "inventory_errors"])
        logger.warning(
            "Invoice paid with inventory warnings",
            extra={"invoice_id": str(invoice.pk), "warnings": warnings},
        )

    return InvoiceSaveResult(invoice=invoice, warnings=list(warnings), allocated=True)
