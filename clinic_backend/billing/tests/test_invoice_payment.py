# billing/tests/test_invoice_payment.py

from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase

from billing.models import Invoice, InvoiceItem
from billing.services.exceptions import (
    InvalidInvoiceTransitionError,
    InvoiceLockedError,
    InvoicePersistenceError,
)
from billing.services.invoice_payment import save_invoice
from products.models import StockMovement
from products.services.exceptions import InsufficientStockError
from products.tests.helpers import make_batch, make_product

User = get_user_model()


class InvoicePaymentTests(TestCase):
    """
    Paid-transition orchestrator.

    GUARANTEES:
    - stock is consumed exactly once, when the invoice BECOMES paid
    - a failed availability check persists nothing
    - allocation problems keep the invoice paid and flag it
    - a failed save moves no stock
    """

    def setUp(self):
        self.user = User.objects.create_user(
            email="desk@clinic.test",
            password="pass",
            role="receptionist",
            first_name="Ana",
            last_name="Cole",
        )
        self.amox = make_product("Amoxicillin 250mg", total_stock=10)
        make_batch(self.amox, "AMX-1", on_hand=10)

    def _line(self, product, quantity, price="2.50"):
        return {"product": product, "quantity": quantity, "unit_price": Decimal(price)}

    # ======================================================
    # NON-PAID SAVES
    # ======================================================

    def test_draft_save_moves_no_stock(self):
        result = save_invoice(
            data={"client_name": "J. Alvarez", "pet_name": "Rex"},
            items=[self._line(self.amox, 4), {"description": "Consultation", "quantity": 1, "unit_price": "40.00"}],
            user=self.user,
        )

        invoice = result.invoice
        self.assertEqual(invoice.status, Invoice.STATUS_DRAFT)
        self.assertFalse(result.allocated)
        self.assertEqual(invoice.items.count(), 2)
        self.assertEqual(invoice.subtotal, Decimal("50.00"))
        self.assertEqual(invoice.total_amount, Decimal("50.00"))
        self.assertEqual(invoice.created_by, self.user)
        self.assertFalse(StockMovement.objects.exists())

    # ======================================================
    # BECOMING PAID
    # ======================================================

    def test_new_paid_invoice_allocates_stock(self):
        result = save_invoice(
            data={"client_name": "J. Alvarez", "status": "paid"},
            items=[self._line(self.amox, 4)],
            user=self.user,
        )

        self.assertTrue(result.allocated)
        self.assertEqual(result.warnings, [])
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 6)

        mv = StockMovement.objects.get(product=self.amox)
        self.assertEqual(mv.reference_id, str(result.invoice.pk))
        self.assertEqual(mv.quantity, -4)
        self.assertEqual(mv.actor, "Ana Cole")
        self.assertFalse(result.invoice.needs_reconciliation)

    def test_paid_resave_does_not_deduct_again(self):
        invoice = save_invoice(
            data={"client_name": "J. Alvarez", "status": "paid"},
            items=[self._line(self.amox, 4)],
        ).invoice

        result = save_invoice(data={"notes": "Collected at desk"}, invoice=invoice)

        self.assertFalse(result.allocated)
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 6)
        self.assertEqual(StockMovement.objects.filter(product=self.amox).count(), 1)

    def test_paid_invoice_items_are_frozen(self):
        invoice = save_invoice(
            data={"client_name": "J. Alvarez", "status": "paid"},
            items=[self._line(self.amox, 1)],
        ).invoice

        with self.assertRaises(InvoiceLockedError):
            save_invoice(data={}, items=[self._line(self.amox, 9)], invoice=invoice)

        invoice.refresh_from_db()
        self.assertEqual(list(invoice.items.values_list("quantity", flat=True)), [1])
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 9)
        self.assertEqual(StockMovement.objects.filter(reference_id=str(invoice.pk)).count(), 1)

        # header-only re-save still allowed
        result = save_invoice(data={"notes": "Paid by card"}, invoice=invoice)
        self.assertEqual(result.invoice.notes, "Paid by card")

    def test_mark_paid_uses_stored_items(self):
        invoice = save_invoice(
            data={"client_name": "J. Alvarez", "status": "sent"},
            items=[self._line(self.amox, 3)],
        ).invoice

        result = save_invoice(data={"status": "paid"}, invoice=invoice)

        self.assertTrue(result.allocated)
        self.assertEqual(result.invoice.items.count(), 1)
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 7)

    def test_service_lines_are_ignored_by_allocation(self):
        result = save_invoice(
            data={"client_name": "J. Alvarez", "status": "paid"},
            items=[{"description": "Dental cleaning", "quantity": 1, "unit_price": "120.00"}],
        )

        self.assertTrue(result.allocated)
        self.assertEqual(result.warnings, [])
        self.assertFalse(StockMovement.objects.exists())

    # ======================================================
    # SCENARIO D: insufficient stock, nothing persisted
    # ======================================================

    def test_insufficient_stock_aborts_everything(self):
        other = make_product("Meloxicam 1.5mg/ml", total_stock=2)
        make_batch(other, "MLX-1", on_hand=2)

        with self.assertRaises(InsufficientStockError) as ctx:
            save_invoice(
                data={"client_name": "J. Alvarez", "status": "paid"},
                items=[self._line(self.amox, 1), self._line(other, 3)],
            )

        self.assertEqual(ctx.exception.product_name, "Meloxicam 1.5mg/ml")
        self.assertEqual((ctx.exception.requested, ctx.exception.available), (3, 2))
        self.assertIn('Insufficient stock for "Meloxicam 1.5mg/ml"', str(ctx.exception))

        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(InvoiceItem.objects.exists())
        self.assertFalse(StockMovement.objects.exists())
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 10)

    def test_insufficient_stock_leaves_existing_invoice_unchanged(self):
        invoice = save_invoice(
            data={"client_name": "J. Alvarez", "status": "sent"},
            items=[self._line(self.amox, 2)],
        ).invoice

        with self.assertRaises(InsufficientStockError):
            save_invoice(data={"status": "paid"}, items=[self._line(self.amox, 11)], invoice=invoice)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_SENT)
        self.assertEqual(list(invoice.items.values_list("quantity", flat=True)), [2])

    def test_demand_is_summed_per_product(self):
        with self.assertRaises(InsufficientStockError):
            save_invoice(
                data={"client_name": "J. Alvarez", "status": "paid"},
                items=[self._line(self.amox, 6), self._line(self.amox, 6)],
            )

    # ======================================================
    # SCENARIO E: allocation shortfall after a passing check
    # ======================================================

    def test_allocation_warnings_flag_the_paid_invoice(self):
        drifted = make_product("Cefovecin 80mg/ml", total_stock=10)
        make_batch(drifted, "CEF-1", on_hand=3)

        result = save_invoice(
            data={"client_name": "J. Alvarez", "status": "paid"},
            items=[self._line(drifted, 5)],
        )

        invoice = result.invoice
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_PAID)
        self.assertTrue(invoice.needs_reconciliation)
        self.assertEqual(result.warnings, ["Not enough stock deducted for Cefovecin 80mg/ml (short 2)."])
        self.assertEqual(invoice.inventory_errors, result.warnings)

        drifted.refresh_from_db()
        self.assertEqual(drifted.total_stock, 7)

    # ======================================================
    # FAILURES
    # ======================================================

    def test_invalid_transition(self):
        invoice = save_invoice(data={"client_name": "J. Alvarez", "status": "cancelled"}).invoice

        with self.assertRaises(InvalidInvoiceTransitionError):
            save_invoice(data={"status": "paid"}, items=[self._line(self.amox, 1)], invoice=invoice)

        self.assertFalse(StockMovement.objects.exists())

    def test_malformed_quantity_is_a_persistence_error_on_both_paths(self):
        for invoice_status in ("draft", "paid"):
            with self.subTest(status=invoice_status):
                with self.assertRaises(InvoicePersistenceError):
                    save_invoice(
                        data={"client_name": "J. Alvarez", "status": invoice_status},
                        items=[{"product": self.amox, "quantity": "2.5", "unit_price": "2.50"}],
                    )

        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(StockMovement.objects.exists())

    def test_persistence_failure_moves_no_stock(self):
        with patch(
            "billing.services.invoice_payment._persist_invoice",
            side_effect=DatabaseError("disk full"),
        ):
            with self.assertRaises(InvoicePersistenceError) as ctx:
                save_invoice(
                    data={"client_name": "J. Alvarez", "status": "paid"},
                    items=[self._line(self.amox, 2)],
                )

        self.assertEqual(str(ctx.exception), "Failed to save invoice. Please try again.")
        self.amox.refresh_from_db()
        self.assertEqual(self.amox.total_stock, 10)
        self.assertFalse(StockMovement.objects.exists())
