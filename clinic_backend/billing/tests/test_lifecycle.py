# billing/tests/test_lifecycle.py

from datetime import timedelta

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase

from billing.models import Invoice
from billing.services.exceptions import InvalidInvoiceTransitionError
from billing.services.invoice_lifecycle import (
    can_transition,
    is_becoming_paid,
    validate_transition,
)


class InvoiceLifecycleTests(SimpleTestCase):
    """
    GUARANTEES:
    - paid and cancelled are terminal
    - re-saving in the same status is always allowed
    - only a transition INTO paid triggers allocation
    """

    def test_allowed_transitions(self):
        self.assertTrue(can_transition(from_status="draft", to_status="sent"))
        self.assertTrue(can_transition(from_status="draft", to_status="paid"))
        self.assertTrue(can_transition(from_status="sent", to_status="overdue"))
        self.assertTrue(can_transition(from_status="overdue", to_status="paid"))

    def test_terminal_states_are_final(self):
        self.assertFalse(can_transition(from_status="paid", to_status="draft"))
        self.assertFalse(can_transition(from_status="paid", to_status="cancelled"))
        self.assertFalse(can_transition(from_status="cancelled", to_status="paid"))

    def test_same_status_resave(self):
        self.assertTrue(can_transition(from_status="paid", to_status="paid"))
        self.assertTrue(can_transition(from_status="cancelled", to_status="cancelled"))

    def test_backwards_and_unknown(self):
        self.assertFalse(can_transition(from_status="sent", to_status="draft"))
        self.assertFalse(can_transition(from_status=None, to_status="refunded"))

    def test_new_invoice_may_start_anywhere(self):
        self.assertTrue(can_transition(from_status=None, to_status="paid"))
        self.assertTrue(can_transition(from_status=None, to_status="draft"))

    def test_validate_transition_raises(self):
        with self.assertRaises(InvalidInvoiceTransitionError):
            validate_transition(from_status="paid", to_status="sent")

    def test_becoming_paid(self):
        self.assertTrue(is_becoming_paid(from_status=None, to_status="paid"))
        self.assertTrue(is_becoming_paid(from_status="sent", to_status="paid"))
        self.assertFalse(is_becoming_paid(from_status="paid", to_status="paid"))
        self.assertFalse(is_becoming_paid(from_status="draft", to_status="sent"))


class InvoiceModelTests(TestCase):
    def test_number_and_paid_at_are_generated(self):
        invoice = Invoice.objects.create(client_name="J. Alvarez", status=Invoice.STATUS_PAID)

        self.assertTrue(invoice.invoice_number.startswith("INV-"))
        self.assertIsNotNone(invoice.paid_at)

    def test_terminal_status_guard_on_save(self):
        invoice = Invoice.objects.create(client_name="J. Alvarez", status=Invoice.STATUS_CANCELLED)

        invoice.status = Invoice.STATUS_DRAFT
        with self.assertRaises(ValidationError):
            invoice.save()

    def test_due_date_not_before_invoice_date(self):
        invoice = Invoice(client_name="J. Alvarez")
        invoice.due_date = invoice.invoice_date - timedelta(days=1)

        with self.assertRaises(ValidationError):
            invoice.save()
