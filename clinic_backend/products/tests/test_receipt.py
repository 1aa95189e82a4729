# products/tests/test_receipt.py

import re
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from products.models import ProductBatch, StockMovement
from products.services.exceptions import StockReceiptError
from products.services.stock_receipt import (
    generate_batch_label,
    receive_batch,
    receive_shipment,
    set_initial_stock,
)
from products.tests.helpers import make_product


class StockReceiptTests(TestCase):
    """
    GUARANTEES:
    - receipt creates the batch, increments total_stock and writes a RECEIPT movement
    - a shipment is all-or-nothing
    """

    def setUp(self):
        self.product = make_product("Rabies Vaccine", total_stock=4, unit="vial")
        self.expiry = timezone.localdate() + timedelta(days=365)

    def test_generated_label_format(self):
        self.assertRegex(generate_batch_label(), r"^BATCH-\d{6}-[0-9A-F]{4}$")

    def test_receive_batch(self):
        batch = receive_batch(
            product=self.product,
            quantity_received=12,
            expiry_date=self.expiry,
            cost_per_unit="8.75",
            supplier_invoice="SUP-991",
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.total_stock, 16)
        self.assertEqual(batch.quantity_on_hand, 12)
        self.assertEqual(batch.status, ProductBatch.Status.ACTIVE)
        self.assertEqual(batch.cost_per_unit, Decimal("8.75"))
        self.assertTrue(re.match(r"^BATCH-", batch.batch_id))
        self.assertEqual(batch.lot_number, batch.batch_id)

        mv = StockMovement.objects.get(batch=batch)
        self.assertEqual(mv.movement_type, StockMovement.MovementType.RECEIPT)
        self.assertEqual((mv.quantity, mv.previous_stock, mv.new_stock), (12, 4, 16))
        self.assertEqual(mv.reference_id, batch.batch_id)

    def test_explicit_label_and_lot(self):
        batch = receive_batch(
            product=self.product,
            quantity_received=1,
            expiry_date=self.expiry,
            batch_id="RV-2026-01",
            lot_number="MFR-77",
        )
        self.assertEqual((batch.batch_id, batch.lot_number), ("RV-2026-01", "MFR-77"))

    def test_duplicate_label_rejected(self):
        receive_batch(product=self.product, quantity_received=1, expiry_date=self.expiry, batch_id="DUP")
        with self.assertRaises(StockReceiptError):
            receive_batch(product=self.product, quantity_received=1, expiry_date=self.expiry, batch_id="DUP")

    def test_invalid_quantity_rejected(self):
        for bad in (0, -3, "abc", 1.5):
            with self.assertRaises(StockReceiptError):
                receive_batch(product=self.product, quantity_received=bad, expiry_date=self.expiry)

    def test_shipment_is_atomic(self):
        other = make_product("Dewormer", total_stock=0)

        with self.assertRaises(StockReceiptError):
            receive_shipment(
                lines=[
                    {"product_id": str(other.pk), "quantity_received": 5, "expiry_date": self.expiry},
                    {"product_id": str(self.product.pk), "quantity_received": 0, "expiry_date": self.expiry},
                ],
                supplier_invoice="SUP-1",
            )

        other.refresh_from_db()
        self.assertEqual(other.total_stock, 0)
        self.assertFalse(ProductBatch.objects.exists())
        self.assertFalse(StockMovement.objects.exists())

    def test_shipment_receives_every_line(self):
        other = make_product("Dewormer", total_stock=0)

        batches = receive_shipment(
            lines=[
                {"product_id": str(other.pk), "quantity_received": 5, "expiry_date": self.expiry},
                {"product_id": str(self.product.pk), "quantity_received": 2, "expiry_date": self.expiry},
            ],
            supplier_invoice="SUP-2",
        )

        self.assertEqual(len(batches), 2)
        other.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual((other.total_stock, self.product.total_stock), (5, 6))
        self.assertEqual({b.supplier_invoice for b in batches}, {"SUP-2"})

    def test_unknown_product_rejected(self):
        with self.assertRaises(StockReceiptError):
            receive_shipment(
                lines=[{"product_id": "00000000-0000-4000-8000-000000000000", "quantity_received": 1, "expiry_date": self.expiry}]
            )

    def test_initial_stock(self):
        product = make_product("Bandage", total_stock=0)

        mv = set_initial_stock(product=product, quantity=25)

        product.refresh_from_db()
        self.assertEqual(product.total_stock, 25)
        self.assertEqual(mv.movement_type, StockMovement.MovementType.INITIAL)
        self.assertIsNone(mv.batch_id)
        self.assertIsNone(set_initial_stock(product=product, quantity=0))
