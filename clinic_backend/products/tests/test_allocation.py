# products/tests/test_allocation.py

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase, override_settings

from products.models import Product, ProductBatch, StockMovement
from products.services.stock_allocation import allocate_stock_for_invoice
from products.tests.helpers import make_batch, make_product

User = get_user_model()

INVOICE_ID = "3f1c9a52-0000-4000-8000-000000000001"


class FefoAllocationTests(TestCase):
    """
    Allocation engine, batch path.

    GUARANTEES:
    - earliest-expiring batch is consumed first
    - one SALE movement per batch touched, previous - |q| == new
    - depleted iff on_hand == 0
    - shortfall after exhausting batches is reported, never rolled back
    """

    def setUp(self):
        self.user = User.objects.create_user(
            email="tech@clinic.test",
            password="pass",
            role="technician",
            first_name="Sam",
            last_name="Reyes",
        )

    def _allocate(self, product, quantity, **kwargs):
        return allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": quantity}],
            user=self.user,
            **kwargs,
        )

    # ======================================================
    # SCENARIO A: single batch, partial consumption
    # ======================================================

    def test_single_batch_partial_consumption(self):
        product = make_product(total_stock=5)
        batch = make_batch(product, "A", on_hand=5, expires_in_days=30)

        errors = self._allocate(product, 3)

        self.assertEqual(errors, [])
        batch.refresh_from_db()
        product.refresh_from_db()
        self.assertEqual(batch.quantity_on_hand, 2)
        self.assertEqual(batch.status, ProductBatch.Status.ACTIVE)
        self.assertEqual(product.total_stock, 2)

        movements = list(StockMovement.objects.filter(product=product))
        self.assertEqual(len(movements), 1)
        mv = movements[0]
        self.assertEqual(mv.quantity, -3)
        self.assertEqual(mv.batch_id, batch.pk)
        self.assertEqual(mv.reference_id, INVOICE_ID)
        self.assertEqual(mv.movement_type, StockMovement.MovementType.SALE)
        self.assertEqual((mv.previous_stock, mv.new_stock), (5, 2))
        self.assertEqual(mv.actor, "Sam Reyes")
        self.assertEqual(mv.performed_by, self.user)

    # ======================================================
    # SCENARIO B: two batches, earliest expiry first
    # ======================================================

    def test_earliest_expiry_is_depleted_first(self):
        product = make_product(total_stock=7)
        later = make_batch(product, "B", on_hand=5, expires_in_days=200)
        earlier = make_batch(product, "A", on_hand=2, expires_in_days=20)

        errors = self._allocate(product, 4)

        self.assertEqual(errors, [])
        earlier.refresh_from_db()
        later.refresh_from_db()
        product.refresh_from_db()

        self.assertEqual(earlier.quantity_on_hand, 0)
        self.assertEqual(earlier.status, ProductBatch.Status.DEPLETED)
        self.assertEqual(later.quantity_on_hand, 3)
        self.assertEqual(later.status, ProductBatch.Status.ACTIVE)
        self.assertEqual(product.total_stock, 3)

        movements = list(StockMovement.objects.filter(product=product).order_by("created_at"))
        self.assertEqual([m.quantity for m in movements], [-2, -2])
        self.assertEqual([m.batch_id for m in movements], [earlier.pk, later.pk])
        for mv in movements:
            self.assertEqual(mv.previous_stock - abs(mv.quantity), mv.new_stock)

    def test_later_batch_untouched_while_earlier_has_stock(self):
        product = make_product(total_stock=13)
        first = make_batch(product, "A", on_hand=4, expires_in_days=10)
        second = make_batch(product, "B", on_hand=4, expires_in_days=20)
        third = make_batch(product, "C", on_hand=5, expires_in_days=30)

        self._allocate(product, 3)

        first.refresh_from_db()
        second.refresh_from_db()
        third.refresh_from_db()
        self.assertEqual((first.quantity_on_hand, second.quantity_on_hand, third.quantity_on_hand), (1, 4, 5))

    def test_depleted_batches_are_ignored(self):
        product = make_product(total_stock=3)
        old = make_batch(product, "OLD", on_hand=1, received=4, expires_in_days=5)
        old.quantity_on_hand = 0
        old.save(update_fields=["quantity_on_hand"])
        fresh = make_batch(product, "NEW", on_hand=3, expires_in_days=60)

        errors = self._allocate(product, 2)

        self.assertEqual(errors, [])
        fresh.refresh_from_db()
        self.assertEqual(fresh.quantity_on_hand, 1)
        self.assertFalse(StockMovement.objects.filter(batch=old).exists())

    # ======================================================
    # SCENARIO E: demand exceeds all active batches
    # ======================================================

    def test_shortfall_after_exhausting_batches_is_reported(self):
        product = make_product("Meloxicam 1.5mg/ml", total_stock=3)
        a = make_batch(product, "A", on_hand=1, expires_in_days=10)
        b = make_batch(product, "B", on_hand=2, expires_in_days=20)

        errors = self._allocate(product, 5)

        self.assertEqual(errors, ["Not enough stock deducted for Meloxicam 1.5mg/ml (short 2)."])
        a.refresh_from_db()
        b.refresh_from_db()
        product.refresh_from_db()
        self.assertEqual((a.quantity_on_hand, b.quantity_on_hand), (0, 0))
        self.assertEqual({a.status, b.status}, {ProductBatch.Status.DEPLETED})
        self.assertEqual(product.total_stock, 0)
        self.assertEqual(StockMovement.objects.filter(product=product).count(), 2)

    def test_total_stock_below_batches_is_clamped_and_flagged(self):
        product = make_product("Cefovecin", total_stock=1)
        batch = make_batch(product, "A", on_hand=3)

        errors = self._allocate(product, 3)

        product.refresh_from_db()
        batch.refresh_from_db()
        self.assertEqual(product.total_stock, 0)
        self.assertEqual(batch.quantity_on_hand, 0)
        self.assertEqual(len(errors), 1)
        self.assertIn("reconciliation required", errors[0])

        mv = StockMovement.objects.get(product=product)
        self.assertEqual((mv.quantity, mv.previous_stock, mv.new_stock), (-3, 1, 0))


class NoBatchFallbackTests(TestCase):
    """
    Allocation engine, products tracked on total_stock alone.
    """

    # ======================================================
    # SCENARIO C
    # ======================================================

    def test_direct_deduction_without_batches(self):
        product = make_product(total_stock=10)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": 4}],
        )

        self.assertEqual(errors, [])
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 6)

        mv = StockMovement.objects.get(product=product)
        self.assertIsNone(mv.batch_id)
        self.assertEqual(mv.quantity, -4)
        self.assertEqual((mv.previous_stock, mv.new_stock), (10, 6))
        self.assertEqual(mv.actor, "System")

    def test_shortfall_flagged_by_default_policy(self):
        product = make_product("Feline Diet 2kg", total_stock=2)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": 5}],
        )

        self.assertEqual(errors, ["Not enough stock deducted for Feline Diet 2kg (short 3)."])
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 0)
        mv = StockMovement.objects.get(product=product)
        self.assertEqual(mv.quantity, -2)

    @override_settings(INVENTORY={"NO_BATCH_SHORTFALL_POLICY": "clamp"})
    def test_clamp_policy_is_silent(self):
        product = make_product(total_stock=2)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": 5}],
        )

        self.assertEqual(errors, [])
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 0)

    def test_explicit_policy_overrides_settings(self):
        product = make_product(total_stock=0)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": 1}],
            shortfall_policy="clamp",
        )

        self.assertEqual(errors, [])
        self.assertFalse(StockMovement.objects.filter(product=product).exists())

    def test_unknown_policy_is_rejected(self):
        product = make_product(total_stock=3)
        with self.assertRaises(ValueError):
            allocate_stock_for_invoice(
                invoice_id=INVOICE_ID,
                items=[{"product_id": str(product.pk), "quantity": 1}],
                shortfall_policy="oversell",
            )


class BestEffortAllocationTests(TestCase):
    """
    GUARANTEES:
    - errors accumulate across items; one failure never blocks the others
    - a failed batch step leaves no partial write behind
    """

    def test_missing_product_does_not_block_other_items(self):
        product = make_product(total_stock=4)
        missing_id = "00000000-0000-4000-8000-00000000dead"

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[
                {"product_id": missing_id, "quantity": 1},
                {"product_id": str(product.pk), "quantity": 1},
            ],
        )

        self.assertEqual(errors, [f"Missing product ({missing_id})."])
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 3)

    def test_malformed_product_id_is_missing(self):
        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": "not-a-uuid", "quantity": 1}],
        )
        self.assertEqual(errors, ["Missing product (not-a-uuid)."])

    def test_items_without_product_or_quantity_are_skipped(self):
        product = make_product(total_stock=4)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[
                {"product_id": None, "quantity": 3},
                {"product_id": str(product.pk), "quantity": 0},
                {"description": "Consultation", "quantity": 1},
            ],
        )

        self.assertEqual(errors, [])
        self.assertFalse(StockMovement.objects.exists())

    def test_same_product_on_two_lines(self):
        product = make_product(total_stock=6)
        batch = make_batch(product, "A", on_hand=6)

        errors = allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[
                {"product_id": str(product.pk), "quantity": 2},
                {"product": str(product.pk), "quantity": "3"},
            ],
        )

        self.assertEqual(errors, [])
        batch.refresh_from_db()
        product.refresh_from_db()
        self.assertEqual(batch.quantity_on_hand, 1)
        self.assertEqual(product.total_stock, 1)

    def test_failed_batch_write_is_reported_and_loop_continues(self):
        product = make_product("Enrofloxacin", total_stock=6)
        broken = make_batch(product, "A", on_hand=3, expires_in_days=10)
        healthy = make_batch(product, "B", on_hand=3, expires_in_days=20)

        original_save = ProductBatch.save

        def flaky_save(batch, *args, **kwargs):
            if batch.batch_id == "A":
                raise DatabaseError("write failed")
            return original_save(batch, *args, **kwargs)

        with patch.object(ProductBatch, "save", flaky_save):
            errors = allocate_stock_for_invoice(
                invoice_id=INVOICE_ID,
                items=[{"product_id": str(product.pk), "quantity": 2}],
            )

        self.assertEqual(errors, ["Batch update failed (A)"])
        broken.refresh_from_db()
        healthy.refresh_from_db()
        product.refresh_from_db()
        self.assertEqual(broken.quantity_on_hand, 3)
        self.assertEqual(healthy.quantity_on_hand, 1)
        self.assertEqual(product.total_stock, 4)

    def test_failed_product_step_rolls_back_batch_write(self):
        product = make_product("Buprenorphine", total_stock=3)
        batch = make_batch(product, "A", on_hand=3)

        with patch(
            "products.services.stock_allocation.record_movement",
            side_effect=DatabaseError("ledger unavailable"),
        ):
            errors = allocate_stock_for_invoice(
                invoice_id=INVOICE_ID,
                items=[{"product_id": str(product.pk), "quantity": 2}],
            )

        self.assertEqual(
            errors,
            [
                "Product stock update failed (Buprenorphine)",
                "Not enough stock deducted for Buprenorphine (short 2).",
            ],
        )
        batch.refresh_from_db()
        product.refresh_from_db()
        self.assertEqual(batch.quantity_on_hand, 3)
        self.assertEqual(product.total_stock, 3)
        self.assertFalse(StockMovement.objects.exists())

    def test_failed_direct_deduction_is_reported(self):
        product = make_product("Cat Litter", total_stock=5)

        with patch(
            "products.services.stock_allocation.record_movement",
            side_effect=DatabaseError("ledger unavailable"),
        ):
            errors = allocate_stock_for_invoice(
                invoice_id=INVOICE_ID,
                items=[{"product_id": str(product.pk), "quantity": 2}],
            )

        self.assertEqual(errors, ["Stock update failed for Cat Litter"])
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 5)

    def test_total_stock_never_negative(self):
        product = make_product(total_stock=1)
        make_batch(product, "A", on_hand=2)

        allocate_stock_for_invoice(
            invoice_id=INVOICE_ID,
            items=[{"product_id": str(product.pk), "quantity": 10}],
        )

        self.assertGreaterEqual(Product.objects.get(pk=product.pk).total_stock, 0)

    def test_invoice_id_is_required(self):
        with self.assertRaises(ValueError):
            allocate_stock_for_invoice(invoice_id=None, items=[])
