# products/tests/test_api.py

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Product, ProductBatch, StockMovement
from products.tests.helpers import make_batch, make_product

User = get_user_model()


class InventoryApiTests(APITestCase):
    """
    GUARANTEES:
    - total_stock is read-only over the API
    - DELETE deactivates
    - batch POST is a shipment receipt; PATCH is metadata-only
    - capability checks per role
    """

    def setUp(self):
        self.manager = User.objects.create_user(email="manager@clinic.test", password="pass", role="manager")
        self.receptionist = User.objects.create_user(email="desk@clinic.test", password="pass", role="receptionist")
        self.expiry = (timezone.localdate() + timedelta(days=200)).isoformat()
        self.client.force_authenticate(self.manager)

    # ======================================================
    # PRODUCTS
    # ======================================================

    def test_create_product_with_initial_stock(self):
        res = self.client.post(
            "/api/products/products/",
            {
                "name": "Chlorhexidine Wash",
                "category": "Consumables",
                "unit": "bottle",
                "selling_price": "12.00",
                "cost_price": "6.00",
                "reorder_point": 3,
                "initial_stock": 10,
                "total_stock": 999,
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["total_stock"], 10)
        self.assertEqual(res.data["stock_status"], "in_stock")

        mv = StockMovement.objects.get(product_id=res.data["id"])
        self.assertEqual(mv.movement_type, StockMovement.MovementType.INITIAL)

    def test_total_stock_not_writable_on_update(self):
        product = make_product(total_stock=4)

        res = self.client.patch(f"/api/products/products/{product.pk}/", {"total_stock": 100}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 4)

    def test_delete_deactivates(self):
        product = make_product(total_stock=4)

        res = self.client.delete(f"/api/products/products/{product.pk}/")

        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertFalse(product.is_active)
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

    def test_stock_levels(self):
        make_product("Out", total_stock=0)
        make_product("Low", total_stock=2, reorder_point=5)
        make_product("Plenty", total_stock=50)

        res = self.client.get("/api/products/products/stock-levels/?status=low_stock")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([p["name"] for p in res.data["results"]], ["Low"])
        self.assertEqual(res.data["summary"]["out_of_stock"], 1)

        bad = self.client.get("/api/products/products/stock-levels/?status=nope")
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(bad.data["error"]["code"], "INVALID_STOCK_STATUS")

    def test_reconcile_endpoint(self):
        product = make_product(total_stock=9)
        make_batch(product, "A", on_hand=2)

        res = self.client.post(f"/api/products/products/{product.pk}/reconcile/", {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["adjusted"])
        self.assertEqual(res.data["batch_stock"], 2)

    def test_receptionist_cannot_edit_catalog(self):
        self.client.force_authenticate(self.receptionist)

        listing = self.client.get("/api/products/products/")
        self.assertEqual(listing.status_code, status.HTTP_200_OK)

        res = self.client.post("/api/products/products/", {"name": "X"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_rejected(self):
        self.client.force_authenticate(None)
        res = self.client.get("/api/products/products/")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    # ======================================================
    # BATCHES
    # ======================================================

    def test_shipment_receipt(self):
        product = make_product(total_stock=0)

        res = self.client.post(
            "/api/products/batches/",
            {
                "supplier_invoice": "SUP-42",
                "lines": [
                    {"product_id": str(product.pk), "quantity_received": 6, "expiry_date": self.expiry, "cost_per_unit": "3.10"}
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(len(res.data), 1)
        self.assertEqual(res.data[0]["quantity_on_hand"], 6)
        self.assertEqual(res.data[0]["remaining_value"], "18.60")
        product.refresh_from_db()
        self.assertEqual(product.total_stock, 6)

    def test_shipment_receipt_unknown_product(self):
        res = self.client.post(
            "/api/products/batches/",
            {
                "lines": [
                    {
                        "product_id": "00000000-0000-4000-8000-000000000000",
                        "quantity_received": 1,
                        "expiry_date": self.expiry,
                    }
                ]
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "STOCK_RECEIPT_FAILED")

    def test_patch_is_metadata_only(self):
        product = make_product(total_stock=5)
        batch = make_batch(product, "A", on_hand=5)

        res = self.client.patch(
            f"/api/products/batches/{batch.pk}/",
            {"lot_number": "NEW-LOT", "quantity_on_hand": 99},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        batch.refresh_from_db()
        self.assertEqual(batch.lot_number, "NEW-LOT")
        self.assertEqual(batch.quantity_on_hand, 5)

    def test_put_refused(self):
        product = make_product(total_stock=5)
        batch = make_batch(product, "A", on_hand=5)

        res = self.client.put(f"/api/products/batches/{batch.pk}/", {"lot_number": "X"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_batches_cannot_be_deleted(self):
        product = make_product(total_stock=5)
        batch = make_batch(product, "A", on_hand=5)

        res = self.client.delete(f"/api/products/batches/{batch.pk}/")

        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(ProductBatch.objects.filter(pk=batch.pk).exists())

    def test_expiry_alerts(self):
        product = make_product(total_stock=10)
        make_batch(product, "SOON", on_hand=5, expires_in_days=3)
        make_batch(product, "LATER", on_hand=5, expires_in_days=300)

        res = self.client.get("/api/products/batches/expiry-alerts/?days=30")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([b["batch_id"] for b in res.data], ["SOON"])
        self.assertEqual(res.data[0]["expiry_status"], "critical")

        bad = self.client.get("/api/products/batches/expiry-alerts/?days=-4")
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)

    # ======================================================
    # MOVEMENTS
    # ======================================================

    def test_movements_are_read_only_and_filterable(self):
        product = make_product(total_stock=10)
        other = make_product("Other", total_stock=10)
        for p, ref in ((product, "inv-1"), (other, "inv-2")):
            StockMovement.objects.create(
                product=p,
                movement_type=StockMovement.MovementType.SALE,
                quantity=-1,
                reference_id=ref,
                previous_stock=10,
                new_stock=9,
            )

        res = self.client.get("/api/products/stock-movements/?reference_id=inv-1")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["product_name"], product.name)

        res = self.client.post("/api/products/stock-movements/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
