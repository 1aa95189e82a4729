# backend/tests.py

from rest_framework import status
from rest_framework.test import APITestCase


class ProjectEndpointTests(APITestCase):
    """
    GUARANTEES:
    - /api/ and /api/health/ are public
    - the root advertises the clinic modules
    """

    def test_api_root_lists_modules(self):
        res = self.client.get("/api/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["modules"]["invoices"], "/api/billing/invoices/")
        self.assertEqual(res.data["modules"]["batches"], "/api/products/batches/")

    def test_health_check(self):
        res = self.client.get("/api/health/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, {"status": "ok", "db": "ok"})
