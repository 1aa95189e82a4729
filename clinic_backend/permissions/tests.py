# permissions/tests.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from permissions.roles import (
    CAP_BILLING_COLLECT,
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_EDIT,
    HasAnyCapability,
    HasCapability,
    capabilities_for,
    user_has_capability,
)

User = get_user_model()


class _View:
    required_capability = None
    required_any_capabilities = None


class CapabilityTests(TestCase):
    """
    GUARANTEES:
    - capabilities come from the role map
    - superusers hold every capability
    - views with no declared capability deny by default
    """

    def setUp(self):
        self.factory = APIRequestFactory()
        self.technician = User.objects.create_user(email="tech@clinic.test", password="pass", role="technician")
        self.receptionist = User.objects.create_user(email="desk@clinic.test", password="pass", role="receptionist")

    def _request_for(self, user):
        request = self.factory.get("/")
        request.user = user
        return request

    def test_role_map(self):
        self.assertTrue(user_has_capability(self.technician, CAP_INVENTORY_EDIT))
        self.assertFalse(user_has_capability(self.technician, CAP_BILLING_COLLECT))
        self.assertTrue(user_has_capability(self.receptionist, CAP_BILLING_COLLECT))
        self.assertFalse(user_has_capability(self.receptionist, CAP_INVENTORY_ADJUST))

    def test_superuser_has_everything(self):
        root = User.objects.create_superuser(email="root@clinic.test", password="pass")
        self.assertIn(CAP_INVENTORY_ADJUST, capabilities_for(root))

    def test_has_capability(self):
        view = _View()
        view.required_capability = CAP_INVENTORY_EDIT

        self.assertTrue(HasCapability().has_permission(self._request_for(self.technician), view))
        self.assertFalse(HasCapability().has_permission(self._request_for(self.receptionist), view))

    def test_deny_by_default(self):
        view = _View()
        self.assertFalse(HasCapability().has_permission(self._request_for(self.technician), view))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.technician), view))

    def test_has_any_capability(self):
        view = _View()
        view.required_any_capabilities = {CAP_INVENTORY_ADJUST, CAP_BILLING_COLLECT}

        self.assertTrue(HasAnyCapability().has_permission(self._request_for(self.receptionist), view))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.technician), view))
