# billing/urls.py

"""
BILLING URLS

Registered under /api/billing/:
    invoices/                 CRUD (through the paid-transition orchestrator)
    invoices/{id}/mark-paid/  pay with stored items
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from billing.views import InvoiceViewSet

router = DefaultRouter()
router.register(r"invoices", InvoiceViewSet, basename="invoices")

urlpatterns = [
    path("", include(router.urls)),
]
