"""
======================================================
PATH: billing/views/invoice.py
======================================================
INVOICE VIEWSET

Every write goes through billing.services.invoice_payment.save_invoice().

Responses:
- 201/200: invoice + "inventory_warnings" (non-empty when the invoice was
  paid but stock could not be fully allocated)
- 409 INSUFFICIENT_STOCK: invoice NOT saved, names the short product
- 400 INVALID_TRANSITION
- 400 INVOICE_LOCKED: items sent for a paid/cancelled invoice
- 500 INVOICE_SAVE_FAILED: invoice NOT saved
"""

from __future__ import annotations

from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.responses import error_response
from billing.models import Invoice
from billing.serializers import InvoiceSerializer, InvoiceWriteSerializer
from billing.services.exceptions import (
    InvalidInvoiceTransitionError,
    InvoiceLockedError,
    InvoicePersistenceError,
)
from billing.services.invoice_lifecycle import is_becoming_paid
from billing.services.invoice_payment import save_invoice
from permissions.roles import (
    CAP_BILLING_COLLECT,
    CAP_BILLING_EDIT,
    CAP_BILLING_VIEW,
    HasAnyCapability,
    HasCapability,
    user_has_capability,
)
from products.services.exceptions import InsufficientStockError


class InvoiceViewSet(viewsets.ModelViewSet):
    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "needs_reconciliation"]

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in {"list", "retrieve"}:
            self.required_any_capabilities = {
                CAP_BILLING_VIEW,
                CAP_BILLING_EDIT,
                CAP_BILLING_COLLECT,
            }
            return [IsAuthenticated(), HasAnyCapability()]

        if self.action == "mark_paid":
            self.required_capability = CAP_BILLING_COLLECT
            return [IsAuthenticated(), HasCapability()]

        self.required_capability = CAP_BILLING_EDIT
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = Invoice.objects.prefetch_related("items", "items__product").order_by("-created_at")

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(
                Q(client_name__icontains=q) | Q(pet_name__icontains=q) | Q(invoice_number__icontains=q)
            )
        return qs

    # -------------------------------------------------
    # HELPERS
    # -------------------------------------------------
    def _run_save(self, *, data, items, invoice, success_status):
        try:
            result = save_invoice(data=data, items=items, invoice=invoice, user=self.request.user)
        except InsufficientStockError as exc:
            return error_response(
                code="INSUFFICIENT_STOCK",
                message=str(exc),
                http_status=status.HTTP_409_CONFLICT,
                product_name=exc.product_name,
            )
        except InvalidInvoiceTransitionError as exc:
            return error_response(
                code="INVALID_TRANSITION",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except InvoiceLockedError as exc:
            return error_response(
                code="INVOICE_LOCKED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except InvoicePersistenceError as exc:
            return error_response(
                code="INVOICE_SAVE_FAILED",
                message=str(exc),
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        body = dict(InvoiceSerializer(result.invoice).data)
        body["inventory_warnings"] = result.warnings
        return Response(body, status=success_status)

    def _forbidden_payment(self, *, from_status, to_status):
        if not to_status:
            return None
        if is_becoming_paid(from_status=from_status, to_status=to_status) and not user_has_capability(
            self.request.user, CAP_BILLING_COLLECT
        ):
            return error_response(
                code="FORBIDDEN",
                message="You are not allowed to mark invoices as paid.",
                http_status=status.HTTP_403_FORBIDDEN,
            )
        return None

    @staticmethod
    def _split_payload(validated):
        data = dict(validated)
        items = data.pop("items", None)
        return data, [dict(item) for item in items] if items is not None else None

    # -------------------------------------------------
    # CREATE / UPDATE
    # -------------------------------------------------
    @extend_schema(request=InvoiceWriteSerializer, responses=InvoiceSerializer)
    def create(self, request, *args, **kwargs):
        serializer = InvoiceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data, items = self._split_payload(serializer.validated_data)

        forbidden = self._forbidden_payment(from_status=None, to_status=data.get("status"))
        if forbidden is not None:
            return forbidden

        return self._run_save(data=data, items=items or [], invoice=None, success_status=status.HTTP_201_CREATED)

    @extend_schema(request=InvoiceWriteSerializer, responses=InvoiceSerializer)
    def update(self, request, *args, **kwargs):
        invoice = self.get_object()
        serializer = InvoiceWriteSerializer(invoice, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data, items = self._split_payload(serializer.validated_data)

        forbidden = self._forbidden_payment(from_status=invoice.status, to_status=data.get("status"))
        if forbidden is not None:
            return forbidden

        return self._run_save(data=data, items=items, invoice=invoice, success_status=status.HTTP_200_OK)

    def partial_update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, *args, **kwargs)

    # -------------------------------------------------
    # DELETE (drafts only)
    # -------------------------------------------------
    def destroy(self, request, *args, **kwargs):
        invoice = self.get_object()
        if invoice.status != Invoice.STATUS_DRAFT:
            return error_response(
                code="INVOICE_NOT_DELETABLE",
                message="Only draft invoices can be deleted. Cancel it instead.",
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        invoice.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    # -------------------------------------------------
    # ACTION: mark paid
    # -------------------------------------------------
    @extend_schema(request=None, responses=InvoiceSerializer)
    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        """
        POST /api/billing/invoices/{id}/mark-paid/

        Pays the invoice with its stored items.
        """
        invoice = self.get_object()
        return self._run_save(
            data={"status": Invoice.STATUS_PAID},
            items=None,
            invoice=invoice,
            success_status=status.HTTP_200_OK,
        )
