"""
INVOICE LIFECYCLE DOMAIN RULES

The ONLY allowed status transitions for invoices.

    draft   -> sent | paid | cancelled
    sent    -> paid | overdue | cancelled
    overdue -> paid | cancelled
    paid, cancelled: terminal

Re-saving an invoice in its current status is always allowed
(paid -> paid is a plain re-save and never consumes stock again).

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
"""

from __future__ import annotations

from billing.models import Invoice

from .exceptions import InvalidInvoiceTransitionError

TERMINAL_STATES = {
    Invoice.STATUS_PAID,
    Invoice.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Invoice.STATUS_DRAFT: {
        Invoice.STATUS_SENT,
        Invoice.STATUS_PAID,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_SENT: {
        Invoice.STATUS_PAID,
        Invoice.STATUS_OVERDUE,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_OVERDUE: {
        Invoice.STATUS_PAID,
        Invoice.STATUS_CANCELLED,
    },
}

VALID_STATUSES = {value for value, _ in Invoice.STATUS_CHOICES}


def can_transition(*, from_status: str | None, to_status: str) -> bool:
    if to_status not in VALID_STATUSES:
        return False

    # new invoice: any starting status
    if from_status is None:
        return True

    if from_status == to_status:
        return True

    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, from_status: str | None, to_status: str) -> None:
    if not can_transition(from_status=from_status, to_status=to_status):
        raise InvalidInvoiceTransitionError(
            f"Invoice cannot transition from '{from_status}' to '{to_status}'"
        )


def is_becoming_paid(*, from_status: str | None, to_status: str) -> bool:
    """The single trigger for stock allocation."""
    return to_status == Invoice.STATUS_PAID and from_status != Invoice.STATUS_PAID
