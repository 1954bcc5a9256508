"""Estimate, invoice and lead enums."""

from enum import Enum


class EstimateStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    APPROVED = "approved"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    OVERDUE = "overdue"
    PAID = "paid"
    VOID = "void"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"
    UNQUALIFIED = "unqualified"


# Estimates in these statuses no longer need a follow-up
RESOLVED_ESTIMATE_STATUSES = frozenset(
    {EstimateStatus.APPROVED, EstimateStatus.ACCEPTED, EstimateStatus.DECLINED}
)
CLOSED_INVOICE_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.VOID})
INACTIVE_LEAD_STATUSES = frozenset(
    {LeadStatus.CONVERTED, LeadStatus.LOST, LeadStatus.UNQUALIFIED}
)
