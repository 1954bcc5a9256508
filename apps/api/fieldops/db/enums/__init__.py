"""Enum definitions for application constants."""

from fieldops.db.enums.auth import ROLES_CAN_ACCESS_TECH, ROLES_CAN_MANAGE, Role
from fieldops.db.enums.automations import (
    AUTOMATION_SETTING_KEYS,
    AutomationStatus,
    AutomationType,
)
from fieldops.db.enums.defaults import (
    DEFAULT_AUTOMATION_STATUS,
    DEFAULT_ESTIMATE_STATUS,
    DEFAULT_INVOICE_STATUS,
    DEFAULT_LEAD_STATUS,
    DEFAULT_WORK_STATUS,
)
from fieldops.db.enums.sales import (
    CLOSED_INVOICE_STATUSES,
    INACTIVE_LEAD_STATUSES,
    RESOLVED_ESTIMATE_STATUSES,
    EstimateStatus,
    InvoiceStatus,
    LeadStatus,
)
from fieldops.db.enums.work import JobStatus, TimelineEntryType, VisitStatus, WorkStatus

__all__ = [
    "AUTOMATION_SETTING_KEYS",
    "AutomationStatus",
    "AutomationType",
    "CLOSED_INVOICE_STATUSES",
    "DEFAULT_AUTOMATION_STATUS",
    "DEFAULT_ESTIMATE_STATUS",
    "DEFAULT_INVOICE_STATUS",
    "DEFAULT_LEAD_STATUS",
    "DEFAULT_WORK_STATUS",
    "EstimateStatus",
    "INACTIVE_LEAD_STATUSES",
    "InvoiceStatus",
    "JobStatus",
    "LeadStatus",
    "RESOLVED_ESTIMATE_STATUSES",
    "ROLES_CAN_ACCESS_TECH",
    "ROLES_CAN_MANAGE",
    "Role",
    "TimelineEntryType",
    "VisitStatus",
    "WorkStatus",
]
