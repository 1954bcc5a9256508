"""Centralized defaults for enums."""

from fieldops.db.enums.automations import AutomationStatus
from fieldops.db.enums.sales import EstimateStatus, InvoiceStatus, LeadStatus
from fieldops.db.enums.work import WorkStatus


DEFAULT_AUTOMATION_STATUS: AutomationStatus = AutomationStatus.PENDING
DEFAULT_WORK_STATUS: WorkStatus = WorkStatus.SCHEDULED
DEFAULT_ESTIMATE_STATUS: EstimateStatus = EstimateStatus.DRAFT
DEFAULT_INVOICE_STATUS: InvoiceStatus = InvoiceStatus.DRAFT
DEFAULT_LEAD_STATUS: LeadStatus = LeadStatus.NEW
