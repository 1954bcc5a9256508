"""SQLAlchemy ORM models, re-exported so Base.metadata sees every table."""

from fieldops.db.models.auth import (
    Account,
    AccountMembership,
    AccountSettings,
    Customer,
    User,
)
from fieldops.db.models.automations import Automation, AutomationHistory
from fieldops.db.models.sales import Estimate, Invoice, Lead
from fieldops.db.models.work import Job, JobLineItem, JobNote, TimeEntry, Visit

__all__ = [
    "Account",
    "AccountMembership",
    "AccountSettings",
    "Automation",
    "AutomationHistory",
    "Customer",
    "Estimate",
    "Invoice",
    "Job",
    "JobLineItem",
    "JobNote",
    "Lead",
    "TimeEntry",
    "User",
    "Visit",
]
