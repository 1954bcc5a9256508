"""Pydantic schemas for API request/response models."""

from fieldops.schemas.auth import TenantContext, TokenPayload
from fieldops.schemas.automation import (
    AutomationHistoryRead,
    AutomationRead,
    AutomationRunResult,
    AutomationRunSummary,
    AutomationSettings,
    AutomationSettingsUpdate,
    AutomationWithHistory,
    HookResponse,
)
from fieldops.schemas.timeline import JobTimeline, TimelineItem
from fieldops.schemas.visit import JobRead, JobStatusUpdate, VisitRead, VisitStatusUpdate

__all__ = [
    "AutomationHistoryRead",
    "AutomationRead",
    "AutomationRunResult",
    "AutomationRunSummary",
    "AutomationSettings",
    "AutomationSettingsUpdate",
    "AutomationWithHistory",
    "HookResponse",
    "JobRead",
    "JobStatusUpdate",
    "JobTimeline",
    "TenantContext",
    "TimelineItem",
    "TokenPayload",
    "VisitRead",
    "VisitStatusUpdate",
]
