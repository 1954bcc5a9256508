"""Pydantic schemas for automations and automation settings."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AutomationSettings(BaseModel):
    """Per-account automation toggles. Everything is opt-in."""

    model_config = ConfigDict(extra="ignore")

    estimate_followups: bool = False
    invoice_followups: bool = False
    job_closeout: bool = False
    review_requests: bool = False
    lead_response: bool = False

    @classmethod
    def merge(
        cls, defaults: "AutomationSettings", overrides: Mapping[str, Any] | None
    ) -> "AutomationSettings":
        """Overlay stored overrides on defaults; unknown keys are dropped."""
        data = defaults.model_dump()
        if overrides:
            data.update({k: v for k, v in overrides.items() if k in cls.model_fields})
        return cls.model_validate(data)


class AutomationSettingsUpdate(BaseModel):
    """Partial update; omitted toggles keep their current value."""

    model_config = ConfigDict(extra="forbid")

    estimate_followups: bool | None = None
    invoice_followups: bool | None = None
    job_closeout: bool | None = None
    review_requests: bool | None = None
    lead_response: bool | None = None


class AutomationHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: str
    message: str
    created_at: datetime


class AutomationRead(BaseModel):
    """Automation work item response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    type: str
    related_id: UUID | None
    status: str
    run_at: datetime
    payload: dict | None
    attempts: int
    last_attempt: datetime | None
    result: dict | None
    created_at: datetime
    updated_at: datetime


class AutomationWithHistory(AutomationRead):
    history: list[AutomationHistoryRead] = []


class AutomationRunResult(BaseModel):
    id: UUID
    type: str
    status: str
    message: str


class AutomationRunSummary(BaseModel):
    """Outcome of one driver batch."""
    attempted: int
    processed: int
    results: list[AutomationRunResult] = []


class HookResponse(BaseModel):
    status: str
    reason: str | None = None
    automations: list[AutomationRead] = []
