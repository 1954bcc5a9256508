"""Pydantic schemas for the job timeline."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from fieldops.db.enums import TimelineEntryType


class TimelineItem(BaseModel):
    """One entry of a merged job timeline."""

    type: TimelineEntryType
    created_at: datetime
    actor_id: UUID | None = None
    summary: str
    payload: dict[str, Any] = {}


class JobTimeline(BaseModel):
    job_id: UUID
    account_id: UUID
    items: list[TimelineItem]
