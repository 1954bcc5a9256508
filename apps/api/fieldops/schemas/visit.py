"""Pydantic schemas for technician visit and job updates."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class VisitStatusUpdate(BaseModel):
    """Request to move a visit along its status chain."""

    status: Literal["in_progress", "completed", "cancelled"]
    notes: str | None = Field(default=None, max_length=4000)


class JobStatusUpdate(BaseModel):
    status: Literal["in_progress", "completed", "cancelled"]


class VisitRead(BaseModel):
    id: UUID
    job_id: UUID
    technician_id: UUID | None
    status: str
    start_at: datetime | None
    end_at: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JobRead(BaseModel):
    id: UUID
    job_number: str
    title: str
    status: str
    client_id: UUID | None
    technician_id: UUID | None
    service_date: date | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
