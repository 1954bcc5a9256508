"""Job timeline - merges independently stored job streams at read time."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from fieldops.db.enums import TimelineEntryType
from fieldops.db.models import JobLineItem, JobNote, TimeEntry, Visit
from fieldops.schemas.timeline import JobTimeline, TimelineItem
from fieldops.services import entity_service

NOTE_SUMMARY_LIMIT = 100


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _number(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _format_hours(value: Decimal | None) -> str:
    if value is None:
        return "0"
    return f"{value.normalize():f}"


def _note_items(db: Session, account_id: UUID, job_id: UUID) -> list[TimelineItem]:
    notes = (
        db.query(JobNote)
        .filter(JobNote.job_id == job_id, JobNote.account_id == account_id)
        .order_by(JobNote.created_at.asc())
        .all()
    )
    items = []
    for note in notes:
        summary = note.note
        if len(summary) > NOTE_SUMMARY_LIMIT:
            summary = summary[:NOTE_SUMMARY_LIMIT] + "..."
        items.append(
            TimelineItem(
                type=TimelineEntryType.NOTE,
                created_at=note.created_at,
                actor_id=note.technician_id,
                summary=summary,
                payload={"note": note.note},
            )
        )
    return items


def _visit_items(db: Session, account_id: UUID, job_id: UUID) -> list[TimelineItem]:
    visits = (
        db.query(Visit)
        .filter(Visit.job_id == job_id, Visit.account_id == account_id)
        .order_by(Visit.created_at.asc())
        .all()
    )
    items = []
    for visit in visits:
        summary = f"Visit {visit.status}"
        if visit.start_at:
            summary += f" from {visit.start_at.strftime('%Y-%m-%d %H:%M')} UTC"
        items.append(
            TimelineItem(
                type=TimelineEntryType.VISIT,
                created_at=visit.created_at,
                actor_id=visit.technician_id,
                summary=summary,
                payload={
                    "visit_id": str(visit.id),
                    "status": visit.status,
                    "start_at": _iso(visit.start_at),
                    "end_at": _iso(visit.end_at),
                    "notes": visit.notes,
                },
            )
        )
    return items


def _time_entry_items(db: Session, account_id: UUID, job_id: UUID) -> list[TimelineItem]:
    entries = (
        db.query(TimeEntry)
        .filter(TimeEntry.job_id == job_id, TimeEntry.account_id == account_id)
        .order_by(TimeEntry.created_at.asc())
        .all()
    )
    items = []
    for entry in entries:
        summary = f"Time tracked: {_format_hours(entry.total_hours)} hours"
        if entry.billable_hours:
            summary += f" ({_format_hours(entry.billable_hours)} billable)"
        items.append(
            TimelineItem(
                type=TimelineEntryType.TIME_ENTRY,
                created_at=entry.created_at,
                actor_id=entry.technician_id,
                summary=summary,
                payload={
                    "start_time": _iso(entry.start_time),
                    "end_time": _iso(entry.end_time),
                    "total_hours": _number(entry.total_hours),
                    "billable_hours": _number(entry.billable_hours),
                    "notes": entry.notes,
                },
            )
        )
    return items


def _cost_items(db: Session, account_id: UUID, job_id: UUID) -> list[TimelineItem]:
    costs = (
        db.query(JobLineItem)
        .filter(JobLineItem.job_id == job_id, JobLineItem.account_id == account_id)
        .order_by(JobLineItem.created_at.asc())
        .all()
    )
    items = []
    for cost in costs:
        total = cost.total
        if total is None:
            total = Decimal(cost.quantity or 0) * Decimal(cost.unit_price or 0)
        items.append(
            TimelineItem(
                type=TimelineEntryType.COST_ENTRY,
                created_at=cost.created_at,
                summary=f"Cost ({cost.item_type}): {cost.description} - ${total:.2f}",
                payload={
                    "description": cost.description,
                    "item_type": cost.item_type,
                    "quantity": _number(cost.quantity),
                    "unit_price": _number(cost.unit_price),
                    "total": _number(total),
                },
            )
        )
    return items


def get_job_timeline(db: Session, account_id: UUID, job_id: UUID) -> JobTimeline | None:
    """
    Merged timeline for a job, or None when the job is not in the account.

    Sorted by (created_at, type) so entries with equal timestamps keep a
    stable order.
    """
    job = entity_service.get_job(db, account_id, job_id)
    if not job:
        return None

    items = [
        TimelineItem(
            type=TimelineEntryType.JOB_CREATED,
            created_at=job.created_at,
            summary=f"Job created ({job.title or job.job_number})",
            payload={"job_number": job.job_number, "title": job.title},
        )
    ]
    items.extend(_note_items(db, account_id, job_id))
    items.extend(_visit_items(db, account_id, job_id))
    items.extend(_time_entry_items(db, account_id, job_id))
    items.extend(_cost_items(db, account_id, job_id))

    items.sort(key=lambda item: (item.created_at, item.type.value))
    return JobTimeline(job_id=job.id, account_id=account_id, items=items)
