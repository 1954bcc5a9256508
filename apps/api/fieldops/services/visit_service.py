"""Visit service - technician status transitions for visits and jobs."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from fieldops.core.structured_logging import build_log_context
from fieldops.db.enums import JobStatus, VisitStatus, WorkStatus
from fieldops.db.models import Job, JobNote, Visit
from fieldops.schemas.auth import TenantContext
from fieldops.services import automation_triggers, entity_service
from fieldops.services.tenant_context_service import can_manage_admin
from fieldops.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


class VisitServiceError(Exception):
    """Base exception for visit service errors."""

    pass


class VisitNotFoundError(VisitServiceError):
    """Visit or job not found in this account."""

    pass


class VisitForbiddenError(VisitServiceError):
    """Acting user is not the assigned technician."""

    pass


class InvalidStatusTransitionError(VisitServiceError):
    """Requested status is not reachable from the current one."""

    pass


# Forward-only chain; cancelled reachable from any non-terminal status
ALLOWED_TRANSITIONS: dict[WorkStatus, frozenset[WorkStatus]] = {
    WorkStatus.SCHEDULED: frozenset({WorkStatus.IN_PROGRESS, WorkStatus.CANCELLED}),
    WorkStatus.IN_PROGRESS: frozenset({WorkStatus.COMPLETED, WorkStatus.CANCELLED}),
    WorkStatus.COMPLETED: frozenset(),
    WorkStatus.CANCELLED: frozenset(),
}


def is_valid_transition(current: str, new: str) -> bool:
    try:
        current_status = WorkStatus(current)
        new_status = WorkStatus(new)
    except ValueError:
        return False
    return new_status in ALLOWED_TRANSITIONS[current_status]


def _check_access(ctx: TenantContext, technician_id: UUID | None, entity: str) -> None:
    if can_manage_admin(ctx.role):
        return
    if technician_id != ctx.user_id:
        raise VisitForbiddenError(f"Access denied: Not assigned to this {entity}")


def _check_transition(current: str, new: str) -> None:
    if not is_valid_transition(current, new):
        raise InvalidStatusTransitionError(
            f"Invalid status transition from {current} to {new}"
        )


def transition_visit(
    db: Session,
    ctx: TenantContext,
    visit_id: UUID,
    new_status: VisitStatus | str,
    notes: str | None = None,
) -> Visit:
    """
    Move a visit to a new status on behalf of the acting user.

    Raises:
        VisitNotFoundError: visit not in the caller's account
        VisitForbiddenError: caller is neither the assigned technician nor an admin
        InvalidStatusTransitionError: new_status not reachable from the current status
    """
    new_status = VisitStatus(new_status)
    visit = entity_service.get_visit(db, ctx.account_id, visit_id)
    if not visit:
        raise VisitNotFoundError("Visit not found")
    _check_access(ctx, visit.technician_id, "visit")

    old_status = visit.status
    _check_transition(old_status, new_status.value)

    now = utcnow()
    visit.status = new_status.value
    if new_status == VisitStatus.IN_PROGRESS and not visit.start_at:
        visit.start_at = now
    if new_status == VisitStatus.COMPLETED:
        visit.end_at = now
    if notes is not None:
        visit.notes = notes

    db.add(
        JobNote(
            account_id=ctx.account_id,
            job_id=visit.job_id,
            technician_id=ctx.user_id,
            note=f"Visit {visit.id} status changed from {old_status} to {new_status.value}",
        )
    )
    db.commit()
    db.refresh(visit)

    logger.info(
        "Visit status %s -> %s",
        old_status,
        new_status.value,
        extra=build_log_context(account_id=ctx.account_id, user_id=ctx.user_id),
    )
    return visit


def transition_job(
    db: Session,
    ctx: TenantContext,
    job_id: UUID,
    new_status: JobStatus | str,
) -> Job:
    """
    Move a job to a new status; same rules as visits.

    Completing a job schedules the closeout and review request automations.
    """
    new_status = JobStatus(new_status)
    job = entity_service.get_job(db, ctx.account_id, job_id)
    if not job:
        raise VisitNotFoundError("Job not found")
    _check_access(ctx, job.technician_id, "job")

    old_status = job.status
    _check_transition(old_status, new_status.value)

    job.status = new_status.value
    job.updated_at = utcnow()
    db.add(
        JobNote(
            account_id=ctx.account_id,
            job_id=job.id,
            technician_id=ctx.user_id,
            note=f"Job status changed from {old_status} to {new_status.value}",
        )
    )
    db.commit()
    db.refresh(job)

    if new_status == JobStatus.COMPLETED:
        result = automation_triggers.schedule_job_completion_automations(
            db, ctx.account_id, job.id
        )
        logger.info(
            "Job completion hook: %s",
            result.status.value,
            extra=build_log_context(account_id=ctx.account_id, user_id=ctx.user_id),
        )
        db.refresh(job)
    return job
