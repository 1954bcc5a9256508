"""Technician router - visit and job status updates from the field."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fieldops.core.deps import get_db, require_csrf_header, require_roles
from fieldops.db.enums import Role
from fieldops.schemas.auth import TenantContext
from fieldops.schemas.visit import JobRead, JobStatusUpdate, VisitRead, VisitStatusUpdate
from fieldops.services import visit_service

router = APIRouter(
    prefix="/tech",
    tags=["Tech"],
    dependencies=[Depends(require_csrf_header)],
)

TECH_ROLES = [Role.OWNER, Role.ADMIN, Role.TECH]


def _raise_for(error: visit_service.VisitServiceError):
    if isinstance(error, visit_service.VisitNotFoundError):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, visit_service.VisitForbiddenError):
        raise HTTPException(status_code=403, detail=str(error))
    raise HTTPException(status_code=400, detail=str(error))


@router.patch("/visits/{visit_id}", response_model=VisitRead)
def update_visit_status(
    visit_id: UUID,
    data: VisitStatusUpdate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(TECH_ROLES)),
):
    """Move an assigned visit to in_progress, completed or cancelled."""
    try:
        return visit_service.transition_visit(
            db, ctx, visit_id, data.status, notes=data.notes
        )
    except visit_service.VisitServiceError as e:
        _raise_for(e)


@router.patch("/jobs/{job_id}", response_model=JobRead)
def update_job_status(
    job_id: UUID,
    data: JobStatusUpdate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(TECH_ROLES)),
):
    """Move an assigned job along its status chain; completion schedules follow-ups."""
    try:
        return visit_service.transition_job(db, ctx, job_id, data.status)
    except visit_service.VisitServiceError as e:
        _raise_for(e)
