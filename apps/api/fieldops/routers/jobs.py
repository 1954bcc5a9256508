"""Jobs router - merged job timeline."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fieldops.core.deps import get_db, require_roles
from fieldops.db.enums import Role
from fieldops.schemas.auth import TenantContext
from fieldops.schemas.timeline import JobTimeline
from fieldops.services import timeline_service

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("/{job_id}/timeline", response_model=JobTimeline)
def get_job_timeline(
    job_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles([Role.OWNER, Role.ADMIN, Role.TECH])),
):
    timeline = timeline_service.get_job_timeline(db, ctx.account_id, job_id)
    if not timeline:
        raise HTTPException(status_code=404, detail="Job not found")
    return timeline
