"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron when the worker service is not running.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from fieldops.core.async_utils import run_async
from fieldops.core.config import settings
from fieldops.core.deps import get_db
from fieldops.schemas.automation import AutomationRunSummary
from fieldops.services import automation_service
from fieldops.services.automation_content import AutomationContentGenerator
from fieldops.services.automation_runner import run_due_automations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


def get_content_generator() -> AutomationContentGenerator:
    return AutomationContentGenerator.from_settings()


class ReleaseStaleResponse(BaseModel):
    released: int


@router.post(
    "/automations/run",
    response_model=AutomationRunSummary,
    dependencies=[Depends(verify_internal_secret)],
)
def run_automations(
    db: Session = Depends(get_db),
    generator: AutomationContentGenerator = Depends(get_content_generator),
):
    """Process one batch of due automations across all accounts."""
    summary = run_async(run_due_automations(db, generator))
    logger.info(
        "Automation run: attempted=%d processed=%d", summary.attempted, summary.processed
    )
    return summary


@router.post(
    "/automations/release-stale",
    response_model=ReleaseStaleResponse,
    dependencies=[Depends(verify_internal_secret)],
)
def release_stale(db: Session = Depends(get_db)):
    """Fail automations stuck in processing past AUTOMATION_STALE_MINUTES."""
    released = automation_service.release_stale_automations(
        db, timedelta(minutes=settings.AUTOMATION_STALE_MINUTES)
    )
    return ReleaseStaleResponse(released=released)
