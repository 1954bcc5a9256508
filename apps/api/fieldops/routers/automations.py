"""Automations router - work item reporting, settings, and trigger hooks."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fieldops.core.deps import get_db, require_csrf_header, require_permission
from fieldops.core.permissions import Permission
from fieldops.db.enums import AutomationStatus
from fieldops.schemas.auth import TenantContext
from fieldops.schemas.automation import (
    AutomationRead,
    AutomationSettings,
    AutomationSettingsUpdate,
    AutomationWithHistory,
    HookResponse,
)
from fieldops.services import automation_service, automation_settings_service
from fieldops.services.automation_triggers import HOOKS

router = APIRouter(prefix="/automations", tags=["Automations"])


@router.get("", response_model=list[AutomationWithHistory])
def list_automations(
    status: AutomationStatus | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_permission(Permission.MANAGE_AUTOMATIONS)),
):
    """List automations with their history, earliest run_at first."""
    return automation_service.list_automations_with_history(
        db, ctx.account_id, status=status, limit=limit
    )


@router.get("/settings", response_model=AutomationSettings)
def get_settings(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_permission(Permission.MANAGE_AUTOMATIONS)),
):
    return automation_settings_service.get_automation_settings(db, ctx.account_id)


@router.patch(
    "/settings",
    response_model=AutomationSettings,
    dependencies=[Depends(require_csrf_header)],
)
def update_settings(
    data: AutomationSettingsUpdate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_permission(Permission.MANAGE_AUTOMATIONS)),
):
    """Update automation toggles; omitted toggles are unchanged."""
    return automation_settings_service.update_automation_settings(db, ctx.account_id, data)


@router.post(
    "/hooks/{kind}/{entity_id}",
    response_model=HookResponse,
    dependencies=[Depends(require_csrf_header)],
)
def fire_hook(
    kind: str,
    entity_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_permission(Permission.MANAGE_BUSINESS)),
):
    """
    Fire a trigger hook for an entity event.

    kind is one of estimate-sent, invoice-issued, job-completed, lead-created.
    """
    hook = HOOKS.get(kind)
    if not hook:
        raise HTTPException(status_code=404, detail=f"Unknown hook '{kind}'")

    result = hook(db, ctx.account_id, entity_id)
    return HookResponse(
        status=result.status.value,
        reason=result.reason,
        automations=[AutomationRead.model_validate(a) for a in result.automations],
    )
