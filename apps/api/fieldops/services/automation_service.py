"""Automation service - durable scheduling and state tracking for automation work items.

Items move pending -> processing -> completed | failed. Waiting is encoded in
run_at, never in memory; a periodic driver calls get_due -> claim -> update.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from fieldops.core.structured_logging import build_log_context
from fieldops.db.enums import AutomationStatus, AutomationType
from fieldops.db.models import Automation, AutomationHistory
from fieldops.services.automation_settings_service import (
    get_automation_settings,
    is_automation_enabled,
)
from fieldops.utils.datetime_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

STALE_PROCESSING_MESSAGE = "Timed out while processing"


class AutomationServiceError(Exception):
    """Base exception for automation service errors."""

    pass


class AutomationNotFoundError(AutomationServiceError):
    """Automation not found in this account."""

    pass


class InvalidAutomationStatusError(AutomationServiceError):
    """Requested status is not a terminal status."""

    pass


# =============================================================================
# Scheduling
# =============================================================================

def _find_scheduled(
    db: Session,
    account_id: UUID,
    automation_type: AutomationType,
    related_id: UUID | None,
    run_at: datetime,
) -> Automation | None:
    query = db.query(Automation).filter(
        Automation.account_id == account_id,
        Automation.type == automation_type.value,
        Automation.run_at == run_at,
    )
    # NULL never equals NULL, so an absent related_id needs IS NULL
    if related_id is None:
        query = query.filter(Automation.related_id.is_(None))
    else:
        query = query.filter(Automation.related_id == related_id)
    return query.first()


def schedule_automation(
    db: Session,
    account_id: UUID,
    automation_type: AutomationType,
    related_id: UUID | None,
    run_at: datetime,
    payload: dict | None = None,
) -> Automation | None:
    """
    Schedule an automation work item.

    Returns None when the automation type is disabled for the account.
    Returns the existing item when (type, related_id, run_at) is already
    scheduled, so repeated calls never create duplicates.
    """
    automation_type = AutomationType(automation_type)
    run_at = ensure_utc(run_at)

    automation_settings = get_automation_settings(db, account_id)
    if not is_automation_enabled(automation_type, automation_settings):
        logger.debug(
            "Automation %s disabled; not scheduling",
            automation_type.value,
            extra=build_log_context(account_id=account_id),
        )
        return None

    existing = _find_scheduled(db, account_id, automation_type, related_id, run_at)
    if existing:
        return existing

    automation = Automation(
        account_id=account_id,
        type=automation_type.value,
        related_id=related_id,
        status=AutomationStatus.PENDING.value,
        run_at=run_at,
        payload=payload or {},
        attempts=0,
    )
    automation.history.append(
        AutomationHistory(
            status=AutomationStatus.PENDING.value,
            message="Automation scheduled",
        )
    )
    db.add(automation)
    try:
        db.commit()
    except IntegrityError:
        # Lost an insert race against another scheduler; return the winner
        db.rollback()
        existing = _find_scheduled(db, account_id, automation_type, related_id, run_at)
        if existing:
            return existing
        raise
    db.refresh(automation)

    logger.info(
        "Scheduled %s automation for %s",
        automation.type,
        automation.run_at.isoformat(),
        extra=build_log_context(account_id=account_id, automation_id=automation.id),
    )
    return automation


# =============================================================================
# Driver operations
# =============================================================================

def get_due_automations(db: Session, account_id: UUID, limit: int = 25) -> list[Automation]:
    """
    Get pending automations that are due to run.

    Returns items where status='pending' and run_at <= now, earliest first.
    """
    now = utcnow()
    return (
        db.query(Automation)
        .filter(
            Automation.account_id == account_id,
            Automation.status == AutomationStatus.PENDING.value,
            Automation.run_at <= now,
        )
        .order_by(Automation.run_at.asc(), Automation.id.asc())
        .limit(limit)
        .all()
    )


def get_due_automations_all_accounts(db: Session, limit: int = 25) -> list[Automation]:
    """
    Due automations across every account, for the background driver.

    Each row still carries its own account_id, which every later call
    is scoped by.
    """
    now = utcnow()
    return (
        db.query(Automation)
        .filter(
            Automation.status == AutomationStatus.PENDING.value,
            Automation.run_at <= now,
        )
        .order_by(Automation.run_at.asc(), Automation.id.asc())
        .limit(limit)
        .all()
    )


def claim_automation(db: Session, account_id: UUID, automation: Automation) -> Automation | None:
    """
    Atomically move a pending automation to processing.

    A single conditional UPDATE guarded on status='pending'; when another
    driver got there first no row matches and None is returned.
    """
    now = utcnow()
    result = db.execute(
        update(Automation)
        .where(
            Automation.id == automation.id,
            Automation.account_id == account_id,
            Automation.status == AutomationStatus.PENDING.value,
        )
        .values(
            status=AutomationStatus.PROCESSING.value,
            last_attempt=now,
            attempts=Automation.attempts + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info(
            "Automation already claimed",
            extra=build_log_context(account_id=account_id, automation_id=automation.id),
        )
        return None

    db.add(
        AutomationHistory(
            automation_id=automation.id,
            status=AutomationStatus.PROCESSING.value,
            message="Picked up by scheduler",
        )
    )
    db.commit()
    return db.get(Automation, automation.id, populate_existing=True)


def get_automation(db: Session, account_id: UUID, automation_id: UUID) -> Automation | None:
    """Get an automation by ID, scoped to account."""
    return (
        db.query(Automation)
        .filter(Automation.id == automation_id, Automation.account_id == account_id)
        .first()
    )


def record_automation_history(
    db: Session,
    account_id: UUID,
    automation_id: UUID,
    status: AutomationStatus | str,
    message: str,
) -> AutomationHistory:
    """Append a history entry to an automation in this account."""
    if not get_automation(db, account_id, automation_id):
        raise AutomationNotFoundError(f"Automation {automation_id} not found")
    entry = AutomationHistory(
        automation_id=automation_id,
        status=AutomationStatus(status).value,
        message=message,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def update_automation_status(
    db: Session,
    account_id: UUID,
    automation_id: UUID,
    status: AutomationStatus | str,
    result: dict | None = None,
    message: str | None = None,
) -> Automation | None:
    """
    Record the outcome of a processed automation.

    Only completed/failed are accepted; there is no retry at this layer.
    The UPDATE is guarded on status='processing', so a pending item cannot
    skip its claim and a completed/failed item is never overwritten. Returns
    None when the item is no longer processing (e.g. the stale sweep failed
    it while a slow driver was still generating).
    """
    status = AutomationStatus(status)
    if status not in AutomationStatus.terminal():
        raise InvalidAutomationStatusError(
            f"Cannot set automation status to '{status.value}'"
        )

    values = {"status": status.value, "updated_at": utcnow()}
    if result is not None:
        values["result"] = result
    updated = db.execute(
        update(Automation)
        .where(
            Automation.id == automation_id,
            Automation.account_id == account_id,
            Automation.status == AutomationStatus.PROCESSING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if updated.rowcount != 1:
        db.rollback()
        if not get_automation(db, account_id, automation_id):
            raise AutomationNotFoundError(f"Automation {automation_id} not found")
        logger.warning(
            "Automation not processing; outcome dropped",
            extra=build_log_context(account_id=account_id, automation_id=automation_id),
        )
        return None

    if message:
        db.add(
            AutomationHistory(
                automation_id=automation_id,
                status=status.value,
                message=message,
            )
        )
    db.commit()
    return db.get(Automation, automation_id, populate_existing=True)


# =============================================================================
# Reporting and maintenance
# =============================================================================

def list_automations_with_history(
    db: Session,
    account_id: UUID,
    status: AutomationStatus | None = None,
    limit: int = 100,
) -> list[Automation]:
    """List automations with their full history, earliest run_at first."""
    query = (
        db.query(Automation)
        .options(selectinload(Automation.history))
        .filter(Automation.account_id == account_id)
    )
    if status:
        query = query.filter(Automation.status == AutomationStatus(status).value)
    return query.order_by(Automation.run_at.asc(), Automation.id.asc()).limit(limit).all()


def release_stale_automations(
    db: Session,
    older_than: timedelta,
    account_id: UUID | None = None,
) -> int:
    """
    Fail automations stuck in processing longer than older_than.

    A driver that died mid-item leaves it in processing forever; the item
    is marked failed (not re-queued) so nothing is generated twice.
    Returns the number of items released.
    """
    cutoff = utcnow() - older_than
    query = db.query(Automation).filter(
        Automation.status == AutomationStatus.PROCESSING.value,
        Automation.last_attempt <= cutoff,
    )
    if account_id:
        query = query.filter(Automation.account_id == account_id)

    released = 0
    for automation in query.all():
        # Guarded like claim: skip rows another driver finished meanwhile
        result = db.execute(
            update(Automation)
            .where(
                Automation.id == automation.id,
                Automation.status == AutomationStatus.PROCESSING.value,
            )
            .values(
                status=AutomationStatus.FAILED.value,
                result={"error": STALE_PROCESSING_MESSAGE},
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            continue
        db.add(
            AutomationHistory(
                automation_id=automation.id,
                status=AutomationStatus.FAILED.value,
                message=STALE_PROCESSING_MESSAGE,
            )
        )
        released += 1
        logger.warning(
            "Released stale automation",
            extra=build_log_context(
                account_id=automation.account_id, automation_id=automation.id
            ),
        )
    db.commit()
    return released
