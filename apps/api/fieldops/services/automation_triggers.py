"""Automation trigger hooks - timing policy for each automation type.

Each hook loads one entity in the account, computes run_at and hands off to
schedule_automation. A missing entity is an expected outcome (hooks may fire
speculatively) and comes back as a not_found result, not an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from fieldops.core.structured_logging import build_log_context
from fieldops.db.enums import CLOSED_INVOICE_STATUSES, AutomationType, JobStatus
from fieldops.db.models import Automation
from fieldops.services import automation_service, entity_service
from fieldops.utils.datetime_utils import ensure_utc, start_of_day_utc, utcnow

logger = logging.getLogger(__name__)

ESTIMATE_FOLLOWUP_DELAY = timedelta(hours=48)
INVOICE_FOLLOWUP_DAYS = (3, 7, 14, 30)
JOB_CLOSEOUT_DELAY = timedelta(hours=1)
REVIEW_REQUEST_DELAY = timedelta(hours=24)

DISABLED_REASON = "Automation disabled in settings"


class HookStatus(str, Enum):
    SCHEDULED = "scheduled"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"


@dataclass
class HookResult:
    """Outcome of a trigger hook."""

    status: HookStatus
    automations: list[Automation] = field(default_factory=list)
    reason: str | None = None

    @classmethod
    def not_found(cls, entity: str) -> "HookResult":
        return cls(status=HookStatus.NOT_FOUND, reason=f"{entity} not found")

    @classmethod
    def skipped(cls, reason: str) -> "HookResult":
        return cls(status=HookStatus.SKIPPED, reason=reason)

    @classmethod
    def from_scheduled(cls, scheduled: list[Automation | None]) -> "HookResult":
        automations = [a for a in scheduled if a is not None]
        if not automations:
            return cls.skipped(DISABLED_REASON)
        return cls(status=HookStatus.SCHEDULED, automations=automations)


def schedule_estimate_follow_up(db: Session, account_id: UUID, estimate_id: UUID) -> HookResult:
    """One follow-up 48 hours after the estimate was sent."""
    estimate = entity_service.get_estimate(db, account_id, estimate_id)
    if not estimate:
        return HookResult.not_found("Estimate")

    base = ensure_utc(estimate.sent_date) if estimate.sent_date else utcnow()
    automation = automation_service.schedule_automation(
        db,
        account_id,
        AutomationType.ESTIMATE_FOLLOWUP,
        related_id=estimate.id,
        run_at=base + ESTIMATE_FOLLOWUP_DELAY,
        payload={
            "estimate_number": estimate.estimate_number,
            "client_id": str(estimate.client_id) if estimate.client_id else None,
            "status": estimate.status,
        },
    )
    return HookResult.from_scheduled([automation])


def schedule_invoice_follow_ups(db: Session, account_id: UUID, invoice_id: UUID) -> HookResult:
    """
    Four follow-ups at issue date + 3, 7, 14 and 30 days.

    sequence_days in the payload lets the generator escalate tone.
    Paid and void invoices get nothing.
    """
    invoice = entity_service.get_invoice_with_relations(db, account_id, invoice_id)
    if not invoice:
        return HookResult.not_found("Invoice")
    if invoice.status in {s.value for s in CLOSED_INVOICE_STATUSES}:
        return HookResult.skipped(f"Invoice is {invoice.status}")

    base = start_of_day_utc(invoice.issue_date) if invoice.issue_date else utcnow()
    scheduled = []
    for days in INVOICE_FOLLOWUP_DAYS:
        scheduled.append(
            automation_service.schedule_automation(
                db,
                account_id,
                AutomationType.INVOICE_FOLLOWUP,
                related_id=invoice.id,
                run_at=base + timedelta(days=days),
                payload={
                    "invoice_number": invoice.invoice_number,
                    "customer_id": str(invoice.customer_id) if invoice.customer_id else None,
                    "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
                    "sequence_days": days,
                },
            )
        )
    return HookResult.from_scheduled(scheduled)


def schedule_job_completion_automations(
    db: Session, account_id: UUID, job_id: UUID
) -> HookResult:
    """Closeout summary 1 hour and review request 24 hours after completion."""
    job = entity_service.get_job(db, account_id, job_id)
    if not job:
        return HookResult.not_found("Job")
    if job.status != JobStatus.COMPLETED.value:
        return HookResult.skipped("Job not completed")

    base = ensure_utc(job.updated_at) if job.updated_at else utcnow()
    payload = {
        "job_number": job.job_number,
        "client_id": str(job.client_id) if job.client_id else None,
    }
    closeout = automation_service.schedule_automation(
        db,
        account_id,
        AutomationType.JOB_CLOSEOUT,
        related_id=job.id,
        run_at=base + JOB_CLOSEOUT_DELAY,
        payload=payload,
    )
    review = automation_service.schedule_automation(
        db,
        account_id,
        AutomationType.REVIEW_REQUEST,
        related_id=job.id,
        run_at=base + REVIEW_REQUEST_DELAY,
        payload=payload,
    )
    result = HookResult.from_scheduled([closeout, review])
    if result.status == HookStatus.SCHEDULED:
        logger.info(
            "Scheduled %d job completion automations",
            len(result.automations),
            extra=build_log_context(account_id=account_id),
        )
    return result


def schedule_lead_response(db: Session, account_id: UUID, lead_id: UUID) -> HookResult:
    """Immediate auto-reply, due at the lead's creation time."""
    lead = entity_service.get_lead(db, account_id, lead_id)
    if not lead:
        return HookResult.not_found("Lead")

    run_at = ensure_utc(lead.created_at) if lead.created_at else utcnow()
    automation = automation_service.schedule_automation(
        db,
        account_id,
        AutomationType.LEAD_RESPONSE,
        related_id=lead.id,
        run_at=run_at,
        payload={
            "lead_id": str(lead.id),
            "priority": lead.priority,
            "service_type": lead.service_type,
        },
    )
    return HookResult.from_scheduled([automation])


HOOKS = {
    "estimate-sent": schedule_estimate_follow_up,
    "invoice-issued": schedule_invoice_follow_ups,
    "job-completed": schedule_job_completion_automations,
    "lead-created": schedule_lead_response,
}
