"""Automation runner - processes one batch of due automations across accounts.

Called by the worker loop, the internal cron endpoint and the CLI. Each due
item is claimed (CAS), its entity re-checked in the item's own account, the
message generated under a timeout, and the outcome recorded as completed or
failed. Nothing is left in processing by this code path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable
from uuid import UUID

import anyio
from sqlalchemy.orm import Session

from fieldops.core.config import settings
from fieldops.core.structured_logging import build_log_context
from fieldops.db.enums import (
    CLOSED_INVOICE_STATUSES,
    INACTIVE_LEAD_STATUSES,
    RESOLVED_ESTIMATE_STATUSES,
    AutomationStatus,
    AutomationType,
    JobStatus,
)
from fieldops.db.models import Automation, Customer, Estimate, Invoice, Job, Lead
from fieldops.schemas.automation import (
    AutomationRunResult,
    AutomationRunSummary,
    AutomationSettings,
)
from fieldops.services import automation_service, entity_service
from fieldops.services.automation_content import AutomationContentGenerator, GenerationError
from fieldops.services.automation_settings_service import (
    get_automation_settings,
    is_automation_enabled,
)
from fieldops.utils.datetime_utils import start_of_day_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ProcessOutcome:
    """Terminal status plus what to store on the automation."""

    status: AutomationStatus
    result: dict[str, Any]
    message: str
    ai_message: str | None = None

    @classmethod
    def failed(cls, error: str, message: str | None = None) -> "ProcessOutcome":
        return cls(
            status=AutomationStatus.FAILED,
            result={"error": error},
            message=message or f"Failed: {error}",
        )

    @classmethod
    def skipped(cls, reason: str, message: str) -> "ProcessOutcome":
        return cls(
            status=AutomationStatus.COMPLETED,
            result={"skipped": True, "reason": reason},
            message=message,
        )

    @classmethod
    def generated(
        cls, text: str, automation_type: AutomationType, message: str, **ids: Any
    ) -> "ProcessOutcome":
        result = {"message": text, **ids, "type": automation_type.value}
        return cls(
            status=AutomationStatus.COMPLETED,
            result=result,
            message=message,
            ai_message=text,
        )


def compute_days_overdue(due_date: date | None, now: datetime | None = None) -> int:
    """Whole days past the due date (midnight UTC), never negative."""
    if not due_date:
        return 0
    now = now or utcnow()
    return max((now - start_of_day_utc(due_date)).days, 0)


def _customer_name(customer: Customer | None) -> str | None:
    if not customer:
        return None
    return customer.display_name or None


# =============================================================================
# Snapshots (public fields only, never amounts)
# =============================================================================

def estimate_snapshot(estimate: Estimate) -> dict[str, Any]:
    return {
        "estimate_number": estimate.estimate_number,
        "title": estimate.title,
        "status": estimate.status,
        "description": estimate.description,
    }


def invoice_snapshot(invoice: Invoice, days_overdue: int) -> dict[str, Any]:
    return {
        "invoice_number": invoice.invoice_number,
        "client_name": _customer_name(invoice.customer),
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
        "days_overdue": days_overdue,
        "status": invoice.status,
    }


def job_snapshot(job: Job) -> dict[str, Any]:
    return {
        "job_number": job.job_number,
        "title": job.title,
        "description": job.description,
        "service_date": job.service_date.isoformat() if job.service_date else None,
        "client_name": _customer_name(job.client),
    }


def lead_snapshot(lead: Lead) -> dict[str, Any]:
    return {
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "service_type": lead.service_type,
        "service_description": lead.service_description,
        "city": lead.city,
        "state": lead.state,
    }


# =============================================================================
# Per-type processing
# =============================================================================

Generate = Callable[[AutomationType, dict[str, Any]], Awaitable[str]]


async def _process_estimate_followup(
    db: Session, automation: Automation, generate: Generate
) -> ProcessOutcome:
    if not automation.related_id:
        return ProcessOutcome.failed(
            "Missing related estimate", "Failed: Missing related estimate ID"
        )
    estimate = entity_service.get_estimate(db, automation.account_id, automation.related_id)
    if not estimate:
        return ProcessOutcome.failed("Estimate not found")
    if estimate.status in {s.value for s in RESOLVED_ESTIMATE_STATUSES}:
        return ProcessOutcome.skipped(
            f"Estimate status {estimate.status}", "Skipped: Estimate already resolved"
        )

    text = await generate(AutomationType.ESTIMATE_FOLLOWUP, estimate_snapshot(estimate))
    return ProcessOutcome.generated(
        text,
        AutomationType.ESTIMATE_FOLLOWUP,
        "Completed estimate follow-up",
        estimate_id=str(estimate.id),
    )


async def _process_invoice_followup(
    db: Session, automation: Automation, generate: Generate
) -> ProcessOutcome:
    if not automation.related_id:
        return ProcessOutcome.failed(
            "Missing related invoice", "Failed: Missing related invoice ID"
        )
    invoice = entity_service.get_invoice_with_relations(
        db, automation.account_id, automation.related_id
    )
    if not invoice:
        return ProcessOutcome.failed("Invoice not found")
    # Paid or voided since scheduling: nothing to chase
    if invoice.status in {s.value for s in CLOSED_INVOICE_STATUSES}:
        return ProcessOutcome.skipped(
            "Invoice already closed", "Skipped: Invoice already closed"
        )

    days_overdue = compute_days_overdue(invoice.due_date)
    text = await generate(
        AutomationType.INVOICE_FOLLOWUP, invoice_snapshot(invoice, days_overdue)
    )
    outcome = ProcessOutcome.generated(
        text,
        AutomationType.INVOICE_FOLLOWUP,
        "Completed invoice follow-up",
        invoice_id=str(invoice.id),
    )
    outcome.result["days_overdue"] = days_overdue
    return outcome


async def _process_job_closeout(
    db: Session, automation: Automation, generate: Generate
) -> ProcessOutcome:
    if not automation.related_id:
        return ProcessOutcome.failed("Missing related job", "Failed: Missing related job ID")
    job = entity_service.get_job(db, automation.account_id, automation.related_id)
    if not job:
        return ProcessOutcome.failed("Job not found")
    if job.status != JobStatus.COMPLETED.value:
        return ProcessOutcome.skipped("Job not completed", "Skipped: Job not completed yet")

    text = await generate(AutomationType.JOB_CLOSEOUT, job_snapshot(job))
    return ProcessOutcome.generated(
        text,
        AutomationType.JOB_CLOSEOUT,
        "Completed job closeout summary",
        job_id=str(job.id),
    )


async def _process_review_request(
    db: Session, automation: Automation, generate: Generate
) -> ProcessOutcome:
    if not automation.related_id:
        return ProcessOutcome.failed("Missing related job", "Failed: Missing related job ID")
    job = entity_service.get_job(db, automation.account_id, automation.related_id)
    if not job:
        return ProcessOutcome.failed("Job not found")
    if job.status != JobStatus.COMPLETED.value:
        return ProcessOutcome.skipped("Job not completed", "Skipped: Job not completed yet")
    if not job.client or not (job.client.email or job.client.phone):
        return ProcessOutcome.failed(
            "Missing client contact", "Failed: Missing client contact details"
        )

    text = await generate(AutomationType.REVIEW_REQUEST, job_snapshot(job))
    return ProcessOutcome.generated(
        text,
        AutomationType.REVIEW_REQUEST,
        "Completed review request message",
        job_id=str(job.id),
    )


async def _process_lead_response(
    db: Session, automation: Automation, generate: Generate
) -> ProcessOutcome:
    if not automation.related_id:
        return ProcessOutcome.failed("Missing related lead", "Failed: Missing related lead ID")
    lead = entity_service.get_lead(db, automation.account_id, automation.related_id)
    if not lead:
        return ProcessOutcome.failed("Lead not found")
    if lead.status in {s.value for s in INACTIVE_LEAD_STATUSES}:
        return ProcessOutcome.skipped(
            f"Lead status {lead.status}", "Skipped: Lead no longer active"
        )

    text = await generate(AutomationType.LEAD_RESPONSE, lead_snapshot(lead))
    return ProcessOutcome.generated(
        text,
        AutomationType.LEAD_RESPONSE,
        "Completed lead response message",
        lead_id=str(lead.id),
    )


PROCESSORS = {
    AutomationType.ESTIMATE_FOLLOWUP: _process_estimate_followup,
    AutomationType.INVOICE_FOLLOWUP: _process_invoice_followup,
    AutomationType.JOB_CLOSEOUT: _process_job_closeout,
    AutomationType.REVIEW_REQUEST: _process_review_request,
    AutomationType.LEAD_RESPONSE: _process_lead_response,
}


async def process_automation(
    db: Session,
    automation: Automation,
    automation_settings: AutomationSettings,
    generator: AutomationContentGenerator,
    timeout_seconds: float,
) -> ProcessOutcome:
    """Decide the outcome for one claimed automation."""
    if not AutomationType.has_value(automation.type):
        return ProcessOutcome.failed(
            f"Unknown automation type {automation.type}", "Failed: Unknown automation type"
        )
    automation_type = AutomationType(automation.type)

    if not is_automation_enabled(automation_type, automation_settings):
        return ProcessOutcome.skipped(
            "Automation disabled in settings", "Skipped: Automation disabled in settings"
        )

    async def generate(kind: AutomationType, snapshot: dict[str, Any]) -> str:
        with anyio.fail_after(timeout_seconds):
            return await generator.generate(kind, snapshot)

    try:
        return await PROCESSORS[automation_type](db, automation, generate)
    except TimeoutError:
        return ProcessOutcome.failed(
            f"Message generation timed out after {timeout_seconds:g}s"
        )
    except GenerationError as e:
        return ProcessOutcome.failed(str(e))


def _record_outcome(db: Session, automation: Automation, outcome: ProcessOutcome) -> bool:
    """Store the outcome; False when the item was finalised elsewhere meanwhile."""
    updated = automation_service.update_automation_status(
        db,
        automation.account_id,
        automation.id,
        outcome.status,
        result=outcome.result,
        message=outcome.message,
    )
    if not updated:
        return False
    if outcome.ai_message:
        automation_service.record_automation_history(
            db,
            automation.account_id,
            automation.id,
            outcome.status,
            f"AI response: {outcome.ai_message}",
        )
    return True


async def run_due_automations(
    db: Session,
    generator: AutomationContentGenerator | None = None,
    limit: int | None = None,
    timeout_seconds: float | None = None,
) -> AutomationRunSummary:
    """
    Claim and process one batch of due automations.

    Items another driver claimed first are skipped. Every claimed item ends
    completed or failed; unexpected errors fail the item and the batch goes on.
    """
    generator = generator or AutomationContentGenerator.from_settings()
    limit = limit or settings.AUTOMATION_BATCH_SIZE
    timeout_seconds = timeout_seconds or settings.AI_TIMEOUT_SECONDS

    due = automation_service.get_due_automations_all_accounts(db, limit=limit)
    settings_by_account: dict[UUID, AutomationSettings] = {}
    results: list[AutomationRunResult] = []

    for candidate in due:
        account_id = candidate.account_id
        automation_id = candidate.id
        log_context = build_log_context(account_id=account_id, automation_id=automation_id)

        claimed = automation_service.claim_automation(db, account_id, candidate)
        if not claimed:
            continue

        if account_id not in settings_by_account:
            settings_by_account[account_id] = get_automation_settings(db, account_id)

        try:
            outcome = await process_automation(
                db, claimed, settings_by_account[account_id], generator, timeout_seconds
            )
            recorded = _record_outcome(db, claimed, outcome)
        except Exception as e:
            logger.exception("Automation processing failed", extra=log_context)
            db.rollback()
            error = str(e) or type(e).__name__
            outcome = ProcessOutcome.failed(error)
            recorded = automation_service.update_automation_status(
                db,
                account_id,
                automation_id,
                outcome.status,
                result=outcome.result,
                message=outcome.message,
            ) is not None

        if not recorded:
            # Finalised elsewhere, e.g. by the stale sweep
            continue

        logger.info(
            "Automation %s finished: %s",
            claimed.type,
            outcome.status.value,
            extra=log_context,
        )
        results.append(
            AutomationRunResult(
                id=automation_id,
                type=claimed.type,
                status=outcome.status.value,
                message=outcome.message,
            )
        )

    return AutomationRunSummary(attempted=len(due), processed=len(results), results=results)
