"""Account-scoped fetchers for the entities automations act on."""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from fieldops.db.models import Estimate, Invoice, Job, Lead, Visit


def get_estimate(db: Session, account_id: UUID, estimate_id: UUID) -> Estimate | None:
    return (
        db.query(Estimate)
        .filter(Estimate.id == estimate_id, Estimate.account_id == account_id)
        .first()
    )


def get_invoice_with_relations(
    db: Session, account_id: UUID, invoice_id: UUID
) -> Invoice | None:
    """Invoice with its customer loaded."""
    return (
        db.query(Invoice)
        .options(joinedload(Invoice.customer))
        .filter(Invoice.id == invoice_id, Invoice.account_id == account_id)
        .first()
    )


def get_job(db: Session, account_id: UUID, job_id: UUID) -> Job | None:
    return db.query(Job).filter(Job.id == job_id, Job.account_id == account_id).first()


def get_lead(db: Session, account_id: UUID, lead_id: UUID) -> Lead | None:
    return db.query(Lead).filter(Lead.id == lead_id, Lead.account_id == account_id).first()


def get_visit(db: Session, account_id: UUID, visit_id: UUID) -> Visit | None:
    return (
        db.query(Visit)
        .filter(Visit.id == visit_id, Visit.account_id == account_id)
        .first()
    )
