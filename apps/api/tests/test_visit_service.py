"""Tests for technician visit and job status transitions."""

import uuid

import pytest

from fieldops.core.permissions import get_role_default_permissions
from fieldops.db.enums import AutomationType, Role
from fieldops.db.models import Automation, JobNote
from fieldops.schemas.auth import TenantContext
from fieldops.services import visit_service
from fieldops.services.visit_service import (
    InvalidStatusTransitionError,
    VisitForbiddenError,
    VisitNotFoundError,
)


def _ctx(user, account, role):
    return TenantContext(
        account_id=account.id,
        user_id=user.id,
        role=role,
        permissions=get_role_default_permissions(role),
    )


def _notes(db, job_id):
    return [n.note for n in db.query(JobNote).filter(JobNote.job_id == job_id).all()]


@pytest.mark.parametrize(
    "current,new,allowed",
    [
        ("scheduled", "in_progress", True),
        ("scheduled", "cancelled", True),
        ("in_progress", "completed", True),
        ("in_progress", "cancelled", True),
        ("scheduled", "completed", False),
        ("completed", "in_progress", False),
        ("completed", "cancelled", False),
        ("cancelled", "scheduled", False),
        ("in_progress", "scheduled", False),
        ("scheduled", "archived", False),
    ],
)
def test_transition_table(current, new, allowed):
    assert visit_service.is_valid_transition(current, new) is allowed


def test_assigned_tech_starts_visit(db, factory, test_account, tech_user):
    job = factory.job(test_account, technician_id=tech_user.id)
    visit = factory.visit(test_account, job, technician_id=tech_user.id)

    updated = visit_service.transition_visit(
        db, _ctx(tech_user, test_account, Role.TECH), visit.id, "in_progress"
    )

    assert updated.status == "in_progress"
    assert updated.start_at is not None
    assert updated.end_at is None
    assert _notes(db, job.id) == [f"Visit {visit.id} status changed from scheduled to in_progress"]


def test_completing_visit_sets_end_time_and_notes(db, factory, test_account, tech_user):
    job = factory.job(test_account)
    visit = factory.visit(test_account, job, technician_id=tech_user.id, status="in_progress")
    ctx = _ctx(tech_user, test_account, Role.TECH)

    updated = visit_service.transition_visit(
        db, ctx, visit.id, "completed", notes="Replaced valve"
    )

    assert updated.status == "completed"
    assert updated.end_at is not None
    assert updated.notes == "Replaced valve"


def test_unassigned_tech_forbidden(db, factory, test_account, tech_user):
    other_tech = factory.user(test_account, Role.TECH)
    job = factory.job(test_account)
    visit = factory.visit(test_account, job, technician_id=other_tech.id)

    with pytest.raises(VisitForbiddenError, match="Not assigned to this visit"):
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), visit.id, "in_progress"
        )

    db.refresh(visit)
    assert visit.status == "scheduled"
    assert _notes(db, job.id) == []


def test_unassigned_visit_forbidden_for_tech(db, factory, test_account, tech_user):
    job = factory.job(test_account)
    visit = factory.visit(test_account, job)

    with pytest.raises(VisitForbiddenError):
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), visit.id, "in_progress"
        )


@pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
def test_admins_may_move_any_visit(db, factory, test_account, tech_user, role):
    admin = factory.user(test_account, role)
    job = factory.job(test_account)
    visit = factory.visit(test_account, job, technician_id=tech_user.id)

    updated = visit_service.transition_visit(
        db, _ctx(admin, test_account, role), visit.id, "cancelled"
    )

    assert updated.status == "cancelled"


def test_invalid_transition_rejected(db, factory, test_account, tech_user):
    job = factory.job(test_account)
    visit = factory.visit(test_account, job, technician_id=tech_user.id, status="completed")

    with pytest.raises(InvalidStatusTransitionError) as exc:
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), visit.id, "in_progress"
        )

    assert str(exc.value) == "Invalid status transition from completed to in_progress"
    assert _notes(db, job.id) == []


def test_scheduled_to_completed_skips_a_step(db, factory, test_account, tech_user):
    job = factory.job(test_account)
    visit = factory.visit(test_account, job, technician_id=tech_user.id)

    with pytest.raises(InvalidStatusTransitionError):
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), visit.id, "completed"
        )


def test_visit_in_other_account_not_found(db, factory, test_account, other_account, tech_user):
    job = factory.job(other_account)
    visit = factory.visit(other_account, job, technician_id=tech_user.id)

    with pytest.raises(VisitNotFoundError):
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), visit.id, "in_progress"
        )


def test_missing_visit_not_found(db, test_account, tech_user):
    with pytest.raises(VisitNotFoundError):
        visit_service.transition_visit(
            db, _ctx(tech_user, test_account, Role.TECH), uuid.uuid4(), "in_progress"
        )


# =============================================================================
# Jobs
# =============================================================================

def test_completing_job_schedules_completion_automations(db, factory, test_account, tech_user):
    job = factory.job(test_account, technician_id=tech_user.id, status="in_progress")

    updated = visit_service.transition_job(
        db, _ctx(tech_user, test_account, Role.TECH), job.id, "completed"
    )

    assert updated.status == "completed"
    types = {
        a.type
        for a in db.query(Automation)
        .filter(Automation.account_id == test_account.id, Automation.related_id == job.id)
        .all()
    }
    assert types == {AutomationType.JOB_CLOSEOUT.value, AutomationType.REVIEW_REQUEST.value}
    assert _notes(db, job.id) == ["Job status changed from in_progress to completed"]


def test_starting_job_schedules_nothing(db, factory, test_account, tech_user):
    job = factory.job(test_account, technician_id=tech_user.id)

    visit_service.transition_job(db, _ctx(tech_user, test_account, Role.TECH), job.id, "in_progress")

    assert db.query(Automation).filter(Automation.related_id == job.id).count() == 0


def test_job_transition_requires_assignment(db, factory, test_account, tech_user):
    job = factory.job(test_account, status="in_progress")

    with pytest.raises(VisitForbiddenError, match="Not assigned to this job"):
        visit_service.transition_job(
            db, _ctx(tech_user, test_account, Role.TECH), job.id, "completed"
        )

    assert db.query(Automation).filter(Automation.related_id == job.id).count() == 0
