"""Tests for automation scheduling, claiming and status tracking."""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from threading import Barrier

import pytest

from fieldops.db.enums import AutomationStatus, AutomationType
from fieldops.db.models import Account, AccountSettings, Automation, AutomationHistory
from fieldops.db.session import SessionLocal
from fieldops.services import automation_service
from fieldops.utils.datetime_utils import utcnow


def _schedule(db, account, **kwargs):
    values = {
        "automation_type": AutomationType.ESTIMATE_FOLLOWUP,
        "related_id": uuid.uuid4(),
        "run_at": utcnow() - timedelta(minutes=5),
        "payload": {"estimate_number": "E-100"},
    }
    values.update(kwargs)
    return automation_service.schedule_automation(db, account.id, **values)


def _history_messages(db, automation_id):
    rows = (
        db.query(AutomationHistory)
        .filter(AutomationHistory.automation_id == automation_id)
        .all()
    )
    return {row.message for row in rows}


# =============================================================================
# schedule_automation
# =============================================================================

def test_schedule_creates_pending_item_with_history(db, test_account):
    automation = _schedule(db, test_account)

    assert automation is not None
    assert automation.status == AutomationStatus.PENDING.value
    assert automation.attempts == 0
    assert automation.last_attempt is None
    assert automation.account_id == test_account.id
    assert automation.payload == {"estimate_number": "E-100"}
    assert [h.message for h in automation.history] == ["Automation scheduled"]
    assert automation.history[0].status == AutomationStatus.PENDING.value


def test_schedule_is_idempotent(db, test_account):
    related_id = uuid.uuid4()
    run_at = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)

    first = _schedule(db, test_account, related_id=related_id, run_at=run_at)
    second = _schedule(db, test_account, related_id=related_id, run_at=run_at)

    assert second.id == first.id
    count = db.query(Automation).filter(Automation.account_id == test_account.id).count()
    assert count == 1
    assert len(second.history) == 1


def test_schedule_idempotent_without_related_id(db, test_account):
    run_at = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)

    first = _schedule(db, test_account, related_id=None, run_at=run_at)
    second = _schedule(db, test_account, related_id=None, run_at=run_at)

    assert first.related_id is None
    assert second.id == first.id
    assert db.query(Automation).filter(Automation.account_id == test_account.id).count() == 1


def test_schedule_distinct_run_at_creates_separate_items(db, test_account):
    related_id = uuid.uuid4()
    base = datetime(2026, 3, 4, tzinfo=timezone.utc)

    first = _schedule(db, test_account, related_id=related_id, run_at=base)
    second = _schedule(db, test_account, related_id=related_id, run_at=base + timedelta(days=1))

    assert first.id != second.id


def test_schedule_naive_run_at_treated_as_utc(db, test_account):
    related_id = uuid.uuid4()
    aware = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

    first = _schedule(db, test_account, related_id=related_id, run_at=aware)
    second = _schedule(db, test_account, related_id=related_id, run_at=aware.replace(tzinfo=None))

    assert second.id == first.id


@pytest.mark.parametrize("automation_type", list(AutomationType))
def test_schedule_disabled_type_returns_none(db, factory, automation_type):
    account = factory.account(automations={})

    result = _schedule(db, account, automation_type=automation_type)

    assert result is None
    assert db.query(Automation).filter(Automation.account_id == account.id).count() == 0


def test_schedule_only_enabled_toggle_passes(db, factory):
    account = factory.account(automations={"lead_response": True})

    assert _schedule(db, account, automation_type=AutomationType.LEAD_RESPONSE) is not None
    assert _schedule(db, account, automation_type=AutomationType.REVIEW_REQUEST) is None


def test_schedule_account_without_settings_row_is_disabled(db):
    account = Account(id=uuid.uuid4(), name="Bare", slug=f"bare-{uuid.uuid4().hex[:8]}")
    db.add(account)
    db.flush()

    assert _schedule(db, account) is None


# =============================================================================
# get_due_automations
# =============================================================================

def test_get_due_excludes_future_and_orders_by_run_at(db, test_account):
    now = utcnow()
    later = _schedule(db, test_account, run_at=now - timedelta(minutes=1))
    earliest = _schedule(db, test_account, run_at=now - timedelta(hours=3))
    middle = _schedule(db, test_account, run_at=now - timedelta(hours=1))
    _schedule(db, test_account, run_at=now + timedelta(hours=1))

    due = automation_service.get_due_automations(db, test_account.id, limit=10)

    assert [a.id for a in due] == [earliest.id, middle.id, later.id]
    assert all(a.run_at <= utcnow() for a in due)
    run_ats = [a.run_at for a in due]
    assert run_ats == sorted(run_ats)


def test_get_due_respects_limit_and_status(db, test_account):
    now = utcnow()
    first = _schedule(db, test_account, run_at=now - timedelta(hours=2))
    second = _schedule(db, test_account, run_at=now - timedelta(hours=1))
    automation_service.claim_automation(db, test_account.id, first)

    due = automation_service.get_due_automations(db, test_account.id, limit=1)

    assert [a.id for a in due] == [second.id]


def test_get_due_all_accounts_spans_tenants(db, test_account, other_account):
    mine = _schedule(db, test_account, run_at=utcnow() - timedelta(hours=2))
    theirs = _schedule(db, other_account, run_at=utcnow() - timedelta(hours=1))

    due = automation_service.get_due_automations_all_accounts(db, limit=10)

    assert [a.id for a in due] == [mine.id, theirs.id]
    assert {a.account_id for a in due} == {test_account.id, other_account.id}


# =============================================================================
# claim_automation
# =============================================================================

def test_claim_moves_to_processing(db, test_account):
    automation = _schedule(db, test_account)

    claimed = automation_service.claim_automation(db, test_account.id, automation)

    assert claimed is not None
    assert claimed.status == AutomationStatus.PROCESSING.value
    assert claimed.attempts == 1
    assert claimed.last_attempt is not None
    assert "Picked up by scheduler" in _history_messages(db, automation.id)


def test_claim_twice_only_first_wins(db, test_account):
    automation = _schedule(db, test_account)
    automation_id = automation.id

    first = automation_service.claim_automation(db, test_account.id, automation)
    second = automation_service.claim_automation(db, test_account.id, automation)

    assert first is not None
    assert first.status == AutomationStatus.PROCESSING.value
    assert second is None
    refreshed = db.get(Automation, automation_id)
    assert refreshed.attempts == 1
    history = (
        db.query(AutomationHistory)
        .filter(
            AutomationHistory.automation_id == automation_id,
            AutomationHistory.status == AutomationStatus.PROCESSING.value,
        )
        .count()
    )
    assert history == 1


def test_claim_with_stale_copy_returns_none(db, test_account):
    """A driver holding an out-of-date pending row must not re-claim it."""
    automation = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, automation)
    automation_service.update_automation_status(
        db, test_account.id, automation.id, AutomationStatus.COMPLETED
    )

    stale = Automation(id=automation.id, status=AutomationStatus.PENDING.value)

    assert automation_service.claim_automation(db, test_account.id, stale) is None
    assert db.get(Automation, automation.id).status == AutomationStatus.COMPLETED.value


def test_claim_scoped_to_account(db, test_account, other_account):
    automation = _schedule(db, test_account)

    assert automation_service.claim_automation(db, other_account.id, automation) is None
    assert db.get(Automation, automation.id).status == AutomationStatus.PENDING.value


@pytest.mark.postgres
def test_concurrent_claims_only_one_succeeds(db_engine):
    setup = SessionLocal(bind=db_engine)
    account = Account(id=uuid.uuid4(), name="Claim Race", slug=f"claim-race-{uuid.uuid4().hex[:8]}")
    setup.add(account)
    setup.flush()
    setup.add(AccountSettings(account_id=account.id, ai_automation={"estimate_followups": True}))
    setup.commit()
    account_id = account.id

    try:
        automation = automation_service.schedule_automation(
            setup,
            account_id,
            AutomationType.ESTIMATE_FOLLOWUP,
            uuid.uuid4(),
            utcnow() - timedelta(minutes=1),
        )
        automation_id = automation.id
        barrier = Barrier(2)

        def claim():
            with SessionLocal(bind=db_engine) as session:
                candidate = session.get(Automation, automation_id)
                barrier.wait()
                claimed = automation_service.claim_automation(session, account_id, candidate)
                return claimed is not None

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(lambda _: claim(), range(2)))

        assert sorted(outcomes) == [False, True]
        setup.expire_all()
        assert setup.get(Automation, automation_id).attempts == 1
    finally:
        setup.rollback()
        setup.query(Account).filter(Account.id == account_id).delete()
        setup.commit()
        setup.close()


# =============================================================================
# update_automation_status / history
# =============================================================================

def test_update_status_stores_result_and_history(db, test_account):
    automation = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, automation)

    updated = automation_service.update_automation_status(
        db,
        test_account.id,
        automation.id,
        AutomationStatus.FAILED,
        result={"error": "boom"},
        message="Failed: boom",
    )

    assert updated.status == AutomationStatus.FAILED.value
    assert updated.result == {"error": "boom"}
    assert "Failed: boom" in _history_messages(db, automation.id)


def test_update_status_without_message_adds_no_history(db, test_account):
    automation = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, automation)

    automation_service.update_automation_status(
        db, test_account.id, automation.id, AutomationStatus.COMPLETED
    )

    assert _history_messages(db, automation.id) == {"Automation scheduled", "Picked up by scheduler"}


def test_update_status_rejects_non_terminal(db, test_account):
    automation = _schedule(db, test_account)

    with pytest.raises(automation_service.InvalidAutomationStatusError):
        automation_service.update_automation_status(
            db, test_account.id, automation.id, AutomationStatus.PENDING
        )


def test_update_status_other_account_not_found(db, test_account, other_account):
    automation = _schedule(db, test_account)

    with pytest.raises(automation_service.AutomationNotFoundError):
        automation_service.update_automation_status(
            db, other_account.id, automation.id, AutomationStatus.COMPLETED
        )


def test_update_status_requires_claim(db, test_account):
    automation = _schedule(db, test_account)

    updated = automation_service.update_automation_status(
        db, test_account.id, automation.id, AutomationStatus.COMPLETED, message="Done"
    )

    assert updated is None
    db.expire_all()
    assert db.get(Automation, automation.id).status == AutomationStatus.PENDING.value
    assert _history_messages(db, automation.id) == {"Automation scheduled"}


def test_update_status_never_overwrites_swept_item(db, test_account):
    """A driver finishing after the stale sweep must not flip failed to completed."""
    automation = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, automation)
    assert automation_service.release_stale_automations(db, timedelta(seconds=0)) == 1

    updated = automation_service.update_automation_status(
        db,
        test_account.id,
        automation.id,
        AutomationStatus.COMPLETED,
        result={"message": "late reply"},
        message="Completed estimate follow-up",
    )

    assert updated is None
    db.expire_all()
    row = db.get(Automation, automation.id)
    assert row.status == AutomationStatus.FAILED.value
    assert row.result == {"error": automation_service.STALE_PROCESSING_MESSAGE}
    assert "Completed estimate follow-up" not in _history_messages(db, automation.id)


def test_update_status_terminal_is_final(db, test_account):
    automation = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, automation)
    automation_service.update_automation_status(
        db, test_account.id, automation.id, AutomationStatus.FAILED, result={"error": "boom"}
    )

    assert automation_service.update_automation_status(
        db, test_account.id, automation.id, AutomationStatus.COMPLETED
    ) is None
    db.expire_all()
    assert db.get(Automation, automation.id).result == {"error": "boom"}


def test_record_history_requires_account_match(db, test_account, other_account):
    automation = _schedule(db, test_account)

    with pytest.raises(automation_service.AutomationNotFoundError):
        automation_service.record_automation_history(
            db, other_account.id, automation.id, AutomationStatus.COMPLETED, "nope"
        )


# =============================================================================
# list_automations_with_history
# =============================================================================

def test_list_with_history_orders_and_filters(db, test_account):
    now = utcnow()
    later = _schedule(db, test_account, run_at=now + timedelta(days=2))
    earlier = _schedule(db, test_account, run_at=now - timedelta(days=1))
    automation_service.claim_automation(db, test_account.id, earlier)

    everything = automation_service.list_automations_with_history(db, test_account.id)
    processing = automation_service.list_automations_with_history(
        db, test_account.id, status=AutomationStatus.PROCESSING
    )

    assert [a.id for a in everything] == [earlier.id, later.id]
    assert {h.message for h in everything[0].history} == {
        "Automation scheduled",
        "Picked up by scheduler",
    }
    assert [a.id for a in processing] == [earlier.id]


# =============================================================================
# release_stale_automations
# =============================================================================

def test_release_stale_fails_old_processing_items(db, test_account):
    stuck = _schedule(db, test_account)
    fresh = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, stuck)
    automation_service.claim_automation(db, test_account.id, fresh)

    row = db.get(Automation, stuck.id)
    row.last_attempt = utcnow() - timedelta(hours=2)
    db.commit()

    released = automation_service.release_stale_automations(db, timedelta(minutes=30))

    assert released == 1
    db.expire_all()
    stuck_row = db.get(Automation, stuck.id)
    assert stuck_row.status == AutomationStatus.FAILED.value
    assert stuck_row.result == {"error": "Timed out while processing"}
    assert "Timed out while processing" in _history_messages(db, stuck.id)
    assert db.get(Automation, fresh.id).status == AutomationStatus.PROCESSING.value


def test_release_stale_ignores_pending_and_terminal(db, test_account):
    pending = _schedule(db, test_account)
    done = _schedule(db, test_account)
    automation_service.claim_automation(db, test_account.id, done)
    automation_service.update_automation_status(
        db, test_account.id, done.id, AutomationStatus.COMPLETED
    )

    assert automation_service.release_stale_automations(db, timedelta(seconds=0)) == 0
    assert db.get(Automation, pending.id).status == AutomationStatus.PENDING.value
