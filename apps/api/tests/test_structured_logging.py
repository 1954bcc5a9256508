import logging
import uuid
from datetime import timedelta

from fieldops.core.structured_logging import build_log_context
from fieldops.db.enums import AutomationType
from fieldops.services import automation_service
from fieldops.utils.datetime_utils import utcnow


def test_build_log_context_stringifies_ids_and_drops_empty():
    account_id = uuid.uuid4()
    automation_id = uuid.uuid4()

    context = build_log_context(
        account_id=account_id,
        automation_id=automation_id,
        route="/internal/scheduled/automations/run",
        method="POST",
    )

    assert context == {
        "account_id": str(account_id),
        "automation_id": str(automation_id),
        "route": "/internal/scheduled/automations/run",
        "method": "POST",
    }


def test_build_log_context_empty():
    assert build_log_context() == {}


def test_scheduling_logs_identifiers_not_payload(db, test_account, caplog):
    caplog.set_level(logging.INFO, logger="fieldops.services.automation_service")

    automation = automation_service.schedule_automation(
        db,
        test_account.id,
        AutomationType.LEAD_RESPONSE,
        uuid.uuid4(),
        utcnow() + timedelta(minutes=5),
        {"service_type": "secret-plumbing-detail"},
    )

    records = [r for r in caplog.records if r.name == "fieldops.services.automation_service"]
    assert records
    record = records[-1]
    assert record.account_id == str(test_account.id)
    assert record.automation_id == str(automation.id)
    assert "secret-plumbing-detail" not in record.getMessage()
