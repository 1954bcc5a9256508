"""Tests for the fieldops CLI."""

import contextlib
import uuid
from datetime import timedelta

import pytest
from click.testing import CliRunner

from fieldops import cli as cli_module
from fieldops.db.enums import AutomationStatus, AutomationType
from fieldops.db.models import Account, AccountMembership, AccountSettings, Automation, User
from fieldops.services import automation_service
from fieldops.services.automation_content import AutomationContentGenerator
from fieldops.utils.datetime_utils import utcnow


@pytest.fixture
def runner(db, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: contextlib.nullcontext(db))
    return CliRunner()


def test_create_account_bootstraps_owner(db, runner):
    slug = f"acme-{uuid.uuid4().hex[:6]}"

    result = runner.invoke(
        cli_module.cli,
        ["create-account", "--name", "Acme HVAC", "--slug", slug, "--owner-email", "Owner@Acme.com"],
    )

    assert result.exit_code == 0, result.output
    assert "Created account: Acme HVAC" in result.output
    account = db.query(Account).filter(Account.slug == slug).one()
    user = db.query(User).filter(User.email == "owner@acme.com").one()
    membership = db.query(AccountMembership).filter(AccountMembership.user_id == user.id).one()
    assert membership.account_id == account.id
    assert membership.role == "owner"
    assert db.query(AccountSettings).filter(AccountSettings.account_id == account.id).count() == 1


def test_create_account_rejects_bad_slug(runner):
    result = runner.invoke(
        cli_module.cli,
        ["create-account", "--name", "Acme", "--slug", "acme hvac!", "--owner-email", "o@a.com"],
    )

    assert result.exit_code != 0
    assert "Slug must be alphanumeric" in result.output


def test_create_account_rejects_duplicate_slug(runner, test_account):
    result = runner.invoke(
        cli_module.cli,
        [
            "create-account",
            "--name",
            "Copy",
            "--slug",
            test_account.slug,
            "--owner-email",
            "copy@example.com",
        ],
    )

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_release_stale_command(db, runner, test_account):
    automation = automation_service.schedule_automation(
        db,
        test_account.id,
        AutomationType.JOB_CLOSEOUT,
        uuid.uuid4(),
        utcnow() - timedelta(hours=1),
    )
    automation_service.claim_automation(db, test_account.id, automation)
    row = db.get(Automation, automation.id)
    row.last_attempt = utcnow() - timedelta(minutes=90)
    db.commit()

    result = runner.invoke(cli_module.cli, ["release-stale", "--minutes", "60"])

    assert result.exit_code == 0, result.output
    assert "Released 1 stale automations" in result.output
    db.expire_all()
    assert db.get(Automation, automation.id).status == AutomationStatus.FAILED.value


def test_run_automations_command(db, runner, monkeypatch, factory, test_account, generator):
    monkeypatch.setattr(
        AutomationContentGenerator, "from_settings", classmethod(lambda cls: generator)
    )
    lead = factory.lead(test_account)
    automation_service.schedule_automation(
        db,
        test_account.id,
        AutomationType.LEAD_RESPONSE,
        lead.id,
        utcnow() - timedelta(minutes=1),
    )

    result = runner.invoke(cli_module.cli, ["run-automations", "--limit", "5"])

    assert result.exit_code == 0, result.output
    assert "Attempted: 1, processed: 1" in result.output
    assert "lead_response: completed" in result.output
