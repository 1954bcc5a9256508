"""Automation settings service.

Toggles live on the per-account account_settings row; only overrides are
stored, defaults are merged once when the row is read.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from fieldops.db.enums import AUTOMATION_SETTING_KEYS, AutomationType
from fieldops.db.models import AccountSettings
from fieldops.schemas.automation import AutomationSettings, AutomationSettingsUpdate

DEFAULT_AUTOMATION_SETTINGS = AutomationSettings()


def merge_automation_settings(
    defaults: AutomationSettings, overrides: dict | None
) -> AutomationSettings:
    """Merge stored overrides over defaults (unknown keys dropped)."""
    return AutomationSettings.merge(defaults, overrides)


def _get_settings_row(db: Session, account_id: UUID) -> AccountSettings | None:
    return (
        db.query(AccountSettings)
        .filter(AccountSettings.account_id == account_id)
        .first()
    )


def get_automation_settings(db: Session, account_id: UUID) -> AutomationSettings:
    """Effective automation toggles for an account."""
    row = _get_settings_row(db, account_id)
    return merge_automation_settings(
        DEFAULT_AUTOMATION_SETTINGS, row.ai_automation if row else None
    )


def update_automation_settings(
    db: Session, account_id: UUID, update: AutomationSettingsUpdate
) -> AutomationSettings:
    """Persist the toggles present in the update; returns effective settings."""
    row = _get_settings_row(db, account_id)
    if not row:
        row = AccountSettings(account_id=account_id, ai_automation={})
        db.add(row)

    changes = update.model_dump(exclude_none=True)
    # Reassign so the JSON column is flagged dirty
    row.ai_automation = {**(row.ai_automation or {}), **changes}
    db.commit()
    db.refresh(row)
    return merge_automation_settings(DEFAULT_AUTOMATION_SETTINGS, row.ai_automation)


def is_automation_enabled(
    automation_type: AutomationType | str, automation_settings: AutomationSettings
) -> bool:
    """Whether the toggle gating this automation type is on."""
    if not AutomationType.has_value(automation_type):
        return False
    key = AUTOMATION_SETTING_KEYS[AutomationType(automation_type)]
    return bool(getattr(automation_settings, key, False))
