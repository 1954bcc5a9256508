"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldops.db.base import Base
from fieldops.db.enums import DEFAULT_AUTOMATION_STATUS
from fieldops.db.types import JSONType
from fieldops.utils.datetime_utils import utcnow


class Automation(Base):
    """
    Deferred automation work item.

    Scheduled by trigger hooks, picked up by the automation driver.
    Waiting is encoded in run_at so items survive process restarts.
    """

    __tablename__ = "automations"
    __table_args__ = (
        Index("idx_automations_due", "status", "run_at"),
        Index("idx_automations_account", "account_id", "run_at"),
        # Idempotency for (type, related_id, run_at) per account
        Index(
            "uq_automations_dedupe",
            "account_id",
            "type",
            "related_id",
            "run_at",
            unique=True,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    related_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_AUTOMATION_STATUS.value,
        server_default=text(f"'{DEFAULT_AUTOMATION_STATUS.value}'"),
        nullable=False,
    )
    run_at: Mapped[datetime] = mapped_column(nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    attempts: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    last_attempt: Mapped[datetime | None] = mapped_column(nullable=True)
    result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    history: Mapped[list["AutomationHistory"]] = relationship(
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by="AutomationHistory.created_at",
    )


class AutomationHistory(Base):
    """Append-only audit trail for an automation work item."""

    __tablename__ = "automation_history"
    __table_args__ = (Index("idx_automation_history_automation", "automation_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    automation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("automations.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    automation: Mapped["Automation"] = relationship(back_populates="history")
