"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    account_id: UUID | str | None = None,
    user_id: UUID | str | None = None,
    automation_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (identifiers only, never content)."""
    context: dict[str, Any] = {}
    if account_id:
        context["account_id"] = str(account_id)
    if user_id:
        context["user_id"] = str(user_id)
    if automation_id:
        context["automation_id"] = str(automation_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
