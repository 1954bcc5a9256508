"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from fieldops.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    token_version: int


class TenantContext(BaseModel):
    """
    Resolved tenant context for an authenticated request.

    Every persistence call downstream takes account_id from here
    and filters on it explicitly.
    """
    account_id: UUID
    user_id: UUID
    role: Role
    permissions: list[str] = []
    customer_id: UUID | None = None
