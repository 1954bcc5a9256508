"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from fieldops.core.permissions import Permission
from fieldops.core.security import decode_session_token
from fieldops.db.enums import Role
from fieldops.db.session import SessionLocal
from fieldops.schemas.auth import TenantContext, TokenPayload
from fieldops.services.tenant_context_service import (
    UnauthorizedError,
    has_permission,
    resolve_tenant_context,
)


# Cookie and header names
COOKIE_NAME = "fieldops_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_principal(request: Request) -> TokenPayload:
    """
    Decode the session cookie into a principal.

    Raises:
        HTTPException 401: Missing or invalid session
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        return TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_tenant_context(
    principal: TokenPayload = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TenantContext:
    """
    Resolve the tenant context for the request.

    This is the PRIMARY auth dependency; every query downstream
    must filter on ctx.account_id.
    """
    try:
        return resolve_tenant_context(db, principal)
    except UnauthorizedError as e:
        raise HTTPException(status_code=401, detail=str(e))


def require_roles(allowed_roles: list[Role]):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.patch("/visits/{id}", dependencies=[Depends(require_roles([Role.TECH]))])
    """
    def dependency(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if ctx.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{ctx.role.value}' not authorized for this action",
            )
        return ctx
    return dependency


def require_permission(permission: Permission):
    """Dependency factory for permission checks against role defaults."""
    def dependency(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if not has_permission(ctx, permission):
            raise HTTPException(
                status_code=403,
                detail=f"Missing permission '{permission.value}'",
            )
        return ctx
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
