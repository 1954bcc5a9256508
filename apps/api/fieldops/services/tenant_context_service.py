"""Tenant context resolution - maps an authenticated principal to an account scope."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from fieldops.core.permissions import Permission, get_role_default_permissions
from fieldops.db.enums import ROLES_CAN_ACCESS_TECH, ROLES_CAN_MANAGE, Role
from fieldops.db.models import AccountMembership, Customer, User
from fieldops.schemas.auth import TenantContext, TokenPayload


class UnauthorizedError(Exception):
    """Principal cannot be mapped to any account."""

    pass


def _load_user(db: Session, principal: TokenPayload) -> User:
    user = db.get(User, principal.sub)
    if not user:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("Account disabled")
    if user.token_version != principal.token_version:
        raise UnauthorizedError("Session revoked")
    return user


def get_primary_membership(db: Session, user_id: UUID) -> AccountMembership | None:
    """
    Oldest active membership for the user.

    There is no account switching; users with several memberships
    always land in the one they joined first.
    """
    return (
        db.query(AccountMembership)
        .filter(
            AccountMembership.user_id == user_id,
            AccountMembership.is_active.is_(True),
        )
        .order_by(AccountMembership.created_at.asc(), AccountMembership.id.asc())
        .first()
    )


def resolve_tenant_context(db: Session, principal: TokenPayload) -> TenantContext:
    """
    Resolve the tenant context for a principal.

    Staff memberships win; a portal customer without a membership gets a
    degraded CUSTOMER context scoped to the customer's account.

    Raises:
        UnauthorizedError: no usable membership or customer identity
    """
    user = _load_user(db, principal)

    membership = get_primary_membership(db, user.id)
    if membership:
        if not Role.has_value(membership.role) or membership.role == Role.CUSTOMER.value:
            raise UnauthorizedError(f"Unknown role '{membership.role}'")
        role = Role(membership.role)
        return TenantContext(
            account_id=membership.account_id,
            user_id=user.id,
            role=role,
            permissions=get_role_default_permissions(role),
        )

    customer = (
        db.query(Customer)
        .filter(Customer.user_id == user.id)
        .order_by(Customer.created_at.asc(), Customer.id.asc())
        .first()
    )
    if customer:
        return TenantContext(
            account_id=customer.account_id,
            user_id=user.id,
            role=Role.CUSTOMER,
            permissions=[],
            customer_id=customer.id,
        )

    raise UnauthorizedError("No account membership")


def has_permission(ctx: TenantContext, permission: Permission | str) -> bool:
    key = permission.value if isinstance(permission, Permission) else permission
    return key in ctx.permissions


def can_manage_admin(role: Role) -> bool:
    """Owners and admins may act on any record in their account."""
    return role in ROLES_CAN_MANAGE


def can_access_tech(role: Role) -> bool:
    return role in ROLES_CAN_ACCESS_TECH
