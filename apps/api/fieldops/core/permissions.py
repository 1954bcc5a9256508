"""Permission registry and role defaults.

Permissions are fixed per role; there are no per-user overrides.
CUSTOMER contexts carry no permissions at all.
"""

from enum import Enum

from fieldops.db.enums import Role


class Permission(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_ACCOUNT = "manage_account"
    MANAGE_BUSINESS = "manage_business"
    VIEW_REPORTS = "view_reports"
    MANAGE_TEAM = "manage_team"
    MANAGE_INVENTORY = "manage_inventory"
    MANAGE_AUTOMATIONS = "manage_automations"
    VIEW_FINANCIAL = "view_financial"
    MANAGE_LEADS = "manage_leads"
    EXPORT_DATA = "export_data"


_ADMIN_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        Permission.MANAGE_BUSINESS,
        Permission.VIEW_REPORTS,
        Permission.MANAGE_TEAM,
        Permission.MANAGE_INVENTORY,
        Permission.MANAGE_AUTOMATIONS,
        Permission.VIEW_FINANCIAL,
        Permission.MANAGE_LEADS,
    }
)


DEFAULT_ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.OWNER: _ADMIN_PERMISSIONS
    | {Permission.MANAGE_USERS, Permission.MANAGE_ACCOUNT, Permission.EXPORT_DATA},
    Role.ADMIN: _ADMIN_PERMISSIONS,
    Role.TECH: frozenset({Permission.MANAGE_BUSINESS}),
    Role.CUSTOMER: frozenset(),
}


def get_role_default_permissions(role: Role | str) -> list[str]:
    """Sorted permission keys granted to a role (empty for unknown roles)."""
    if isinstance(role, str) and not isinstance(role, Role):
        if not Role.has_value(role):
            return []
        role = Role(role)
    return sorted(p.value for p in DEFAULT_ROLE_PERMISSIONS.get(role, frozenset()))
