"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Account roles.

    - OWNER: Account owner (billing, users, everything ADMIN can do)
    - ADMIN: Business admin (settings, automations, team)
    - TECH: Field technician (assigned jobs and visits only)
    - CUSTOMER: Portal customer (degraded context, no permissions)
    """

    OWNER = "owner"
    ADMIN = "admin"
    TECH = "tech"
    CUSTOMER = "customer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# Roles that may act on any visit/job in the account
ROLES_CAN_MANAGE = frozenset({Role.OWNER, Role.ADMIN})

# Roles allowed into the technician portal
ROLES_CAN_ACCESS_TECH = frozenset({Role.OWNER, Role.ADMIN, Role.TECH})
