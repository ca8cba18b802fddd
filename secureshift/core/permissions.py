"""Permission tokens, known roles and the default role-permission table.

The default table is used by the seed script and as the fallback for roles
that have no database record (an unseeded store).
"""

import enum
from types import MappingProxyType
from typing import Mapping, FrozenSet


class Permission(str, enum.Enum):
    """Capability tokens, ``resource:action``."""

    ALL = "*"

    USER_READ = "user:read"
    USER_WRITE = "user:write"
    USER_DELETE = "user:delete"

    SHIFT_READ = "shift:read"
    SHIFT_WRITE = "shift:write"
    SHIFT_ASSIGN = "shift:assign"
    SHIFT_APPLY = "shift:apply"
    SHIFT_ACCEPT = "shift:accept"
    SHIFT_CHECKIN = "shift:checkin"

    PAYMENT_READ = "payment:read"
    PAYMENT_WRITE = "payment:write"
    PAYMENT_REFUND = "payment:refund"

    BRANCH_READ = "branch:read"
    BRANCH_WRITE = "branch:write"

    RBAC_READ = "rbac:read"
    RBAC_WRITE = "rbac:write"

    @classmethod
    def parse(cls, value: str) -> "Permission":
        """Return the member for ``value``; raises ValueError on unknown tokens."""
        return cls(value.strip())


class RoleName(str, enum.Enum):
    super_admin = "super_admin"
    admin = "admin"
    branch_admin = "branch_admin"
    employer = "employer"
    guard = "guard"
    client = "client"


# Roles with system-wide reach; they bypass branch scoping.
SYSTEM_ROLES: FrozenSet[str] = frozenset({RoleName.super_admin.value, RoleName.admin.value})

# Roles that may approve or complete a shift they do not own.
SHIFT_ADMIN_ROLES: FrozenSet[str] = SYSTEM_ROLES

# Roles that see every shift when listing.
SHIFT_OVERSIGHT_ROLES: FrozenSet[str] = SYSTEM_ROLES | {RoleName.branch_admin.value}


DEFAULT_ROLE_PERMISSIONS: Mapping[str, FrozenSet[Permission]] = MappingProxyType({
    RoleName.super_admin.value: frozenset({Permission.ALL}),
    RoleName.admin.value: frozenset({
        Permission.USER_READ, Permission.USER_WRITE, Permission.USER_DELETE,
        Permission.SHIFT_READ, Permission.SHIFT_WRITE, Permission.SHIFT_ASSIGN,
        Permission.PAYMENT_READ, Permission.PAYMENT_WRITE, Permission.PAYMENT_REFUND,
        Permission.BRANCH_READ, Permission.BRANCH_WRITE,
        Permission.RBAC_READ, Permission.RBAC_WRITE,
    }),
    RoleName.branch_admin.value: frozenset({
        Permission.USER_READ, Permission.USER_WRITE,
        Permission.SHIFT_READ, Permission.SHIFT_WRITE, Permission.SHIFT_ASSIGN,
        Permission.PAYMENT_READ,
        Permission.BRANCH_READ,
    }),
    RoleName.employer.value: frozenset({
        Permission.SHIFT_READ, Permission.SHIFT_WRITE,
        Permission.PAYMENT_READ, Permission.PAYMENT_WRITE,
    }),
    RoleName.guard.value: frozenset({
        Permission.SHIFT_READ, Permission.SHIFT_ACCEPT,
        Permission.SHIFT_CHECKIN, Permission.SHIFT_APPLY,
    }),
    RoleName.client.value: frozenset({
        Permission.SHIFT_READ,
        Permission.PAYMENT_WRITE,
    }),
})

ROLE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    RoleName.super_admin.value: "System-wide super administrator",
    RoleName.admin.value: "System admin with broad permissions",
    RoleName.branch_admin.value: "Branch-level admin for a specific branch",
    RoleName.employer.value: "Employer posting and managing shifts",
    RoleName.guard.value: "Security guard applying for shifts",
    RoleName.client.value: "Client of an employer",
})
