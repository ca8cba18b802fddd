"""Permission resolver — effective permissions and authorization checks.

Roles form a single-parent inheritance chain (``inherits_from``). The
resolver walks that chain iteratively, unioning the permissions of every
role it visits. A name that shows up twice ends the walk, so a cyclic chain
terminates and contributes each role once.

The resolver holds no state beyond its two inputs: a role lookup (usually
backed by the ``roles`` table) and the immutable fallback table used for
roles that have no record.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, FrozenSet, Set

from secureshift.core.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError
from secureshift.core.permissions import DEFAULT_ROLE_PERMISSIONS, Permission, RoleName

logger = logging.getLogger("secureshift.rbac")


@dataclass(frozen=True)
class RoleRecord:
    """A role as stored, detached from the ORM."""
    name: str
    permissions: FrozenSet[Permission]
    inherits_from: Optional[str] = None


RoleLookup = Callable[[str], Optional[RoleRecord]]


class MatchMode(str, enum.Enum):
    ALL = "all"
    ANY = "any"


def parse_permissions(values: Iterable[str], role_name: str = "") -> FrozenSet[Permission]:
    """Convert stored tokens to ``Permission`` members, dropping unknown ones."""
    parsed = set()
    for value in values:
        try:
            parsed.add(Permission.parse(value))
        except ValueError:
            logger.warning("Ignoring unknown permission %r on role %r", value, role_name)
    return frozenset(parsed)


def _no_records(name: str) -> Optional[RoleRecord]:
    return None


class PermissionResolver:
    """Resolves roles to permission sets and answers authorization queries."""

    def __init__(
        self,
        lookup: RoleLookup = _no_records,
        fallback: Mapping[str, FrozenSet[Permission]] = DEFAULT_ROLE_PERMISSIONS,
    ):
        self._lookup = lookup
        self._fallback = fallback

    def resolve_effective_permissions(self, role_name: str) -> FrozenSet[Permission]:
        """Return the flattened permission set of ``role_name``."""
        effective: Set[Permission] = set()
        visited: Set[str] = set()
        current: Optional[str] = role_name

        while current:
            if current == RoleName.super_admin.value:
                effective.add(Permission.ALL)
                break
            if current in visited:
                logger.warning("Role inheritance cycle at %r while resolving %r", current, role_name)
                break
            visited.add(current)

            record = self._lookup(current)
            if record is not None:
                effective |= record.permissions
                current = record.inherits_from
            else:
                effective |= self._fallback.get(current, frozenset())
                current = None

        return frozenset(effective)

    def inheritance_chain(self, role_name: str) -> list:
        """Names visited when resolving ``role_name``, in walk order."""
        chain = []
        current: Optional[str] = role_name
        while current and current not in chain:
            chain.append(current)
            if current == RoleName.super_admin.value:
                break
            record = self._lookup(current)
            current = record.inherits_from if record is not None else None
        return chain

    def has_permissions(
        self,
        role_name: str,
        required: Iterable[Permission],
        match_mode: MatchMode = MatchMode.ALL,
    ) -> bool:
        effective = self.resolve_effective_permissions(role_name)
        if Permission.ALL in effective:
            return True
        required = [Permission(p) for p in required]
        if match_mode == MatchMode.ANY:
            return any(p in effective for p in required)
        return all(p in effective for p in required)

    @staticmethod
    def authorize_role(actor_role: Optional[str], allowed_roles: Iterable[str]) -> None:
        """Permit iff ``actor_role`` is one of ``allowed_roles``."""
        if not actor_role:
            raise UnauthenticatedError("Not authenticated")
        if actor_role not in {str(getattr(r, "value", r)) for r in allowed_roles}:
            raise ForbiddenError("Insufficient role")

    def authorize_permissions(
        self,
        actor_role: Optional[str],
        required: Iterable[Permission],
        match_mode: MatchMode = MatchMode.ALL,
    ) -> None:
        """Permit iff the actor's effective permissions satisfy ``required``."""
        if not actor_role:
            raise UnauthenticatedError("Not authenticated")
        if not self.has_permissions(actor_role, required, match_mode):
            raise ForbiddenError("Insufficient permissions")

    @staticmethod
    def authorize_same_scope(
        actor_role: Optional[str],
        actor_scope_id,
        target_scope_id,
        bypass_roles: Iterable[str],
        target_found: bool = True,
    ) -> None:
        """Permit when the actor and the target share a scope (branch).

        ``target_found`` is False when the target itself could not be
        resolved.
        """
        if not actor_role:
            raise UnauthenticatedError("Not authenticated")
        if actor_role in {str(getattr(r, "value", r)) for r in bypass_roles}:
            return
        if actor_scope_id is None:
            raise ForbiddenError("Requester is not assigned to any branch")
        if not target_found:
            raise NotFoundError("Target user not found")
        if str(actor_scope_id) != str(target_scope_id):
            raise ForbiddenError("Cross-branch action is not allowed")

    @staticmethod
    def authorize_self_or_roles(
        actor_id,
        actor_role: Optional[str],
        target_id,
        roles: Iterable[str],
    ) -> None:
        """Permit when acting on oneself or holding one of ``roles``."""
        if actor_id is None:
            raise UnauthenticatedError("Not authenticated")
        if str(actor_id) == str(target_id):
            return
        if actor_role in {str(getattr(r, "value", r)) for r in roles}:
            return
        raise ForbiddenError("Insufficient privileges")
