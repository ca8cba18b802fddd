"""JWT authentication and RBAC authorization dependencies."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Iterable

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from secureshift.core.config import settings
from secureshift.core.exceptions import ForbiddenError, UnauthenticatedError
from secureshift.core.permissions import Permission, RoleName, SYSTEM_ROLES
from secureshift.db.session import get_db
from secureshift.services.permission_resolver import MatchMode, PermissionResolver
from secureshift.services.role_service import RoleService
from secureshift.services.user_service import UserService

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""
    id: int
    role: str


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token (dev tooling and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthenticatedError("Invalid or expired token")


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """Extract the acting user from the JWT Bearer token.

    The token's subject must still exist and be active.
    """
    if credentials is None:
        raise UnauthenticatedError("Access denied. No token provided.")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or not role:
        raise UnauthenticatedError("Invalid token payload")
    try:
        actor = Actor(id=int(user_id), role=str(role))
    except ValueError:
        raise UnauthenticatedError("Invalid token payload")

    user = UserService.find(db, actor.id)
    if user is None:
        raise UnauthenticatedError("User no longer exists")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated")
    return actor


class RequireRoles:
    """Dependency that permits only the listed roles."""

    def __init__(self, *roles: str):
        self.roles = tuple(getattr(r, "value", r) for r in roles)

    async def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        PermissionResolver.authorize_role(actor.role, self.roles)
        return actor


class RequirePermissions:
    """Dependency that checks the caller's effective permissions."""

    def __init__(self, *permissions: Permission, match: MatchMode = MatchMode.ALL):
        self.permissions = permissions
        self.match = match

    async def __call__(
        self,
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db),
    ) -> Actor:
        RoleService.resolver(db).authorize_permissions(actor.role, self.permissions, self.match)
        return actor


class RequireSameBranch:
    """Dependency for branch-scoped user routes.

    System roles bypass. Other callers must hold one of ``scoped_roles`` and
    share a branch with the user named by the ``param`` path parameter.
    """

    def __init__(
        self,
        param: str = "user_id",
        scoped_roles: Iterable[str] = (RoleName.branch_admin.value,),
        bypass_roles: Iterable[str] = SYSTEM_ROLES,
    ):
        self.param = param
        self.scoped_roles = frozenset(scoped_roles)
        self.bypass_roles = frozenset(bypass_roles)

    async def __call__(
        self,
        request: Request,
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db),
    ) -> Actor:
        if actor.role in self.bypass_roles:
            return actor
        if actor.role not in self.scoped_roles:
            raise ForbiddenError("Only Branch Admins can use this scoped route")

        requester = UserService.find(db, actor.id)
        try:
            target = UserService.find(db, int(request.path_params[self.param]))
        except (KeyError, ValueError):
            target = None
        PermissionResolver.authorize_same_scope(
            actor.role,
            requester.branch_id if requester else None,
            target.branch_id if target else None,
            self.bypass_roles,
            target_found=target is not None,
        )
        return actor


# Convenience dependencies
require_admin = RequireRoles(RoleName.super_admin, RoleName.admin)
require_employer = RequireRoles(RoleName.employer)
require_guard = RequireRoles(RoleName.guard)
require_rbac_read = RequirePermissions(Permission.RBAC_READ)
require_rbac_write = RequirePermissions(Permission.RBAC_WRITE)
