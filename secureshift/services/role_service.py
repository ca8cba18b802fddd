"""Role service — DB-backed role records for the permission resolver."""

from typing import Callable, Iterable, Optional, List

from sqlalchemy.orm import Session

from secureshift.core.exceptions import (
    ConflictError, ForbiddenError, InvalidInputError, NotFoundError,
)
from secureshift.core.permissions import DEFAULT_ROLE_PERMISSIONS, ROLE_DESCRIPTIONS, Permission
from secureshift.models.role import Role
from secureshift.models.user import User
from secureshift.services.permission_resolver import (
    PermissionResolver, RoleRecord, parse_permissions,
)


class RoleService:
    """Reads and maintains role records."""

    @staticmethod
    def to_record(role: Role) -> RoleRecord:
        return RoleRecord(
            name=role.name,
            permissions=parse_permissions(role.permissions, role.name),
            inherits_from=role.inherits_from or None,
        )

    @staticmethod
    def lookup(db: Session) -> Callable[[str], Optional[RoleRecord]]:
        """Role lookup bound to a session, for ``PermissionResolver``."""
        def _lookup(name: str) -> Optional[RoleRecord]:
            role = db.query(Role).filter(Role.name == name).first()
            return RoleService.to_record(role) if role else None
        return _lookup

    @staticmethod
    def resolver(db: Session) -> PermissionResolver:
        return PermissionResolver(RoleService.lookup(db), DEFAULT_ROLE_PERMISSIONS)

    @staticmethod
    def role_exists(db: Session, name: str) -> bool:
        if name in DEFAULT_ROLE_PERMISSIONS:
            return True
        return db.query(Role).filter(Role.name == name).first() is not None

    @staticmethod
    def get(db: Session, name: str) -> Role:
        role = db.query(Role).filter(Role.name == name).first()
        if not role:
            raise NotFoundError(f"Role '{name}' not found")
        return role

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        return db.query(Role).order_by(Role.name).all()

    @staticmethod
    def upsert(
        db: Session,
        name: str,
        permissions: Iterable[Permission],
        description: Optional[str] = None,
        inherits_from: Optional[str] = None,
        is_system: Optional[bool] = None,
    ) -> Role:
        """Create or replace a role.

        The parent must exist and must not already inherit (directly or
        through its ancestors) from the role being written.
        """
        if inherits_from:
            if inherits_from == name:
                raise InvalidInputError("A role cannot inherit from itself")
            if not RoleService.role_exists(db, inherits_from):
                raise NotFoundError(f"Parent role '{inherits_from}' not found")
            chain = RoleService.resolver(db).inheritance_chain(inherits_from)
            if name in chain:
                raise InvalidInputError(
                    f"Inheriting from '{inherits_from}' would create a cycle: "
                    + " -> ".join(chain + [name])
                )

        role = db.query(Role).filter(Role.name == name).first()
        if role is None:
            role = Role(name=name, is_system=bool(is_system))
            db.add(role)
        elif is_system is not None:
            role.is_system = is_system
        role.permissions = permissions
        role.inherits_from = inherits_from or None
        if description is not None:
            role.description = description
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def delete(db: Session, name: str) -> None:
        role = RoleService.get(db, name)
        if role.is_system:
            raise ForbiddenError(f"System role '{name}' cannot be deleted")
        if db.query(User).filter(User.role == name).first():
            raise ConflictError(f"Role '{name}' is still assigned to users")
        child = db.query(Role).filter(Role.inherits_from == name).first()
        if child:
            raise ConflictError(f"Role '{child.name}' inherits from '{name}'")
        db.delete(role)
        db.commit()

    @staticmethod
    def seed_defaults(db: Session) -> int:
        """Upsert the default role set as system roles. Returns the count."""
        for name, perms in DEFAULT_ROLE_PERMISSIONS.items():
            RoleService.upsert(
                db, name, perms,
                description=ROLE_DESCRIPTIONS.get(name),
                is_system=True,
            )
        return len(DEFAULT_ROLE_PERMISSIONS)


role_service = RoleService()
