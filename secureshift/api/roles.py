"""Roles API router — role records and effective permission lookups."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from secureshift.core.security import (
    Actor, get_current_actor, require_rbac_read, require_rbac_write,
)
from secureshift.db.session import get_db
from secureshift.schemas.schemas import (
    EffectivePermissionsOut, MessageResponse, RoleOut, RoleUpsert,
)
from secureshift.services.audit_service import AuditAction, audit_service
from secureshift.services.role_service import role_service

router = APIRouter(prefix="/roles", tags=["roles"])


def _effective(db: Session, role_name: str) -> EffectivePermissionsOut:
    resolver = role_service.resolver(db)
    return EffectivePermissionsOut(
        role=role_name,
        inheritance_chain=resolver.inheritance_chain(role_name),
        permissions=sorted(p.value for p in resolver.resolve_effective_permissions(role_name)),
    )


@router.get("/", response_model=list[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rbac_read),
):
    """List stored roles."""
    return role_service.list_roles(db)


@router.get("/me/permissions", response_model=EffectivePermissionsOut)
async def my_permissions(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Effective permissions of the calling user's role."""
    return _effective(db, actor.role)


@router.get("/{name}", response_model=RoleOut)
async def get_role(
    name: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rbac_read),
):
    return role_service.get(db, name)


@router.get("/{name}/effective", response_model=EffectivePermissionsOut)
async def effective_permissions(
    name: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rbac_read),
):
    """Resolve a role's permissions through its inheritance chain."""
    return _effective(db, name)


@router.put("/{name}", response_model=RoleOut)
async def upsert_role(
    name: str,
    body: RoleUpsert,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rbac_write),
):
    """Create or replace a role."""
    role = role_service.upsert(
        db, name, body.permissions,
        description=body.description, inherits_from=body.inherits_from,
    )
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.ROLE_UPSERTED, "role", name,
        details={"permissions": role.permissions, "inherits_from": role.inherits_from},
        actor_role=actor.role,
    )
    return role


@router.delete("/{name}", response_model=MessageResponse)
async def delete_role(
    name: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rbac_write),
):
    """Delete a non-system role that no user or role still references."""
    role_service.delete(db, name)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.ROLE_DELETED, "role", name,
        actor_role=actor.role,
    )
    return MessageResponse(message=f"Role '{name}' deleted")
