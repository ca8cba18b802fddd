"""Users and branches API router — branch-scoped user administration."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from secureshift.core.config import settings
from secureshift.core.exceptions import ForbiddenError
from secureshift.core.permissions import Permission, RoleName, SYSTEM_ROLES
from secureshift.core.security import (
    Actor, RequirePermissions, RequireSameBranch, get_current_actor, require_admin,
)
from secureshift.db.session import get_db
from secureshift.schemas.schemas import (
    BranchCreate, BranchOut, UserCreate, UserOut, UserUpdateRequest,
)
from secureshift.services.audit_service import AuditAction, audit_service
from secureshift.services.permission_resolver import PermissionResolver
from secureshift.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])
branch_router = APIRouter(prefix="/branches", tags=["branches"])

require_user_read = RequirePermissions(Permission.USER_READ)
require_user_write = RequirePermissions(Permission.USER_WRITE)
require_same_branch = RequireSameBranch("user_id")


def _requester_branch(db: Session, actor: Actor) -> Optional[int]:
    requester = user_service.find(db, actor.id)
    return requester.branch_id if requester else None


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Create a user (admin only)."""
    user = user_service.create(
        db, body.email, body.full_name, body.role,
        branch_id=body.branch_id, phone=body.phone,
    )
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.USER_CREATED, "user", user.id,
        details={"role": user.role, "branch_id": user.branch_id}, actor_role=actor.role,
    )
    return user


@router.get("/")
async def list_users(
    branch_id: Optional[int] = Query(None),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_user_read),
):
    """List users. Branch admins only see their own branch."""
    if actor.role not in SYSTEM_ROLES:
        branch_id = _requester_branch(db, actor)
        if branch_id is None:
            raise ForbiddenError("Requester is not assigned to any branch")
    result = user_service.list_users(db, branch_id, role, page, page_size)
    return {
        "users": [UserOut.model_validate(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Get a user: yourself, anyone for system roles, same branch for branch admins."""
    if actor.role == RoleName.branch_admin.value and actor.id != user_id:
        target = user_service.find(db, user_id)
        PermissionResolver.authorize_same_scope(
            actor.role,
            _requester_branch(db, actor),
            target.branch_id if target else None,
            SYSTEM_ROLES,
            target_found=target is not None,
        )
    else:
        PermissionResolver.authorize_self_or_roles(actor.id, actor.role, user_id, SYSTEM_ROLES)
    return user_service.get(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_same_branch),
    _perm: Actor = Depends(require_user_write),
):
    """Update a user within the caller's branch (system roles: any user)."""
    user = user_service.get(db, user_id)
    changes = body.model_dump(exclude_none=True)
    if actor.role not in SYSTEM_ROLES and user.role in SYSTEM_ROLES:
        raise ForbiddenError("Branch Admins cannot modify system administrators")
    if actor.role not in SYSTEM_ROLES and (
        changes.get("role") in SYSTEM_ROLES or "branch_id" in changes
    ):
        raise ForbiddenError("Branch Admins cannot grant system roles or move users between branches")
    user = user_service.update(db, user, **changes)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.USER_UPDATED, "user", user_id,
        details=changes, actor_role=actor.role,
    )
    return user


@branch_router.get("/", response_model=list[BranchOut])
async def list_branches(
    db: Session = Depends(get_db),
    actor: Actor = Depends(RequirePermissions(Permission.BRANCH_READ)),
):
    return user_service.list_branches(db)


@branch_router.post("/", response_model=BranchOut, status_code=status.HTTP_201_CREATED)
async def create_branch(
    body: BranchCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(RequirePermissions(Permission.BRANCH_WRITE)),
):
    """Create a branch (site). Codes are unique and stored upper-case."""
    branch = user_service.create_branch(db, body.name, body.code, body.city, body.state)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.BRANCH_CREATED, "branch", branch.id,
        details={"code": branch.code}, actor_role=actor.role,
    )
    return branch
