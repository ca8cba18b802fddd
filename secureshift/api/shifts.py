"""Shifts API router — create, list, apply, approve, assign, complete, rate."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from secureshift.core.config import settings
from secureshift.core.permissions import Permission, RoleName
from secureshift.core.security import (
    Actor, RequirePermissions, RequireRoles, require_employer, require_guard,
)
from secureshift.db.session import get_db
from secureshift.models.shift import ShiftStatus
from secureshift.schemas.schemas import (
    ApproveRequest, AssignRequest, RateRequest, ShiftCreate,
    ShiftHistoryResponse, ShiftListItem, ShiftListResponse, ShiftOut,
)
from secureshift.services.audit_service import AuditAction, audit_service
from secureshift.services.shift_service import shift_service

router = APIRouter(prefix="/shifts", tags=["shifts"])

require_shift_read = RequirePermissions(Permission.SHIFT_READ)
require_shift_assign = RequirePermissions(Permission.SHIFT_ASSIGN)
require_owner_or_admin = RequireRoles(RoleName.employer, RoleName.admin, RoleName.super_admin)
require_rater = RequireRoles(RoleName.guard, RoleName.employer)


@router.post("/", response_model=ShiftOut, status_code=status.HTTP_201_CREATED)
async def create_shift(
    body: ShiftCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_employer),
):
    """Create a new shift (employer only)."""
    shift = shift_service.create(
        db, actor.id, body.title, body.date, body.start_time, body.end_time,
        description=body.description, location=body.location,
    )
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_CREATED, "shift", shift.id,
        details={"title": shift.title, "date": shift.date}, actor_role=actor.role,
    )
    return shift


@router.get("/", response_model=ShiftListResponse)
async def list_shifts(
    status_filter: Optional[ShiftStatus] = Query(None, alias="status"),
    with_applicants_only: bool = Query(False, alias="withApplicantsOnly"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_shift_read),
):
    """List the shifts visible to the caller's role."""
    result = shift_service.list_visible(
        db, actor.role, actor.id, status_filter, with_applicants_only, page, limit,
    )
    items = []
    for shift in result["items"]:
        item = ShiftListItem.model_validate(shift)
        if actor.role != RoleName.guard.value:
            item.applicant_count = len(shift.applicants)
            item.has_applicants = bool(shift.applicants)
        items.append(item)
    return ShiftListResponse(
        items=items, total=result["total"], page=result["page"], limit=result["limit"],
    )


@router.get("/mine", response_model=list[ShiftOut])
async def my_shifts(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_shift_read),
):
    """Shifts the caller applied to, works, or posted. ``status=past`` for completed."""
    return shift_service.list_mine(db, actor.role, actor.id, past_only=status_filter == "past")


@router.get("/history", response_model=ShiftHistoryResponse)
async def shift_history(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_shift_read),
):
    """Completed shifts for the calling guard or employer."""
    items = shift_service.history(db, actor.role, actor.id)
    return ShiftHistoryResponse(total=len(items), items=items)


@router.get("/{shift_id}", response_model=ShiftOut)
async def get_shift(
    shift_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_shift_read),
):
    """Get a single shift."""
    return shift_service.get(db, shift_id)


@router.post("/{shift_id}/apply", response_model=ShiftOut)
async def apply_for_shift(
    shift_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_guard),
):
    """Apply for a shift (guard only)."""
    shift = shift_service.apply(db, shift_id, actor.id)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_APPLIED, "shift", shift_id,
        actor_role=actor.role,
    )
    return shift


@router.post("/{shift_id}/approve", response_model=ShiftOut)
async def approve_guard(
    shift_id: int,
    body: ApproveRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_owner_or_admin),
):
    """Approve one applicant (shift owner or admin)."""
    shift = shift_service.approve(
        db, shift_id, actor.id, actor.role, body.guard_id, body.keep_others,
    )
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_APPROVED, "shift", shift_id,
        details={"guard_id": body.guard_id, "keep_others": body.keep_others},
        actor_role=actor.role,
    )
    return shift


@router.post("/{shift_id}/assign", response_model=ShiftOut)
async def assign_guard(
    shift_id: int,
    body: AssignRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_shift_assign),
):
    """Assign a guard directly, without a prior application (shift:assign)."""
    shift = shift_service.assign(db, shift_id, body.guard_id)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_ASSIGNED, "shift", shift_id,
        details={"guard_id": body.guard_id}, actor_role=actor.role,
    )
    return shift


@router.post("/{shift_id}/complete", response_model=ShiftOut)
async def complete_shift(
    shift_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_owner_or_admin),
):
    """Mark a shift completed (shift owner or admin)."""
    shift = shift_service.complete(db, shift_id, actor.id, actor.role)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_COMPLETED, "shift", shift_id,
        actor_role=actor.role,
    )
    return shift


@router.post("/{shift_id}/rate", response_model=ShiftOut)
async def rate_shift(
    shift_id: int,
    body: RateRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_rater),
):
    """Rate a completed shift (assigned guard or owning employer, once each)."""
    shift = shift_service.rate(db, shift_id, actor.id, actor.role, body.rating)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.SHIFT_RATED, "shift", shift_id,
        details={"rating": body.rating}, actor_role=actor.role,
    )
    return shift
