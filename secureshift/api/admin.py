"""Admin / Audit API router."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from secureshift.core.config import settings
from secureshift.core.security import Actor, require_admin
from secureshift.db.session import get_db
from secureshift.models.audit_log import AuditLog
from secureshift.models.user import User
from secureshift.schemas.schemas import AuditLogOut, MessageResponse, StatsResponse
from secureshift.services.audit_service import AuditAction, audit_service
from secureshift.services.shift_service import shift_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit-logs")
async def get_audit_logs(
    actor_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Query audit logs (admin only)."""
    result = audit_service.query_logs(
        db, actor_id, action, resource_type, since, until, page, page_size,
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.delete("/audit-logs", response_model=MessageResponse)
async def purge_audit_logs(
    request: Request,
    days: int = Query(settings.AUDIT_RETENTION_DAYS, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Delete audit entries older than ``days`` days."""
    deleted = audit_service.purge_older_than(db, days)
    audit_service.log_from_request(
        db, request, actor.id, AuditAction.AUDIT_PURGED, "audit_log",
        details={"days": days, "deleted": deleted}, actor_role=actor.role,
    )
    return MessageResponse(message=f"Purged {deleted} audit entries", detail={"deleted": deleted})


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Shift and user counts for the admin dashboard."""
    users_by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return StatsResponse(
        shifts_by_status=shift_service.status_counts(db),
        users_by_role=users_by_role,
        total_audit_events=db.query(func.count(AuditLog.id)).scalar() or 0,
    )
