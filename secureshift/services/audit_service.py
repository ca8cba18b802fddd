"""Audit service — append-only audit trail of successful mutations."""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from secureshift.models.audit_log import AuditLog

logger = logging.getLogger("secureshift.audit")


class AuditAction:
    SHIFT_CREATED = "shift.created"
    SHIFT_APPLIED = "shift.applied"
    SHIFT_APPROVED = "shift.approved"
    SHIFT_ASSIGNED = "shift.assigned"
    SHIFT_COMPLETED = "shift.completed"
    SHIFT_RATED = "shift.rated"
    ROLE_UPSERTED = "role.upserted"
    ROLE_DELETED = "role.deleted"
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    BRANCH_CREATED = "branch.created"
    AUDIT_PURGED = "audit.purged"


class AuditService:
    """Records audit log entries for system events."""

    @staticmethod
    def log(
        db: Session,
        actor_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[Any] = None,
        actor_role: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Write a single audit log record.

        Best-effort: the mutation being audited has already been committed,
        so a failed write is logged and swallowed rather than raised.
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details_json=json.dumps(details, default=str) if details else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            db.add(entry)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to write audit log %s for %s %s", action, resource_type, resource_id)
            return None
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        actor_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[Any] = None,
        actor_role: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Audit entry tagged with the caller's IP, user-agent and request id."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            details = {**(details or {}), "request_id": request_id}
        return AuditService.log(
            db=db,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            actor_role=actor_role,
            ip_address=ip,
            user_agent=ua,
        )

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Query audit logs with filters and pagination."""
        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if since:
            query = query.filter(AuditLog.created_at >= since)
        if until:
            query = query.filter(AuditLog.created_at <= until)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    @staticmethod
    def purge_older_than(db: Session, days: int) -> int:
        """Delete entries older than ``days`` days. Returns the deleted count."""
        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=days)
        deleted = (
            db.query(AuditLog)
            .filter(AuditLog.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted


audit_service = AuditService()
