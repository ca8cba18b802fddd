"""Audit log model — append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from secureshift.db.base import Base


class AuditLog(Base):
    """Audit trail of successful shift, role and user mutations.

    Rows are only ever inserted, or removed in bulk by the retention purge.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, nullable=True, index=True)
    actor_role = Column(String(50), nullable=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "shift.applied"
    resource_type = Column(String(50), nullable=False, index=True)  # shift, role, user
    resource_id = Column(String(100), nullable=True)
    details_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
