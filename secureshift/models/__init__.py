"""Models package — import all models so metadata.create_all can discover them."""

from secureshift.models.branch import Branch
from secureshift.models.role import Role
from secureshift.models.user import User
from secureshift.models.shift import Shift, ShiftStatus
from secureshift.models.audit_log import AuditLog

__all__ = [
    "Branch", "Role", "User", "Shift", "ShiftStatus", "AuditLog",
]
