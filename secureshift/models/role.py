"""Role model for RBAC."""

import json

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from secureshift.db.base import Base


class Role(Base):
    """Role with JSON permissions and an optional parent role."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    permissions_json = Column(Text, nullable=True)  # JSON list of permission strings
    inherits_from = Column(String(50), nullable=True)  # parent role name
    is_system = Column(Boolean, default=False, nullable=False)  # core roles cannot be deleted
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def permissions(self) -> list:
        return json.loads(self.permissions_json) if self.permissions_json else []

    @permissions.setter
    def permissions(self, values) -> None:
        self.permissions_json = json.dumps(sorted(str(getattr(v, "value", v)) for v in values))
