"""Branch model — the administrative scope for branch admins."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from secureshift.db.base import Base


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
