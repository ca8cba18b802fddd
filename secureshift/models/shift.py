"""Shift model."""

import enum
import json

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, SmallInteger,
    ForeignKey, Enum, func
)
from secureshift.db.base import Base


class ShiftStatus(str, enum.Enum):
    open = "open"
    applied = "applied"
    assigned = "assigned"
    completed = "completed"


class Shift(Base):
    """A bookable work assignment owned by one employer.

    ``version`` is bumped on every UPDATE and checked in its WHERE clause, so
    two sessions racing on the same shift cannot both commit.
    """
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM, 24h
    end_time = Column(String(5), nullable=False)  # HH:MM, earlier than start means overnight
    status = Column(Enum(ShiftStatus), default=ShiftStatus.open, nullable=False, index=True)
    applicants_json = Column(Text, nullable=True)  # JSON list of user ids
    assigned_guard_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    guard_rating = Column(SmallInteger, nullable=True)
    employer_rating = Column(SmallInteger, nullable=True)
    rated_by_guard = Column(Boolean, default=False, nullable=False)
    rated_by_employer = Column(Boolean, default=False, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        # Column defaults only apply at flush; the lifecycle reads these on
        # unsaved instances too.
        kwargs.setdefault("status", ShiftStatus.open)
        kwargs.setdefault("rated_by_guard", False)
        kwargs.setdefault("rated_by_employer", False)
        applicants = kwargs.pop("applicants", None)
        super().__init__(**kwargs)
        if applicants is not None:
            self.applicants = applicants

    @property
    def applicants(self) -> list:
        return json.loads(self.applicants_json) if self.applicants_json else []

    @applicants.setter
    def applicants(self, user_ids) -> None:
        unique = []
        for user_id in user_ids:
            if user_id not in unique:
                unique.append(user_id)
        self.applicants_json = json.dumps(unique)

    @property
    def accepted_by(self):
        """Older clients read the assigned guard under this name."""
        return self.assigned_guard_id
