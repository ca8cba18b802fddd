"""Shift service — loads shifts, runs lifecycle transitions, saves results."""

import logging
from datetime import date
from typing import Optional, Dict, Any, List

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from secureshift.core.config import settings
from secureshift.core.exceptions import (
    ConflictError, InvalidInputError, NotFoundError, SecureShiftError,
)
from secureshift.core.permissions import RoleName
from secureshift.models.shift import Shift, ShiftStatus
from secureshift.models.user import User
from secureshift.services.shift_lifecycle import GUARD_VISIBLE_STATUSES, ShiftLifecycle

logger = logging.getLogger("secureshift.shifts")

lifecycle = ShiftLifecycle(tz=settings.TIMEZONE)


def _require_guard_id(guard_id: Optional[int]) -> int:
    if guard_id is None:
        raise InvalidInputError("guardId is required")
    return guard_id


def _paginate(items: List[Any], page: int, limit: int) -> Dict[str, Any]:
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "total": len(items),
        "page": page,
        "limit": limit,
    }


class ShiftService:
    """Fetch-validate-write around ``ShiftLifecycle``.

    Each transition commits once; the shift's version column makes a
    concurrent commit on the same row fail, which surfaces as a conflict.
    """

    @staticmethod
    def find(db: Session, shift_id: int) -> Optional[Shift]:
        return db.query(Shift).filter(Shift.id == shift_id).first()

    @staticmethod
    def get(db: Session, shift_id: int) -> Shift:
        shift = ShiftService.find(db, shift_id)
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    @staticmethod
    def _save(db: Session, shift: Shift) -> Shift:
        shift_id = shift.id
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.info("Concurrent update rejected for shift %s", shift_id)
            raise ConflictError("Shift was modified by another request; reload and retry")
        db.refresh(shift)
        return shift

    @staticmethod
    def _run(db: Session, transition, *args, **kwargs) -> Shift:
        try:
            shift = transition(*args, **kwargs)
        except SecureShiftError:
            db.rollback()
            raise
        return ShiftService._save(db, shift)

    @staticmethod
    def create(
        db: Session,
        created_by: int,
        title: Optional[str],
        shift_date: Optional[date],
        start_time: Optional[str],
        end_time: Optional[str],
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Shift:
        """Create a new open shift owned by ``created_by``."""
        shift = lifecycle.new_shift(
            created_by, title, shift_date, start_time, end_time,
            description=description, location=location,
        )
        db.add(shift)
        db.commit()
        db.refresh(shift)
        return shift

    @staticmethod
    def apply(db: Session, shift_id: int, actor_id: int) -> Shift:
        shift = ShiftService.find(db, shift_id)
        return ShiftService._run(db, lifecycle.apply, shift, actor_id)

    @staticmethod
    def approve(
        db: Session,
        shift_id: int,
        actor_id: int,
        actor_role: str,
        guard_id: Optional[int],
        keep_others: bool = False,
    ) -> Shift:
        guard_id = _require_guard_id(guard_id)
        shift = ShiftService.find(db, shift_id)
        return ShiftService._run(
            db, lifecycle.approve, shift, actor_id, actor_role, guard_id, keep_others,
        )

    @staticmethod
    def assign(db: Session, shift_id: int, guard_id: Optional[int]) -> Shift:
        guard_id = _require_guard_id(guard_id)
        shift = ShiftService.get(db, shift_id)
        guard = db.query(User).filter(User.id == guard_id).first()
        if not guard or guard.role != RoleName.guard.value or not guard.is_active:
            raise NotFoundError("Guard not found")
        return ShiftService._run(db, lifecycle.assign, shift, guard_id)

    @staticmethod
    def complete(db: Session, shift_id: int, actor_id: int, actor_role: str) -> Shift:
        shift = ShiftService.find(db, shift_id)
        return ShiftService._run(db, lifecycle.complete, shift, actor_id, actor_role)

    @staticmethod
    def rate(db: Session, shift_id: int, actor_id: int, actor_role: str, rating) -> Shift:
        shift = ShiftService.find(db, shift_id)
        return ShiftService._run(db, lifecycle.rate, shift, actor_id, actor_role, rating)

    @staticmethod
    def list_visible(
        db: Session,
        actor_role: str,
        actor_id: int,
        status: Optional[ShiftStatus] = None,
        with_applicants_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Role-dependent shift listing with pagination."""
        query = db.query(Shift)
        if actor_role == RoleName.guard.value:
            query = query.filter(
                Shift.status.in_(GUARD_VISIBLE_STATUSES),
                Shift.date >= lifecycle.today(),
                Shift.created_by != actor_id,
            )
        elif actor_role == RoleName.employer.value:
            query = query.filter(Shift.created_by == actor_id)

        shifts = lifecycle.list_visible_shifts(
            query.all(), actor_role, actor_id,
            status=status, with_applicants_only=with_applicants_only,
        )
        return _paginate(shifts, page, limit)

    @staticmethod
    def list_mine(db: Session, actor_role: str, actor_id: int, past_only: bool = False) -> List[Shift]:
        query = db.query(Shift)
        if actor_role == RoleName.employer.value:
            query = query.filter(Shift.created_by == actor_id)
        return lifecycle.list_my_shifts(query.all(), actor_role, actor_id, past_only=past_only)

    @staticmethod
    def history(db: Session, actor_role: str, actor_id: int) -> List[Shift]:
        query = db.query(Shift).filter(Shift.status == ShiftStatus.completed)
        return lifecycle.shift_history(query.all(), actor_role, actor_id)

    @staticmethod
    def status_counts(db: Session) -> Dict[str, int]:
        rows = db.query(Shift.status, func.count(Shift.id)).group_by(Shift.status).all()
        counts = {s.value: 0 for s in ShiftStatus}
        for status, count in rows:
            counts[ShiftStatus(status).value] = count
        return counts


shift_service = ShiftService()
