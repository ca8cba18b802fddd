"""Shift lifecycle — the shift state machine and its guards.

Every operation takes a ``Shift`` (possibly ``None`` when the lookup came up
empty), validates its preconditions in a fixed order and mutates the shift
in memory. Nothing here touches the database; ``ShiftService`` loads and
saves around these calls.

    open ──apply──▶ applied ──approve/assign──▶ assigned ──complete──▶ completed
      └────────────approve/assign──────────────▶  ▲ └─assign─┘

Apply, approve and assign are refused once the shift's start instant has
passed. Complete has no such cutoff.
"""

import math
import re
from datetime import date, datetime, time, timezone
from numbers import Real
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional
from zoneinfo import ZoneInfo

from secureshift.core.exceptions import (
    ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError,
)
from secureshift.core.permissions import RoleName, SHIFT_ADMIN_ROLES, SHIFT_OVERSIGHT_ROLES
from secureshift.models.shift import Shift, ShiftStatus

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

TERMINAL_STATES: FrozenSet[ShiftStatus] = frozenset({ShiftStatus.completed})

TRANSITIONS: Dict[ShiftStatus, FrozenSet[ShiftStatus]] = {
    ShiftStatus.open: frozenset({ShiftStatus.applied, ShiftStatus.assigned}),
    ShiftStatus.applied: frozenset({ShiftStatus.applied, ShiftStatus.assigned}),
    ShiftStatus.assigned: frozenset({ShiftStatus.assigned, ShiftStatus.completed}),
    ShiftStatus.completed: frozenset(),
}

GUARD_VISIBLE_STATUSES = (ShiftStatus.open, ShiftStatus.applied)

MIN_RATING = 1
MAX_RATING = 5


def can_transition(current: ShiftStatus, target: ShiftStatus) -> bool:
    return target in TRANSITIONS.get(ShiftStatus(current), frozenset())


def parse_hhmm(value: str) -> time:
    """Parse a 24h ``HH:MM`` string."""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise InvalidInputError("startTime/endTime must be HH:MM (24h)")
    return time(int(match.group(1)), int(match.group(2)))


def round_rating(value) -> int:
    """Round half up, the way the mobile and web clients do."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError("Rating must be a number")
    if not math.isfinite(value):
        raise InvalidInputError("Rating must be a number")
    rounded = math.floor(value + 0.5)
    if not MIN_RATING <= rounded <= MAX_RATING:
        raise InvalidInputError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rounded


def _same_user(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


class ShiftLifecycle:
    """Transition rules for shifts.

    ``now_fn`` returns the current aware datetime; ``tz`` is the zone shift
    dates and start times are expressed in.
    """

    def __init__(
        self,
        tz: str = "UTC",
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self.tz = ZoneInfo(tz)
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._now_fn()

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    # ---- Guards ----

    def starts_at(self, shift: Shift) -> datetime:
        return datetime.combine(shift.date, parse_hhmm(shift.start_time), tzinfo=self.tz)

    def has_started(self, shift: Shift, now: Optional[datetime] = None) -> bool:
        """True once the shift's date + start time is at or before now."""
        return (now or self.now()) >= self.starts_at(shift)

    @staticmethod
    def _move(shift: Shift, target: ShiftStatus) -> None:
        if not can_transition(shift.status, target):
            raise InvalidStateError(
                f"Cannot move shift from {ShiftStatus(shift.status).value} to {target.value}"
            )
        shift.status = target

    @staticmethod
    def _require(shift: Optional[Shift]) -> Shift:
        if shift is None:
            raise NotFoundError("Shift not found")
        return shift

    @staticmethod
    def _is_owner_or_admin(shift: Shift, actor_id, actor_role: Optional[str]) -> bool:
        return _same_user(shift.created_by, actor_id) or actor_role in SHIFT_ADMIN_ROLES

    # ---- Creation ----

    def new_shift(
        self,
        created_by,
        title: Optional[str],
        shift_date: Optional[date],
        start_time: Optional[str],
        end_time: Optional[str],
        **extra,
    ) -> Shift:
        """Validate the fields of a new shift and build it, status ``open``."""
        if not title or not title.strip() or shift_date is None or not start_time or not end_time:
            raise InvalidInputError("title, date, startTime, endTime are required")
        if isinstance(shift_date, datetime):
            shift_date = shift_date.date()
        if not isinstance(shift_date, date):
            raise InvalidInputError("date must be a valid date (YYYY-MM-DD)")
        if shift_date < self.today():
            raise InvalidInputError("date must be today or in the future")
        start = parse_hhmm(start_time)
        end = parse_hhmm(end_time)
        if start == end:
            raise InvalidInputError("startTime and endTime must differ")

        return Shift(
            title=title.strip(),
            date=shift_date,
            start_time=start_time,
            end_time=end_time,
            created_by=created_by,
            status=ShiftStatus.open,
            applicants=[],
            **extra,
        )

    # ---- Transitions ----

    def apply(self, shift: Optional[Shift], acting_user_id) -> Shift:
        """A guard joins the applicant pool; ``open`` becomes ``applied``."""
        shift = self._require(shift)
        if shift.status not in (ShiftStatus.open, ShiftStatus.applied):
            raise InvalidStateError("Shift is not open for applications")
        if self.has_started(shift):
            raise InvalidStateError("Shift has already started")
        if _same_user(shift.created_by, acting_user_id):
            raise ForbiddenError("You cannot apply to your own shift")
        if any(_same_user(a, acting_user_id) for a in shift.applicants):
            raise ConflictError("You have already applied")

        shift.applicants = shift.applicants + [acting_user_id]
        self._move(shift, ShiftStatus.applied)
        return shift

    def approve(
        self,
        shift: Optional[Shift],
        actor_id,
        actor_role: Optional[str],
        guard_id,
        keep_others: bool = False,
    ) -> Shift:
        """The owner (or an admin) picks one applicant."""
        shift = self._require(shift)
        if not self._is_owner_or_admin(shift, actor_id, actor_role):
            raise ForbiddenError("Not allowed")
        if shift.status in (ShiftStatus.assigned, ShiftStatus.completed):
            raise InvalidStateError(f"Shift is already {ShiftStatus(shift.status).value}")
        if self.has_started(shift):
            raise InvalidStateError("Shift has already started")
        if not any(_same_user(a, guard_id) for a in shift.applicants):
            raise InvalidInputError("Guard did not apply for this shift")

        self._move(shift, ShiftStatus.assigned)
        shift.assigned_guard_id = guard_id
        if not keep_others:
            shift.applicants = [guard_id]
        return shift

    def assign(self, shift: Optional[Shift], guard_id) -> Shift:
        """Force-assign a guard, whether or not they applied.

        The applicant pool is replaced by the assigned guard. Callers gate
        this behind ``shift:assign``.
        """
        shift = self._require(shift)
        if shift.status == ShiftStatus.completed:
            raise InvalidStateError("Shift is already completed")
        if self.has_started(shift):
            raise InvalidStateError("Shift has already started")

        self._move(shift, ShiftStatus.assigned)
        shift.assigned_guard_id = guard_id
        shift.applicants = [guard_id]
        return shift

    def complete(self, shift: Optional[Shift], actor_id, actor_role: Optional[str]) -> Shift:
        """Mark an assigned shift completed. No start-time cutoff applies."""
        shift = self._require(shift)
        if not self._is_owner_or_admin(shift, actor_id, actor_role):
            raise ForbiddenError("Not allowed")
        if shift.assigned_guard_id is None:
            raise InvalidStateError("Shift has no assigned guard")
        if shift.status == ShiftStatus.completed:
            raise InvalidStateError("Shift is already completed")

        self._move(shift, ShiftStatus.completed)
        return shift

    def rate(self, shift: Optional[Shift], actor_id, actor_role: Optional[str], rating) -> Shift:
        """Record the guard's or the employer's rating, once each."""
        shift = self._require(shift)
        if shift.status != ShiftStatus.completed:
            raise InvalidStateError("Only completed shifts can be rated")
        value = round_rating(rating)

        if actor_role == RoleName.guard.value:
            if not _same_user(shift.assigned_guard_id, actor_id):
                raise ForbiddenError("Only the assigned guard can rate this shift")
            if shift.rated_by_guard:
                raise ConflictError("You have already rated this shift")
            shift.guard_rating = value
            shift.rated_by_guard = True
        elif actor_role == RoleName.employer.value:
            if not _same_user(shift.created_by, actor_id):
                raise ForbiddenError("Only the shift owner can rate this shift")
            if shift.rated_by_employer:
                raise ConflictError("You have already rated this shift")
            shift.employer_rating = value
            shift.rated_by_employer = True
        else:
            raise ForbiddenError("Only guards or employers can rate")
        return shift

    # ---- Queries ----

    def _sort_key(self, shift: Shift):
        return (shift.date, shift.start_time, shift.id or 0)

    def list_visible_shifts(
        self,
        shifts: Iterable[Shift],
        actor_role: Optional[str],
        actor_id,
        status: Optional[ShiftStatus] = None,
        with_applicants_only: bool = False,
    ) -> List[Shift]:
        """Filter and order ``shifts`` for the actor's role.

        Guards see upcoming open/applied shifts, soonest first. Employers see
        their own shifts and admins see everything, most recent first.
        """
        if actor_role == RoleName.guard.value:
            today = self.today()
            visible = [
                s for s in shifts
                if s.status in GUARD_VISIBLE_STATUSES
                and s.date >= today
                and not _same_user(s.created_by, actor_id)
            ]
            descending = False
        elif actor_role == RoleName.employer.value:
            visible = [s for s in shifts if _same_user(s.created_by, actor_id)]
            descending = True
        elif actor_role in SHIFT_OVERSIGHT_ROLES:
            visible = list(shifts)
            descending = True
        else:
            raise ForbiddenError("Forbidden")

        if status is not None:
            visible = [s for s in visible if s.status == ShiftStatus(status)]
        if with_applicants_only and actor_role != RoleName.guard.value:
            visible = [s for s in visible if s.applicants]

        return sorted(visible, key=self._sort_key, reverse=descending)

    def list_my_shifts(
        self,
        shifts: Iterable[Shift],
        actor_role: Optional[str],
        actor_id,
        past_only: bool = False,
    ) -> List[Shift]:
        """Shifts the actor takes part in; admins get every shift."""
        if actor_role == RoleName.guard.value:
            mine = [
                s for s in shifts
                if _same_user(s.assigned_guard_id, actor_id)
                or any(_same_user(a, actor_id) for a in s.applicants)
            ]
        elif actor_role == RoleName.employer.value:
            mine = [s for s in shifts if _same_user(s.created_by, actor_id)]
        elif actor_role in SHIFT_OVERSIGHT_ROLES:
            mine = list(shifts)
        else:
            raise ForbiddenError("Forbidden")

        if past_only:
            mine = [s for s in mine if s.status == ShiftStatus.completed]
        return sorted(mine, key=self._sort_key, reverse=True)

    def shift_history(self, shifts: Iterable[Shift], actor_role: Optional[str], actor_id) -> List[Shift]:
        """Completed shifts worked (guard) or posted (employer) by the actor."""
        if actor_role == RoleName.guard.value:
            mine = [s for s in shifts if _same_user(s.assigned_guard_id, actor_id)]
        elif actor_role == RoleName.employer.value:
            mine = [s for s in shifts if _same_user(s.created_by, actor_id)]
        else:
            raise ForbiddenError("Forbidden: only guards and employers can view history")
        completed = [s for s in mine if s.status == ShiftStatus.completed]
        return sorted(completed, key=self._sort_key, reverse=True)
