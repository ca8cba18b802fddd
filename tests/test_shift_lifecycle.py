"""Shift state machine: guards, transitions, ratings and listings."""

from datetime import date, datetime, timedelta, timezone

import pytest

from secureshift.core.exceptions import (
    ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError,
)
from secureshift.models.shift import Shift, ShiftStatus
from secureshift.services.shift_lifecycle import (
    ShiftLifecycle, can_transition, parse_hhmm, round_rating,
)

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)
YESTERDAY = TODAY - timedelta(days=1)

EMPLOYER = 10
GUARD = 20
OTHER_GUARD = 21


@pytest.fixture()
def lifecycle():
    return ShiftLifecycle(tz="UTC", now_fn=lambda: NOW)


def make_shift(**overrides) -> Shift:
    fields = dict(
        id=1, title="Night patrol", date=TOMORROW, start_time="09:00",
        end_time="17:00", created_by=EMPLOYER,
    )
    fields.update(overrides)
    return Shift(**fields)


def assigned_shift(**overrides) -> Shift:
    return make_shift(status=ShiftStatus.assigned, assigned_guard_id=GUARD, applicants=[GUARD], **overrides)


def completed_shift(**overrides) -> Shift:
    return make_shift(status=ShiftStatus.completed, assigned_guard_id=GUARD, applicants=[GUARD], **overrides)


class TestHelpers:
    def test_completed_has_no_outgoing_transitions(self):
        for status in ShiftStatus:
            assert not can_transition(ShiftStatus.completed, status)

    def test_assigned_never_returns_to_open(self):
        assert not can_transition(ShiftStatus.assigned, ShiftStatus.open)
        assert not can_transition(ShiftStatus.assigned, ShiftStatus.applied)

    @pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon", "", None])
    def test_parse_hhmm_rejects_malformed(self, value):
        with pytest.raises(InvalidInputError):
            parse_hhmm(value)

    def test_parse_hhmm(self):
        assert parse_hhmm("23:59").hour == 23

    @pytest.mark.parametrize("value,expected", [(4, 4), (4.5, 5), (2.5, 3), (1.49, 1), (5.4, 5)])
    def test_round_rating_half_up(self, value, expected):
        assert round_rating(value) == expected

    @pytest.mark.parametrize("value", [0, 0.4, 5.5, 6, "4", None, True, float("nan")])
    def test_round_rating_rejects(self, value):
        with pytest.raises(InvalidInputError):
            round_rating(value)


class TestNewShift:
    def test_builds_open_shift(self, lifecycle):
        shift = lifecycle.new_shift(EMPLOYER, " Gate ", TOMORROW, "09:00", "17:00", location="Docklands")
        assert shift.status == ShiftStatus.open
        assert shift.title == "Gate"
        assert shift.applicants == []
        assert shift.location == "Docklands"

    def test_requires_fields(self, lifecycle):
        with pytest.raises(InvalidInputError, match="required"):
            lifecycle.new_shift(EMPLOYER, "", TOMORROW, "09:00", "17:00")

    def test_rejects_past_date(self, lifecycle):
        with pytest.raises(InvalidInputError, match="today or in the future"):
            lifecycle.new_shift(EMPLOYER, "Gate", YESTERDAY, "09:00", "17:00")

    def test_rejects_bad_time(self, lifecycle):
        with pytest.raises(InvalidInputError, match="HH:MM"):
            lifecycle.new_shift(EMPLOYER, "Gate", TOMORROW, "9am", "17:00")

    def test_rejects_equal_times(self, lifecycle):
        with pytest.raises(InvalidInputError):
            lifecycle.new_shift(EMPLOYER, "Gate", TOMORROW, "09:00", "09:00")

    def test_overnight_shift_allowed(self, lifecycle):
        shift = lifecycle.new_shift(EMPLOYER, "Night", TODAY, "22:00", "06:00")
        assert shift.end_time == "06:00"


class TestApply:
    def test_first_application_moves_to_applied(self, lifecycle):
        shift = lifecycle.apply(make_shift(), GUARD)
        assert shift.status == ShiftStatus.applied
        assert shift.applicants == [GUARD]

    def test_second_guard_keeps_applied(self, lifecycle):
        shift = lifecycle.apply(lifecycle.apply(make_shift(), GUARD), OTHER_GUARD)
        assert shift.status == ShiftStatus.applied
        assert shift.applicants == [GUARD, OTHER_GUARD]

    def test_duplicate_application_conflicts(self, lifecycle):
        shift = lifecycle.apply(make_shift(), GUARD)
        with pytest.raises(ConflictError):
            lifecycle.apply(shift, GUARD)
        assert shift.applicants == [GUARD]

    def test_creator_cannot_apply(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.apply(make_shift(), EMPLOYER)

    def test_missing_shift(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.apply(None, GUARD)

    @pytest.mark.parametrize("status", [ShiftStatus.assigned, ShiftStatus.completed])
    def test_closed_states_reject(self, lifecycle, status):
        with pytest.raises(InvalidStateError):
            lifecycle.apply(make_shift(status=status), GUARD)

    def test_started_shift_rejects(self, lifecycle):
        with pytest.raises(InvalidStateError, match="started"):
            lifecycle.apply(make_shift(date=TODAY, start_time="07:59"), GUARD)

    def test_start_instant_counts_as_started(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.apply(make_shift(date=TODAY, start_time="08:00"), GUARD)

    def test_later_today_is_open(self, lifecycle):
        assert lifecycle.apply(make_shift(date=TODAY, start_time="08:01"), GUARD).status == ShiftStatus.applied


class TestApprove:
    def test_approve_clears_other_applicants(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD, OTHER_GUARD])
        lifecycle.approve(shift, EMPLOYER, "employer", GUARD)
        assert shift.status == ShiftStatus.assigned
        assert shift.assigned_guard_id == GUARD
        assert shift.accepted_by == GUARD
        assert shift.applicants == [GUARD]

    def test_keep_others(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD, OTHER_GUARD])
        lifecycle.approve(shift, EMPLOYER, "employer", GUARD, keep_others=True)
        assert shift.applicants == [GUARD, OTHER_GUARD]

    def test_admin_may_approve(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD])
        assert lifecycle.approve(shift, 99, "admin", GUARD).status == ShiftStatus.assigned

    def test_other_employer_forbidden(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD])
        with pytest.raises(ForbiddenError, match="Not allowed"):
            lifecycle.approve(shift, 11, "employer", GUARD)

    def test_non_applicant_rejected(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD])
        with pytest.raises(InvalidInputError):
            lifecycle.approve(shift, EMPLOYER, "employer", OTHER_GUARD)

    def test_already_assigned_rejected(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.approve(assigned_shift(), EMPLOYER, "employer", GUARD)

    def test_started_shift_rejects(self, lifecycle):
        shift = make_shift(status=ShiftStatus.applied, applicants=[GUARD], date=YESTERDAY)
        with pytest.raises(InvalidStateError):
            lifecycle.approve(shift, EMPLOYER, "employer", GUARD)


class TestAssign:
    def test_assign_without_application(self, lifecycle):
        shift = lifecycle.assign(make_shift(), OTHER_GUARD)
        assert shift.status == ShiftStatus.assigned
        assert shift.applicants == [OTHER_GUARD]

    def test_reassign(self, lifecycle):
        shift = lifecycle.assign(assigned_shift(), OTHER_GUARD)
        assert shift.assigned_guard_id == OTHER_GUARD

    def test_completed_rejected(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.assign(completed_shift(), OTHER_GUARD)

    def test_started_shift_rejects(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.assign(make_shift(date=YESTERDAY), GUARD)


class TestComplete:
    def test_past_assigned_shift_can_complete(self, lifecycle):
        shift = assigned_shift(date=YESTERDAY)
        assert lifecycle.complete(shift, EMPLOYER, "employer").status == ShiftStatus.completed

    def test_requires_assigned_guard(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.complete(make_shift(status=ShiftStatus.applied, applicants=[GUARD]), EMPLOYER, "employer")

    def test_cannot_complete_twice(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.complete(completed_shift(), EMPLOYER, "employer")

    def test_non_owner_forbidden(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.complete(assigned_shift(), GUARD, "guard")


class TestRate:
    def test_guard_then_employer(self, lifecycle):
        shift = completed_shift()
        lifecycle.rate(shift, GUARD, "guard", 4)
        lifecycle.rate(shift, EMPLOYER, "employer", 4.5)
        assert (shift.guard_rating, shift.rated_by_guard) == (4, True)
        assert (shift.employer_rating, shift.rated_by_employer) == (5, True)

    def test_guard_rates_once(self, lifecycle):
        shift = completed_shift()
        lifecycle.rate(shift, GUARD, "guard", 4)
        with pytest.raises(ConflictError):
            lifecycle.rate(shift, GUARD, "guard", 2)
        assert shift.guard_rating == 4
        lifecycle.rate(shift, EMPLOYER, "employer", 3)
        assert shift.employer_rating == 3

    def test_unassigned_guard_forbidden(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.rate(completed_shift(), OTHER_GUARD, "guard", 4)

    def test_other_employer_forbidden(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.rate(completed_shift(), 11, "employer", 4)

    def test_admin_cannot_rate(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.rate(completed_shift(), 1, "admin", 4)

    def test_only_completed(self, lifecycle):
        with pytest.raises(InvalidStateError):
            lifecycle.rate(assigned_shift(), GUARD, "guard", 4)

    def test_out_of_range(self, lifecycle):
        with pytest.raises(InvalidInputError):
            lifecycle.rate(completed_shift(), GUARD, "guard", 7)


class TestForwardOnly:
    def test_completed_shift_rejects_every_transition(self, lifecycle):
        shift = completed_shift()
        for attempt in (
            lambda: lifecycle.apply(shift, OTHER_GUARD),
            lambda: lifecycle.approve(shift, EMPLOYER, "employer", GUARD),
            lambda: lifecycle.assign(shift, OTHER_GUARD),
            lambda: lifecycle.complete(shift, EMPLOYER, "employer"),
        ):
            with pytest.raises(InvalidStateError):
                attempt()
        assert shift.status == ShiftStatus.completed


class TestListings:
    def shifts(self):
        return [
            make_shift(id=1, date=TOMORROW, start_time="12:00"),
            make_shift(id=2, date=TOMORROW, start_time="09:00", status=ShiftStatus.applied, applicants=[GUARD]),
            make_shift(id=3, date=TODAY + timedelta(days=5)),
            make_shift(id=4, date=YESTERDAY),
            assigned_shift(id=5),
            make_shift(id=6, created_by=11, date=TODAY + timedelta(days=2)),
        ]

    def test_guard_sees_upcoming_open_soonest_first(self, lifecycle):
        visible = lifecycle.list_visible_shifts(self.shifts(), "guard", GUARD)
        assert [s.id for s in visible] == [2, 1, 6, 3]

    def test_employer_sees_own_most_recent_first(self, lifecycle):
        visible = lifecycle.list_visible_shifts(self.shifts(), "employer", EMPLOYER)
        assert [s.id for s in visible] == [3, 1, 5, 2, 4]

    def test_admin_sees_all(self, lifecycle):
        assert len(lifecycle.list_visible_shifts(self.shifts(), "admin", 1)) == 6

    def test_status_and_applicant_filters(self, lifecycle):
        visible = lifecycle.list_visible_shifts(
            self.shifts(), "employer", EMPLOYER, status=ShiftStatus.applied, with_applicants_only=True,
        )
        assert [s.id for s in visible] == [2]

    def test_client_cannot_list(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.list_visible_shifts(self.shifts(), "client", 30)

    def test_my_shifts_for_guard(self, lifecycle):
        mine = lifecycle.list_my_shifts(self.shifts(), "guard", GUARD)
        assert {s.id for s in mine} == {2, 5}

    def test_history_only_completed(self, lifecycle):
        shifts = self.shifts() + [completed_shift(id=7)]
        assert [s.id for s in lifecycle.shift_history(shifts, "guard", GUARD)] == [7]
        assert [s.id for s in lifecycle.shift_history(shifts, "employer", EMPLOYER)] == [7]

    def test_history_forbidden_for_admins(self, lifecycle):
        with pytest.raises(ForbiddenError):
            lifecycle.shift_history(self.shifts(), "admin", 1)
