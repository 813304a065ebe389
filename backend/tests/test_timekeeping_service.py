"""
Timekeeping service tests.

Covers:
- one active entry per employee
- break rules and clock-out while on break
- hours and overtime computed from timestamps
- status reconstructed from the stored entry
- shift transitions driven by clock-in/out
"""

from datetime import datetime

import pytest

from shiftwatch.extensions import db
from shiftwatch.models import AttendanceEvent, TimeEntry
from shiftwatch.models.scheduling import SHIFT_COMPLETED, SHIFT_IN_PROGRESS, SHIFT_MISSED
from shiftwatch.models.timekeeping import STATE_IDLE, STATE_ON_BREAK, STATE_WORKING
from shiftwatch.services import shift_service, timekeeping_service
from shiftwatch.services.errors import (
    AlreadyClockedIn,
    AlreadyOnBreak,
    InvalidBreakDuration,
    NoActiveEntry,
    NotOnBreak,
)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, 19, hour, minute)


def active_entries(employee_id: int) -> list[TimeEntry]:
    return db.session.query(TimeEntry).filter_by(employee_id=employee_id, clock_out=None).all()


# =============================================================================
# CLOCK IN / OUT
# =============================================================================


class TestClockInOut:
    def test_clock_in_opens_entry(self, db_session, clock, alice):
        entry = timekeeping_service.clock_in(employee_id=alice.id)

        assert entry.clock_in == at(9)
        assert entry.clock_out is None
        assert entry.state == STATE_WORKING
        assert timekeeping_service.get_active_entry(alice.id).id == entry.id

    def test_second_clock_in_is_rejected(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.advance(minutes=1)

        with pytest.raises(AlreadyClockedIn):
            timekeeping_service.clock_in(employee_id=alice.id)

        assert len(active_entries(alice.id)) == 1

    def test_clock_out_without_entry(self, db_session, clock, alice):
        with pytest.raises(NoActiveEntry):
            timekeeping_service.clock_out(employee_id=alice.id)

    def test_full_day_with_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(12))
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=30)
        clock.set(at(12, 30))
        timekeeping_service.end_break(employee_id=alice.id)
        clock.set(at(17))
        entry = timekeeping_service.clock_out(employee_id=alice.id)

        assert entry.clock_out == at(17)
        assert entry.total_hours == 7.5
        assert entry.overtime_hours == 0.0
        assert active_entries(alice.id) == []

    def test_overtime_beyond_eight_hours(self, db_session, clock, alice):
        clock.set(at(8))
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(18))
        entry = timekeeping_service.clock_out(employee_id=alice.id)

        assert entry.total_hours == 10.0
        assert entry.overtime_hours == 2.0

    def test_nine_hours_no_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(18))
        entry = timekeeping_service.clock_out(employee_id=alice.id)

        assert entry.total_hours == 9.0
        assert entry.overtime_hours == 1.0

    def test_overtime_threshold_from_config(self, app, db_session, clock, alice):
        app.config["OVERTIME_THRESHOLD_HOURS"] = 6
        try:
            timekeeping_service.clock_in(employee_id=alice.id)
            clock.set(at(16))
            entry = timekeeping_service.clock_out(employee_id=alice.id)
        finally:
            app.config["OVERTIME_THRESHOLD_HOURS"] = 8.0

        assert entry.overtime_hours == 1.0

    def test_clock_in_again_after_clock_out(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(10))
        timekeeping_service.clock_out(employee_id=alice.id)
        clock.set(at(11))
        entry = timekeeping_service.clock_in(employee_id=alice.id)

        assert entry.clock_in == at(11)
        assert len(timekeeping_service.list_entries(alice.id)) == 2

    def test_events_recorded(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(10))
        timekeeping_service.clock_out(employee_id=alice.id)

        types = [e.event_type for e in db_session.query(AttendanceEvent).order_by(AttendanceEvent.id)]
        assert types == ["timeclock.clock_in", "timeclock.clock_out"]


# =============================================================================
# BREAKS
# =============================================================================


class TestBreaks:
    def test_break_requires_active_entry(self, db_session, clock, alice):
        with pytest.raises(NoActiveEntry):
            timekeeping_service.start_break(employee_id=alice.id, duration_minutes=15)

    @pytest.mark.parametrize("duration", [0, -5, None, "abc", True, False])
    def test_invalid_duration(self, db_session, clock, alice, duration):
        timekeeping_service.clock_in(employee_id=alice.id)
        with pytest.raises(InvalidBreakDuration):
            timekeeping_service.start_break(employee_id=alice.id, duration_minutes=duration)
        assert timekeeping_service.get_active_entry(alice.id).break_start is None

    def test_cannot_start_second_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=15)

        with pytest.raises(AlreadyOnBreak):
            timekeeping_service.start_break(employee_id=alice.id, duration_minutes=15)

    def test_end_break_when_not_on_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        with pytest.raises(NotOnBreak):
            timekeeping_service.end_break(employee_id=alice.id)

    def test_clock_out_while_on_break_closes_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(12))
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=30)
        clock.set(at(12, 10))
        entry = timekeeping_service.clock_out(employee_id=alice.id)

        assert entry.break_end == at(12, 10)
        assert entry.total_hours == 3.0

    def test_multiple_breaks(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(10))
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=15)
        clock.set(at(10, 15))
        timekeeping_service.end_break(employee_id=alice.id)
        clock.set(at(12))
        entry = timekeeping_service.start_break(employee_id=alice.id, duration_minutes=30)

        assert entry.prior_break_seconds == 900
        assert entry.break_start == at(12)
        assert entry.break_end is None

        clock.set(at(12, 30))
        timekeeping_service.end_break(employee_id=alice.id)
        clock.set(at(17))
        entry = timekeeping_service.clock_out(employee_id=alice.id)

        assert entry.total_hours == 7.25


# =============================================================================
# STATUS RECONSTRUCTION
# =============================================================================


class TestStatus:
    def test_idle_without_entry(self, db_session, clock, alice):
        status = timekeeping_service.get_current_status(alice.id)
        assert status.state == STATE_IDLE
        assert status.entry is None
        assert status.elapsed_seconds == 0.0

    def test_elapsed_is_derived_from_timestamps(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(12))
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=30)

        # Nothing ran between 12:00 and 12:10; the value comes from the stored row.
        db_session.expire_all()
        clock.set(at(12, 10))
        status = timekeeping_service.get_current_status(alice.id)

        assert status.state == STATE_ON_BREAK
        assert status.elapsed_seconds == 3 * 3600
        assert status.break_elapsed_seconds == 600
        assert status.break_remaining_seconds == 1200

        payload = status.to_dict()
        assert payload["elapsed_formatted"] == "03:00:00"
        assert payload["on_break"] is True

    def test_elapsed_frozen_during_break(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(12))
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=30)

        first = timekeeping_service.get_current_status(alice.id, now=at(12, 5)).elapsed_seconds
        second = timekeeping_service.get_current_status(alice.id, now=at(12, 25)).elapsed_seconds
        assert first == second

    def test_break_remaining_floors_at_zero(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        timekeeping_service.start_break(employee_id=alice.id, duration_minutes=10)

        status = timekeeping_service.get_current_status(alice.id, now=at(9, 45))
        assert status.break_remaining_seconds == 0.0

    def test_idle_after_clock_out(self, db_session, clock, alice):
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(10))
        timekeeping_service.clock_out(employee_id=alice.id)

        assert timekeeping_service.get_current_status(alice.id).state == STATE_IDLE


# =============================================================================
# SHIFT TRANSITIONS
# =============================================================================


class TestShiftTransitions:
    def test_clock_in_against_shift(self, db_session, clock, alice, make_shift):
        shift = make_shift(alice, at(9))
        timekeeping_service.clock_in(employee_id=alice.id, shift_id=shift.id)

        assert db_session.get(type(shift), shift.id).status == SHIFT_IN_PROGRESS

        clock.set(at(17))
        timekeeping_service.clock_out(employee_id=alice.id)
        assert db_session.get(type(shift), shift.id).status == SHIFT_COMPLETED

    def test_late_owner_clock_in_keeps_missed_status(self, db_session, clock, alice, make_shift):
        shift = make_shift(alice, at(8))
        assert shift_service.mark_missed(shift.id, now=at(8, 30))

        entry = timekeeping_service.clock_in(employee_id=alice.id, shift_id=shift.id)

        refreshed = db_session.get(type(shift), shift.id)
        assert refreshed.status == SHIFT_MISSED
        assert refreshed.is_missed is True
        assert entry.shift_id == shift.id

    def test_clock_in_unknown_shift(self, db_session, clock, alice):
        from shiftwatch.services.errors import ShiftNotFound

        with pytest.raises(ShiftNotFound):
            timekeeping_service.clock_in(employee_id=alice.id, shift_id=9999)
        assert active_entries(alice.id) == []


# =============================================================================
# LISTINGS / REPORTS
# =============================================================================


class TestReports:
    def test_list_entries_newest_first(self, db_session, clock, alice):
        for hour in (9, 11, 13):
            clock.set(at(hour))
            timekeeping_service.clock_in(employee_id=alice.id)
            clock.set(at(hour, 30))
            timekeeping_service.clock_out(employee_id=alice.id)

        entries = timekeeping_service.list_entries(alice.id)
        assert [e.clock_in for e in entries] == [at(13), at(11), at(9)]
        assert len(timekeeping_service.list_entries(alice.id, limit=2)) == 2

    def test_hours_by_employee(self, db_session, clock, company, alice, bob):
        clock.set(at(8))
        timekeeping_service.clock_in(employee_id=alice.id)
        timekeeping_service.clock_in(employee_id=bob.id)
        clock.set(at(12))
        timekeeping_service.clock_out(employee_id=bob.id)
        clock.set(at(18))
        timekeeping_service.clock_out(employee_id=alice.id)

        # Still-open entries are not counted.
        clock.set(at(19))
        timekeeping_service.clock_in(employee_id=bob.id)

        rows = {r["employee_id"]: r for r in timekeeping_service.hours_by_employee(company_id=company.id)}
        assert rows[alice.id]["hours"] == 10.0
        assert rows[alice.id]["overtime"] == 2.0
        assert rows[alice.id]["name"] == "Alice Moreno"
        assert rows[bob.id]["hours"] == 4.0
        assert rows[bob.id]["entries"] == 1

    def test_hours_by_employee_range(self, db_session, clock, company, alice):
        clock.set(at(8))
        timekeeping_service.clock_in(employee_id=alice.id)
        clock.set(at(9))
        timekeeping_service.clock_out(employee_id=alice.id)

        rows = timekeeping_service.hours_by_employee(company_id=company.id, start=at(10))
        assert rows == []
