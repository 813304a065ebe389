"""
Timestamp arithmetic tests.

Worked time must come out the same no matter when (or how often) it is
recomputed, so everything here is pure arithmetic on fixed instants.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shiftwatch.time_utils import (
    break_seconds,
    format_elapsed,
    overtime_hours,
    parse_iso_datetime,
    round_hours,
    set_clock,
    to_utc_z,
    utcnow,
    worked_seconds,
)


T9 = datetime(2026, 10, 19, 9, 0)


class TestParsing:
    def test_trailing_z_is_utc(self):
        assert parse_iso_datetime("2026-10-19T09:00:00Z") == T9

    def test_offset_is_converted_and_stripped(self):
        parsed = parse_iso_datetime("2026-10-19T11:00:00+02:00")
        assert parsed == T9
        assert parsed.tzinfo is None

    def test_naive_is_taken_as_utc(self):
        assert parse_iso_datetime("2026-10-19T09:00") == T9

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_values(self, value):
        assert parse_iso_datetime(value) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("yesterday")

    def test_to_utc_z(self):
        assert to_utc_z(T9) == "2026-10-19T09:00:00Z"
        aware = datetime(2026, 10, 19, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_z(aware) == "2026-10-19T09:00:00Z"
        assert to_utc_z(None) is None


class TestWorkedSeconds:
    def test_day_with_one_break(self):
        worked = worked_seconds(
            T9,
            now=T9 + timedelta(hours=10),
            clock_out=T9 + timedelta(hours=8),
            break_start=T9 + timedelta(hours=3),
            break_end=T9 + timedelta(hours=3, minutes=30),
        )
        assert worked == 7.5 * 3600

    def test_open_break_runs_until_now(self):
        worked = worked_seconds(
            T9,
            now=T9 + timedelta(hours=3, minutes=10),
            break_start=T9 + timedelta(hours=3),
        )
        assert worked == 3 * 3600

    def test_prior_breaks_are_subtracted(self):
        worked = worked_seconds(
            T9,
            now=T9 + timedelta(hours=2),
            prior_break_seconds=900,
        )
        assert worked == 2 * 3600 - 900

    def test_same_answer_whenever_recomputed(self):
        clock_out = T9 + timedelta(hours=8)
        first = worked_seconds(T9, now=clock_out, clock_out=clock_out)
        later = worked_seconds(T9, now=clock_out + timedelta(days=3), clock_out=clock_out)
        assert first == later

    def test_never_negative(self):
        assert worked_seconds(T9, now=T9 - timedelta(minutes=5)) == 0.0
        assert worked_seconds(None, now=T9) == 0.0

    def test_break_seconds(self):
        assert break_seconds(None, None) == 0.0
        assert break_seconds(T9, None) == 0.0
        assert break_seconds(T9, None, until=T9 + timedelta(minutes=7)) == 420.0
        assert break_seconds(T9, T9 - timedelta(minutes=1)) == 0.0


class TestHours:
    def test_round_hours(self):
        assert round_hours(27000) == 7.5
        assert round_hours(3600 * 8 + 20) == 8.01
        assert round_hours(-10) == 0.0

    def test_overtime_only_beyond_threshold(self):
        assert overtime_hours(8.0) == 0.0
        assert overtime_hours(9.25) == 1.25
        assert overtime_hours(7.0, threshold_hours=6) == 1.0

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00:00:00"),
            (3661, "01:01:01"),
            (59.9, "00:00:59"),
            (90000, "25:00:00"),
            (-3, "00:00:00"),
        ],
    )
    def test_format_elapsed(self, seconds, expected):
        assert format_elapsed(seconds) == expected


class TestClock:
    def test_set_clock_swaps_and_returns_previous(self):
        class Frozen:
            def now(self):
                return T9

        previous = set_clock(Frozen())
        try:
            assert utcnow() == T9
        finally:
            set_clock(previous)
        assert utcnow() != T9
