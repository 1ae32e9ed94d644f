from __future__ import annotations

import datetime as dt

import pytest

from clinicbook.conflict import DateMatch, find_conflicts, month_range, overlaps, same_day
from clinicbook.domain import Appointment, BookingCandidate

DAY = dt.date(2026, 10, 14)


def _at(hour: int, minute: int = 0, day: dt.date = DAY) -> dt.datetime:
    return dt.datetime.combine(day, dt.time(hour, minute))


def _appt(appointment_id: str, resource_id: str, start: dt.datetime, duration: int, **kw) -> Appointment:
    return Appointment(id=appointment_id, resource_id=resource_id, start=start, duration_minutes=duration, **kw)


def _candidate(resource_id: str = "r1", hour: int = 9, minute: int = 0, duration: int = 30, day: dt.date = DAY):
    return BookingCandidate(resource_id=resource_id, date=day, start_time=dt.time(hour, minute), duration_minutes=duration)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        # candidate starts inside existing
        ((_at(9, 15), _at(9, 45)), (_at(9), _at(9, 30)), True),
        # candidate ends inside existing
        ((_at(8, 45), _at(9, 15)), (_at(9), _at(9, 30)), True),
        # candidate contains existing
        ((_at(8), _at(11)), (_at(9), _at(9, 30)), True),
        # existing contains candidate
        ((_at(9, 10), _at(9, 20)), (_at(9), _at(9, 30)), True),
        # back to back
        ((_at(9, 30), _at(10)), (_at(9), _at(9, 30)), False),
        ((_at(8, 30), _at(9)), (_at(9), _at(9, 30)), False),
        # disjoint
        ((_at(11), _at(12)), (_at(9), _at(9, 30)), False),
    ],
)
def test_overlaps(a, b, expected) -> None:
    assert overlaps(*a, *b) is expected
    assert overlaps(*b, *a) is expected


def test_double_booking_scenario() -> None:
    existing = [
        _appt("A1", "r1", _at(9), 60),
        _appt("A2", "r2", _at(9), 60),
    ]

    report = find_conflicts(_candidate("r1", 9, 30, 30), existing)
    assert [a.id for a in report.conflicts] == ["A1"]
    assert report.has_conflict

    assert not find_conflicts(_candidate("r1", 10, 0, 30), existing).has_conflict
    assert not find_conflicts(_candidate("r3", 9, 30, 30), existing).has_conflict


def test_only_same_resource_and_day_are_checked() -> None:
    existing = [
        _appt("other-day", "r1", _at(9, day=DAY + dt.timedelta(days=1)), 60),
        _appt("other-resource", "r2", _at(9), 60),
        _appt("same", "r1", _at(12), 30),
    ]
    report = find_conflicts(_candidate("r1", 9), existing)
    assert report.checked == 1
    assert report.conflicts == []


def test_day_of_month_matching_is_opt_in() -> None:
    # Same day number, different month.
    september = _appt("sep", "r1", _at(9, day=dt.date(2026, 9, 14)), 60)

    assert not find_conflicts(_candidate(), [september]).has_conflict
    report = find_conflicts(_candidate(), [september], match=DateMatch.DAY_OF_MONTH)
    assert [a.id for a in report.conflicts] == ["sep"]

    assert same_day(september, DAY, DateMatch.DAY_OF_MONTH)
    assert not same_day(september, DAY)


def test_defaulted_durations_are_compared_and_reported() -> None:
    existing = [_appt("d1", "r1", _at(9), 30, duration_defaulted=True)]

    report = find_conflicts(_candidate("r1", 9, 15, 15), existing)
    assert [a.id for a in report.conflicts] == ["d1"]
    assert len(report.warnings) == 1
    assert "d1" in report.warnings[0]


def test_conflicts_are_ordered_by_start() -> None:
    existing = [_appt("late", "r1", _at(10), 30), _appt("early", "r1", _at(9), 30)]
    report = find_conflicts(_candidate("r1", 8, 0, 240), existing)
    assert [a.id for a in report.conflicts] == ["early", "late"]


@pytest.mark.parametrize(
    "day, expected",
    [
        (dt.date(2026, 10, 14), (dt.date(2026, 10, 1), dt.date(2026, 10, 31))),
        (dt.date(2026, 2, 1), (dt.date(2026, 2, 1), dt.date(2026, 2, 28))),
        (dt.date(2028, 2, 29), (dt.date(2028, 2, 1), dt.date(2028, 2, 29))),
        (dt.date(2026, 12, 31), (dt.date(2026, 12, 1), dt.date(2026, 12, 31))),
    ],
)
def test_month_range(day: dt.date, expected) -> None:
    assert month_range(day) == expected
