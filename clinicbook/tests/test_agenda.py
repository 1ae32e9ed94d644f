from __future__ import annotations

import datetime as dt

import pytest

from clinicbook.agenda import day_heading, group_agenda, mark_month
from clinicbook.domain import Appointment

TODAY = dt.date(2026, 10, 18)


def _appt(appointment_id: str, day: dt.date, hour: int = 9, status: str = "scheduled") -> Appointment:
    return Appointment(
        id=appointment_id,
        resource_id="r1",
        start=dt.datetime.combine(day, dt.time(hour, 0)),
        duration_minutes=30,
        status=status,
    )


def test_mark_month_counts_per_day_and_marks_selection() -> None:
    appointments = [
        _appt("a", dt.date(2026, 10, 2)),
        _appt("b", dt.date(2026, 10, 2), 11),
        _appt("c", dt.date(2026, 10, 20)),
    ]

    marks = mark_month(appointments, dt.date(2026, 10, 9))

    assert marks[dt.date(2026, 10, 2)].count == 2
    assert marks[dt.date(2026, 10, 2)].marked
    assert not marks[dt.date(2026, 10, 2)].selected
    assert marks[dt.date(2026, 10, 9)].selected
    assert not marks[dt.date(2026, 10, 9)].marked
    assert list(marks)[:2] == [dt.date(2026, 10, 2), dt.date(2026, 10, 20)]


def test_day_headings() -> None:
    assert day_heading(TODAY, TODAY) == "Today"
    assert day_heading(dt.date(2026, 10, 19), TODAY) == "Tomorrow"
    assert day_heading(dt.date(2026, 10, 20), TODAY) == "Tue, Oct 20"


def test_group_agenda_orders_and_groups() -> None:
    appointments = [
        _appt("later", dt.date(2026, 10, 20)),
        _appt("second", TODAY, 14),
        _appt("first", TODAY, 9),
    ]

    groups = group_agenda(appointments, today=TODAY)

    assert [(g.heading, [a.id for a in g.appointments]) for g in groups] == [
        ("Today", ["first", "second"]),
        ("Tue, Oct 20", ["later"]),
    ]


def test_group_agenda_status_filter() -> None:
    appointments = [_appt("a", TODAY, status="completed"), _appt("b", TODAY, 10, status="cancelled")]

    assert [a.id for g in group_agenda(appointments, today=TODAY, status="cancelled") for a in g.appointments] == ["b"]
    assert len(group_agenda(appointments, today=TODAY, status="all")[0].appointments) == 2
    assert group_agenda(appointments, today=TODAY, status="no-show") == []

    with pytest.raises(ValueError, match="unknown status"):
        group_agenda(appointments, today=TODAY, status="pending")
