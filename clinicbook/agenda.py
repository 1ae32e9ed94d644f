from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable

from clinicbook.domain import Appointment

STATUSES = ("scheduled", "completed", "cancelled", "no-show")


@dataclass(frozen=True)
class DayMark:
    date: dt.date
    count: int = 0
    selected: bool = False

    @property
    def marked(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class AgendaGroup:
    date: dt.date
    heading: str
    appointments: list[Appointment] = field(default_factory=list)


def mark_month(appointments: Iterable[Appointment], selected: dt.date) -> dict[dt.date, DayMark]:
    """Month view markers: dates carrying appointments plus the selected date."""
    counts: dict[dt.date, int] = {}
    for a in appointments:
        counts[a.day] = counts.get(a.day, 0) + 1

    marks = {d: DayMark(date=d, count=c, selected=d == selected) for d, c in sorted(counts.items())}
    if selected not in marks:
        marks[selected] = DayMark(date=selected, selected=True)
    return marks


def day_heading(day: dt.date, today: dt.date) -> str:
    if day == today:
        return "Today"
    if day == today + dt.timedelta(days=1):
        return "Tomorrow"
    return f"{day:%a}, {day:%b} {day.day}"


def group_agenda(
    appointments: Iterable[Appointment],
    *,
    today: dt.date,
    status: str | None = None,
) -> list[AgendaGroup]:
    """Chronological agenda grouped by day. ``status`` of None or "all" keeps everything."""
    if status not in (None, "all") and status not in STATUSES:
        raise ValueError(f"unknown status filter {status!r}; expected one of {', '.join(STATUSES)}")

    items = sorted(appointments, key=lambda a: (a.start, a.id))
    if status not in (None, "all"):
        items = [a for a in items if a.status == status]

    groups: list[AgendaGroup] = []
    for a in items:
        if not groups or groups[-1].date != a.day:
            groups.append(AgendaGroup(date=a.day, heading=day_heading(a.day, today)))
        groups[-1].appointments.append(a)
    return groups
