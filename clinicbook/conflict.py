from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from clinicbook.domain import Appointment, BookingCandidate
from clinicbook.timegrid import month_bounds

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "This appointment overlaps with an existing appointment. Please choose a different time."


class DateMatch(str, Enum):
    # Compare the complete calendar date.
    FULL_DATE = "full_date"
    # Compare only the day-of-month number, ignoring month and year.
    DAY_OF_MONTH = "day_of_month"


@dataclass(frozen=True)
class ConflictReport:
    candidate: BookingCandidate
    checked: int = 0
    conflicts: list[Appointment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)


def overlaps(a_start: dt.datetime, a_end: dt.datetime, b_start: dt.datetime, b_end: dt.datetime) -> bool:
    """Half-open overlap test: back-to-back spans do not overlap."""
    return a_start < b_end and a_end > b_start


def month_range(day: dt.date) -> tuple[dt.date, dt.date]:
    """First and last date of the month containing ``day``; the pre-check fetch window."""
    return month_bounds(day)


def same_day(appointment: Appointment, day: dt.date, match: DateMatch = DateMatch.FULL_DATE) -> bool:
    if match is DateMatch.DAY_OF_MONTH:
        return appointment.start.day == day.day
    return appointment.day == day


def find_conflicts(
    candidate: BookingCandidate,
    existing: Iterable[Appointment],
    *,
    match: DateMatch = DateMatch.FULL_DATE,
) -> ConflictReport:
    """Appointments of the candidate's resource that overlap the candidate.

    Durations that were defaulted while parsing are still compared (using the
    default) but reported in ``warnings`` so the caller can flag the data.
    """
    start, end = candidate.start, candidate.end

    same = [
        a for a in existing
        if a.resource_id == candidate.resource_id and same_day(a, candidate.date, match)
    ]

    conflicts: list[Appointment] = []
    warnings: list[str] = []
    for a in sorted(same, key=lambda x: (x.start, x.id)):
        if a.duration_defaulted:
            warnings.append(f"appointment {a.id} has no usable duration; assumed {a.duration_minutes}min")
        if overlaps(start, end, a.start, a.end):
            logger.debug("Candidate %s-%s overlaps appointment %s (%s-%s)", start, end, a.id, a.start, a.end)
            conflicts.append(a)

    return ConflictReport(candidate=candidate, checked=len(same), conflicts=conflicts, warnings=warnings)
