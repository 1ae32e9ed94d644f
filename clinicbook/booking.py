from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from clinicbook.api_client import AppointmentApi
from clinicbook.conflict import CONFLICT_MESSAGE, DateMatch, find_conflicts, month_range
from clinicbook.domain import Appointment, BookingCandidate, ClinicBookError, ConflictCheckError

logger = logging.getLogger(__name__)

CHECK_FAILED_MESSAGE = "Could not check for double bookings. Please try again."


class BookingOutcome(str, Enum):
    CREATED = "created"
    CONFLICT = "conflict"
    INVALID = "invalid"
    CHECK_FAILED = "check_failed"
    CREATE_FAILED = "create_failed"


@dataclass(frozen=True)
class BookingResult:
    outcome: BookingOutcome
    message: str
    appointment: Appointment | None = None
    conflicts: list[Appointment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def retryable(self) -> bool:
        return self.outcome is BookingOutcome.CHECK_FAILED


def validate_candidate(candidate: BookingCandidate) -> str | None:
    if not candidate.resource_id:
        return "Please select an examiner"
    if candidate.duration_minutes <= 0:
        return "Please select a duration"
    return None


async def load_existing(api: AppointmentApi, candidate: BookingCandidate) -> list[Appointment]:
    """Appointments of the candidate's resource for the whole enclosing month."""
    first, last = month_range(candidate.date)
    try:
        return await api.fetch_appointments(candidate.resource_id, first, last)
    except ClinicBookError as e:
        raise ConflictCheckError(f"Failed to load appointments for {candidate.resource_id}: {e}") from e


async def book_appointment(
    api: AppointmentApi,
    candidate: BookingCandidate,
    *,
    match: DateMatch = DateMatch.FULL_DATE,
) -> BookingResult:
    """Create ``candidate`` unless it double-books its resource.

    The conflict check is never skipped: if existing appointments cannot be
    loaded the booking stops with a retry-able CHECK_FAILED result.
    """
    problem = validate_candidate(candidate)
    if problem:
        return BookingResult(outcome=BookingOutcome.INVALID, message=problem)

    try:
        existing = await load_existing(api, candidate)
    except ConflictCheckError as e:
        logger.error("Double booking check failed (%s)", e)
        return BookingResult(outcome=BookingOutcome.CHECK_FAILED, message=CHECK_FAILED_MESSAGE)

    report = find_conflicts(candidate, existing, match=match)
    for w in report.warnings:
        logger.warning("Data quality: %s", w)

    if report.has_conflict:
        logger.info(
            "Double booking for resource %s at %s: overlaps %s",
            candidate.resource_id,
            candidate.start,
            ", ".join(a.id for a in report.conflicts),
        )
        return BookingResult(
            outcome=BookingOutcome.CONFLICT,
            message=CONFLICT_MESSAGE,
            conflicts=report.conflicts,
            warnings=report.warnings,
        )

    try:
        created = await api.create_appointment(candidate)
    except ClinicBookError as e:
        logger.error("Create failed (%s: %s)", type(e).__name__, e)
        return BookingResult(outcome=BookingOutcome.CREATE_FAILED, message=str(e), warnings=report.warnings)

    logger.info("Appointment %s created for resource %s at %s", created.id, created.resource_id, created.start)
    return BookingResult(
        outcome=BookingOutcome.CREATED,
        message="Appointment created successfully",
        appointment=created,
        warnings=report.warnings,
    )
