from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Resource:
    """A staff member (audiologist) appointments are assigned to."""

    id: str
    display_name: str
    is_active: bool = True


@dataclass(frozen=True)
class Appointment:
    """A scheduled encounter bound to one resource.

    Times are naive local wall-clock values. Only ``resource_id``, ``start``
    and ``duration_minutes`` take part in layout and conflict checks; the
    rest is display payload.
    """

    id: str
    resource_id: str
    start: dt.datetime
    duration_minutes: int

    label: str = ""
    client_name: str = ""
    notes: str = ""
    status: str = "scheduled"

    # Opaque, never expanded.
    is_recurring: bool = False
    recurrence_pattern: str | None = None

    # True when the source duration was unusable and the default was used.
    duration_defaulted: bool = False

    def __post_init__(self) -> None:
        if self.duration_minutes < 0:
            raise ValueError(f"duration_minutes must be >= 0, got {self.duration_minutes}")

    @property
    def end(self) -> dt.datetime:
        return self.start + dt.timedelta(minutes=self.duration_minutes)

    @property
    def day(self) -> dt.date:
        return self.start.date()


@dataclass(frozen=True)
class BookingCandidate:
    resource_id: str
    date: dt.date
    start_time: dt.time
    duration_minutes: int

    client_id: str | None = None
    branch_id: str | None = None
    procedure_id: str | None = None
    assistant_id: str | None = None
    send_reminders: bool = False
    label: str = "Booked Out"

    @property
    def start(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.start_time).replace(second=0, microsecond=0)

    @property
    def end(self) -> dt.datetime:
        return self.start + dt.timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class ResourceSelection:
    """Ordered, deduplicated set of selected resources.

    Position in this tuple drives both column order and index-based colors,
    so every mutation keeps the relative order of the remaining entries.
    """

    resources: tuple[Resource, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        unique: list[Resource] = []
        for r in self.resources:
            if r.id in seen:
                continue
            seen.add(r.id)
            unique.append(r)
        object.__setattr__(self, "resources", tuple(unique))

    @classmethod
    def of(cls, resources) -> "ResourceSelection":
        return cls(tuple(resources))

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(r.id for r in self.resources)

    def __len__(self) -> int:
        return len(self.resources)

    def __iter__(self):
        return iter(self.resources)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self.ids

    def index_of(self, resource_id: str) -> int:
        """Position of ``resource_id`` in the selection, or -1."""
        for i, r in enumerate(self.resources):
            if r.id == resource_id:
                return i
        return -1

    def toggle(self, resource: Resource) -> "ResourceSelection":
        if resource.id in self:
            return ResourceSelection(tuple(r for r in self.resources if r.id != resource.id))
        return ResourceSelection(self.resources + (resource,))

    def reorder(self, ids: tuple[str, ...] | list[str]) -> "ResourceSelection":
        """Order the selection by ``ids``; unknown ids are ignored, unlisted resources go last."""
        by_id = {r.id: r for r in self.resources}
        wanted = set(ids)
        head = [by_id[i] for i in ids if i in by_id]
        tail = [r for r in self.resources if r.id not in wanted]
        return ResourceSelection(tuple(head + tail))


class ClinicBookError(RuntimeError):
    """Base error for failures the caller is expected to handle."""


class ApiError(ClinicBookError):
    """The appointment API could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class ConflictCheckError(ClinicBookError):
    """Existing appointments could not be loaded, so a booking cannot be cleared.

    Creation must not proceed; the user may retry.
    """
