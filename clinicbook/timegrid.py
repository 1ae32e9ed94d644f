from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, replace

MIN_SLOT = 40.0
MAX_SLOT = 120.0
DEFAULT_SLOT = 60.0

DEFAULT_START_HOUR = 6
DEFAULT_END_HOUR = 19


@dataclass(frozen=True)
class TimeWindow:
    """Visible hours of the day grid. Both bounds are labelled on the axis."""

    start_hour: int = DEFAULT_START_HOUR
    end_hour: int = DEFAULT_END_HOUR

    def __post_init__(self) -> None:
        if not (0 <= self.start_hour < self.end_hour <= 24):
            raise ValueError(
                f"invalid time window {self.start_hour}-{self.end_hour}: need 0 <= start < end <= 24"
            )

    def contains_hour(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


@dataclass(frozen=True)
class ZoomState:
    slot_height: float = DEFAULT_SLOT

    def __post_init__(self) -> None:
        object.__setattr__(self, "slot_height", clamp_slot_height(self.slot_height))

    @property
    def pixels_per_minute(self) -> float:
        return self.slot_height / 60

    @property
    def display_interval(self) -> int:
        """Minutes between time-axis labels in the single-resource day view."""
        if self.slot_height <= MIN_SLOT:
            return 60
        if self.slot_height >= MAX_SLOT:
            return 15
        return 30

    def apply_scale(self, scale: float) -> "ZoomState":
        # A pinch that ends with a degenerate scale leaves the zoom untouched.
        if not math.isfinite(scale) or scale <= 0:
            return self
        return replace(self, slot_height=self.slot_height * scale)


def clamp_slot_height(value: float) -> float:
    if not math.isfinite(value):
        return DEFAULT_SLOT
    return max(MIN_SLOT, min(MAX_SLOT, float(value)))


@dataclass(frozen=True)
class TimeSlot:
    time: str  # "HH:MM"
    display: str  # "9:00 AM"


def format_time_display(hour: int, minute: int) -> str:
    ampm = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {ampm}"


def format_hour_display(hour: int) -> str:
    ampm = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12} {ampm}"


def time_slots(window: TimeWindow, interval: int = 60) -> list[TimeSlot]:
    """Axis labels every ``interval`` minutes, from start_hour:00 through end_hour:00."""
    if interval <= 0:
        raise ValueError(f"interval must be > 0, got {interval}")

    slots: list[TimeSlot] = []
    total = window.start_hour * 60
    last = window.end_hour * 60
    while total <= last:
        hour, minute = divmod(total, 60)
        slots.append(TimeSlot(time=f"{hour:02d}:{minute:02d}", display=format_time_display(hour, minute)))
        total += interval
    return slots


def week_dates(selected: dt.date) -> list[dt.date]:
    """The Sunday-start week containing ``selected``."""
    days_since_sunday = (selected.weekday() + 1) % 7
    sunday = selected - dt.timedelta(days=days_since_sunday)
    return [sunday + dt.timedelta(days=i) for i in range(7)]


def month_bounds(day: dt.date) -> tuple[dt.date, dt.date]:
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, next_first - dt.timedelta(days=1)


def add_months(day: dt.date, months: int) -> dt.date:
    """Shift by whole months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month0 = divmod(index, 12)
    _, last = month_bounds(dt.date(year, month0 + 1, 1))
    return dt.date(year, month0 + 1, min(day.day, last.day))
