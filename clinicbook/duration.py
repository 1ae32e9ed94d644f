from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 30

# Anything longer than a working day is an all-day block, not a timed slot.
FULL_DAY_THRESHOLD_MINUTES = 480

DURATION_CHOICES = (15, 30, 45, 60, 90, 120)

# "HH:MM" as sent by the appointment API; a trailing ":SS" is tolerated and ignored.
_HHMM_RE = re.compile(r"^(\d{1,3}):([0-5]?\d)(?::[0-5]?\d)?$")
_INT_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class DurationResult:
    minutes: int
    defaulted: bool = False
    warning: str | None = None


def _defaulted(raw: object, reason: str) -> DurationResult:
    warning = f"{reason} ({raw!r}); using default {DEFAULT_DURATION_MINUTES}min"
    logger.warning("Duration %s", warning)
    return DurationResult(minutes=DEFAULT_DURATION_MINUTES, defaulted=True, warning=warning)


def normalize_duration(value: object) -> DurationResult:
    """Normalize a duration to whole minutes.

    Accepted inputs:
      - int minutes (``90``), returned unchanged
      - digit strings (``"90"``)
      - ``"HH:MM"`` / ``"HH:MM:SS"`` strings (``"01:30"`` -> 90)

    Anything else (None, empty, negative, garbage) falls back to
    DEFAULT_DURATION_MINUTES and is reported as defaulted so the caller can
    surface it as a data-quality issue. Never raises.
    """
    if isinstance(value, bool):
        return _defaulted(value, "boolean is not a duration")

    if isinstance(value, int):
        if value < 0:
            return _defaulted(value, "negative duration")
        return DurationResult(minutes=value)

    if isinstance(value, float):
        if value != value or value < 0 or not value.is_integer():
            return _defaulted(value, "non-integral duration")
        return DurationResult(minutes=int(value))

    if value is None:
        return _defaulted(value, "missing duration")

    s = str(value).strip()
    if not s:
        return _defaulted(value, "empty duration")

    if _INT_RE.match(s):
        return DurationResult(minutes=int(s))

    m = _HHMM_RE.match(s)
    if not m:
        return _defaulted(value, "malformed duration")

    return DurationResult(minutes=int(m.group(1)) * 60 + int(m.group(2)))


def parse_duration_minutes(value: object) -> int:
    return normalize_duration(value).minutes


def is_full_day(minutes: int) -> bool:
    return minutes > FULL_DAY_THRESHOLD_MINUTES


def format_duration_hhmm(minutes: int) -> str:
    """Wire format expected by the appointment API, e.g. 90 -> "01:30"."""
    if minutes < 0:
        raise ValueError(f"minutes must be >= 0, got {minutes}")
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def format_duration_label(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    hours_text = f"{hours} hour{'s' if hours > 1 else ''}"
    mins_text = f"{mins} min{'s' if mins > 1 else ''}"
    if hours > 0 and mins > 0:
        return f"{hours_text} {mins_text}"
    if hours > 0:
        return hours_text
    return mins_text
