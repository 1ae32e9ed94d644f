from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from clinicbook.conflict import DateMatch
from clinicbook.palette import ColorMode
from clinicbook.timegrid import DEFAULT_END_HOUR, DEFAULT_START_HOUR, TimeWindow


@dataclass(frozen=True)
class Settings:
    api_url: str
    session_key: str

    day_start_hour: int = DEFAULT_START_HOUR
    day_end_hour: int = DEFAULT_END_HOUR

    # Logical screen width the grid is laid out for.
    screen_width: float = 390.0

    request_timeout_seconds: float = 20.0
    # How many times a single appointment request may be attempted on transient failure.
    fetch_retry_attempts: int = 2

    color_mode: ColorMode = ColorMode.INDEX
    conflict_date_match: DateMatch = DateMatch.FULL_DATE

    # Where the selected resources and zoom level are kept between runs
    state_file: str = "clinicbook_state.json"

    @property
    def time_window(self) -> TimeWindow:
        return TimeWindow(start_hour=self.day_start_hour, end_hour=self.day_end_hour)


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _int(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e


def _float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected number.") from e


def _choice(name: str, default: str, enum_cls):
    raw = os.getenv(name, default).strip().lower()
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected one of: {allowed}") from e


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    day_start_hour = _int("DAY_START_HOUR", str(DEFAULT_START_HOUR))
    day_end_hour = _int("DAY_END_HOUR", str(DEFAULT_END_HOUR))
    if not (0 <= day_start_hour < day_end_hour <= 24):
        raise RuntimeError(
            f"DAY_START_HOUR/DAY_END_HOUR must satisfy 0 <= start < end <= 24 (got {day_start_hour}-{day_end_hour})"
        )

    screen_width = _float("SCREEN_WIDTH", "390")
    if screen_width <= 0:
        raise RuntimeError("SCREEN_WIDTH must be > 0")

    request_timeout_seconds = _float("REQUEST_TIMEOUT_SECONDS", "20")
    if request_timeout_seconds <= 0:
        raise RuntimeError("REQUEST_TIMEOUT_SECONDS must be > 0")

    fetch_retry_attempts = _int("FETCH_RETRY_ATTEMPTS", "2")
    if fetch_retry_attempts < 1:
        raise RuntimeError("FETCH_RETRY_ATTEMPTS must be >= 1")

    return Settings(
        api_url=_require("CLINICBOOK_API_URL").rstrip("/"),
        session_key=_require("CLINICBOOK_SESSION_KEY"),
        day_start_hour=day_start_hour,
        day_end_hour=day_end_hour,
        screen_width=screen_width,
        request_timeout_seconds=request_timeout_seconds,
        fetch_retry_attempts=fetch_retry_attempts,
        color_mode=_choice("COLOR_MODE", ColorMode.INDEX.value, ColorMode),
        conflict_date_match=_choice("CONFLICT_DATE_MATCH", DateMatch.FULL_DATE.value, DateMatch),
        state_file=os.getenv("STATE_FILE", "clinicbook_state.json"),
    )
