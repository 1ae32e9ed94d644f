from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import RetryCallState, retry, retry_if_exception, stop_after_attempt, wait_exponential

from clinicbook.config import Settings
from clinicbook.domain import ApiError, Appointment, BookingCandidate, Resource
from clinicbook.duration import format_duration_hhmm, normalize_duration

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.retryable


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    sleep_seconds = getattr(retry_state.next_action, "sleep", 0.0) or 0.0
    logger.info(
        "Attempt %s failed (%s); retrying in %.1fs",
        retry_state.attempt_number,
        f"{type(exc).__name__}: {exc}" if exc else "unknown error",
        sleep_seconds,
    )


def _parse_datetime(value: Any) -> dt.datetime | None:
    if not value:
        return None
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(s)
    except ValueError:
        return None
    # Wall-clock time as written; offsets are not converted.
    return parsed.replace(tzinfo=None, second=0, microsecond=0)


def _parse_time(value: Any) -> dt.time | None:
    if not value:
        return None
    parts = str(value).strip().split(":")
    try:
        return dt.time(int(parts[0]), int(parts[1]))
    except (IndexError, ValueError):
        return None


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        v = raw.get(k)
        if v not in (None, ""):
            return v
    return None


def parse_appointment(raw: dict[str, Any], *, default_resource_id: str | None = None) -> Appointment | None:
    """Build an Appointment from an API record.

    Both the legacy practice-management field names (AppointmentID,
    DateAppointment, Duration as "HH:MM", ...) and the backend's snake_case
    names are understood. Returns None (and logs) when id, resource or start
    cannot be determined.
    """
    appointment_id = _first(raw, "id", "AppointmentID")

    audiologist = raw.get("audiologist") if isinstance(raw.get("audiologist"), dict) else {}
    resource_id = _first(raw, "audiologist_id", "audiologistId", "UserIDAssigned") or audiologist.get("id")
    resource_id = resource_id or default_resource_id

    start = _parse_datetime(_first(raw, "appointment_date", "DateAppointment"))
    if start is not None and start.time() == dt.time(0, 0):
        t = _parse_time(raw.get("TimeAppointment"))
        if t is not None:
            start = dt.datetime.combine(start.date(), t)

    if appointment_id is None or resource_id is None or start is None:
        logger.warning(
            "Skipping appointment record without id/resource/start (id=%r resource=%r start=%r)",
            appointment_id,
            resource_id,
            _first(raw, "appointment_date", "DateAppointment"),
        )
        return None

    duration = normalize_duration(_first(raw, "duration_minutes", "Duration"))
    if duration.defaulted:
        logger.warning("Appointment %s: %s", appointment_id, duration.warning)

    procedure = raw.get("procedure") if isinstance(raw.get("procedure"), dict) else {}
    full_name = " ".join(p for p in (raw.get("FirstName"), raw.get("LastName")) if p)
    status = str(_first(raw, "status", "Status") or "scheduled").strip().lower()

    return Appointment(
        id=str(appointment_id),
        resource_id=str(resource_id),
        start=start,
        duration_minutes=duration.minutes,
        label=str(_first(raw, "Type", "type") or procedure.get("name") or ""),
        client_name=str(_first(raw, "patient_name", "ClientName") or full_name),
        notes=str(_first(raw, "notes", "Notes") or ""),
        status=status,
        is_recurring=bool(raw.get("is_recurring", False)),
        recurrence_pattern=raw.get("recurrence_pattern"),
        duration_defaulted=duration.defaulted,
    )


def parse_resource(raw: dict[str, Any]) -> Resource | None:
    resource_id = _first(raw, "id", "user_id", "UserID")
    if resource_id is None:
        return None
    active_raw = _first(raw, "is_active", "Active")
    is_active = active_raw is None or active_raw is True or str(active_raw) == "1"
    return Resource(
        id=str(resource_id),
        display_name=str(_first(raw, "full_name", "Name", "FullName") or "Unknown"),
        is_active=is_active,
    )


def _extract_records(payload: Any, key: str) -> list[dict[str, Any]]:
    # The API has answered with a bare list, an envelope, and a JSON string holding either.
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ApiError(f"Malformed JSON string in response: {e}") from e
    if isinstance(payload, dict):
        payload = payload.get(key, [])
    if not isinstance(payload, list):
        logger.warning("Unexpected %s payload type %s; treating as empty", key, type(payload).__name__)
        return []
    return [item for item in payload if isinstance(item, dict)]


class AppointmentApi:
    """Async client for the appointment REST API."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        retry_wait=None,
    ):
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=settings.api_url,
            timeout=settings.request_timeout_seconds,
        )
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=4)

    async def __aenter__(self) -> "AppointmentApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._settings.session_key}",
        }

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = await self._client.request(method, path, headers=self._headers(), **kwargs)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ApiError(
                f"API error: {status} - {e.response.text.strip()}",
                status_code=status,
                retryable=status >= 500,
            ) from e
        except httpx.TransportError as e:
            raise ApiError(f"API request failed: {type(e).__name__}: {e}", retryable=True) from e
        except httpx.RequestError as e:
            raise ApiError(f"API request failed: {type(e).__name__}: {e}") from e

        try:
            return r.json()
        except ValueError as e:
            raise ApiError(f"API returned a non-JSON body for {method} {path}") from e

    async def _with_retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        # fn must be an ``async def``: tenacity only awaits between attempts for coroutine functions.
        decorated = retry(
            stop=stop_after_attempt(self._settings.fetch_retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_before_sleep,
            reraise=True,
        )(fn)
        return await decorated()

    async def fetch_appointments(self, resource_id: str, start: dt.date, end: dt.date) -> list[Appointment]:
        """Appointments of one resource between two dates, inclusive."""
        params = {
            "audiologist_ids": resource_id,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }

        async def _get() -> Any:
            return await self._request("GET", "/appointments", params=params)

        payload = await self._with_retry(_get)
        records = _extract_records(payload, "appointments")

        result: list[Appointment] = []
        for raw in records:
            a = parse_appointment(raw, default_resource_id=resource_id)
            if a is not None and a.resource_id == resource_id:
                result.append(a)
        logger.info("Fetched %d appointments for resource %s (%s..%s)", len(result), resource_id, start, end)
        return result

    async def fetch_resources(self) -> list[Resource]:
        """Active staff members."""
        async def _get() -> Any:
            return await self._request("GET", "/audiologists", params={"active": "1"})

        payload = await self._with_retry(_get)
        resources = [r for r in map(parse_resource, _extract_records(payload, "users")) if r is not None]
        return [r for r in resources if r.is_active]

    async def create_appointment(self, candidate: BookingCandidate) -> Appointment:
        # Never retried: a timed-out POST may already have created the appointment.
        body = {
            "audiologist_id": candidate.resource_id,
            "appointment_date": candidate.start.isoformat(),
            "duration_minutes": candidate.duration_minutes,
            "Duration": format_duration_hhmm(candidate.duration_minutes),
            "type": candidate.label,
            "client_id": candidate.client_id,
            "branch_id": candidate.branch_id,
            "procedure_id": candidate.procedure_id,
            "assistant_id": candidate.assistant_id,
            "send_reminders": candidate.send_reminders,
        }
        payload = await self._request("POST", "/appointments", json=body)
        if not isinstance(payload, dict):
            raise ApiError(f"Unexpected create response: {payload!r}")

        created = parse_appointment(payload, default_resource_id=candidate.resource_id)
        if created is None:
            raise ApiError(f"Create response did not describe an appointment: {payload!r}")
        return created
