"""Smoke test against a live appointment API.

The test is skipped unless these are set:
    CLINICBOOK_API_URL
    CLINICBOOK_SESSION_KEY

It only reads (resources and this week's appointments); nothing is booked.

Run:
    CLINICBOOK_API_URL=... CLINICBOOK_SESSION_KEY=... python -m pytest -q -m api
"""

from __future__ import annotations

import datetime as dt
import os

import pytest

from clinicbook.api_client import AppointmentApi
from clinicbook.config import Settings
from clinicbook.timegrid import week_dates

pytestmark = pytest.mark.api


@pytest.mark.skipif(
    not os.getenv("CLINICBOOK_API_URL") or not os.getenv("CLINICBOOK_SESSION_KEY"),
    reason="Set CLINICBOOK_API_URL and CLINICBOOK_SESSION_KEY to run the API smoke test",
)
@pytest.mark.asyncio
async def test_fetch_resources_and_week_smoke() -> None:
    settings = Settings(
        api_url=os.environ["CLINICBOOK_API_URL"].rstrip("/"),
        session_key=os.environ["CLINICBOOK_SESSION_KEY"],
    )
    dates = week_dates(dt.date.today())

    async with AppointmentApi(settings) as api:
        resources = await api.fetch_resources()
        if resources:
            appointments = await api.fetch_appointments(resources[0].id, dates[0], dates[-1])
            assert all(a.resource_id == resources[0].id for a in appointments)
