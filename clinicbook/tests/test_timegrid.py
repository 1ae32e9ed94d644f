from __future__ import annotations

import datetime as dt

import pytest

from clinicbook.timegrid import (
    MAX_SLOT,
    MIN_SLOT,
    TimeWindow,
    ZoomState,
    add_months,
    format_hour_display,
    format_time_display,
    month_bounds,
    time_slots,
    week_dates,
)


def test_time_window_defaults_and_validation() -> None:
    w = TimeWindow()
    assert (w.start_hour, w.end_hour) == (6, 19)

    with pytest.raises(ValueError):
        TimeWindow(19, 6)
    with pytest.raises(ValueError):
        TimeWindow(8, 8)
    with pytest.raises(ValueError):
        TimeWindow(0, 25)


def test_zoom_state_is_clamped_on_construction() -> None:
    assert ZoomState(10).slot_height == MIN_SLOT
    assert ZoomState(500).slot_height == MAX_SLOT
    assert ZoomState(75).slot_height == 75


def test_zoom_stays_within_bounds_after_any_gesture_sequence() -> None:
    zoom = ZoomState()
    for scale in [3.0, 3.0, 0.1, 0.5, 1.7, 10.0, 0.01, 1.25, 0.8]:
        zoom = zoom.apply_scale(scale)
        assert MIN_SLOT <= zoom.slot_height <= MAX_SLOT


def test_zoom_scale_multiplies_current_height() -> None:
    assert ZoomState(60).apply_scale(1.5).slot_height == 90
    assert ZoomState(60).apply_scale(2).slot_height == MAX_SLOT


@pytest.mark.parametrize("scale", [0, -1, float("nan"), float("inf")])
def test_degenerate_scale_leaves_zoom_unchanged(scale: float) -> None:
    zoom = ZoomState(80)
    assert zoom.apply_scale(scale) == zoom


@pytest.mark.parametrize("height, interval", [(40, 60), (41, 30), (60, 30), (119, 30), (120, 15)])
def test_display_interval_follows_slot_height(height: float, interval: int) -> None:
    assert ZoomState(height).display_interval == interval


def test_time_slots_cover_window_inclusively() -> None:
    slots = time_slots(TimeWindow(6, 19), 60)
    assert len(slots) == 14
    assert (slots[0].time, slots[0].display) == ("06:00", "6:00 AM")
    assert (slots[-1].time, slots[-1].display) == ("19:00", "7:00 PM")

    assert len(time_slots(TimeWindow(6, 19), 30)) == 27
    quarter_hours = time_slots(TimeWindow(6, 19), 15)
    assert len(quarter_hours) == 53
    assert quarter_hours[1].time == "06:15"

    with pytest.raises(ValueError):
        time_slots(TimeWindow(), 0)


def test_display_formats() -> None:
    assert format_time_display(0, 5) == "12:05 AM"
    assert format_time_display(12, 0) == "12:00 PM"
    assert format_time_display(13, 30) == "1:30 PM"
    assert format_hour_display(9) == "9 AM"
    assert format_hour_display(18) == "6 PM"


def test_week_starts_on_sunday() -> None:
    wednesday = dt.date(2026, 10, 14)
    dates = week_dates(wednesday)
    assert dates[0] == dt.date(2026, 10, 11)
    assert dates[-1] == dt.date(2026, 10, 17)
    assert wednesday in dates

    sunday = dt.date(2026, 10, 18)
    assert week_dates(sunday)[0] == sunday


def test_month_bounds() -> None:
    assert month_bounds(dt.date(2026, 2, 10)) == (dt.date(2026, 2, 1), dt.date(2026, 2, 28))
    assert month_bounds(dt.date(2024, 2, 5)) == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))
    assert month_bounds(dt.date(2026, 12, 31)) == (dt.date(2026, 12, 1), dt.date(2026, 12, 31))


def test_add_months_clamps_day() -> None:
    assert add_months(dt.date(2026, 1, 31), 1) == dt.date(2026, 2, 28)
    assert add_months(dt.date(2026, 3, 31), -1) == dt.date(2026, 2, 28)
    assert add_months(dt.date(2026, 12, 15), 1) == dt.date(2027, 1, 15)
    assert add_months(dt.date(2026, 1, 15), -1) == dt.date(2025, 12, 15)
