from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable

from clinicbook.domain import Appointment, ResourceSelection
from clinicbook.duration import is_full_day
from clinicbook.palette import ColorMode, assign_colors
from clinicbook.timegrid import (
    TimeSlot,
    TimeWindow,
    ZoomState,
    format_hour_display,
    format_time_display,
    time_slots,
    week_dates,
)

# Shortest rendered block, so short appointments stay tappable.
MIN_BLOCK_HEIGHT = 40.0
WEEK_MIN_BLOCK_HEIGHT = 30.0

DAY_TIME_COLUMN_WIDTH = 70.0
WEEK_TIME_COLUMN_WIDTH = 60.0
GRID_MARGIN = 40.0

# Week cells keep a small inset on both sides and a gap between sub-columns.
WEEK_CELL_INSET = 2.0
WEEK_BLOCK_GAP = 2.0

# Labels stay hourly where columns are narrow.
FIXED_INTERVAL_MINUTES = 60


@dataclass(frozen=True)
class Position:
    top: float
    height: float


@dataclass(frozen=True)
class Column:
    resource_id: str
    display_name: str
    color: str
    left: float
    width: float
    appointment_count: int = 0


@dataclass(frozen=True)
class Block:
    """A timed appointment placed on the grid.

    ``column_left`` is measured from the left edge of the grid area (right of
    the time axis); ``top`` from the window start line.
    """

    appointment_id: str
    resource_id: str
    top: float
    height: float
    column_left: float
    column_width: float
    color: str
    time_text: str
    title: str


@dataclass(frozen=True)
class AllDayEntry:
    appointment_id: str
    resource_id: str
    color: str
    title: str
    duration_text: str


@dataclass(frozen=True)
class DayLayout:
    date: dt.date
    slot_height: float
    interval_minutes: int
    interval_label: str
    time_slots: list[TimeSlot]
    columns: list[Column]
    blocks: list[Block]
    all_day: list[AllDayEntry]
    current_time_top: float | None = None

    @property
    def timed_count(self) -> int:
        return len(self.blocks)


@dataclass(frozen=True)
class WeekDay:
    date: dt.date
    left: float
    width: float
    is_today: bool
    is_selected: bool
    count: int
    blocks: list[Block] = field(default_factory=list)
    all_day: list[AllDayEntry] = field(default_factory=list)
    current_time_top: float | None = None


@dataclass(frozen=True)
class LegendEntry:
    resource_id: str
    display_name: str
    color: str
    count: int


@dataclass(frozen=True)
class WeekLayout:
    label: str
    slot_height: float
    day_width: float
    time_slots: list[TimeSlot]
    days: list[WeekDay]
    legend: list[LegendEntry]

    @property
    def timed_count(self) -> int:
        return sum(len(d.blocks) for d in self.days)


def position(
    start: dt.datetime | dt.time,
    duration_minutes: int,
    *,
    window: TimeWindow,
    slot_height: float,
    min_block_height: float = MIN_BLOCK_HEIGHT,
) -> Position:
    """Vertical placement of a span starting at ``start``.

    Spans outside the window still get a position (negative or past the
    grid end); nothing is clipped.
    """
    pixels_per_minute = slot_height / 60
    minutes_from_window_start = (start.hour - window.start_hour) * 60 + start.minute
    top = minutes_from_window_start * pixels_per_minute
    height = max(duration_minutes * pixels_per_minute, min_block_height)
    return Position(top=top, height=height)


def current_time_indicator(
    now: dt.datetime,
    displayed_date: dt.date,
    *,
    window: TimeWindow,
    slot_height: float,
) -> float | None:
    """Top offset of the "now" line, or None when it should not be drawn."""
    if now.date() != displayed_date or not window.contains_hour(now.hour):
        return None
    return position(now, 0, window=window, slot_height=slot_height, min_block_height=0).top


def split_full_day(appointments: Iterable[Appointment]) -> tuple[list[Appointment], list[Appointment]]:
    """Split into (timed, all_day)."""
    timed: list[Appointment] = []
    all_day: list[Appointment] = []
    for a in appointments:
        (all_day if is_full_day(a.duration_minutes) else timed).append(a)
    return timed, all_day


def available_width(screen_width: float, time_column_width: float, margin: float = GRID_MARGIN) -> float:
    return max(0.0, screen_width - time_column_width - margin)


def partition_columns(count: int, width: float) -> list[tuple[float, float]]:
    """Split ``width`` into ``count`` equal, adjacent (left, width) columns."""
    if count <= 0:
        return []
    column_width = width / count
    return [(i * column_width, column_width) for i in range(count)]


def _sort_key(a: Appointment) -> tuple:
    return (a.start, a.id)


def _title(a: Appointment) -> str:
    return a.client_name or a.label


def _all_day_entry(a: Appointment, color: str) -> AllDayEntry:
    return AllDayEntry(
        appointment_id=a.id,
        resource_id=a.resource_id,
        color=color,
        title=a.label or a.client_name,
        duration_text=f"{a.duration_minutes // 60}h",
    )


def _selected_on(appointments: Iterable[Appointment], selection: ResourceSelection, day: dt.date) -> list[Appointment]:
    ids = set(selection.ids)
    return sorted((a for a in appointments if a.resource_id in ids and a.day == day), key=_sort_key)


def _layout_day(
    appointments: Iterable[Appointment],
    selection: ResourceSelection,
    day: dt.date,
    *,
    interval: int,
    window: TimeWindow,
    zoom: ZoomState,
    now: dt.datetime,
    screen_width: float,
    color_mode: ColorMode,
) -> DayLayout:
    colors = assign_colors(selection, mode=color_mode)
    timed, all_day = split_full_day(_selected_on(appointments, selection, day))

    by_resource: dict[str, list[Appointment]] = {r.id: [] for r in selection}
    for a in timed:
        by_resource[a.resource_id].append(a)

    width = available_width(screen_width, DAY_TIME_COLUMN_WIDTH)
    columns: list[Column] = []
    blocks: list[Block] = []
    for r, (left, col_width) in zip(selection, partition_columns(len(selection), width)):
        color = colors[r.id]
        items = by_resource[r.id]
        columns.append(
            Column(
                resource_id=r.id,
                display_name=r.display_name,
                color=color,
                left=left,
                width=col_width,
                appointment_count=len(items),
            )
        )
        for a in items:
            pos = position(a.start, a.duration_minutes, window=window, slot_height=zoom.slot_height)
            blocks.append(
                Block(
                    appointment_id=a.id,
                    resource_id=r.id,
                    top=pos.top,
                    height=pos.height,
                    column_left=left,
                    column_width=col_width,
                    color=color,
                    time_text=format_time_display(a.start.hour, a.start.minute),
                    title=_title(a),
                )
            )

    return DayLayout(
        date=day,
        slot_height=zoom.slot_height,
        interval_minutes=interval,
        interval_label=f"{interval} min",
        time_slots=time_slots(window, interval),
        columns=columns,
        blocks=blocks,
        all_day=[_all_day_entry(a, colors[a.resource_id]) for a in all_day],
        current_time_top=current_time_indicator(now, day, window=window, slot_height=zoom.slot_height),
    )


def layout_day(
    appointments: Iterable[Appointment],
    selection: ResourceSelection,
    day: dt.date,
    *,
    now: dt.datetime,
    window: TimeWindow = TimeWindow(),
    zoom: ZoomState = ZoomState(),
    screen_width: float,
    color_mode: ColorMode = ColorMode.INDEX,
) -> DayLayout:
    """Multi-resource day view: one column per selected resource, hourly labels."""
    return _layout_day(
        appointments,
        selection,
        day,
        interval=FIXED_INTERVAL_MINUTES,
        window=window,
        zoom=zoom,
        now=now,
        screen_width=screen_width,
        color_mode=color_mode,
    )


def layout_single_resource_day(
    appointments: Iterable[Appointment],
    selection: ResourceSelection,
    day: dt.date,
    *,
    now: dt.datetime,
    window: TimeWindow = TimeWindow(),
    zoom: ZoomState = ZoomState(),
    screen_width: float,
    color_mode: ColorMode = ColorMode.INDEX,
) -> DayLayout:
    """Day view for one resource; label density follows the zoom level."""
    if len(selection) > 1:
        raise ValueError(f"single-resource day view needs at most one resource, got {len(selection)}")
    return _layout_day(
        appointments,
        selection,
        day,
        interval=zoom.display_interval,
        window=window,
        zoom=zoom,
        now=now,
        screen_width=screen_width,
        color_mode=color_mode,
    )


def week_label(dates: list[dt.date]) -> str:
    first, last = dates[0], dates[-1]
    return f"{first:%b} {first.day} - {last:%b} {last.day}, {last.year}"


def hour_slots(window: TimeWindow) -> list[TimeSlot]:
    return [
        TimeSlot(time=f"{h:02d}:00", display=format_hour_display(h))
        for h in range(window.start_hour, window.end_hour + 1)
    ]


def layout_week(
    appointments: Iterable[Appointment],
    selection: ResourceSelection,
    selected: dt.date,
    *,
    now: dt.datetime,
    window: TimeWindow = TimeWindow(),
    zoom: ZoomState = ZoomState(),
    screen_width: float,
    color_mode: ColorMode = ColorMode.INDEX,
) -> WeekLayout:
    """Seven day cells, each split into one sub-column per selected resource."""
    dates = week_dates(selected)
    colors = assign_colors(selection, mode=color_mode)
    ids = set(selection.ids)

    by_day: dict[dt.date, list[Appointment]] = {d: [] for d in dates}
    for a in sorted(appointments, key=_sort_key):
        if a.resource_id in ids and a.day in by_day:
            by_day[a.day].append(a)

    day_width = available_width(screen_width, WEEK_TIME_COLUMN_WIDTH) / 7
    n = len(selection)
    # Cells narrower than the insets collapse to zero-width sub-columns inside the cell.
    inset = min(WEEK_CELL_INSET, day_width / 2)
    sub_width = (day_width - 2 * inset) / n if n else 0.0
    weekly_counts = {r.id: 0 for r in selection}

    days: list[WeekDay] = []
    for day_index, d in enumerate(dates):
        day_left = day_index * day_width
        timed, all_day = split_full_day(by_day[d])

        blocks: list[Block] = []
        for resource_index, r in enumerate(selection):
            left = inset + resource_index * sub_width
            for a in timed:
                if a.resource_id != r.id:
                    continue
                weekly_counts[r.id] += 1
                pos = position(
                    a.start,
                    a.duration_minutes,
                    window=window,
                    slot_height=zoom.slot_height,
                    min_block_height=WEEK_MIN_BLOCK_HEIGHT,
                )
                blocks.append(
                    Block(
                        appointment_id=a.id,
                        resource_id=r.id,
                        top=pos.top,
                        height=pos.height,
                        column_left=day_left + left,
                        column_width=max(0.0, sub_width - WEEK_BLOCK_GAP),
                        color=colors[r.id],
                        time_text=f"{a.start.hour % 12 or 12}:{a.start.minute:02d}",
                        title=_title(a),
                    )
                )

        days.append(
            WeekDay(
                date=d,
                left=day_left,
                width=day_width,
                is_today=d == now.date(),
                is_selected=d == selected,
                count=len(timed) + len(all_day),
                blocks=blocks,
                all_day=[_all_day_entry(a, colors[a.resource_id]) for a in all_day],
                current_time_top=current_time_indicator(now, d, window=window, slot_height=zoom.slot_height),
            )
        )

    legend = [
        LegendEntry(resource_id=r.id, display_name=r.display_name, color=colors[r.id], count=weekly_counts[r.id])
        for r in selection
    ]

    return WeekLayout(
        label=week_label(dates),
        slot_height=zoom.slot_height,
        day_width=day_width,
        time_slots=hour_slots(window),
        days=days,
        legend=legend,
    )
