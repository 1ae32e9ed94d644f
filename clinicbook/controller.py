from __future__ import annotations

import asyncio
import datetime as dt
import logging
from enum import Enum
from typing import Dict, Iterable, Union

from clinicbook.agenda import AgendaGroup, DayMark, group_agenda, mark_month
from clinicbook.api_client import AppointmentApi
from clinicbook.config import Settings
from clinicbook.domain import Appointment, Resource, ResourceSelection
from clinicbook.layout import DayLayout, WeekLayout, layout_day, layout_single_resource_day, layout_week
from clinicbook.palette import ColorMode
from clinicbook.state_file import ViewState
from clinicbook.timegrid import TimeWindow, ZoomState, add_months, month_bounds, week_dates

logger = logging.getLogger(__name__)

# Horizontal travel before a pan counts as a swipe.
SWIPE_THRESHOLD = 50.0

Rendered = Union[DayLayout, WeekLayout, Dict[dt.date, DayMark]]


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class CalendarController:
    """Owns the calendar's mutable view state and drives fetch and layout.

    Zoom level and resource selection are only changed here; the layout and
    conflict engines receive them read-only. Every change that makes an
    in-flight fetch obsolete bumps ``generation`` so its result is dropped.
    """

    def __init__(
        self,
        api: AppointmentApi,
        *,
        selected_date: dt.date,
        resources: Iterable[Resource] = (),
        view_mode: ViewMode = ViewMode.DAY,
        zoom: ZoomState | None = None,
        window: TimeWindow | None = None,
        screen_width: float = 390.0,
        color_mode: ColorMode = ColorMode.INDEX,
    ):
        self._api = api
        self.selected_date = selected_date
        self.view_mode = ViewMode(view_mode)
        self.selection = ResourceSelection.of(resources)
        self.zoom = zoom or ZoomState()
        self.window = window or TimeWindow()
        self.screen_width = screen_width
        self.color_mode = color_mode

        self.appointments: list[Appointment] = []
        self.failed_resources: tuple[str, ...] = ()
        self.generation = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api: AppointmentApi,
        *,
        selected_date: dt.date,
        resources: Iterable[Resource],
        state: ViewState | None = None,
    ) -> "CalendarController":
        state = state or ViewState()
        selection = ResourceSelection.of(resources)
        if state.selected_resource_ids:
            # Keep the previous session's order so index-based colors do not move.
            remembered = ResourceSelection.of(
                r for r in selection.reorder(state.selected_resource_ids) if r.id in state.selected_resource_ids
            )
            if len(remembered):
                selection = remembered
        return cls(
            api,
            selected_date=selected_date,
            resources=selection,
            view_mode=ViewMode(state.view_mode),
            zoom=ZoomState(state.slot_height),
            window=settings.time_window,
            screen_width=settings.screen_width,
            color_mode=settings.color_mode,
        )

    def view_state(self) -> ViewState:
        return ViewState(
            selected_resource_ids=self.selection.ids,
            slot_height=self.zoom.slot_height,
            view_mode=self.view_mode.value,
        )

    def _invalidate(self) -> None:
        self.generation += 1

    # Navigation

    def set_view_mode(self, mode: ViewMode | str) -> None:
        mode = ViewMode(mode)
        if mode is not self.view_mode:
            logger.debug("Switching to %s view", mode.value)
            self.view_mode = mode
            self._invalidate()

    def set_date(self, day: dt.date) -> None:
        if day != self.selected_date:
            self.selected_date = day
            self._invalidate()

    def open_day(self, day: dt.date) -> None:
        """A tapped week or month cell opens that day."""
        self.set_date(day)
        self.set_view_mode(ViewMode.DAY)

    def _step(self, direction: int) -> None:
        if self.view_mode is ViewMode.DAY:
            self.set_date(self.selected_date + dt.timedelta(days=direction))
        elif self.view_mode is ViewMode.WEEK:
            self.set_date(self.selected_date + dt.timedelta(weeks=direction))
        else:
            self.set_date(add_months(self.selected_date, direction))

    def go_previous(self) -> None:
        self._step(-1)

    def go_next(self) -> None:
        self._step(1)

    def go_today(self, today: dt.date) -> None:
        self.set_date(today)

    def swipe(self, translation_x: float) -> bool:
        """Right swipe goes back, left swipe goes forward. Returns whether it navigated."""
        if translation_x > SWIPE_THRESHOLD:
            self.go_previous()
            return True
        if translation_x < -SWIPE_THRESHOLD:
            self.go_next()
            return True
        return False

    # Zoom and selection

    def pinch(self, scale: float) -> float:
        self.zoom = self.zoom.apply_scale(scale)
        return self.zoom.slot_height

    def toggle_resource(self, resource: Resource) -> None:
        self.selection = self.selection.toggle(resource)
        logger.debug("Selection is now %s", ", ".join(self.selection.ids) or "<empty>")
        self._invalidate()

    def select_resources(self, resources: Iterable[Resource]) -> None:
        self.selection = ResourceSelection.of(resources)
        self._invalidate()

    # Data

    def visible_range(self) -> tuple[dt.date, dt.date]:
        if self.view_mode is ViewMode.DAY:
            return self.selected_date, self.selected_date
        if self.view_mode is ViewMode.WEEK:
            dates = week_dates(self.selected_date)
            return dates[0], dates[-1]
        return month_bounds(self.selected_date)

    async def refresh(self) -> bool:
        """Reload appointments for every selected resource in the visible range.

        Resources are fetched concurrently. A failing resource contributes no
        appointments. Returns False when the result was superseded by a later
        change and therefore discarded.
        """
        self._invalidate()
        generation = self.generation
        resources = tuple(self.selection)
        start, end = self.visible_range()

        results = await asyncio.gather(
            *(self._api.fetch_appointments(r.id, start, end) for r in resources),
            return_exceptions=True,
        )

        if generation != self.generation:
            logger.info("Discarding stale fetch (generation %d, current %d)", generation, self.generation)
            return False

        appointments: list[Appointment] = []
        failed: list[str] = []
        for r, result in zip(resources, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to load appointments for resource %s (%s: %s)",
                    r.id,
                    type(result).__name__,
                    result,
                )
                failed.append(r.id)
                continue
            appointments.extend(result)

        self.appointments = sorted(appointments, key=lambda a: (a.start, a.resource_id, a.id))
        self.failed_resources = tuple(failed)
        logger.info(
            "Loaded %d appointments for %d resources (%s..%s), %d failed",
            len(self.appointments),
            len(resources),
            start,
            end,
            len(failed),
        )
        return True

    def render(self, now: dt.datetime) -> Rendered:
        if self.view_mode is ViewMode.MONTH:
            return mark_month(self.appointments, self.selected_date)

        kwargs = dict(
            now=now,
            window=self.window,
            zoom=self.zoom,
            screen_width=self.screen_width,
            color_mode=self.color_mode,
        )
        if self.view_mode is ViewMode.WEEK:
            return layout_week(self.appointments, self.selection, self.selected_date, **kwargs)
        if len(self.selection) == 1:
            return layout_single_resource_day(self.appointments, self.selection, self.selected_date, **kwargs)
        return layout_day(self.appointments, self.selection, self.selected_date, **kwargs)

    def agenda(self, today: dt.date, status: str | None = None) -> list[AgendaGroup]:
        return group_agenda(self.appointments, today=today, status=status)
