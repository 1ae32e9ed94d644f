import argparse
import asyncio
import dataclasses
import datetime as dt
import json
import logging
import sys

from clinicbook.api_client import AppointmentApi
from clinicbook.booking import BookingOutcome, BookingResult, book_appointment
from clinicbook.config import Settings, load_settings
from clinicbook.controller import CalendarController, Rendered, ViewMode
from clinicbook.domain import BookingCandidate, ClinicBookError
from clinicbook.state_file import load_view_state, save_view_state

logger = logging.getLogger(__name__)

EXIT_CODES = {
    BookingOutcome.CREATED: 0,
    BookingOutcome.CONFLICT: 2,
}


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        stream=sys.stderr,
    )


def _date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _time(value: str) -> dt.time:
    try:
        hour, minute = value.split(":")
        return dt.time(int(hour), int(minute))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected HH:MM, got {value!r}") from e


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="clinicbook: clinic calendar layout and booking")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Fetch appointments and print the calendar layout as JSON")
    show.add_argument("--view", choices=[m.value for m in ViewMode], help="Day, week or month view")
    show.add_argument("--date", type=_date, default=None, help="Selected date (default: today)")

    book = sub.add_parser("book", help="Create an appointment unless it double-books the resource")
    book.add_argument("--resource", required=True, help="Staff resource id")
    book.add_argument("--date", type=_date, required=True)
    book.add_argument("--time", type=_time, required=True, help="Start time HH:MM")
    book.add_argument("--duration", type=int, default=30, help="Duration in minutes")
    book.add_argument("--label", default="Booked Out")
    book.add_argument("--client")
    book.add_argument("--branch")
    book.add_argument("--procedure")
    return parser


def to_jsonable(rendered: object) -> object:
    if dataclasses.is_dataclass(rendered) and not isinstance(rendered, type):
        return dataclasses.asdict(rendered)
    if isinstance(rendered, dict):
        return {str(k): to_jsonable(v) for k, v in rendered.items()}
    if isinstance(rendered, list):
        return [to_jsonable(v) for v in rendered]
    return rendered


async def show_calendar(settings: Settings, *, view: str | None, day: dt.date, now: dt.datetime) -> Rendered:
    state = load_view_state(settings.state_file)
    async with AppointmentApi(settings) as api:
        resources = await api.fetch_resources()
        controller = CalendarController.from_settings(
            settings, api, selected_date=day, resources=resources, state=state
        )
        if view:
            controller.set_view_mode(view)
        await controller.refresh()
        rendered = controller.render(now)

    try:
        save_view_state(settings.state_file, controller.view_state())
    except OSError:
        logger.warning("Failed to save view state to %s", settings.state_file, exc_info=True)
    return rendered


async def run_booking(settings: Settings, candidate: BookingCandidate) -> BookingResult:
    async with AppointmentApi(settings) as api:
        return await book_appointment(api, candidate, match=settings.conflict_date_match)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    _setup_logging()
    settings = load_settings()
    now = dt.datetime.now().replace(second=0, microsecond=0)

    try:
        if args.command == "show":
            rendered = asyncio.run(show_calendar(settings, view=args.view, day=args.date or now.date(), now=now))
            print(json.dumps(to_jsonable(rendered), default=str, indent=2))
            return 0

        candidate = BookingCandidate(
            resource_id=args.resource,
            date=args.date,
            start_time=args.time,
            duration_minutes=args.duration,
            client_id=args.client,
            branch_id=args.branch,
            procedure_id=args.procedure,
            label=args.label,
        )
        result = asyncio.run(run_booking(settings, candidate))
        print(result.message)
        for w in result.warnings:
            print(f"warning: {w}", file=sys.stderr)
        return EXIT_CODES.get(result.outcome, 1)

    except ClinicBookError as e:
        logger.error("%s failed (%s: %s)", args.command, type(e).__name__, e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
