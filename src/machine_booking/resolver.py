from __future__ import annotations

from datetime import date, timedelta

from .availability import AvailabilityIndex
from .calendar_rules import CalendarRules, Direction
from .models import ConflictReport, EventWindow, ResolvedBookingWindow, Resolution

_ONE_DAY = timedelta(days=1)
_DISPLAY_FORMAT = "%b %d, %Y"


class BookingError(ValueError):
    pass


class InvalidWindowError(BookingError):
    def __init__(self, event_start: date, event_end: date) -> None:
        super().__init__(f"Event end {event_end.isoformat()} is before event start {event_start.isoformat()}")
        self.event_start = event_start
        self.event_end = event_end


def pickup_for(event_start: date, calendar: CalendarRules) -> date:
    # Machines leave the day before the event, on a day staff can hand them over
    return calendar.nearest_working_day(event_start - _ONE_DAY, Direction.BACKWARD)


def return_for(event_end: date, calendar: CalendarRules) -> date:
    return calendar.nearest_working_day(event_end + _ONE_DAY, Direction.FORWARD)


def conflict_message(unit_id: str, conflict: date, pickup: date, return_: date) -> str:
    return (
        f"{unit_id} is already booked on {conflict.strftime(_DISPLAY_FORMAT)}, "
        f"inside the required pickup-to-return period "
        f"{pickup.strftime(_DISPLAY_FORMAT)} - {return_.strftime(_DISPLAY_FORMAT)}. "
        "Please choose different event dates."
    )


def resolve(
    unit_id: str | None,
    event_start: date | None,
    event_end: date | None,
    *,
    index: AvailabilityIndex,
    calendar: CalendarRules,
) -> Resolution | None:
    """Derive pickup/return dates for an event and check them against ``index``.

    Returns ``None`` while the unit or the start date is still missing. With a
    start date but no end date, the result only carries the provisional
    pickup date. The whole pickup-to-return span is checked, not just its
    endpoints.

    Raises :class:`InvalidWindowError` when ``event_end`` precedes
    ``event_start``.
    """
    if not unit_id or event_start is None:
        return None

    pickup = pickup_for(event_start, calendar)
    if event_end is None:
        return Resolution(unit_id=unit_id, pickup_date=pickup)

    if event_end < event_start:
        raise InvalidWindowError(event_start, event_end)

    return_ = return_for(event_end, calendar)
    conflict = index.first_conflict(unit_id, pickup, return_)
    if conflict is not None:
        report = ConflictReport(
            has_conflict=True,
            conflicting_date=conflict,
            message=conflict_message(unit_id, conflict, pickup, return_),
        )
        return Resolution(unit_id=unit_id, pickup_date=pickup, conflict=report)

    window = ResolvedBookingWindow(pickup_date=pickup, return_date=return_)
    return Resolution(unit_id=unit_id, pickup_date=pickup, window=window)


def resolve_window(window: EventWindow, *, index: AvailabilityIndex, calendar: CalendarRules) -> Resolution:
    resolution = resolve(window.unit_id, window.event_start, window.event_end, index=index, calendar=calendar)
    if resolution is None:
        raise BookingError("Event window is missing a unit or start date")
    return resolution


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO date from a form field; blank or malformed input is ``None``."""
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    try:
        # datetime-local strings ("2025-06-20T09:00") keep only their date part
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def resolve_form(
    unit_id: str | None,
    event_start: str | date | None,
    event_end: str | date | None,
    *,
    index: AvailabilityIndex,
    calendar: CalendarRules,
) -> Resolution | None:
    """:func:`resolve` for raw form values, recomputed on every field change."""
    start = parse_date(event_start)
    end = parse_date(event_end)
    if start is not None and end is not None and end < start:
        # A new start date invalidates the previously chosen end date
        end = None
    return resolve((unit_id or "").strip() or None, start, end, index=index, calendar=calendar)
