from __future__ import annotations

from collections.abc import Collection

from .availability import AvailabilityIndex
from .calendar_rules import CalendarRules
from .models import BookingRequestCreate, ConflictReport, ResolvedBookingWindow
from .resolver import BookingError, resolve_window


class IncompleteBookingError(BookingError):
    pass


class UnknownUnitError(BookingError):
    def __init__(self, unit_id: str) -> None:
        super().__init__(f"Unknown machine unit: {unit_id}")
        self.unit_id = unit_id


class BookingConflictError(BookingError):
    def __init__(self, report: ConflictReport) -> None:
        super().__init__(report.message)
        self.report = report


def can_submit(window: ResolvedBookingWindow | None, conflict: ConflictReport | None) -> bool:
    return window is not None and not (conflict is not None and conflict.has_conflict)


def validate_submission(
    payload: BookingRequestCreate,
    *,
    index: AvailabilityIndex,
    calendar: CalendarRules,
    units: Collection[str],
) -> ResolvedBookingWindow:
    """Re-resolve ``payload`` against ``index`` right before it is stored.

    ``index`` should be built from a snapshot fetched for this submission:
    another requester may have booked the unit since the form last resolved
    its dates.
    """
    if payload.unit_id not in units:
        raise UnknownUnitError(payload.unit_id)

    resolution = resolve_window(payload.event_window(), index=index, calendar=calendar)
    if resolution.conflict.has_conflict:
        raise BookingConflictError(resolution.conflict)
    if resolution.window is None or not can_submit(resolution.window, resolution.conflict):
        raise IncompleteBookingError("Pickup and return dates could not be resolved")
    return resolution.window
