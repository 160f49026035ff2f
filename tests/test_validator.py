from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

import pytest
from pydantic import ValidationError

from machine_booking.availability import AvailabilityIndex
from machine_booking.calendar_rules import CalendarRules
from machine_booking.models import (
    BookingRequestCreate,
    ConflictReport,
    Reservation,
    ReservationStatus,
    ResolvedBookingWindow,
)
from machine_booking.validator import (
    BookingConflictError,
    UnknownUnitError,
    can_submit,
    validate_submission,
)

YANGON = timezone(timedelta(hours=6, minutes=30))
UNITS = ("SCM-001-YGN", "SCM-002-MDY")


def payload_factory(**overrides: Any) -> BookingRequestCreate:
    base: dict[str, Any] = dict(
        employee_name="Aye Aye",
        department="Marketing",
        position="Executive",
        phone_number="09123456789",
        email="aye@example.com",
        event_name="Skin Check Roadshow",
        location="Junction City",
        expected_users=120,
        unit_id="SCM-001-YGN",
        event_start=date(2025, 6, 20),
        event_end=date(2025, 6, 21),
        inform_to="YGN-Admin",
    )
    base.update(overrides)
    return BookingRequestCreate(**base)


def booked(unit: str, pickup: date, return_: date, status: ReservationStatus = ReservationStatus.PENDING) -> Reservation:
    return Reservation(
        unit_id=unit,
        pickup_at=datetime(pickup.year, pickup.month, pickup.day, 9, tzinfo=YANGON),
        return_at=datetime(return_.year, return_.month, return_.day, 9, tzinfo=YANGON),
        status=status,
    )


def test_can_submit_requires_window_and_no_conflict() -> None:
    window = ResolvedBookingWindow(pickup_date=date(2025, 6, 19), return_date=date(2025, 6, 23))
    assert can_submit(window, ConflictReport())
    assert can_submit(window, None)
    assert not can_submit(None, ConflictReport())
    assert not can_submit(window, ConflictReport(has_conflict=True, conflicting_date=date(2025, 6, 19)))


def test_validate_submission_returns_window() -> None:
    index = AvailabilityIndex([], YANGON)
    window = validate_submission(payload_factory(), index=index, calendar=CalendarRules(), units=UNITS)
    assert window == ResolvedBookingWindow(pickup_date=date(2025, 6, 19), return_date=date(2025, 6, 23))


def test_validate_submission_catches_booking_made_after_resolution() -> None:
    # The form resolved against an empty snapshot; a fresh one shows a new booking
    fresh = AvailabilityIndex([booked("SCM-001-YGN", date(2025, 6, 23), date(2025, 6, 25))], YANGON)
    with pytest.raises(BookingConflictError) as excinfo:
        validate_submission(payload_factory(), index=fresh, calendar=CalendarRules(), units=UNITS)
    assert excinfo.value.report.conflicting_date == date(2025, 6, 23)
    assert str(excinfo.value) == excinfo.value.report.message


def test_validate_submission_ignores_rejected_bookings() -> None:
    fresh = AvailabilityIndex(
        [booked("SCM-001-YGN", date(2025, 6, 19), date(2025, 6, 23), ReservationStatus.REJECTED)],
        YANGON,
    )
    validate_submission(payload_factory(), index=fresh, calendar=CalendarRules(), units=UNITS)


def test_validate_submission_unknown_unit() -> None:
    with pytest.raises(UnknownUnitError):
        validate_submission(
            payload_factory(unit_id="SCM-999"),
            index=AvailabilityIndex([], YANGON),
            calendar=CalendarRules(),
            units=UNITS,
        )


def test_payload_rejects_end_before_start() -> None:
    with pytest.raises(ValidationError):
        payload_factory(event_start=date(2025, 6, 21), event_end=date(2025, 6, 20))


@pytest.mark.parametrize(
    "overrides",
    [
        {"expected_users": 0},
        {"email": "not-an-email"},
        {"pickup_time": "08:00"},
        {"inform_to": "NPT-Admin"},
        {"employee_name": ""},
    ],
)
def test_payload_field_constraints(overrides: dict[str, Any]) -> None:
    with pytest.raises(ValidationError):
        payload_factory(**overrides)
