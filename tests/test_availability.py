from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from machine_booking.availability import AvailabilityIndex, to_local_date
from machine_booking.models import Reservation, ReservationStatus

YANGON = timezone(timedelta(hours=6, minutes=30))


def reservation(unit: str, pickup: date, return_: date, status: ReservationStatus = ReservationStatus.APPROVED) -> Reservation:
    return Reservation(
        unit_id=unit,
        pickup_at=datetime(pickup.year, pickup.month, pickup.day, 9, 0, tzinfo=YANGON),
        return_at=datetime(return_.year, return_.month, return_.day, 16, 0, tzinfo=YANGON),
        status=status,
        request_id=f"REQ-{unit}-{pickup.isoformat()}",
    )


def test_boundary_days_are_occupied() -> None:
    index = AvailabilityIndex([reservation("U1", date(2025, 6, 10), date(2025, 6, 12))], YANGON)
    assert not index.is_occupied("U1", date(2025, 6, 9))
    assert index.is_occupied("U1", date(2025, 6, 10))
    assert index.is_occupied("U1", date(2025, 6, 11))
    assert index.is_occupied("U1", date(2025, 6, 12))
    assert not index.is_occupied("U1", date(2025, 6, 13))


def test_occupancy_is_per_unit() -> None:
    index = AvailabilityIndex([reservation("U1", date(2025, 6, 10), date(2025, 6, 12))], YANGON)
    assert not index.is_occupied("U2", date(2025, 6, 11))
    assert index.first_conflict("U2", date(2025, 6, 1), date(2025, 6, 30)) is None


def test_rejected_reservations_never_occupy() -> None:
    index = AvailabilityIndex(
        [reservation("U1", date(2025, 6, 10), date(2025, 6, 12), ReservationStatus.REJECTED)],
        YANGON,
    )
    assert len(index) == 0
    assert not index.is_occupied("U1", date(2025, 6, 11))


def test_pending_reservations_occupy() -> None:
    index = AvailabilityIndex(
        [reservation("U1", date(2025, 6, 10), date(2025, 6, 12), ReservationStatus.PENDING)],
        YANGON,
    )
    assert index.is_occupied("U1", date(2025, 6, 10))


def test_first_conflict_returns_earliest_date() -> None:
    index = AvailabilityIndex(
        [
            reservation("U1", date(2025, 6, 20), date(2025, 6, 23)),
            reservation("U1", date(2025, 6, 10), date(2025, 6, 12)),
        ],
        YANGON,
    )
    assert index.first_conflict("U1", date(2025, 6, 5), date(2025, 6, 30)) == date(2025, 6, 10)
    assert index.first_conflict("U1", date(2025, 6, 13), date(2025, 6, 30)) == date(2025, 6, 20)
    # Repeated calls agree
    assert index.first_conflict("U1", date(2025, 6, 13), date(2025, 6, 30)) == date(2025, 6, 20)


def test_first_conflict_touching_boundary() -> None:
    index = AvailabilityIndex([reservation("U1", date(2025, 6, 10), date(2025, 6, 12))], YANGON)
    assert index.first_conflict("U1", date(2025, 6, 12), date(2025, 6, 16)) == date(2025, 6, 12)
    assert index.first_conflict("U1", date(2025, 6, 5), date(2025, 6, 10)) == date(2025, 6, 10)


def test_free_window_between_reservations() -> None:
    index = AvailabilityIndex(
        [
            reservation("U1", date(2025, 6, 2), date(2025, 6, 4)),
            reservation("U1", date(2025, 6, 16), date(2025, 6, 18)),
        ],
        YANGON,
    )
    assert index.first_conflict("U1", date(2025, 6, 5), date(2025, 6, 15)) is None
    assert list(index.booked_dates("U1", date(2025, 6, 3), date(2025, 6, 16))) == [
        date(2025, 6, 3),
        date(2025, 6, 4),
        date(2025, 6, 16),
    ]


def test_booking_for_returns_occupying_reservation() -> None:
    r = reservation("U1", date(2025, 6, 10), date(2025, 6, 12))
    index = AvailabilityIndex([r], YANGON)
    assert index.booking_for("U1", date(2025, 6, 11)) == r
    assert index.booking_for("U1", date(2025, 6, 13)) is None


def test_instants_normalized_to_local_calendar_date() -> None:
    # 20:00 UTC on Jun 9 is already Jun 10 in Yangon
    instant = datetime(2025, 6, 9, 20, 0, tzinfo=UTC)
    assert to_local_date(instant, YANGON) == date(2025, 6, 10)
    assert to_local_date(instant, UTC) == date(2025, 6, 9)
    assert to_local_date(datetime(2025, 6, 9, 20, 0), YANGON) == date(2025, 6, 10)

    r = Reservation(unit_id="U1", pickup_at=instant, return_at=instant + timedelta(days=1))
    index = AvailabilityIndex([r], YANGON)
    assert not index.is_occupied("U1", date(2025, 6, 9))
    assert index.is_occupied("U1", date(2025, 6, 11))
