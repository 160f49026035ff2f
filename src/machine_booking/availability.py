from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo

from .calendar_rules import daterange
from .models import ACTIVE_STATUSES, Reservation


@dataclass(frozen=True)
class _Span:
    pickup: date
    return_: date
    reservation: Reservation

    def covers(self, day: date) -> bool:
        return self.pickup <= day <= self.return_


def to_local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar date of ``instant`` in ``tz``; naive instants are taken as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(tz).date()


class AvailabilityIndex:
    """Point-in-time, read-only view of which units are held on which days.

    Pickup and return days count as occupied. Rejected reservations are
    ignored.
    """

    def __init__(self, reservations: Iterable[Reservation], tz: tzinfo = UTC) -> None:
        self.tz = tz
        spans: dict[str, list[_Span]] = defaultdict(list)
        for r in reservations:
            if r.status not in ACTIVE_STATUSES:
                continue
            pickup = to_local_date(r.pickup_at, tz)
            return_ = to_local_date(r.return_at, tz)
            if return_ < pickup:
                pickup, return_ = return_, pickup
            spans[r.unit_id].append(_Span(pickup, return_, r))
        for unit_spans in spans.values():
            unit_spans.sort(key=lambda s: (s.pickup, s.return_))
        self._spans = dict(spans)

    def __len__(self) -> int:
        return sum(len(s) for s in self._spans.values())

    def booking_for(self, unit_id: str, day: date) -> Reservation | None:
        for span in self._spans.get(unit_id, ()):
            if span.pickup > day:
                break
            if span.covers(day):
                return span.reservation
        return None

    def is_occupied(self, unit_id: str, day: date) -> bool:
        return self.booking_for(unit_id, day) is not None

    def booked_dates(self, unit_id: str, start: date, end: date) -> Iterator[date]:
        return (d for d in daterange(start, end) if self.is_occupied(unit_id, d))

    def first_conflict(self, unit_id: str, start: date, end: date) -> date | None:
        return next(self.booked_dates(unit_id, start, end), None)
