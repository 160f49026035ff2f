from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

# Myanmar official holidays, recurring every year on the same month/day
MYANMAR_HOLIDAYS: tuple[tuple[int, int], ...] = (
    (1, 1),  # New Year's Day
    (1, 4),  # Independence Day
    (2, 12),  # Union Day
    (2, 13),  # Union Day holiday
    (3, 27),  # Armed Forces Day
    (4, 13),  # Thingyan
    (4, 14),
    (4, 15),
    (4, 16),
    (4, 17),  # Myanmar New Year
    (5, 1),  # May Day
    (7, 19),  # Martyrs' Day
    (10, 14),  # Thadingyut
    (11, 3),  # Tazaungdaing
    (11, 8),  # National Day
    (11, 27),  # Tazaungmon full moon
    (12, 25),  # Christmas
    (12, 30),  # Year end holiday
)

# date.weekday() numbering: Monday=0 ... Sunday=6
_SATURDAY = 5
_SUNDAY = 6
_ONE_DAY = timedelta(days=1)


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class HolidayTable:
    """Off-days other than weekends.

    ``recurring`` holds ``(month, day)`` pairs that apply every year;
    ``dates`` holds one-off holidays for a specific year.
    """

    recurring: frozenset[tuple[int, int]] = field(default_factory=frozenset)
    dates: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def build(cls, recurring: Iterable[tuple[int, int]] = (), dates: Iterable[date] = ()) -> HolidayTable:
        pairs = frozenset((int(m), int(d)) for m, d in recurring)
        for month, day in pairs:
            # 2000 is a leap year, so Feb 29 is accepted here
            date(2000, month, day)
        return cls(recurring=pairs, dates=frozenset(dates))

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, date):
            return False
        return value in self.dates or (value.month, value.day) in self.recurring


def default_holiday_table(extra_dates: Iterable[date] = ()) -> HolidayTable:
    return HolidayTable.build(MYANMAR_HOLIDAYS, extra_dates)


class CalendarRules:
    def __init__(self, holidays: HolidayTable | None = None) -> None:
        self.holidays = holidays if holidays is not None else default_holiday_table()
        all_month_days = {(d.month, d.day) for d in daterange(date(2000, 1, 1), date(2000, 12, 31))}
        if all_month_days <= self.holidays.recurring:
            raise ValueError("holiday table leaves no working days")

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in (_SATURDAY, _SUNDAY)

    def is_fixed_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_off_day(self, day: date) -> bool:
        return self.is_weekend(day) or self.is_fixed_holiday(day)

    def off_day_reason(self, day: date) -> str | None:
        weekday = day.weekday()
        if weekday == _SUNDAY:
            return "Sunday"
        if weekday == _SATURDAY:
            return "Saturday"
        if self.is_fixed_holiday(day):
            return "public holiday"
        return None

    def nearest_working_day(self, day: date, direction: Direction = Direction.FORWARD) -> date:
        """Return ``day`` if it is a working day, else the closest one in ``direction``."""
        step = _ONE_DAY if Direction(direction) is Direction.FORWARD else -_ONE_DAY
        current = day
        while self.is_off_day(current):
            current += step
        return current

    def off_days(self, start: date, end: date) -> Iterator[tuple[date, str]]:
        for day in daterange(start, end):
            reason = self.off_day_reason(day)
            if reason is not None:
                yield day, reason


def daterange(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive, ascending."""
    cur = start
    while cur <= end:
        yield cur
        cur = cur + _ONE_DAY
