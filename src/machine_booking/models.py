from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

TIME_SLOTS = ("09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00")

TimeSlot = Literal["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00"]
AdminInbox = Literal["YGN-Admin", "MDY-Admin"]


class ReservationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Statuses that hold a unit; rejected requests never occupy it
ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


class Reservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_id: str
    pickup_at: datetime
    return_at: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    request_id: str | None = None


class EventWindow(BaseModel):
    unit_id: str = Field(..., min_length=1)
    event_start: date
    event_end: date


class ResolvedBookingWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    pickup_date: date
    return_date: date


class ConflictReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_conflict: bool = False
    conflicting_date: date | None = None
    message: str = ""


class Resolution(BaseModel):
    """Outcome of resolving an event window.

    ``pickup_date`` is reported as soon as the start date is known, even
    while ``event_end`` is still missing. ``window`` is only set when the
    whole pickup-to-return span is free.
    """

    model_config = ConfigDict(frozen=True)

    unit_id: str
    pickup_date: date
    window: ResolvedBookingWindow | None = None
    conflict: ConflictReport = Field(default_factory=ConflictReport)


class ResolveQuery(BaseModel):
    # Blank strings are accepted; the UI posts them before a date is picked
    unit_id: str = ""
    event_start: str = ""
    event_end: str = ""


class OffDay(BaseModel):
    day: date
    reason: str


class BookedDate(BaseModel):
    day: date
    pickup_date: date
    return_date: date
    request_id: str | None = None


class BookingRequestCreate(BaseModel):
    employee_name: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=6, max_length=32)
    email: EmailStr

    event_name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    expected_users: int = Field(..., ge=1)

    unit_id: str = Field(..., min_length=1)
    event_start: date
    event_end: date
    pickup_time: TimeSlot = "09:00"
    return_time: TimeSlot = "09:00"

    inform_to: AdminInbox
    used_before: bool = False
    need_training: bool = True
    special_requirements: str | None = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> BookingRequestCreate:
        if self.event_end < self.event_start:
            raise ValueError("event_end must be on or after event_start")
        return self

    def event_window(self) -> EventWindow:
        return EventWindow(unit_id=self.unit_id, event_start=self.event_start, event_end=self.event_end)


class BookingDecision(BaseModel):
    status: ReservationStatus
    approved_by: str = ""
    admin_notes: str = ""
    condition_pickup: str | None = None
    condition_return: str | None = None
    return_notes: str | None = None
    actual_return_at: datetime | None = None


class BookingRequest(BaseModel):
    request_id: str
    employee_name: str
    department: str
    position: str
    phone_number: str
    email: str

    event_name: str
    location: str
    expected_users: int

    unit_id: str
    event_start: date
    event_end: date
    pickup_at: datetime
    return_at: datetime

    inform_to: str
    used_before: bool = False
    need_training: bool = True
    special_requirements: str | None = None

    status: ReservationStatus = ReservationStatus.PENDING
    approved_by: str = ""
    admin_notes: str = ""
    condition_pickup: str | None = None
    condition_return: str | None = None
    return_notes: str | None = None
    actual_return_at: datetime | None = None
    created_at: datetime | None = None

    def as_reservation(self) -> Reservation:
        return Reservation(
            unit_id=self.unit_id,
            pickup_at=self.pickup_at,
            return_at=self.return_at,
            status=self.status,
            request_id=self.request_id,
        )
