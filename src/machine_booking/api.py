from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.metrics import Metrics, MetricUnit
from fastapi import FastAPI, HTTPException, Query

from . import dal, notifications, sheets
from .availability import AvailabilityIndex, to_local_date
from .calendar_rules import CalendarRules, daterange, default_holiday_table
from .config import get_settings
from .models import (
    TIME_SLOTS,
    BookedDate,
    BookingDecision,
    BookingRequest,
    BookingRequestCreate,
    OffDay,
    ReservationStatus,
    Resolution,
    ResolveQuery,
)
from .resolver import BookingError, resolve_form
from .validator import BookingConflictError, validate_submission

logger = Logger()
tracer = Tracer()
metrics = Metrics(namespace="MachineBooking")

app = FastAPI(title="Machine Booking API", version="0.1.0")

MAX_RANGE_DAYS = 366


@lru_cache
def get_calendar() -> CalendarRules:
    return CalendarRules(default_holiday_table(get_settings().holiday_dates))


def load_index() -> AvailabilityIndex:
    # Fresh snapshot per call; never reused across requests
    return AvailabilityIndex(dal.list_active_reservations(), get_settings().tz)


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise HTTPException(status_code=422, detail="end must be on or after start")
    if end - start > timedelta(days=MAX_RANGE_DAYS):
        raise HTTPException(status_code=422, detail=f"Range is limited to {MAX_RANGE_DAYS} days")


def _mirror(request: BookingRequest) -> None:
    try:
        sheets.mirror_request(request, get_settings())
    except Exception:
        logger.exception("Sheet mirror failed", extra={"request_id": request.request_id})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/units", response_model=list[str])
def list_units() -> list[str]:
    return get_settings().unit_ids


@app.get("/time-slots", response_model=list[str])
def list_time_slots() -> list[str]:
    return list(TIME_SLOTS)


@tracer.capture_method
@app.get("/calendar/off-days", response_model=list[OffDay])
def off_days(start: date, end: date) -> list[OffDay]:
    _check_range(start, end)
    return [OffDay(day=d, reason=reason) for d, reason in get_calendar().off_days(start, end)]


@tracer.capture_method
@app.get("/units/{unit_id}/booked-dates", response_model=list[BookedDate])
def booked_dates(unit_id: str, start: date, end: date) -> list[BookedDate]:
    if unit_id not in get_settings().unit_ids:
        raise HTTPException(status_code=404, detail="Unit not found")
    _check_range(start, end)
    index = load_index()
    result: list[BookedDate] = []
    for d in daterange(start, end):
        booking = index.booking_for(unit_id, d)
        if booking is None:
            continue
        result.append(
            BookedDate(
                day=d,
                pickup_date=to_local_date(booking.pickup_at, index.tz),
                return_date=to_local_date(booking.return_at, index.tz),
                request_id=booking.request_id,
            )
        )
    return result


@tracer.capture_method
@app.post("/resolve", response_model=Resolution | None)
def resolve_window(query: ResolveQuery) -> Resolution | None:
    metrics.add_metric(name="ResolveWindow", value=1, unit=MetricUnit.Count)
    return resolve_form(
        query.unit_id,
        query.event_start,
        query.event_end,
        index=load_index(),
        calendar=get_calendar(),
    )


@tracer.capture_method
@app.post("/requests", response_model=BookingRequest, status_code=201)
def submit_request(payload: BookingRequestCreate) -> BookingRequest:
    settings = get_settings()
    try:
        window = validate_submission(
            payload,
            index=load_index(),
            calendar=get_calendar(),
            units=settings.unit_ids,
        )
    except BookingConflictError as exc:
        metrics.add_metric(name="BookingConflict", value=1, unit=MetricUnit.Count)
        logger.info("Rejected conflicting request", extra={"unit_id": payload.unit_id})
        raise HTTPException(status_code=409, detail=exc.report.message) from exc
    except BookingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    request = dal.create_request(payload, window, settings.tz)
    metrics.add_metric(name="BookingSubmitted", value=1, unit=MetricUnit.Count)

    # The booking is stored; downstream failures are logged only
    try:
        notifications.publish_booking_requested(request, settings)
    except Exception:
        logger.exception("Could not publish BookingRequested", extra={"request_id": request.request_id})
    _mirror(request)
    return request


@tracer.capture_method
@app.get("/requests", response_model=list[BookingRequest])
def list_requests(status: ReservationStatus | None = Query(default=None)) -> list[BookingRequest]:
    return dal.list_requests(status)


@tracer.capture_method
@app.get("/requests/{request_id}", response_model=BookingRequest)
def get_request(request_id: str) -> BookingRequest:
    try:
        return dal.get_request(request_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=dal.REQUEST_NOT_FOUND) from exc


@tracer.capture_method
@app.post("/requests/{request_id}/decision", response_model=BookingRequest)
def decide_request(request_id: str, decision: BookingDecision) -> BookingRequest:
    settings = get_settings()
    try:
        request = dal.apply_decision(request_id, decision)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=dal.REQUEST_NOT_FOUND) from exc
    metrics.add_metric(name="BookingDecided", value=1, unit=MetricUnit.Count)

    try:
        notifications.publish_booking_decided(request, settings)
    except Exception:
        logger.exception("Could not publish BookingDecided", extra={"request_id": request.request_id})
    _mirror(request)
    return request
