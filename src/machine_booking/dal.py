from __future__ import annotations

import secrets
from datetime import UTC, date, datetime, tzinfo
from typing import TYPE_CHECKING, Any, TypedDict, cast

import boto3
from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

if TYPE_CHECKING:
    # Only for static type checking; not imported at runtime
    from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource
    from mypy_boto3_dynamodb.service_resource import Table as DynamoDBTable
else:
    # Fallbacks to satisfy annotations at runtime
    DynamoDBServiceResource = Any  # type: ignore[assignment]
    DynamoDBTable = Any  # type: ignore[assignment]

from .config import get_settings
from .models import (
    ACTIVE_STATUSES,
    BookingDecision,
    BookingRequest,
    BookingRequestCreate,
    Reservation,
    ReservationStatus,
    ResolvedBookingWindow,
)

logger = Logger()

_dynamodb: DynamoDBServiceResource = boto3.resource("dynamodb")
_table: DynamoDBTable = _dynamodb.Table(get_settings().table_name)

REQUEST_NOT_FOUND = "Booking request not found"
_ID_ATTEMPTS = 5


class RequestItem(TypedDict, total=False):
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
    event_start: str
    event_end: str
    pickup_at: str
    return_at: str
    inform_to: str
    used_before: bool
    need_training: bool
    special_requirements: str
    status: str
    approved_by: str
    admin_notes: str
    condition_pickup: str
    condition_return: str
    return_notes: str
    actual_return_at: str
    created_at: str


def _dt_to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat()


def _iso_to_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def new_request_id() -> str:
    return f"REQ-{secrets.randbelow(10**8):08d}"


def _scan(**kwargs: Any) -> list[RequestItem]:
    items: list[RequestItem] = []
    while True:
        resp = cast(dict[str, Any], _table.scan(**kwargs))
        items.extend(cast(RequestItem, it) for it in resp.get("Items", []) if isinstance(it, dict))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def list_active_reservations() -> list[Reservation]:
    """Snapshot of every Pending or Approved booking, for availability checks."""
    raw = _scan(
        FilterExpression=Attr("status").is_in([s.value for s in ACTIVE_STATUSES]),
        ProjectionExpression="request_id, unit_id, pickup_at, return_at, #s",
        ExpressionAttributeNames={"#s": "status"},
    )
    reservations: list[Reservation] = []
    for it in raw:
        reservation = Reservation(
            unit_id=it["unit_id"],
            pickup_at=_iso_to_dt(it["pickup_at"]),
            return_at=_iso_to_dt(it["return_at"]),
            status=ReservationStatus(it.get("status", ReservationStatus.PENDING.value)),
            request_id=it.get("request_id"),
        )
        if reservation.return_at < reservation.pickup_at:
            logger.warning(
                "Stored reservation returns before pickup",
                extra={"request_id": reservation.request_id, "unit_id": reservation.unit_id},
            )
        reservations.append(reservation)
    logger.debug("Loaded reservation snapshot", extra={"count": len(reservations)})
    return reservations


def list_requests(status: ReservationStatus | None = None) -> list[BookingRequest]:
    kwargs: dict[str, Any] = {}
    if status is not None:
        kwargs["FilterExpression"] = Attr("status").eq(status.value)
    requests = [_to_model(it) for it in _scan(**kwargs)]
    requests.sort(key=lambda r: r.created_at or datetime.min.replace(tzinfo=UTC), reverse=True)
    return requests


def get_request(request_id: str) -> BookingRequest:
    resp = cast(dict[str, Any], _table.get_item(Key={"request_id": request_id}))
    item = resp.get("Item")
    if not isinstance(item, dict):
        raise KeyError(REQUEST_NOT_FOUND)
    return _to_model(cast(RequestItem, item))


def create_request(
    payload: BookingRequestCreate,
    window: ResolvedBookingWindow,
    tz: tzinfo,
) -> BookingRequest:
    pickup_at = _at(window.pickup_date, payload.pickup_time, tz)
    return_at = _at(window.return_date, payload.return_time, tz)
    item: RequestItem = {
        "employee_name": payload.employee_name,
        "department": payload.department,
        "position": payload.position,
        "phone_number": payload.phone_number,
        "email": str(payload.email),
        "event_name": payload.event_name,
        "location": payload.location,
        "expected_users": payload.expected_users,
        "unit_id": payload.unit_id,
        "event_start": payload.event_start.isoformat(),
        "event_end": payload.event_end.isoformat(),
        "pickup_at": _dt_to_iso(pickup_at),
        "return_at": _dt_to_iso(return_at),
        "inform_to": payload.inform_to,
        "used_before": payload.used_before,
        "need_training": payload.need_training,
        "status": ReservationStatus.PENDING.value,
        "created_at": _dt_to_iso(datetime.now(UTC)),
    }
    if payload.special_requirements:
        item["special_requirements"] = payload.special_requirements

    for _ in range(_ID_ATTEMPTS):
        item["request_id"] = new_request_id()
        try:
            _table.put_item(  # type: ignore
                Item=item,
                ConditionExpression="attribute_not_exists(request_id)",
            )
        except ClientError as exc:
            if not _is_condition_failure(exc):
                raise
            logger.warning("Request id collision", extra={"request_id": item["request_id"]})
            continue
        logger.info(
            "Created booking request",
            extra={"request_id": item["request_id"], "unit_id": payload.unit_id},
        )
        return _to_model(item)
    raise RuntimeError("Could not allocate a unique request id")


def apply_decision(request_id: str, decision: BookingDecision) -> BookingRequest:
    set_parts: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}

    def set_attr(name: str, value: Any) -> None:
        names[f"#_{name}"] = name
        values[f":{name}"] = value
        set_parts.append(f"#_{name} = :{name}")

    set_attr("status", decision.status.value)
    set_attr("approved_by", decision.approved_by)
    set_attr("admin_notes", decision.admin_notes)
    for name in ("condition_pickup", "condition_return", "return_notes"):
        value = getattr(decision, name)
        if value is not None:
            set_attr(name, value)
    if decision.actual_return_at is not None:
        set_attr("actual_return_at", _dt_to_iso(decision.actual_return_at))

    try:
        resp = cast(
            dict[str, Any],
            _table.update_item(
                Key={"request_id": request_id},
                UpdateExpression="SET " + ", ".join(set_parts),
                ConditionExpression="attribute_exists(request_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            ),
        )
    except ClientError as exc:
        if _is_condition_failure(exc):
            raise KeyError(REQUEST_NOT_FOUND) from exc
        raise
    logger.info("Recorded decision", extra={"request_id": request_id, "status": decision.status.value})
    attrs = cast(dict[str, Any], resp.get("Attributes") or {})
    return _to_model(cast(RequestItem, attrs))


def _at(day: date, slot: str, tz: tzinfo) -> datetime:
    hour, minute = (int(p) for p in slot.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)


def _to_model(item: RequestItem) -> BookingRequest:
    actual_return = item.get("actual_return_at")
    created = item.get("created_at")
    return BookingRequest(
        request_id=item["request_id"],
        employee_name=item["employee_name"],
        department=item["department"],
        position=item["position"],
        phone_number=item["phone_number"],
        email=item["email"],
        event_name=item["event_name"],
        location=item["location"],
        expected_users=int(item["expected_users"]),
        unit_id=item["unit_id"],
        event_start=date.fromisoformat(item["event_start"]),
        event_end=date.fromisoformat(item["event_end"]),
        pickup_at=_iso_to_dt(item["pickup_at"]),
        return_at=_iso_to_dt(item["return_at"]),
        inform_to=item["inform_to"],
        used_before=bool(item.get("used_before", False)),
        need_training=bool(item.get("need_training", True)),
        special_requirements=item.get("special_requirements"),
        status=ReservationStatus(item.get("status", ReservationStatus.PENDING.value)),
        approved_by=item.get("approved_by", ""),
        admin_notes=item.get("admin_notes", ""),
        condition_pickup=item.get("condition_pickup"),
        condition_return=item.get("condition_return"),
        return_notes=item.get("return_notes"),
        actual_return_at=_iso_to_dt(actual_return) if actual_return else None,
        created_at=_iso_to_dt(created) if created else None,
    )
