from __future__ import annotations

import json
from typing import Any

import boto3
from aws_lambda_powertools import Logger

from .config import Settings, get_settings
from .models import BookingRequest

logger = Logger()

_events = boto3.client("events")

SOURCE = "machine.booking"


def _put(detail_type: str, detail: dict[str, Any], settings: Settings) -> None:
    logger.info("Emitting booking event", extra={"detail_type": detail_type, "request_id": detail["request_id"]})
    _events.put_events(
        Entries=[
            {
                "Source": SOURCE,
                "DetailType": detail_type,
                "Detail": json.dumps(detail, default=str),
                "EventBusName": settings.event_bus_name,
            }
        ]
    )


def _summary(request: BookingRequest) -> dict[str, Any]:
    return {
        "version": "1.0",
        "request_id": request.request_id,
        "employee_name": request.employee_name,
        "requester_email": request.email,
        "event_name": request.event_name,
        "location": request.location,
        "unit_id": request.unit_id,
        "event_start": request.event_start.isoformat(),
        "event_end": request.event_end.isoformat(),
        "pickup_at": request.pickup_at.isoformat(),
        "return_at": request.return_at.isoformat(),
    }


def publish_booking_requested(request: BookingRequest, settings: Settings | None = None) -> None:
    """Tell the mailer that a request needs admin review and a requester receipt."""
    settings = settings or get_settings()
    detail = _summary(request)
    detail.update(
        {
            "type": "BookingRequested",
            "admin_email": settings.admin_emails.get(request.inform_to, ""),
            "department": request.department,
            "position": request.position,
            "phone_number": request.phone_number,
            "expected_users": request.expected_users,
            "used_before": request.used_before,
            "need_training": request.need_training,
            "special_requirements": request.special_requirements or "",
        }
    )
    if settings.review_base_url:
        detail["review_url"] = f"{settings.review_base_url.rstrip('/')}/admin/review/{request.request_id}"
    _put("BookingRequested", detail, settings)


def publish_booking_decided(request: BookingRequest, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    detail = _summary(request)
    detail.update(
        {
            "type": "BookingDecided",
            "status": request.status.value,
            "approved_by": request.approved_by,
            "admin_notes": request.admin_notes,
        }
    )
    _put("BookingDecided", detail, settings)
