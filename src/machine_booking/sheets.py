from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from aws_lambda_powertools import Logger

from .config import Settings
from .models import BookingRequest

logger = Logger()

HEADER = [
    "request_id",
    "created_at",
    "employee_name",
    "department",
    "position",
    "phone_number",
    "email",
    "event_name",
    "location",
    "expected_users",
    "unit_id",
    "event_start",
    "event_end",
    "pickup_at",
    "return_at",
    "inform_to",
    "used_before",
    "need_training",
    "special_requirements",
    "status",
    "approved_by",
    "admin_notes",
    "condition_pickup",
    "condition_return",
    "return_notes",
    "actual_return_at",
]

_DT_FORMAT = "%Y-%m-%d %H:%M"


def _get_gspread_client(service_account_json_path: str):
    import gspread
    from google.oauth2.service_account import Credentials

    scopes = ["https://www.googleapis.com/auth/spreadsheets"]
    creds = Credentials.from_service_account_file(service_account_json_path, scopes=scopes)
    return gspread.authorize(creds)


def _open_worksheet(settings: Settings):
    import gspread

    client = _get_gspread_client(settings.sheets_credentials_file)
    sh = client.open_by_key(settings.sheets_spreadsheet_id)
    try:
        return sh.worksheet(settings.sheets_worksheet)
    except gspread.exceptions.WorksheetNotFound:
        ws = sh.add_worksheet(title=settings.sheets_worksheet, rows="1000", cols=str(len(HEADER)))
        ws.append_row(HEADER, value_input_option="RAW")
        return ws


def to_row(request: BookingRequest, settings: Settings) -> list[Any]:
    tz = settings.tz

    def fmt(value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, datetime):
            return value.astimezone(tz).strftime(_DT_FORMAT)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, Enum):
            return value.value
        return value

    return [fmt(getattr(request, column)) for column in HEADER]


def mirror_request(request: BookingRequest, settings: Settings, worksheet: Any = None) -> bool:
    """Write ``request`` into its sheet row, appending one if it is new.

    Returns ``False`` without touching anything when no spreadsheet is
    configured.
    """
    if worksheet is None:
        if not settings.sheets_enabled:
            logger.info("Sheets mirror not configured", extra={"request_id": request.request_id})
            return False
        worksheet = _open_worksheet(settings)

    row = to_row(request, settings)
    ids = worksheet.col_values(1)
    if request.request_id in ids:
        index = ids.index(request.request_id) + 1
        worksheet.update(range_name=f"A{index}", values=[row])
    else:
        worksheet.append_row(row, value_input_option="RAW")
    logger.info("Mirrored request to sheet", extra={"request_id": request.request_id})
    return True
