from __future__ import annotations

import re
from datetime import date, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def parse_utc_offset(raw: str) -> timezone:
    """Parse ``+06:30`` style offsets into a fixed-offset timezone."""
    match = _OFFSET_RE.match(raw.strip())
    if not match:
        raise ValueError(f"Invalid UTC offset: {raw!r}")
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta, name=f"UTC{sign}{hours}:{minutes}")


class Settings(BaseSettings):
    """Service configuration.

    Values come from environment variables (``TABLE_NAME``, ``UNIT_IDS`` ...)
    and an optional .env file. List settings take comma-separated values and
    ``ADMIN_EMAILS`` takes ``INBOX=address`` pairs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    # Storage and events
    table_name: str = "machine-bookings"
    event_bus_name: str = "default"

    # Calendar
    utc_offset: str = "+06:30"
    holiday_dates: Annotated[list[date], NoDecode] = Field(default_factory=list)

    # Catalog and admin inboxes
    unit_ids: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["SCM-001-YGN", "SCM-002-MDY"])
    admin_emails: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=lambda: {
            "YGN-Admin": "admin-ygn@example.com",
            "MDY-Admin": "admin-mdy@example.com",
        }
    )
    review_base_url: str = ""

    # Google Sheets mirror (optional)
    sheets_credentials_file: str = ""
    sheets_spreadsheet_id: str = ""
    sheets_worksheet: str = "Requests"

    @field_validator("unit_ids", "holiday_dates", mode="before")
    @classmethod
    def _comma_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("admin_emails", mode="before")
    @classmethod
    def _inbox_pairs(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        pairs: dict[str, str] = {}
        for part in value.split(","):
            if not part.strip():
                continue
            inbox, sep, address = part.partition("=")
            if not sep or not inbox.strip() or not address.strip():
                raise ValueError(f"Expected INBOX=address, got {part.strip()!r}")
            pairs[inbox.strip()] = address.strip()
        return pairs

    @field_validator("utc_offset")
    @classmethod
    def _valid_offset(cls, value: str) -> str:
        parse_utc_offset(value)
        return value

    @property
    def tz(self) -> timezone:
        return parse_utc_offset(self.utc_offset)

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.sheets_credentials_file and self.sheets_spreadsheet_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()
