from __future__ import annotations

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from machine_booking.config import Settings, parse_utc_offset


def test_defaults() -> None:
    settings = Settings()
    assert settings.unit_ids == ["SCM-001-YGN", "SCM-002-MDY"]
    assert settings.tz.utcoffset(None) == timedelta(hours=6, minutes=30)
    assert not settings.sheets_enabled


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLE_NAME", "bookings-test")
    monkeypatch.setenv("UNIT_IDS", "SCM-001-YGN, SCM-003-NPT")
    monkeypatch.setenv("ADMIN_EMAILS", "YGN-Admin=ygn@corp.test")
    monkeypatch.setenv("HOLIDAY_DATES", "2025-10-06,2025-10-07")
    monkeypatch.setenv("UTC_OFFSET", "-05:00")
    monkeypatch.setenv("SHEETS_CREDENTIALS_FILE", "/secrets/sa.json")
    monkeypatch.setenv("SHEETS_SPREADSHEET_ID", "sheet-id")

    settings = Settings()
    assert settings.table_name == "bookings-test"
    assert settings.unit_ids == ["SCM-001-YGN", "SCM-003-NPT"]
    assert settings.admin_emails == {"YGN-Admin": "ygn@corp.test"}
    assert settings.holiday_dates == [date(2025, 10, 6), date(2025, 10, 7)]
    assert settings.tz.utcoffset(None) == timedelta(hours=-5)
    assert settings.sheets_enabled


def test_empty_variable_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNIT_IDS", "")
    assert Settings().unit_ids == ["SCM-001-YGN", "SCM-002-MDY"]


@pytest.mark.parametrize("raw", ["YGN-Admin", "=ygn@corp.test", "YGN-Admin=ygn@corp.test,MDY-Admin"])
def test_malformed_admin_emails(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("ADMIN_EMAILS", raw)
    with pytest.raises(ValidationError):
        Settings()


def test_malformed_holiday_date(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOLIDAY_DATES", "2025-10-06,next-tuesday")
    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.parametrize("raw", ["6:30", "+0630x", "UTC"])
def test_invalid_offset(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_utc_offset(raw)
    with pytest.raises(ValidationError):
        Settings(utc_offset=raw)
