from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pypaysuper.exceptions import PaySuperApiError, PaySuperTransportError
from pypaysuper.models import CurrencyRegion, Notification, PageError, WireTimestampValue, parse_wire_timestamp


@pytest.mark.parametrize(
    "value",
    [
        {"seconds": 1700000000, "nanos": 0},
        1700000000,
        1700000000000,
        "1700000000",
        "2023-11-14T22:13:20Z",
        "2023-11-14T22:13:20+00:00",
        datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC),
    ],
)
def test_notification_timestamp_shapes(value: object) -> None:
    notification = Notification.model_validate({"id": "n1", "created_at": value})
    assert notification.created_at == WireTimestampValue(seconds=1700000000, nanos=0)
    assert notification.created_at_datetime == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)


def test_millisecond_epoch_keeps_fraction() -> None:
    assert parse_wire_timestamp(1700000000123) == {"seconds": 1700000000, "nanos": 123_000_000}


def test_unparseable_timestamp_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Notification.model_validate({"id": "n1", "created_at": "yesterday"})


def test_null_fields_fall_back_to_defaults() -> None:
    notification = Notification.model_validate({"id": 3, "message": None, "created_at": None, "read": None})
    assert notification.message == ""
    assert notification.created_at is None
    assert notification.read is False


def test_fallback_timestamp_only_fills_missing_value() -> None:
    def clock() -> datetime:
        return datetime(2026, 1, 1, 12, 0, 0, 750_000, tzinfo=UTC)

    missing = Notification(id="a").with_fallback_timestamp(clock)
    assert missing.created_at == WireTimestampValue(seconds=1767268800)

    present = Notification(id="b", created_at=1700000000)
    assert present.with_fallback_timestamp(clock) is present


def test_notification_keeps_unknown_fields_on_the_wire() -> None:
    notification = Notification.model_validate(
        {"id": "n1", "title": "Payouts", "user_id": "u1", "is_read": True, "created_at": {"seconds": 5}}
    )
    wire = notification.to_wire()
    assert wire["title"] == "Payouts"
    assert wire["user_id"] == "u1"
    assert wire["read"] is True
    assert wire["created_at"] == {"seconds": 5, "nanos": 0}


def test_notification_is_frozen() -> None:
    notification = Notification(id="n1")
    with pytest.raises(ValidationError):
        notification.read = True  # type: ignore[misc]


@pytest.mark.parametrize(
    ("key", "currency", "region"),
    [
        ("USD", "USD", "USD"),
        ("USD-EU", "USD", "EU"),
        ("EUR-", "EUR", "EUR"),
        ("RUB-CIS-EXT", "RUB", "CIS-EXT"),
    ],
)
def test_currency_region_from_key(key: str, currency: str, region: str) -> None:
    parsed = CurrencyRegion.from_key(key)
    assert (parsed.currency, parsed.region) == (currency, region)


def test_currency_region_to_key() -> None:
    assert CurrencyRegion(currency="USD", region="USD").to_key() == "USD"
    assert CurrencyRegion(currency="USD", region="EU").to_key() == "USD-EU"


def test_page_error_from_api_error() -> None:
    error = PageError.from_exception(PaySuperApiError("denied", code="ma000001", endpoint="/x", status_code=403))
    assert (error.message, error.code, error.endpoint, error.status_code) == ("denied", "ma000001", "/x", 403)


def test_page_error_from_transport_error() -> None:
    error = PageError.from_exception(PaySuperTransportError("timed out", endpoint="/y"))
    assert error.code == "transport_failure"
    assert error.status_code is None
    assert error.raised_at.tzinfo is not None
