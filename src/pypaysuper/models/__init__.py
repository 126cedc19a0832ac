"""Data models for dashboard API records."""

from pypaysuper.models._base import (
    PaySuperBaseModel,
    WireTimestamp,
    WireTimestampValue,
    parse_wire_timestamp,
)
from pypaysuper.models.account import ACCOUNT_INFO_FORM_FIELDS, AccountInfo
from pypaysuper.models.currency import CurrencyRegion
from pypaysuper.models.notification import Notification
from pypaysuper.models.page_error import PageError

__all__ = [
    "ACCOUNT_INFO_FORM_FIELDS",
    "AccountInfo",
    "CurrencyRegion",
    "Notification",
    "PageError",
    "PaySuperBaseModel",
    "WireTimestamp",
    "WireTimestampValue",
    "parse_wire_timestamp",
]
