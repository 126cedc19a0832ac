"""Base model and timestamp helpers for dashboard API records.

Every wire record inherits from :class:`PaySuperBaseModel` which
provides:

* frozen instances, so partition state can only change by replacing a
  record through a mutator;
* ``populate_by_name`` so records validate from both the wire
  (snake_case) and form (explicit alias) representations;
* a ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used.

Timestamps arrive in protobuf JSON form (``{"seconds": ..., "nanos": ...}``),
as epoch numbers, or as ISO-8601 strings; :data:`WireTimestamp`
normalises all of them to :class:`WireTimestampValue`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


class WireTimestampValue(BaseModel):
    """Protobuf-style timestamp: whole seconds plus nanoseconds."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    seconds: int
    nanos: int = 0

    @classmethod
    def from_datetime(cls, value: datetime) -> WireTimestampValue:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        epoch = value.timestamp()
        seconds = int(epoch)
        return cls(seconds=seconds, nanos=int(round((epoch - seconds) * 1_000_000_000)))

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds + self.nanos / 1_000_000_000, tz=UTC)


def parse_wire_timestamp(value: Any) -> Any:
    """Coerce the wire timestamp shapes into a ``{seconds, nanos}`` mapping.

    Returns ``None`` for ``None``/empty values.  Unrecognised shapes are
    returned unchanged so pydantic reports the validation error.
    """
    if value is None or value == "":
        return None
    if isinstance(value, WireTimestampValue):
        return value
    if isinstance(value, datetime):
        return WireTimestampValue.from_datetime(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        ts = int(value)
        if ts >= _MS_THRESHOLD:
            return {"seconds": ts // 1000, "nanos": (ts % 1000) * 1_000_000}
        return {"seconds": ts, "nanos": 0}
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_wire_timestamp(int(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return value
        return WireTimestampValue.from_datetime(parsed)
    return value


WireTimestamp = Annotated[WireTimestampValue | None, BeforeValidator(parse_wire_timestamp)]
"""Annotated type accepting protobuf, epoch and ISO timestamps."""


class PaySuperBaseModel(BaseModel):
    """Base for dashboard API records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
