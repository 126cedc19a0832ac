"""Merchant notification event model."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field

from pypaysuper.models._base import PaySuperBaseModel, WireTimestamp, WireTimestampValue


class Notification(PaySuperBaseModel):
    """A notification delivered to a merchant.

    Unknown wire fields (``title``, ``user_id``, ...) are kept as extras
    and written back unchanged by :meth:`to_wire`.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    id: str | int
    """Server identifier; mark-as-read matches on equality of this field."""

    message: str = ""

    created_at: WireTimestamp = None
    """Creation time.  ``None`` only before :meth:`with_fallback_timestamp`."""

    read: bool = Field(default=False, validation_alias=AliasChoices("read", "is_read"))

    @property
    def created_at_datetime(self) -> datetime | None:
        if self.created_at is None:
            return None
        return self.created_at.to_datetime()

    def with_fallback_timestamp(self, clock: Callable[[], datetime]) -> Notification:
        """Return a copy with ``created_at`` set from *clock* if the server omitted it."""
        if self.created_at is not None:
            return self
        received = WireTimestampValue(seconds=int(clock().timestamp()))
        return self.model_copy(update={"created_at": received})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def utc_now() -> datetime:
    return datetime.now(UTC)
