"""User-facing error record held by the root error sink."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from pypaysuper.exceptions import PaySuperApiError, PaySuperTransportError


class PageError(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    code: str = ""
    endpoint: str = ""
    status_code: int | None = None
    raised_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(cls, error: BaseException) -> PageError:
        if isinstance(error, PaySuperApiError):
            return cls(
                message=str(error),
                code=error.code,
                endpoint=error.endpoint,
                status_code=error.status_code,
            )
        if isinstance(error, PaySuperTransportError):
            return cls(
                message=str(error),
                code="transport_failure",
                endpoint=error.endpoint,
                status_code=error.status_code,
            )
        return cls(message=str(error) or type(error).__name__)
