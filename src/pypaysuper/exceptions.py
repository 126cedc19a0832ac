"""Custom exception hierarchy for pypaysuper."""

from __future__ import annotations


class PaySuperError(Exception):
    """Base exception for all pypaysuper errors."""


class PaySuperConfigError(PaySuperError):
    """Invalid configuration or an unresolvable store path.

    Raised when a namespace, action, mutation or getter cannot be
    resolved by the root store.  This is a programming error and is
    never translated into a user-facing page error.
    """


class PaySuperStateError(PaySuperError):
    """A partition state invariant was violated.

    For example, committing a field that the partition never declared.
    """


class PaySuperTransportError(PaySuperError):
    """HTTP-level failure (network, timeout, unstructured error, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class PaySuperApiError(PaySuperError):
    """API returned a structured error body (``{"code": ..., "message": ...}``)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class PaySuperDuplicateKeyError(PaySuperApiError):
    """Identifier already exists (code ``kp000006``).

    Partitions that run uniqueness checks translate this into a
    ``False`` result instead of letting it propagate.
    """


class PaySuperChannelError(PaySuperError):
    """Publish/subscribe channel could not be opened or was rejected."""
