"""Redaction of traced API bodies.

Merchant records carry the Centrifugo channel token and projects carry
their secret key.  Request and response bodies are decoded JSON, so only
objects, arrays and strings need handling.
"""

from __future__ import annotations

from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "centrifugo_token",
        "channel_token",
        "secret_key",
    }
)

_MASK = "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of a JSON body with secrets masked and long strings cut."""
    if isinstance(value, dict):
        return {
            key: _MASK if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
