"""HTTP transport for the dashboard REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Literal, Protocol

import aiohttp

from pypaysuper._constants import DUPLICATE_KEY_CODES, USER_AGENT
from pypaysuper._redact import redact_for_log
from pypaysuper.config import PaySuperConfig
from pypaysuper.exceptions import PaySuperApiError, PaySuperDuplicateKeyError, PaySuperTransportError

_logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "PUT", "PATCH", "POST"]


class Transport(Protocol):
    """Structural transport interface used by partitions.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: HttpMethod,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        ...


def api_error_from_body(body: Any, *, endpoint: str, status_code: int | None) -> PaySuperApiError | None:
    """Build a typed API error from a ``{"code", "message"}`` body, if it has one."""
    if not isinstance(body, dict):
        return None
    code = body.get("code")
    if not isinstance(code, str) or not code:
        return None
    message = str(body.get("message") or "")
    error_cls = PaySuperDuplicateKeyError if code in DUPLICATE_KEY_CODES else PaySuperApiError
    return error_cls(
        f"{endpoint} failed: code={code} message={message}",
        code=code,
        endpoint=endpoint,
        status_code=status_code,
    )


class HttpTransport:
    """JSON-over-HTTP transport bound to ``config.api_url``.

    Every call issues exactly one request.  Retrying is left to the
    caller.
    """

    def __init__(
        self,
        config: PaySuperConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.auth_token:
            headers["authorization"] = f"Bearer {self._config.auth_token}"
        return headers

    async def request(
        self,
        method: HttpMethod,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON payload.

        Raises
        ------
        PaySuperApiError
            The server answered with an error status and a structured
            ``{"code": ...}`` body.
        PaySuperTransportError
            Connection failure, timeout, unstructured error response, or
            a success response that is not JSON.
        """
        url = f"{self._config.api_url}{path}"
        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled and body is not None:
            _logger.debug("Request body %s %s", path, redact_for_log(body))

        kwargs: dict[str, Any] = {"headers": self._headers(), "timeout": self._timeout}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = dict(params)

        try:
            async with self._http.request(method, url, **kwargs) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise PaySuperTransportError(
                f"Request to {path} failed: {exc}",
                endpoint=path,
            ) from exc
        except TimeoutError as exc:
            raise PaySuperTransportError(
                f"Request to {path} timed out after {self._config.request_timeout}s",
                endpoint=path,
            ) from exc

        decoded: Any = None
        decode_error: json.JSONDecodeError | None = None
        if text.strip():
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as exc:
                decode_error = exc

        if status >= 400:
            api_error = api_error_from_body(decoded, endpoint=path, status_code=status)
            if api_error is not None:
                raise api_error
            raise PaySuperTransportError(
                f"HTTP {status} from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            )

        if decode_error is not None:
            raise PaySuperTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            ) from decode_error

        if self._config.api_trace_enabled:
            _logger.debug("Response %s %s", path, redact_for_log(decoded))
        return decoded
