"""Client configuration for pypaysuper."""

from __future__ import annotations

import dataclasses
import os
from typing import Any, Literal

from pypaysuper._constants import API_URL, WEBSOCKET_URL
from pypaysuper.exceptions import PaySuperConfigError

ChannelBackend = Literal["centrifugo", "mqtt"]

_CHANNEL_BACKENDS: frozenset[str] = frozenset({"centrifugo", "mqtt"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PaySuperConfig:
    """Client configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the dashboard REST API.  Request paths such as
        ``/admin/api/v1/projects/1`` are appended to it.
    auth_token : str or None
        Bearer token sent with every REST call, if the deployment
        requires one.
    websocket_url : str
        Centrifugo websocket endpoint used for merchant notifications.
    channel_backend : str
        ``"centrifugo"`` (default) or ``"mqtt"``.
    mqtt_host : str
        Broker host for the MQTT backend.
    mqtt_port : int
        Broker port for the MQTT backend.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Enable TLS for the MQTT backend.
    storage_path : str or None
        JSON file backing local persisted state.  ``None`` keeps the
        state in memory only.
    request_timeout : float
        Total timeout in seconds for one REST call.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    api_url: str = API_URL
    auth_token: str | None = None
    websocket_url: str = WEBSOCKET_URL
    channel_backend: ChannelBackend = "centrifugo"
    mqtt_host: str = "localhost"
    mqtt_port: int = 8883
    mqtt_keepalive: int = 120
    mqtt_tls: bool = True
    storage_path: str | None = None
    request_timeout: float = 30.0
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.channel_backend not in _CHANNEL_BACKENDS:
            raise PaySuperConfigError(
                f"channel_backend must be one of {sorted(_CHANNEL_BACKENDS)}, got {self.channel_backend!r}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> PaySuperConfig:
        """Create configuration from ``PAYSUPER_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "PAYSUPER_API_URL": "api_url",
            "PAYSUPER_AUTH_TOKEN": "auth_token",
            "PAYSUPER_WEBSOCKET_URL": "websocket_url",
            "PAYSUPER_CHANNEL_BACKEND": "channel_backend",
            "PAYSUPER_MQTT_HOST": "mqtt_host",
            "PAYSUPER_STORAGE_PATH": "storage_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        port_env = env.get("PAYSUPER_MQTT_PORT")
        if port_env is not None and "mqtt_port" not in overrides:
            config_kwargs["mqtt_port"] = int(port_env)

        keepalive_env = env.get("PAYSUPER_MQTT_KEEPALIVE")
        if keepalive_env is not None and "mqtt_keepalive" not in overrides:
            config_kwargs["mqtt_keepalive"] = int(keepalive_env)

        timeout_env = env.get("PAYSUPER_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("PAYSUPER_MQTT_TLS"), True)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("PAYSUPER_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
