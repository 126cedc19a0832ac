"""MQTT backend for merchant notifications.

The paho network loop runs in its own thread; parsed messages are handed
to the asyncio loop with ``call_soon_threadsafe`` so handlers always run
on the event loop, in the order the broker delivered them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast

import paho.mqtt.client as mqtt

from pypaysuper._channel import ClosedHandler, MessageHandler
from pypaysuper._constants import MERCHANT_CHANNEL_PREFIX
from pypaysuper.exceptions import PaySuperChannelError


def mqtt_topic_for(channel: str) -> str:
    """Map a ``paysuper:merchant#<id>`` channel name to an MQTT topic.

    ``#`` is a wildcard in MQTT filters and ``:`` is unusual in topic
    levels, so the channel becomes ``paysuper/merchant/<id>``.
    """
    if channel.startswith(MERCHANT_CHANNEL_PREFIX):
        merchant_id = channel[len(MERCHANT_CHANNEL_PREFIX) :]
        return f"paysuper/merchant/{merchant_id}"
    return channel.replace(":", "/").replace("#", "/")


def decode_mqtt_payload(payload: bytes) -> dict[str, Any]:
    """Parse MQTT payload bytes into a JSON object."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise PaySuperChannelError("MQTT payload is not a JSON object")
    return parsed


class MqttChannel:
    """Threaded paho-mqtt channel that emits parsed messages onto an asyncio loop."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 8883,
        keepalive: int = 120,
        tls: bool = True,
        username: str = "merchant",
        subscribe_timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._keepalive = keepalive
        self._tls = tls
        self._username = username
        self._subscribe_timeout = subscribe_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_open(self) -> bool:
        return self._running

    async def open(
        self,
        *,
        token: str,
        channel: str,
        on_message: MessageHandler,
        on_closed: ClosedHandler | None = None,
    ) -> None:
        """Connect, subscribe and start the paho network loop.

        ``on_closed`` is never called: the network loop reconnects by itself
        and ``on_connect`` subscribes again on every connect.
        """
        if self._client is not None:
            raise PaySuperChannelError("Channel is already open")

        loop = asyncio.get_running_loop()
        subscribed: asyncio.Future[None] = loop.create_future()
        topic = mqtt_topic_for(channel)
        self._topic = topic

        def _resolve(exc: BaseException | None) -> None:
            if subscribed.done():
                return
            if exc is None:
                subscribed.set_result(None)
            else:
                subscribed.set_exception(exc)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(self._username, token)
        if self._tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                loop.call_soon_threadsafe(_resolve, PaySuperChannelError(f"MQTT connect failed: {reason_code}"))
                return
            self._logger.debug("MQTT connected, subscribing topic=%s", topic)
            c.subscribe(topic, qos=1)

        def on_subscribe(
            _c: mqtt.Client,
            _userdata: Any,
            _mid: int,
            reason_codes: Any,
            _properties: Any,
        ) -> None:
            failed = [rc for rc in reason_codes if rc.is_failure]
            if failed:
                loop.call_soon_threadsafe(_resolve, PaySuperChannelError(f"MQTT subscribe rejected: {failed[0]}"))
                return
            loop.call_soon_threadsafe(_resolve, None)

        def on_mqtt_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                data = decode_mqtt_payload(msg.payload)
            except (ValueError, PaySuperChannelError):
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            loop.call_soon_threadsafe(self._deliver, on_message, data)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected, reconnecting: %s", reason_code)

        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_mqtt_message
        client.on_disconnect = on_disconnect

        try:
            await loop.run_in_executor(None, lambda: client.connect(self._host, self._port, keepalive=self._keepalive))
        except OSError as exc:
            raise PaySuperChannelError(f"MQTT connect to {self._host}:{self._port} failed: {exc}") from exc
        client.loop_start()
        self._client = client
        self._running = True

        try:
            await asyncio.wait_for(subscribed, self._subscribe_timeout)
        except TimeoutError as exc:
            await self.close()
            raise PaySuperChannelError(f"MQTT subscribe to {topic} timed out") from exc
        except PaySuperChannelError:
            await self.close()
            raise
        self._logger.debug("MQTT network loop started topic=%s", topic)

    def _deliver(self, on_message: MessageHandler, data: dict[str, Any]) -> None:
        if not self._running:
            return
        try:
            on_message(data)
        except Exception:
            self._logger.warning("Notification handler failed on %s", self._topic, exc_info=True)

    def _stop(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    async def close(self) -> None:
        await asyncio.get_running_loop().run_in_executor(None, self._stop)
