"""Publish/subscribe channel interface and the Centrifugo websocket backend."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable, Iterator
from typing import Any, Protocol

import aiohttp

from pypaysuper.exceptions import PaySuperChannelError

MessageHandler = Callable[[dict[str, Any]], None]
ClosedHandler = Callable[[], None]


class NotificationChannel(Protocol):
    """Long-lived connection delivering JSON objects published to one channel.

    ``open`` returns once the subscription is confirmed.  ``on_message``
    is called on the event loop, once per publication, in server-send
    order.  ``on_closed`` is called if the connection is lost without
    ``close`` having been called.
    """

    @property
    def is_open(self) -> bool:
        ...

    async def open(
        self,
        *,
        token: str,
        channel: str,
        on_message: MessageHandler,
        on_closed: ClosedHandler | None = None,
    ) -> None:
        ...

    async def close(self) -> None:
        ...


def iter_frames(text: str) -> Iterator[dict[str, Any]]:
    """Yield JSON frames from one websocket message.

    Centrifugo batches several newline-delimited frames into a single
    message.  Lines that are not JSON objects are skipped.
    """
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            frame = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(frame, dict):
            yield frame


class CentrifugoChannel:
    """Centrifugo client speaking the JSON protocol over an aiohttp websocket.

    Reconnection is not attempted.  When the server drops the connection
    the channel resets itself and calls ``on_closed`` so the owner can
    open a fresh subscription.
    """

    _CONNECT_ID = 1
    _SUBSCRIBE_ID = 2

    def __init__(
        self,
        *,
        url: str,
        http_session: aiohttp.ClientSession,
        handshake_timeout: float = 10.0,
        client_name: str = "pypaysuper",
        logger: logging.Logger | None = None,
    ) -> None:
        self._url = url
        self._http = http_session
        self._handshake_timeout = handshake_timeout
        self._client_name = client_name
        self._logger = logger or logging.getLogger(__name__)
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._channel: str | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def open(
        self,
        *,
        token: str,
        channel: str,
        on_message: MessageHandler,
        on_closed: ClosedHandler | None = None,
    ) -> None:
        if self._ws is not None:
            raise PaySuperChannelError("Channel is already open")

        self._logger.debug("Centrifugo connect url=%s channel=%s", self._url, channel)
        try:
            ws = await self._http.ws_connect(self._url)
        except aiohttp.ClientError as exc:
            raise PaySuperChannelError(f"Websocket connect to {self._url} failed: {exc}") from exc

        try:
            async with asyncio.timeout(self._handshake_timeout):
                await ws.send_str(json.dumps({"id": self._CONNECT_ID, "connect": {"token": token, "name": self._client_name}}))
                await self._await_reply(ws, self._CONNECT_ID, "connect")
                await ws.send_str(json.dumps({"id": self._SUBSCRIBE_ID, "subscribe": {"channel": channel}}))
                _, pending = await self._await_reply(ws, self._SUBSCRIBE_ID, "subscribe")
                # Frames batched after the subscribe reply belong to the live stream.
                for frame in pending:
                    await self._handle_frame(ws, frame, channel, on_message)
        except TimeoutError as exc:
            await ws.close()
            raise PaySuperChannelError(f"Centrifugo handshake timed out for {channel}") from exc
        except BaseException:
            await ws.close()
            raise

        self._ws = ws
        self._channel = channel
        self._reader = asyncio.create_task(self._read_loop(ws, channel, on_message, on_closed))
        self._logger.debug("Centrifugo subscribed channel=%s", channel)

    async def _await_reply(
        self, ws: aiohttp.ClientWebSocketResponse, command_id: int, command: str
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Wait for the reply to *command_id*.

        Returns the reply body and the frames that followed it in the same
        websocket message.
        """
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                if msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
                continue
            frames = iter_frames(msg.data)
            for frame in frames:
                if not frame:
                    await ws.send_str("{}")
                    continue
                if frame.get("id") != command_id:
                    continue
                error = frame.get("error")
                if isinstance(error, dict):
                    raise PaySuperChannelError(
                        f"Centrifugo {command} rejected: code={error.get('code')} message={error.get('message', '')}"
                    )
                reply = frame.get(command)
                return (reply if isinstance(reply, dict) else {}), list(frames)
        raise PaySuperChannelError(f"Connection closed before {command} reply")

    async def _read_loop(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        channel: str,
        on_message: MessageHandler,
        on_closed: ClosedHandler | None,
    ) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    for frame in iter_frames(msg.data):
                        await self._handle_frame(ws, frame, channel, on_message)
                elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
        except (aiohttp.ClientError, ConnectionError):
            self._logger.debug("Centrifugo read failed channel=%s", channel, exc_info=True)

        if self._ws is not ws:
            # Closed by us.
            return
        self._ws = None
        self._reader = None
        self._channel = None
        await ws.close()
        self._logger.warning("Centrifugo connection lost channel=%s code=%s", channel, ws.close_code)
        if on_closed is not None:
            try:
                on_closed()
            except Exception:
                self._logger.warning("Channel closed handler failed on %s", channel, exc_info=True)

    async def _handle_frame(
        self, ws: aiohttp.ClientWebSocketResponse, frame: dict[str, Any], channel: str, on_message: MessageHandler
    ) -> None:
        if not frame:
            # Server ping; answer with an empty frame.
            await ws.send_str("{}")
            return
        self._handle_push(frame, channel, on_message)

    def _handle_push(self, frame: dict[str, Any], channel: str, on_message: MessageHandler) -> None:
        push = frame.get("push")
        if not isinstance(push, dict) or push.get("channel") != channel:
            return
        publication = push.get("pub")
        if not isinstance(publication, dict):
            return
        data = publication.get("data")
        if not isinstance(data, dict):
            self._logger.debug("Ignoring non-object publication on %s", channel)
            return
        try:
            on_message(data)
        except Exception:
            self._logger.warning("Notification handler failed on %s", channel, exc_info=True)

    async def close(self) -> None:
        ws = self._ws
        reader = self._reader
        self._ws = None
        self._reader = None
        self._channel = None
        if ws is not None:
            await ws.close()
        if reader is None:
            return
        if reader.done():
            if not reader.cancelled() and reader.exception() is not None:
                self._logger.debug("Centrifugo reader had failed", exc_info=reader.exception())
            return
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
