"""Notification channel subscriber.

Owns the single live publish/subscribe connection of a client session::

    UNINITIALIZED --start()--> CONNECTING --subscribed--> SUBSCRIBED

``start`` refuses to open a second connection while one is connecting or
subscribed.  A failed open returns to ``UNINITIALIZED`` so a later
bootstrap may try again.  A subscription whose connection is lost
without reconnecting also returns to ``UNINITIALIZED``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from pypaysuper._channel import NotificationChannel
from pypaysuper._constants import merchant_channel
from pypaysuper.exceptions import PaySuperChannelError

_logger = logging.getLogger(__name__)


class SubscriptionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class SubscriptionSession(BaseModel):
    """Connection details of the current subscription, if any."""

    model_config = ConfigDict(frozen=True)

    initialized: bool = False
    channel_token: str | None = None
    topic: str | None = None


class NotificationSubscriber:
    def __init__(self, channel: NotificationChannel) -> None:
        self._channel = channel
        self._state = SubscriptionState.UNINITIALIZED
        self._session = SubscriptionSession()

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def session(self) -> SubscriptionSession:
        return self._session

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    async def start(
        self,
        *,
        merchant_id: str,
        token: str,
        on_event: Callable[[dict[str, Any]], None],
        on_lost: Callable[[], None] | None = None,
    ) -> bool:
        """Open the merchant channel.

        Returns ``False`` without touching the connection when a
        subscription is already connecting or live.  *on_lost* runs if the
        backend later loses the connection for good.

        Raises
        ------
        PaySuperChannelError
            The channel could not be opened; state is back to
            ``UNINITIALIZED``.
        """
        if self._state is not SubscriptionState.UNINITIALIZED:
            _logger.debug("Subscriber already %s, ignoring start", self._state)
            return False
        if not token:
            raise PaySuperChannelError(f"Merchant {merchant_id} has no channel token")

        topic = merchant_channel(merchant_id)
        self._state = SubscriptionState.CONNECTING
        session = SubscriptionSession(initialized=True, channel_token=token, topic=topic)
        self._session = session

        def _lost() -> None:
            if self._session is not session:
                return
            _logger.warning("Notification channel lost topic=%s", topic)
            self._state = SubscriptionState.UNINITIALIZED
            self._session = SubscriptionSession()
            if on_lost is not None:
                on_lost()

        _logger.debug("Opening notification channel topic=%s", topic)
        try:
            await self._channel.open(token=token, channel=topic, on_message=on_event, on_closed=_lost)
        except BaseException:
            self._state = SubscriptionState.UNINITIALIZED
            self._session = SubscriptionSession()
            raise
        self._state = SubscriptionState.SUBSCRIBED
        _logger.info("Subscribed to notifications topic=%s", topic)
        return True

    async def stop(self) -> None:
        """Close the channel at session end."""
        if self._state is SubscriptionState.UNINITIALIZED:
            return
        try:
            await self._channel.close()
        finally:
            self._state = SubscriptionState.UNINITIALIZED
            self._session = SubscriptionSession()
            _logger.debug("Notification channel closed")
