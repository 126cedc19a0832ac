"""Merchant notifications: history fetch plus the live channel.

The list is kept newest-first.  History is fetched once at bootstrap;
afterwards the channel only prepends new events.  Notification failures
are logged and swallowed: the view keeps the last consistent list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from pypaysuper._constants import ADMIN_API_PREFIX
from pypaysuper._transport import Transport
from pypaysuper.exceptions import PaySuperError
from pypaysuper.models.notification import Notification, utc_now
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation
from pypaysuper.subscriber import NotificationSubscriber, SubscriptionState

_logger = logging.getLogger(__name__)


def _parse_items(items: Any) -> list[Notification]:
    parsed: list[Notification] = []
    for item in items if isinstance(items, list) else []:
        try:
            parsed.append(Notification.model_validate(item))
        except ValidationError:
            _logger.warning("Skipping malformed notification %r", item)
    return parsed


def replace_by_id(notifications: list[Notification], updated: Notification) -> list[Notification]:
    """Swap in *updated* wherever an entry has the same id; order is untouched."""
    return [updated if item.id == updated.id else item for item in notifications]


class NotificationsPartition(Partition):
    namespace = "User.Notifications"

    def __init__(
        self,
        transport: Transport,
        subscriber: NotificationSubscriber,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__()
        self._transport = transport
        self._subscriber = subscriber
        self._clock = clock

    def initial_state(self) -> dict[str, Any]:
        return {
            "is_watching_inited": False,
            "notifications": [],
        }

    @property
    def subscriber(self) -> NotificationSubscriber:
        return self._subscriber

    @mutation
    def set_is_watching_inited(self, state: PartitionState, value: bool) -> None:
        state["is_watching_inited"] = bool(value)

    @mutation
    def set_notifications(self, state: PartitionState, value: list[Notification]) -> None:
        state["notifications"] = list(value)

    @getter
    def notifications(self, state: Any) -> list[Notification]:
        return list(state["notifications"])

    @getter
    def unread_count(self, state: Any) -> int:
        return sum(1 for item in state["notifications"] if not item.read)

    @getter
    def is_watching_inited(self, state: Any) -> bool:
        return state["is_watching_inited"]

    @getter
    def subscription_state(self, _state: Any) -> SubscriptionState:
        return self._subscriber.state

    @action
    async def init_state(self, ctx: ActionContext) -> None:
        if not ctx.root_getters["User.Merchant.merchant_id"]:
            _logger.debug("No merchant loaded, skipping notifications bootstrap")
            return
        await ctx.dispatch("fetch_notifications")
        await ctx.dispatch("watch_for_notifications")

    @action
    async def fetch_notifications(self, ctx: ActionContext) -> None:
        merchant_id = ctx.root_getters["User.Merchant.merchant_id"]
        if not merchant_id:
            return
        ticket = self.take_ticket("notifications")
        try:
            data = await self._transport.request(
                "GET",
                f"{ADMIN_API_PREFIX}/merchants/{merchant_id}/notifications",
                params={"sort[]": "-created_at"},
            )
        except PaySuperError:
            _logger.warning("Fetching notifications failed merchant=%s", merchant_id, exc_info=True)
            return
        if not self.is_current("notifications", ticket):
            _logger.debug("Dropping superseded notifications response")
            return
        items = data.get("items") if isinstance(data, dict) else None
        ctx.commit("set_notifications", _parse_items(items or []))

    @action
    async def mark_notification_as_read(self, ctx: ActionContext, notification_id: str | int) -> None:
        merchant_id = ctx.root_getters["User.Merchant.merchant_id"]
        try:
            data = await self._transport.request(
                "PUT",
                f"{ADMIN_API_PREFIX}/merchants/{merchant_id}/notifications/{notification_id}/mark-as-read",
            )
            updated = Notification.model_validate(data)
        except (PaySuperError, ValidationError):
            _logger.warning("Marking notification %s as read failed", notification_id, exc_info=True)
            return
        # Read state after the await: events may have been prepended meanwhile.
        ctx.commit("set_notifications", replace_by_id(ctx.state["notifications"], updated))

    @action
    async def watch_for_notifications(self, ctx: ActionContext) -> None:
        if ctx.state["is_watching_inited"]:
            return
        merchant_id = ctx.root_getters["User.Merchant.merchant_id"]
        token = ctx.root_getters["User.Merchant.channel_token"]
        if not merchant_id:
            _logger.debug("No merchant loaded, not watching notifications")
            return

        # Latch before the first suspension point so an interleaved second
        # call sees it and returns.
        ctx.commit("set_is_watching_inited", True)

        def on_event(data: dict[str, Any]) -> None:
            try:
                event = Notification.model_validate(data)
            except ValidationError:
                _logger.warning("Dropping malformed notification event %r", data)
                return
            event = event.with_fallback_timestamp(self._clock)
            ctx.commit("set_notifications", [event, *ctx.state["notifications"]])

        def on_lost() -> None:
            ctx.commit("set_is_watching_inited", False)

        try:
            await self._subscriber.start(merchant_id=merchant_id, token=token or "", on_event=on_event, on_lost=on_lost)
        except PaySuperError:
            _logger.warning("Opening notification channel failed merchant=%s", merchant_id, exc_info=True)
            ctx.commit("set_is_watching_inited", False)
