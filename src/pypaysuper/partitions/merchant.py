"""Authenticated merchant record."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from pypaysuper._constants import ADMIN_API_PREFIX
from pypaysuper._transport import Transport
from pypaysuper.exceptions import PaySuperError
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)

_MERCHANT_ENDPOINT = f"{ADMIN_API_PREFIX}/merchants/user"


class MerchantPartition(Partition):
    namespace = "User.Merchant"

    def __init__(self, transport: Transport) -> None:
        super().__init__()
        self._transport = transport

    def initial_state(self) -> dict[str, Any]:
        return {"merchant": None}

    @mutation
    def set_merchant(self, state: PartitionState, value: dict[str, Any] | None) -> None:
        state["merchant"] = value

    @getter
    def merchant(self, state: Any) -> dict[str, Any] | None:
        return state["merchant"]

    @getter
    def merchant_id(self, state: Any) -> str | None:
        merchant = state["merchant"]
        if not merchant or not merchant.get("id"):
            return None
        return str(merchant["id"])

    @getter
    def channel_token(self, state: Any) -> str | None:
        merchant = state["merchant"]
        if not merchant:
            return None
        return merchant.get("centrifugo_token") or None

    @getter
    def company(self, state: Any) -> dict[str, Any] | None:
        merchant = state["merchant"]
        if not merchant:
            return None
        return merchant.get("company") or None

    @getter
    def is_step_complete(self, state: Any) -> Callable[[str], bool]:
        steps = (state["merchant"] or {}).get("steps") or {}
        return lambda step: bool(steps.get(step))

    @action
    async def init_state(self, ctx: ActionContext) -> None:
        await ctx.dispatch("fetch_merchant")

    @action
    async def fetch_merchant(self, ctx: ActionContext) -> None:
        ticket = self.take_ticket("merchant")
        try:
            data = await self._transport.request("GET", _MERCHANT_ENDPOINT)
        except PaySuperError as exc:
            await ctx.dispatch("Page.report_error", exc, root=True)
            return
        if not self.is_current("merchant", ticket):
            _logger.debug("Dropping superseded merchant response")
            return
        ctx.commit("set_merchant", data if isinstance(data, dict) else None)

    @action
    async def change_merchant(self, ctx: ActionContext, merchant: dict[str, Any]) -> None:
        """Replace the merchant record with the server's copy."""
        ctx.commit("set_merchant", copy.deepcopy(merchant))

    @action
    async def complete_step(self, ctx: ActionContext, step: str) -> None:
        """Mark an onboarding step as complete on the in-memory merchant."""
        current = ctx.state["merchant"]
        if current is None:
            _logger.debug("No merchant loaded, cannot complete step %s", step)
            return
        merchant = copy.deepcopy(current)
        steps = dict(merchant.get("steps") or {})
        steps[step] = True
        merchant["steps"] = steps
        ctx.commit("set_merchant", merchant)
