"""Merchant payment method edit page."""

from __future__ import annotations

import copy
import logging
from typing import Any

from pypaysuper._constants import ADMIN_API_PREFIX
from pypaysuper._transport import Transport
from pypaysuper.exceptions import PaySuperError, PaySuperStateError
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)


class PaymentMethodPartition(Partition):
    namespace = "PaymentMethod"

    def __init__(self, transport: Transport) -> None:
        super().__init__()
        self._transport = transport

    def initial_state(self) -> dict[str, Any]:
        return {
            "merchant_id": None,
            "payment_method_id": None,
            "payment_method": None,
        }

    @mutation
    def set_merchant_id(self, state: PartitionState, value: str | None) -> None:
        state["merchant_id"] = value

    @mutation
    def set_payment_method_id(self, state: PartitionState, value: str | None) -> None:
        state["payment_method_id"] = value

    @mutation
    def set_payment_method(self, state: PartitionState, value: dict[str, Any] | None) -> None:
        state["payment_method"] = value

    @getter
    def payment_method(self, state: Any) -> dict[str, Any] | None:
        return state["payment_method"]

    def _endpoint(self) -> str:
        merchant_id = self.state["merchant_id"]
        method_id = self.state["payment_method_id"]
        if not merchant_id or not method_id:
            raise PaySuperStateError("PaymentMethod.init_state has not been called")
        return f"{ADMIN_API_PREFIX}/merchants/{merchant_id}/methods/{method_id}"

    @action
    async def init_state(self, ctx: ActionContext, payload: dict[str, Any]) -> None:
        ctx.commit("set_merchant_id", payload["merchant_id"])
        ctx.commit("set_payment_method_id", payload["payment_method_id"])
        await ctx.dispatch("fetch_payment_method")

    @action
    async def fetch_payment_method(self, ctx: ActionContext) -> None:
        endpoint = self._endpoint()
        ticket = self.take_ticket("payment_method")
        try:
            data = await self._transport.request("GET", endpoint)
        except PaySuperError as exc:
            await ctx.dispatch("Page.report_error", exc, root=True)
            return
        if not self.is_current("payment_method", ticket):
            _logger.debug("Dropping superseded payment method response")
            return
        ctx.commit("set_payment_method", copy.deepcopy(data) if isinstance(data, dict) else None)

    @action
    async def edit_payment_method(self, ctx: ActionContext, changes: dict[str, Any]) -> None:
        """Apply form edits locally; ``update_payment_method`` sends them."""
        current = dict(ctx.state["payment_method"] or {})
        current.update(copy.deepcopy(changes))
        ctx.commit("set_payment_method", current)

    @action
    async def update_payment_method(self, ctx: ActionContext) -> None:
        data = await self._transport.request("PUT", self._endpoint(), ctx.state["payment_method"])
        ctx.commit("set_payment_method", copy.deepcopy(data) if isinstance(data, dict) else None)
