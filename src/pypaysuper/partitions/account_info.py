"""Merchant company profile (onboarding "company" step)."""

from __future__ import annotations

import functools
import importlib.resources
import json
import logging
from typing import Any

from pypaysuper._constants import ADMIN_API_PREFIX
from pypaysuper._transport import Transport
from pypaysuper.models.account import AccountInfo
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)

_COMPANY_ENDPOINT = f"{ADMIN_API_PREFIX}/merchants/company"
_DEFAULT_COUNTRY = "US"
_COMPANY_STEP = "company"


@functools.cache
def cities_by_country() -> dict[str, list[str]]:
    """Bundled country code -> city names table."""
    ref = importlib.resources.files("pypaysuper").joinpath("data/cities_by_country.json")
    data = json.loads(ref.read_text(encoding="utf-8"))
    return {str(code): list(cities) for code, cities in data.items()}


class AccountInfoPartition(Partition):
    namespace = "AccountInfo"

    def __init__(self, transport: Transport) -> None:
        super().__init__()
        self._transport = transport

    def initial_state(self) -> dict[str, Any]:
        return {"account_info": AccountInfo()}

    @mutation
    def set_account_info(self, state: PartitionState, value: AccountInfo) -> None:
        state["account_info"] = value

    @getter
    def account_info(self, state: Any) -> dict[str, Any]:
        """Form representation (camelCase keys)."""
        return state["account_info"].to_form()

    @getter
    def cities(self, state: Any) -> list[str]:
        country = state["account_info"].country or _DEFAULT_COUNTRY
        return list(cities_by_country().get(country, []))

    @action
    async def init_state(self, ctx: ActionContext) -> None:
        company = ctx.root_getters["User.Merchant.company"]
        if company:
            ctx.commit("set_account_info", AccountInfo.from_wire(company))

    @action
    async def update_account_info(self, ctx: ActionContext, form: dict[str, Any]) -> None:
        ctx.commit("set_account_info", AccountInfo.from_form(form))

    @action
    async def submit_account_info(self, ctx: ActionContext) -> bool:
        """Save the company profile.

        On success the server's merchant record replaces the local one,
        the ``company`` step is marked complete and the notification
        channel is started, in that order.  Errors propagate to the
        caller (the form shows them).
        """
        body = ctx.state["account_info"].to_wire()
        data = await self._transport.request("PUT", _COMPANY_ENDPOINT, body)
        if not data:
            return False

        await ctx.dispatch("User.Merchant.change_merchant", data, root=True)
        await ctx.dispatch("User.Merchant.complete_step", _COMPANY_STEP, root=True)
        await ctx.dispatch("User.Notifications.watch_for_notifications", root=True)
        _logger.debug("Company profile submitted")
        return True
