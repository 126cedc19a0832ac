"""Reference dictionaries: currencies, price-group regions, countries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pypaysuper._constants import PUBLIC_API_PREFIX
from pypaysuper._transport import Transport
from pypaysuper.exceptions import PaySuperError
from pypaysuper.models.currency import CurrencyRegion
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)

CountryTranslator = Callable[[dict[str, Any]], str]

_DEFAULT_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "RUB", "GBP")


def default_country_label(country: dict[str, Any]) -> str:
    name = country.get("name")
    if isinstance(name, dict) and name.get("en"):
        return str(name["en"])
    return str(country.get("iso_code_a2") or "")


def _english_name(item: dict[str, Any]) -> str:
    name = item.get("name")
    if isinstance(name, dict):
        return str(name.get("en") or "")
    return str(name or "")


class DictionariesPartition(Partition):
    namespace = "Dictionaries"

    def __init__(self, transport: Transport, *, translate_country: CountryTranslator = default_country_label) -> None:
        super().__init__()
        self._transport = transport
        self._translate_country = translate_country

    def initial_state(self) -> dict[str, Any]:
        return {
            "currencies": [{"name": {"en": code}, "code_a3": code} for code in _DEFAULT_CURRENCIES],
            "regions_currencies": [],
            "countries": [],
        }

    @mutation
    def set_currencies(self, state: PartitionState, value: list[dict[str, Any]]) -> None:
        state["currencies"] = list(value)

    @mutation
    def set_countries(self, state: PartitionState, value: list[dict[str, Any]]) -> None:
        state["countries"] = list(value)

    @mutation
    def set_regions_currencies(self, state: PartitionState, value: list[dict[str, Any]]) -> None:
        state["regions_currencies"] = list(value)

    @getter
    def countries(self, state: Any) -> list[dict[str, str]]:
        options = [
            {"label": self._translate_country(item), "value": str(item.get("iso_code_a2") or "")}
            for item in state["countries"]
        ]
        return sorted(options, key=lambda option: option["label"])

    @getter
    def currencies_int(self, state: Any) -> list[dict[str, Any]]:
        return [{"label": _english_name(item), "value": item.get("code_int")} for item in state["currencies"]]

    @getter
    def currencies_code(self, state: Any) -> list[dict[str, Any]]:
        return [{"label": _english_name(item), "value": item.get("code_a3")} for item in state["currencies"]]

    @getter
    def currencies_three_letters(self, state: Any) -> list[dict[str, Any]]:
        return [{"label": _english_name(item), "value": item.get("code_a3")} for item in state["currencies"]]

    @getter
    def currencies_with_regions(self, state: Any) -> list[CurrencyRegion]:
        return [
            CurrencyRegion(currency=str(item.get("currency")), region=str(region.get("region")))
            for item in state["regions_currencies"]
            for region in item.get("regions") or []
        ]

    @action
    async def init_state(self, ctx: ActionContext) -> None:
        await asyncio.gather(
            ctx.dispatch("fetch_regions_currencies"),
            ctx.dispatch("fetch_countries"),
        )

    @action
    async def fetch_currencies(self, ctx: ActionContext, search: str = "") -> None:
        params = {"name": search} if search else None
        try:
            data = await self._transport.request("GET", f"{PUBLIC_API_PREFIX}/currency", params=params)
        except PaySuperError:
            _logger.warning("Fetching currencies failed search=%r", search, exc_info=True)
            return
        items = data.get("items") if isinstance(data, dict) else data
        if not isinstance(items, list) or not items:
            return
        ctx.commit("set_currencies", items)

    @action
    async def fetch_regions_currencies(self, ctx: ActionContext) -> None:
        try:
            data = await self._transport.request("GET", f"{PUBLIC_API_PREFIX}/price_group/currencies")
        except PaySuperError:
            _logger.warning("Fetching region currencies failed", exc_info=True)
            data = {"regions": []}
        regions = data.get("regions") if isinstance(data, dict) else None
        ctx.commit("set_regions_currencies", regions or [])

    @action
    async def get_countries(self, ctx: ActionContext) -> dict[str, Any]:
        try:
            data = await self._transport.request("GET", f"{PUBLIC_API_PREFIX}/country")
        except PaySuperError:
            _logger.warning("Fetching countries failed", exc_info=True)
            return {"items": None}
        return data if isinstance(data, dict) else {"items": None}

    @action
    async def fetch_countries(self, ctx: ActionContext) -> None:
        response = await ctx.dispatch("get_countries")
        countries = response.get("countries")
        if countries is None:
            countries = response.get("items")
        ctx.commit("set_countries", countries or [])
