"""Project settings page state, including the persisted currency selection."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

from pypaysuper._constants import (
    ADMIN_API_PREFIX,
    DEFAULT_CURRENCY,
    DUPLICATE_KEY_CODES,
    NEW_RECORD_ID,
    PROJECT_CURRENCIES_STORAGE_KEY,
)
from pypaysuper._storage import LocalStorage
from pypaysuper._transport import Transport
from pypaysuper.exceptions import PaySuperApiError, PaySuperError, PaySuperStateError
from pypaysuper.models.currency import CurrencyRegion
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)

_PLACEHOLDER_URL = "https://ya.ru"

#: Form-only fields that the API rejects.
_CLIENT_ONLY_FIELDS: frozenset[str] = frozenset({"create_order_allowed_urls"})

#: Optional collections the API expects as arrays, never null.
_LIST_FIELDS: tuple[str, ...] = ("notify_emails",)


def default_project(name: str | None = None, image: str | None = None) -> dict[str, Any]:
    """Seed record for the "create project" form."""
    return {
        "name": {"ru": "", "en": name or ""},
        "image": image or "",
        "url_check_account": _PLACEHOLDER_URL,
        "url_process_payment": _PLACEHOLDER_URL,
        "url_redirect_success": _PLACEHOLDER_URL,
        "url_redirect_fail": _PLACEHOLDER_URL,
        "secret_key": "",
        "create_invoice_allowed_urls": [],
        "callback_protocol": "default",
        "min_payment_amount": 0,
        "max_payment_amount": 0,
        "callback_currency": "",
        "limits_currency": "",
        "is_products_checkout": True,
    }


def map_api_to_form(data: dict[str, Any]) -> dict[str, Any]:
    return copy.deepcopy(data)


def map_form_to_api(data: dict[str, Any]) -> dict[str, Any]:
    body = {key: copy.deepcopy(value) for key, value in data.items() if key not in _CLIENT_ONLY_FIELDS}
    for field_name in _LIST_FIELDS:
        body[field_name] = body.get(field_name) or []
    return body


def load_currencies(storage: LocalStorage) -> list[str]:
    """Read the persisted currency selection, falling back to the default currency."""
    raw = storage.get_item(PROJECT_CURRENCIES_STORAGE_KEY)
    if raw:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            _logger.warning("Ignoring corrupt %s value", PROJECT_CURRENCIES_STORAGE_KEY)
        else:
            if isinstance(value, list) and all(isinstance(item, str) for item in value):
                return value
    return [DEFAULT_CURRENCY]


class ProjectPartition(Partition):
    namespace = "Project"

    def __init__(self, transport: Transport, storage: LocalStorage) -> None:
        self._transport = transport
        self._storage = storage
        super().__init__()

    def initial_state(self) -> dict[str, Any]:
        return {
            "project": None,
            "project_public_name": "",
            "currencies": load_currencies(self._storage),
        }

    @mutation
    def set_project(self, state: PartitionState, value: dict[str, Any] | None) -> None:
        state["project"] = value

    @mutation
    def set_project_public_name(self, state: PartitionState, value: dict[str, Any] | str | None) -> None:
        if isinstance(value, dict):
            state["project_public_name"] = value.get("en") or ""
        else:
            state["project_public_name"] = value or ""

    @mutation
    def set_currencies(self, state: PartitionState, value: list[str]) -> None:
        currencies = list(value)
        self._storage.set_item(PROJECT_CURRENCIES_STORAGE_KEY, json.dumps(currencies))
        state["currencies"] = currencies

    @getter
    def project(self, state: Any) -> dict[str, Any] | None:
        return state["project"]

    @getter
    def project_public_name(self, state: Any) -> str:
        return state["project_public_name"]

    @getter
    def currencies(self, state: Any) -> list[str]:
        return list(state["currencies"])

    @getter
    def currencies_detailed(self, state: Any) -> list[CurrencyRegion]:
        return [CurrencyRegion.from_key(item) for item in state["currencies"]]

    def _require_project_id(self) -> str:
        project = self.state["project"]
        if not project or not project.get("id"):
            raise PaySuperStateError("Project has not been saved yet")
        return str(project["id"])

    @action
    async def init_state(self, ctx: ActionContext, payload: dict[str, Any]) -> None:
        """Bootstrap the page.

        ``payload`` carries ``id`` and, for ``id == "new"``, optional
        ``name`` and ``image`` used to seed the record.
        """
        project_id = payload.get("id")
        if project_id == NEW_RECORD_ID:
            seeded = default_project(payload.get("name"), payload.get("image"))
            ctx.commit("set_project", seeded)
            ctx.commit("set_currencies", load_currencies(self._storage))
            ctx.commit("set_project_public_name", seeded["name"])
            return
        await ctx.dispatch("fetch_project", project_id)

    @action
    async def fetch_project(self, ctx: ActionContext, project_id: str) -> None:
        ticket = self.take_ticket("project")
        try:
            data = await self._transport.request("GET", f"{ADMIN_API_PREFIX}/projects/{project_id}")
        except PaySuperError as exc:
            await ctx.dispatch("Page.report_error", exc, root=True)
            return
        if not self.is_current("project", ticket):
            _logger.debug("Dropping superseded response for project %s", project_id)
            return
        item = data.get("item") if isinstance(data, dict) else None
        if not isinstance(item, dict):
            await ctx.dispatch("Page.report_error", PaySuperError(f"Project {project_id} response has no item"), root=True)
            return
        ctx.commit("set_project", map_api_to_form(item))
        ctx.commit("set_project_public_name", item.get("name"))

    @action
    async def save_project(self, ctx: ActionContext, project: dict[str, Any]) -> None:
        project_id = self._require_project_id()
        data = await self._transport.request(
            "PATCH",
            f"{ADMIN_API_PREFIX}/projects/{project_id}",
            map_form_to_api(project),
        )
        saved = data.get("item", data) if isinstance(data, dict) else None
        if isinstance(saved, dict):
            ctx.commit("set_project", map_api_to_form(saved))
        ctx.commit("set_project_public_name", ctx.state["project"]["name"])

    @action
    async def check_is_sku_unique(self, ctx: ActionContext, sku: str) -> bool:
        """Whether *sku* is still free within the current project."""
        project_id = self._require_project_id()
        try:
            await self._transport.request("POST", f"{ADMIN_API_PREFIX}/projects/{project_id}/sku", {"sku": sku})
        except PaySuperApiError as exc:
            if exc.code in DUPLICATE_KEY_CODES:
                return False
            raise
        return True

    @action
    async def update_currencies(self, ctx: ActionContext, currencies: list[str]) -> None:
        ctx.commit("set_currencies", currencies)
