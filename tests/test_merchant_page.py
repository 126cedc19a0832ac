from __future__ import annotations

import pytest
from conftest import MERCHANT, FakeTransport

from pypaysuper.exceptions import PaySuperApiError, PaySuperStateError, PaySuperTransportError
from pypaysuper.models import PageError
from pypaysuper.store import RootStore

MERCHANT_PATH = "/admin/api/v1/merchants/user"
METHOD_PATH = f"/admin/api/v1/merchants/{MERCHANT['id']}/methods/pm-1"


@pytest.mark.asyncio
async def test_merchant_getters_after_fetch(store: RootStore, transport: FakeTransport) -> None:
    transport.route("GET", MERCHANT_PATH, MERCHANT)

    await store.init_state("User.Merchant")

    assert store.getters["User.Merchant.merchant_id"] == MERCHANT["id"]
    assert store.getters["User.Merchant.channel_token"] == "channel-token-1"
    assert store.getters["User.Merchant.company"]["name"] == "Acme Games"
    assert store.getters["User.Merchant.is_step_complete"]("company") is False
    assert store.getters["User.Merchant.is_step_complete"]("unknown") is False


def test_merchant_getters_without_merchant(store: RootStore) -> None:
    assert store.getters["User.Merchant.merchant"] is None
    assert store.getters["User.Merchant.merchant_id"] is None
    assert store.getters["User.Merchant.channel_token"] is None
    assert store.getters["User.Merchant.company"] is None


@pytest.mark.asyncio
async def test_merchant_fetch_failure_sets_page_error(store: RootStore, transport: FakeTransport) -> None:
    transport.route("GET", MERCHANT_PATH, PaySuperTransportError("HTTP 502", status_code=502, endpoint=MERCHANT_PATH))

    await store.init_state("User.Merchant")

    error = store.getters["Page.page_error"]
    assert isinstance(error, PageError)
    assert error.code == "transport_failure"
    assert error.endpoint == MERCHANT_PATH
    assert store.getters["Page.has_page_error"] is True
    assert store.getters["User.Merchant.merchant"] is None


@pytest.mark.asyncio
async def test_complete_step_does_not_touch_caller_record(store: RootStore) -> None:
    original = {"id": "m1", "steps": {"company": False}}
    await store.dispatch("User.Merchant.change_merchant", original)
    await store.dispatch("User.Merchant.complete_step", "company")

    assert original["steps"]["company"] is False
    assert store.getters["User.Merchant.is_step_complete"]("company") is True


@pytest.mark.asyncio
async def test_complete_step_without_merchant_is_a_no_op(store: RootStore) -> None:
    await store.dispatch("User.Merchant.complete_step", "company")
    assert store.getters["User.Merchant.merchant"] is None


@pytest.mark.asyncio
async def test_report_and_clear_page_error(store: RootStore) -> None:
    await store.dispatch("Page.report_error", PaySuperApiError("nope", code="ma000001", status_code=403))

    assert store.getters["Page.page_error_message"] == "nope"
    assert store.getters["Page.page_error"].status_code == 403

    await store.dispatch("Page.clear_page_error")
    assert store.getters["Page.page_error"] is None
    assert store.getters["Page.page_error_message"] is None


@pytest.mark.asyncio
async def test_report_error_accepts_plain_exceptions(store: RootStore) -> None:
    await store.dispatch("Page.report_error", RuntimeError())
    assert store.getters["Page.page_error_message"] == "RuntimeError"


@pytest.mark.asyncio
async def test_payment_method_edit_and_update(store: RootStore, transport: FakeTransport) -> None:
    transport.route("GET", METHOD_PATH, {"id": "pm-1", "params": [], "is_active": False})
    transport.route("PUT", METHOD_PATH, lambda body: {**body, "updated": True})

    await store.init_state("PaymentMethod", {"merchant_id": MERCHANT["id"], "payment_method_id": "pm-1"})
    await store.dispatch("PaymentMethod.edit_payment_method", {"is_active": True})
    await store.dispatch("PaymentMethod.update_payment_method")

    assert transport.calls[-1].body == {"id": "pm-1", "params": [], "is_active": True}
    assert store.getters["PaymentMethod.payment_method"]["updated"] is True


@pytest.mark.asyncio
async def test_payment_method_fetch_failure_sets_page_error(store: RootStore, transport: FakeTransport) -> None:
    transport.route("GET", METHOD_PATH, PaySuperApiError("not found", code="ma000023", status_code=404))

    await store.init_state("PaymentMethod", {"merchant_id": MERCHANT["id"], "payment_method_id": "pm-1"})

    assert store.getters["Page.page_error"].code == "ma000023"
    assert store.getters["PaymentMethod.payment_method"] is None


@pytest.mark.asyncio
async def test_payment_method_requires_init(store: RootStore) -> None:
    with pytest.raises(PaySuperStateError):
        await store.dispatch("PaymentMethod.update_payment_method")
