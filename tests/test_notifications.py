from __future__ import annotations

import asyncio

import pytest
from conftest import MERCHANT, FakeChannel, FakeTransport

from pypaysuper.exceptions import PaySuperChannelError, PaySuperTransportError
from pypaysuper.models import Notification
from pypaysuper.partitions.notifications import replace_by_id
from pypaysuper.store import RootStore
from pypaysuper.subscriber import SubscriptionState

NOTIFICATIONS = f"/admin/api/v1/merchants/{MERCHANT['id']}/notifications"


def _mark_path(notification_id: object) -> str:
    return f"{NOTIFICATIONS}/{notification_id}/mark-as-read"


@pytest.fixture
def merchant_store(store: RootStore) -> RootStore:
    store.commit("User.Merchant.set_merchant", MERCHANT)
    return store


@pytest.mark.asyncio
async def test_fetch_sorts_newest_first_and_parses_items(
    merchant_store: RootStore, transport: FakeTransport
) -> None:
    transport.route(
        "GET",
        NOTIFICATIONS,
        {
            "count": 2,
            "items": [
                {"id": "n2", "message": "Payout sent", "created_at": {"seconds": 1700000100}, "is_read": True},
                {"id": "n1", "message": "Welcome", "created_at": "2023-11-14T22:13:20Z"},
            ],
        },
    )

    await merchant_store.dispatch("User.Notifications.fetch_notifications")

    assert transport.calls[0].params == {"sort[]": "-created_at"}
    items = merchant_store.getters["User.Notifications.notifications"]
    assert [item.id for item in items] == ["n2", "n1"]
    assert items[0].read is True
    assert items[1].created_at is not None
    assert items[1].created_at.seconds == 1700000000
    assert merchant_store.getters["User.Notifications.unread_count"] == 1


@pytest.mark.asyncio
async def test_fetch_without_merchant_makes_no_request(store: RootStore, transport: FakeTransport) -> None:
    await store.dispatch("User.Notifications.fetch_notifications")
    assert transport.calls == []


@pytest.mark.asyncio
async def test_fetch_failure_keeps_previous_list(merchant_store: RootStore, transport: FakeTransport) -> None:
    previous = [Notification(id="n1", message="kept")]
    merchant_store.commit("User.Notifications.set_notifications", previous)
    transport.route("GET", NOTIFICATIONS, PaySuperTransportError("boom", endpoint=NOTIFICATIONS))

    await merchant_store.dispatch("User.Notifications.fetch_notifications")

    assert merchant_store.getters["User.Notifications.notifications"] == previous
    # Notification failures do not reach the page error sink.
    assert merchant_store.getters["Page.page_error"] is None


@pytest.mark.asyncio
async def test_fetch_skips_malformed_items(merchant_store: RootStore, transport: FakeTransport) -> None:
    transport.route("GET", NOTIFICATIONS, {"items": [{"message": "no id"}, {"id": 7, "message": "ok"}]})

    await merchant_store.dispatch("User.Notifications.fetch_notifications")

    assert [item.id for item in merchant_store.getters["User.Notifications.notifications"]] == [7]


@pytest.mark.asyncio
async def test_stale_fetch_response_is_dropped(merchant_store: RootStore, transport: FakeTransport) -> None:
    responses = iter([{"items": [{"id": "from-second"}]}, {"items": [{"id": "from-first"}]}])
    transport.route("GET", NOTIFICATIONS, lambda _body: next(responses))
    release_first = transport.gate("GET", NOTIFICATIONS)

    first = asyncio.create_task(merchant_store.dispatch("User.Notifications.fetch_notifications"))
    await asyncio.sleep(0)
    await merchant_store.dispatch("User.Notifications.fetch_notifications")
    release_first.set()
    await first

    # The route answers in resolution order; the first request resolves last
    # and is discarded as superseded.
    assert [item.id for item in merchant_store.getters["User.Notifications.notifications"]] == ["from-second"]


@pytest.mark.asyncio
async def test_mark_as_read_replaces_only_matching_entry(
    merchant_store: RootStore, transport: FakeTransport
) -> None:
    merchant_store.commit(
        "User.Notifications.set_notifications",
        [Notification(id=1, read=False), Notification(id=2, read=False)],
    )
    transport.route("PUT", _mark_path(2), {"id": 2, "read": True})

    await merchant_store.dispatch("User.Notifications.mark_notification_as_read", 2)

    items = merchant_store.getters["User.Notifications.notifications"]
    assert [(item.id, item.read) for item in items] == [(1, False), (2, True)]


@pytest.mark.asyncio
async def test_mark_as_read_keeps_events_prepended_while_in_flight(
    merchant_store: RootStore, transport: FakeTransport, channel: FakeChannel
) -> None:
    transport.route("GET", NOTIFICATIONS, {"items": [{"id": 1, "created_at": 1700000000}]})
    await merchant_store.init_state("User.Notifications")
    transport.route("PUT", _mark_path(1), {"id": 1, "read": True, "created_at": 1700000000})
    release = transport.gate("PUT", _mark_path(1))

    task = asyncio.create_task(merchant_store.dispatch("User.Notifications.mark_notification_as_read", 1))
    await asyncio.sleep(0)
    channel.publish({"id": 2, "message": "live"})
    release.set()
    await task

    items = merchant_store.getters["User.Notifications.notifications"]
    assert [(item.id, item.read) for item in items] == [(2, False), (1, True)]


@pytest.mark.asyncio
async def test_mark_as_read_failure_leaves_list_untouched(
    merchant_store: RootStore, transport: FakeTransport
) -> None:
    before = [Notification(id=1), Notification(id=2)]
    merchant_store.commit("User.Notifications.set_notifications", before)
    transport.route("PUT", _mark_path(1), PaySuperTransportError("down"))

    await merchant_store.dispatch("User.Notifications.mark_notification_as_read", 1)

    assert merchant_store.getters["User.Notifications.notifications"] == before


@pytest.mark.asyncio
async def test_watch_opens_one_subscription(merchant_store: RootStore, channel: FakeChannel) -> None:
    assert merchant_store.getters["User.Notifications.is_watching_inited"] is False

    await merchant_store.dispatch("User.Notifications.watch_for_notifications")
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    assert channel.opens == [("channel-token-1", f"paysuper:merchant#{MERCHANT['id']}")]
    assert merchant_store.getters["User.Notifications.is_watching_inited"] is True
    assert merchant_store.getters["User.Notifications.subscription_state"] is SubscriptionState.SUBSCRIBED


@pytest.mark.asyncio
async def test_concurrent_watch_calls_open_once(merchant_store: RootStore, channel: FakeChannel) -> None:
    channel.open_gate = asyncio.Event()

    first = asyncio.create_task(merchant_store.dispatch("User.Notifications.watch_for_notifications"))
    await asyncio.sleep(0)
    assert merchant_store.getters["User.Notifications.subscription_state"] is SubscriptionState.CONNECTING
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")
    channel.open_gate.set()
    await first

    assert len(channel.opens) == 1


@pytest.mark.asyncio
async def test_live_event_is_prepended_with_fallback_timestamp(
    merchant_store: RootStore, channel: FakeChannel
) -> None:
    merchant_store.commit(
        "User.Notifications.set_notifications",
        [Notification(id="old", created_at=1600000000)],
    )
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    channel.publish({"id": "fresh", "message": "Payout processed", "title": "Payouts"})

    items = merchant_store.getters["User.Notifications.notifications"]
    assert [item.id for item in items] == ["fresh", "old"]
    # fixed_clock in conftest: 2026-01-01T12:00:00Z
    assert items[0].created_at is not None
    assert items[0].created_at.seconds == 1767268800
    assert items[0].to_wire()["title"] == "Payouts"


@pytest.mark.asyncio
async def test_live_event_keeps_server_timestamp(merchant_store: RootStore, channel: FakeChannel) -> None:
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    channel.publish({"id": "n", "created_at": {"seconds": 1700000000, "nanos": 5}})

    event = merchant_store.getters["User.Notifications.notifications"][0]
    assert event.created_at is not None
    assert (event.created_at.seconds, event.created_at.nanos) == (1700000000, 5)


@pytest.mark.asyncio
async def test_malformed_live_event_is_dropped(merchant_store: RootStore, channel: FakeChannel) -> None:
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    channel.publish({"message": "missing id"})

    assert merchant_store.getters["User.Notifications.notifications"] == []


@pytest.mark.asyncio
async def test_failed_open_releases_latch(merchant_store: RootStore, channel: FakeChannel) -> None:
    channel.fail_with = PaySuperChannelError("refused")

    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    assert merchant_store.getters["User.Notifications.is_watching_inited"] is False
    assert merchant_store.getters["User.Notifications.subscription_state"] is SubscriptionState.UNINITIALIZED

    channel.fail_with = None
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")
    assert len(channel.opens) == 2
    assert merchant_store.getters["User.Notifications.is_watching_inited"] is True


@pytest.mark.asyncio
async def test_lost_channel_releases_latch_for_next_watch(merchant_store: RootStore, channel: FakeChannel) -> None:
    await merchant_store.dispatch("User.Notifications.watch_for_notifications")

    channel.drop()

    assert merchant_store.getters["User.Notifications.is_watching_inited"] is False
    assert merchant_store.getters["User.Notifications.subscription_state"] is SubscriptionState.UNINITIALIZED

    await merchant_store.dispatch("User.Notifications.watch_for_notifications")
    assert len(channel.opens) == 2
    assert merchant_store.getters["User.Notifications.is_watching_inited"] is True

    channel.publish({"id": "after-reconnect"})
    assert [n.id for n in merchant_store.getters["User.Notifications.notifications"]] == ["after-reconnect"]


@pytest.mark.asyncio
async def test_watch_without_merchant_does_nothing(store: RootStore, channel: FakeChannel) -> None:
    await store.dispatch("User.Notifications.watch_for_notifications")

    assert channel.opens == []
    assert store.getters["User.Notifications.is_watching_inited"] is False


@pytest.mark.asyncio
async def test_init_state_fetches_then_watches(merchant_store: RootStore, transport: FakeTransport, channel: FakeChannel) -> None:
    transport.route("GET", NOTIFICATIONS, {"items": []})

    await merchant_store.init_state("User.Notifications")
    await merchant_store.init_state("User.Notifications")

    assert transport.count("GET", NOTIFICATIONS) == 2
    assert len(channel.opens) == 1


def test_replace_by_id_preserves_order() -> None:
    items = [Notification(id="a"), Notification(id="b"), Notification(id="c")]
    updated = replace_by_id(items, Notification(id="b", read=True))
    assert [(item.id, item.read) for item in updated] == [("a", False), ("b", True), ("c", False)]
