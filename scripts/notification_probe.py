#!/usr/bin/env python3
"""Passive notification probe for a PaySuper merchant account.

This script uses pypaysuper to:
1) load the authenticated merchant (PAYSUPER_AUTH_TOKEN),
2) fetch the notification history,
3) open the merchant channel (Centrifugo or MQTT, per PAYSUPER_CHANNEL_BACKEND),
4) print every live notification as it arrives.

Use this to check that the channel token is accepted and that events
reach the client.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pypaysuper import PaySuperClient, PaySuperConfig, PaySuperError, SubscriptionState  # noqa: E402
from pypaysuper.models import Notification  # noqa: E402

_LOG = logging.getLogger("notification_probe")


@dataclass
class ProbeStats:
    started_at: float
    history: int = 0
    live_messages: int = 0
    first_message_at: float | None = None
    last_message_at: float | None = None

    def on_message(self, now: float) -> float | None:
        previous = self.last_message_at
        self.live_messages += 1
        if self.first_message_at is None:
            self.first_message_at = now
        self.last_message_at = now
        return None if previous is None else now - previous


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Passive probe for the PaySuper merchant notification channel.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print the fetched notification history before listening.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print notification payloads.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _format(notification: Notification, pretty: bool) -> str:
    return json.dumps(notification.to_wire(), indent=2 if pretty else None, ensure_ascii=False, sort_keys=True)


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s      : {runtime:.1f}")
    print(f"[probe]   history        : {stats.history}")
    print(f"[probe]   live_messages  : {stats.live_messages}")
    if stats.first_message_at is not None:
        first_message = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(stats.first_message_at))
        print(f"[probe]   first_message  : {first_message}")
    if stats.last_message_at is not None:
        last_message = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(stats.last_message_at))
        print(f"[probe]   last_message   : {last_message}")


async def _probe(args: argparse.Namespace, config: PaySuperConfig, stats: ProbeStats) -> int:
    async with PaySuperClient(config) as client:
        await client.store.init_state("User.Merchant")
        merchant_id = client.getters["User.Merchant.merchant_id"]
        if not merchant_id:
            error = client.getters["Page.page_error_message"] or "no merchant returned"
            print(f"[probe] Merchant bootstrap failed: {error}", file=sys.stderr)
            return 2
        print(f"[probe] Merchant {merchant_id} via {config.channel_backend}")

        def on_commit(path: str, payload: Any) -> None:
            if path != "User.Notifications.set_notifications" or not payload:
                return
            if client.getters["User.Notifications.subscription_state"] is not SubscriptionState.SUBSCRIBED:
                return
            now = time.time()
            delta = stats.on_message(now)
            gap_text = "first" if delta is None else f"{delta:.1f}s"
            print(f"[probe] msg#{stats.live_messages} gap={gap_text}")
            print(_format(payload[0], args.json))

        await client.store.init_state("User.Notifications")
        history = client.getters["User.Notifications.notifications"]
        stats.history = len(history)
        if args.history:
            for item in history:
                print(_format(item, args.json))

        if client.subscriber.state is not SubscriptionState.SUBSCRIBED:
            print("[probe] Notification channel did not open", file=sys.stderr)
            return 3
        print(f"[probe] Subscribed to {client.subscriber.session.topic}")

        unsubscribe = client.store.subscribe(on_commit)
        try:
            if args.duration > 0:
                await asyncio.sleep(args.duration)
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
            else:
                await asyncio.Event().wait()
        finally:
            unsubscribe()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = PaySuperConfig.from_env()
    stats = ProbeStats(started_at=time.time())
    try:
        code = asyncio.run(_probe(args, config, stats))
    except KeyboardInterrupt:
        code = 0
    except PaySuperError as exc:  # pragma: no cover - network/system interaction
        _LOG.debug("Probe failed", exc_info=True)
        print(f"[probe] Failed: {exc}", file=sys.stderr)
        code = 2

    _print_summary(stats)
    return code


if __name__ == "__main__":
    raise SystemExit(_main())
