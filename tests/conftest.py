from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from pypaysuper._storage import MemoryStorage
from pypaysuper.partitions import build_root_store
from pypaysuper.store.registry import RootStore
from pypaysuper.subscriber import NotificationSubscriber

MERCHANT = {
    "id": "5be2c3022b9bb6000765d132",
    "centrifugo_token": "channel-token-1",
    "status": 1,
    "company": {"name": "Acme Games", "country": "CY", "tax_id": "CY-123"},
    "steps": {"company": False, "contacts": False},
}


@dataclass
class Call:
    method: str
    path: str
    body: Any = None
    params: dict[str, str] | None = None


@dataclass
class FakeTransport:
    """Routes ``(method, path)`` to a canned payload, an exception, or a callable."""

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)
    gates: dict[tuple[str, str], list[asyncio.Event]] = field(default_factory=dict)

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def gate(self, method: str, path: str) -> asyncio.Event:
        """Make the next call to ``(method, path)`` wait until the returned event is set."""
        event = asyncio.Event()
        self.gates.setdefault((method, path), []).append(event)
        return event

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call.method == method and call.path == path)

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        self.calls.append(Call(method, path, body, dict(params) if params else None))
        key = (method, path)
        pending = self.gates.get(key)
        if pending:
            await pending.pop(0).wait()
        if key not in self.routes:
            raise AssertionError(f"Unexpected request in fake transport: {method} {path}")
        response = self.routes[key]
        if callable(response) and not isinstance(response, BaseException):
            response = response(body)
        if isinstance(response, BaseException):
            raise response
        return response


@dataclass
class FakeChannel:
    opens: list[tuple[str, str]] = field(default_factory=list)
    closes: int = 0
    fail_with: BaseException | None = None
    open_gate: asyncio.Event | None = None
    handler: Callable[[dict[str, Any]], None] | None = None
    on_closed: Callable[[], None] | None = None

    @property
    def is_open(self) -> bool:
        return self.handler is not None

    async def open(
        self,
        *,
        token: str,
        channel: str,
        on_message: Callable[[dict[str, Any]], None],
        on_closed: Callable[[], None] | None = None,
    ) -> None:
        self.opens.append((token, channel))
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        self.handler = on_message
        self.on_closed = on_closed

    async def close(self) -> None:
        self.closes += 1
        self.handler = None

    def publish(self, data: dict[str, Any]) -> None:
        assert self.handler is not None, "channel is not open"
        self.handler(data)

    def drop(self) -> None:
        """Lose the connection without ``close`` being called."""
        on_closed = self.on_closed
        self.handler = None
        self.on_closed = None
        if on_closed is not None:
            on_closed()


def fixed_clock() -> datetime:
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def subscriber(channel: FakeChannel) -> NotificationSubscriber:
    return NotificationSubscriber(channel)


@pytest.fixture
def store(transport: FakeTransport, storage: MemoryStorage, subscriber: NotificationSubscriber) -> RootStore:
    return build_root_store(
        transport=transport,
        storage=storage,
        subscriber=subscriber,
        clock=fixed_clock,
    )
