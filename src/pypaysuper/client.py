"""High-level async client owning the dashboard state for one session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import aiohttp

from pypaysuper._channel import CentrifugoChannel, NotificationChannel
from pypaysuper._mqtt import MqttChannel
from pypaysuper._storage import JsonFileStorage, LocalStorage, MemoryStorage
from pypaysuper._transport import HttpTransport, Transport
from pypaysuper.config import PaySuperConfig
from pypaysuper.exceptions import PaySuperError
from pypaysuper.models.notification import utc_now
from pypaysuper.partitions import build_root_store
from pypaysuper.partitions.dictionaries import CountryTranslator, default_country_label
from pypaysuper.store.partition import MISSING
from pypaysuper.store.registry import RootStore
from pypaysuper.subscriber import NotificationSubscriber

_logger = logging.getLogger(__name__)


class PaySuperClient:
    """Async client for the merchant dashboard state layer.

    Usage::

        async with PaySuperClient(config) as client:
            await client.bootstrap()
            await client.dispatch("Project.init_state", {"id": "new", "name": "Game"})
            print(client.getters["Project.project_public_name"])

    The notification channel opened during bootstrap is closed when the
    context exits.
    """

    def __init__(
        self,
        config: PaySuperConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        channel: NotificationChannel | None = None,
        storage: LocalStorage | None = None,
        clock: Callable[[], datetime] = utc_now,
        translate_country: CountryTranslator = default_country_label,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._channel = channel
        self._storage = storage
        self._clock = clock
        self._translate_country = translate_country
        self._subscriber: NotificationSubscriber | None = None
        self._store: RootStore | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PaySuperClient:
        if self._http_session is None and (self._transport is None or self._channel is None):
            self._http_session = aiohttp.ClientSession()
        transport = self._transport or HttpTransport(self._config, self._require_http())
        channel = self._channel or self._build_channel()
        storage = self._storage or self._build_storage()
        self._subscriber = NotificationSubscriber(channel)
        self._store = build_root_store(
            transport=transport,
            storage=storage,
            subscriber=self._subscriber,
            clock=self._clock,
            translate_country=self._translate_country,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._subscriber is not None:
            try:
                await self._subscriber.stop()
            except PaySuperError:
                _logger.debug("Closing notification channel failed", exc_info=True)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._subscriber = None
        self._store = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_http(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise PaySuperError("HTTP session is not available")
        return self._http_session

    def _build_channel(self) -> NotificationChannel:
        if self._config.channel_backend == "mqtt":
            return MqttChannel(
                host=self._config.mqtt_host,
                port=self._config.mqtt_port,
                keepalive=self._config.mqtt_keepalive,
                tls=self._config.mqtt_tls,
            )
        return CentrifugoChannel(url=self._config.websocket_url, http_session=self._require_http())

    def _build_storage(self) -> LocalStorage:
        if self._config.storage_path:
            return JsonFileStorage(self._config.storage_path)
        return MemoryStorage()

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    @property
    def store(self) -> RootStore:
        if self._store is None:
            raise PaySuperError("Client not initialized. Use 'async with PaySuperClient(...) as client:'")
        return self._store

    @property
    def subscriber(self) -> NotificationSubscriber:
        if self._subscriber is None:
            raise PaySuperError("Client not initialized. Use 'async with PaySuperClient(...) as client:'")
        return self._subscriber

    @property
    def getters(self) -> Mapping[str, Any]:
        return self.store.getters

    @property
    def state(self) -> dict[str, Any]:
        return self.store.state

    async def dispatch(self, path: str, payload: Any = MISSING) -> Any:
        return await self.store.dispatch(path, payload)

    def commit(self, path: str, payload: Any = MISSING) -> None:
        self.store.commit(path, payload)

    async def bootstrap(self) -> None:
        """Load the session-wide partitions.

        The merchant comes first because the company profile and the
        notification channel are keyed on it.  Dictionaries load
        concurrently with the merchant-dependent partitions.
        """
        store = self.store
        await store.init_state("User.Merchant")

        async def _merchant_dependents() -> None:
            await store.init_state("AccountInfo")
            await store.init_state("User.Notifications")

        await asyncio.gather(
            store.init_state("Dictionaries"),
            _merchant_dependents(),
        )
