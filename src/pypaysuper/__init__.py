"""pypaysuper - Async client-side state layer for the PaySuper merchant dashboard."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pypaysuper")
except PackageNotFoundError:
    __version__ = "0+local"
from pypaysuper._channel import CentrifugoChannel, NotificationChannel
from pypaysuper._mqtt import MqttChannel
from pypaysuper._storage import JsonFileStorage, LocalStorage, MemoryStorage
from pypaysuper._transport import HttpTransport, Transport
from pypaysuper.client import PaySuperClient
from pypaysuper.config import PaySuperConfig
from pypaysuper.exceptions import (
    PaySuperApiError,
    PaySuperChannelError,
    PaySuperConfigError,
    PaySuperDuplicateKeyError,
    PaySuperError,
    PaySuperStateError,
    PaySuperTransportError,
)
from pypaysuper.models import AccountInfo, CurrencyRegion, Notification, PageError
from pypaysuper.store import ActionContext, Partition, RootStore, action, getter, mutation
from pypaysuper.subscriber import NotificationSubscriber, SubscriptionSession, SubscriptionState

__all__ = [
    "__version__",
    "AccountInfo",
    "ActionContext",
    "CentrifugoChannel",
    "CurrencyRegion",
    "HttpTransport",
    "JsonFileStorage",
    "LocalStorage",
    "MemoryStorage",
    "MqttChannel",
    "Notification",
    "NotificationChannel",
    "NotificationSubscriber",
    "PageError",
    "Partition",
    "PaySuperApiError",
    "PaySuperChannelError",
    "PaySuperClient",
    "PaySuperConfig",
    "PaySuperConfigError",
    "PaySuperDuplicateKeyError",
    "PaySuperError",
    "PaySuperStateError",
    "PaySuperTransportError",
    "RootStore",
    "SubscriptionSession",
    "SubscriptionState",
    "Transport",
    "action",
    "getter",
    "mutation",
]
