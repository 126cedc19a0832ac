"""Dashboard state partitions and the root store assembly."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from pypaysuper._storage import LocalStorage
from pypaysuper._transport import Transport
from pypaysuper.models.notification import utc_now
from pypaysuper.partitions.account_info import AccountInfoPartition
from pypaysuper.partitions.dictionaries import CountryTranslator, DictionariesPartition, default_country_label
from pypaysuper.partitions.merchant import MerchantPartition
from pypaysuper.partitions.notifications import NotificationsPartition
from pypaysuper.partitions.page import PagePartition
from pypaysuper.partitions.payment_method import PaymentMethodPartition
from pypaysuper.partitions.project import ProjectPartition
from pypaysuper.store.registry import RootStore
from pypaysuper.subscriber import NotificationSubscriber


def build_root_store(
    *,
    transport: Transport,
    storage: LocalStorage,
    subscriber: NotificationSubscriber,
    clock: Callable[[], datetime] = utc_now,
    translate_country: CountryTranslator = default_country_label,
) -> RootStore:
    """Create every dashboard partition and register it with a new root store."""
    return RootStore(
        [
            PagePartition(),
            MerchantPartition(transport),
            NotificationsPartition(transport, subscriber, clock=clock),
            AccountInfoPartition(transport),
            DictionariesPartition(transport, translate_country=translate_country),
            ProjectPartition(transport, storage),
            PaymentMethodPartition(transport),
        ]
    )


__all__ = [
    "AccountInfoPartition",
    "DictionariesPartition",
    "MerchantPartition",
    "NotificationsPartition",
    "PagePartition",
    "PaymentMethodPartition",
    "ProjectPartition",
    "build_root_store",
]
