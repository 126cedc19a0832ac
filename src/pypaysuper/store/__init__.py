"""State orchestration layer.

Partitions own state; the root store composes them and is the only
channel through which one partition reaches another.
"""

from pypaysuper.store.partition import (
    MISSING,
    ActionContext,
    Partition,
    PartitionState,
    action,
    getter,
    mutation,
)
from pypaysuper.store.registry import RootStore, qualify, split_path

__all__ = [
    "MISSING",
    "ActionContext",
    "Partition",
    "PartitionState",
    "RootStore",
    "action",
    "getter",
    "mutation",
    "qualify",
    "split_path",
]
