"""Root store: composes partitions into one addressable tree.

Paths are dotted.  The last segment names the operation, everything
before it names the partition namespace::

    await store.dispatch("User.Merchant.complete_step", "company")
    store.commit("Project.set_currencies", ["USD", "EUR-EU"])
    store.getters["Project.currencies_detailed"]

Resolution is strict: an unknown namespace or operation raises
:class:`~pypaysuper.exceptions.PaySuperConfigError` immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from pypaysuper.exceptions import PaySuperConfigError
from pypaysuper.store.partition import MISSING, Partition

_logger = logging.getLogger(__name__)

CommitListener = Callable[[str, Any], None]


@dataclass
class _NamespaceNode:
    name: str
    partition: Partition | None = None
    children: dict[str, _NamespaceNode] = field(default_factory=dict)

    def state_tree(self) -> dict[str, Any]:
        tree: dict[str, Any] = self.partition.snapshot() if self.partition is not None else {}
        for child_name, child in self.children.items():
            tree[child_name] = child.state_tree()
        return tree


def split_path(path: str) -> tuple[str, str]:
    """Split ``"A.B.op"`` into ``("A.B", "op")``."""
    namespace, _, name = path.strip().rpartition(".")
    if not name:
        raise PaySuperConfigError(f"Invalid store path {path!r}")
    return namespace, name


def qualify(path: str, *, namespace: str = "", root: bool = False) -> str:
    """Resolve *path* against the caller's *namespace* unless *root* is set."""
    if root or not namespace:
        return path
    return f"{namespace}.{path}"


class RootGetters(Mapping[str, Any]):
    """Read-only mapping of ``"Namespace.getter"`` to the derived value."""

    def __init__(self, store: RootStore) -> None:
        self._store = store

    def __getitem__(self, path: str) -> Any:
        namespace, name = split_path(path)
        return self._store.partition(namespace).read_getter(name)

    def __iter__(self) -> Iterator[str]:
        for namespace, partition in sorted(self._store.partitions.items()):
            for name in sorted(partition.getter_names()):
                yield f"{namespace}.{name}"

    def __len__(self) -> int:
        return sum(len(p.getter_names()) for p in self._store.partitions.values())


class RootStore:
    """Partition registry.

    Holds no domain state of its own; every value lives in a partition.
    """

    def __init__(self, partitions: Iterable[Partition] = ()) -> None:
        self._root = _NamespaceNode("")
        self._partitions: dict[str, Partition] = {}
        self._listeners: list[CommitListener] = []
        for partition in partitions:
            self.register(partition)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def register(self, partition: Partition) -> None:
        """Add *partition* at its namespace.

        Intermediate namespace nodes are created on demand.  Registering
        the same namespace twice is a configuration error.
        """
        namespace = partition.namespace
        segments = namespace.split(".")
        if any(not segment for segment in segments):
            raise PaySuperConfigError(f"Invalid namespace {namespace!r}")
        if namespace in self._partitions:
            raise PaySuperConfigError(f"Namespace {namespace!r} is already registered")

        node = self._root
        for segment in segments:
            if node.partition is not None and segment in node.partition.state:
                raise PaySuperConfigError(
                    f"Namespace {namespace!r} collides with state field {segment!r} of {node.partition.namespace}"
                )
            node = node.children.setdefault(segment, _NamespaceNode(segment))
        clashing = set(node.children) & set(partition.state)
        if clashing:
            raise PaySuperConfigError(f"State fields {sorted(clashing)} of {namespace!r} collide with child namespaces")
        node.partition = partition
        partition.bind(self)
        self._partitions[namespace] = partition
        _logger.debug("Registered partition %s", namespace)

    @property
    def partitions(self) -> Mapping[str, Partition]:
        return dict(self._partitions)

    def partition(self, namespace: str) -> Partition:
        found = self._partitions.get(namespace)
        if found is None:
            raise PaySuperConfigError(f"Unknown namespace {namespace!r}")
        return found

    def has_namespace(self, namespace: str) -> bool:
        return namespace in self._partitions

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def state(self) -> dict[str, Any]:
        """Deep copy of the whole state tree, nested by namespace."""
        return self._root.state_tree()

    @property
    def getters(self) -> Mapping[str, Any]:
        return RootGetters(self)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def subscribe(self, listener: CommitListener) -> Callable[[], None]:
        """Call *listener* with ``(path, payload)`` after every commit.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def commit(self, path: str, payload: Any = MISSING, *, root: bool = False, namespace: str = "") -> None:
        full_path = qualify(path, namespace=namespace, root=root)
        target_ns, name = split_path(full_path)
        self.partition(target_ns).apply_mutation(name, payload)
        for listener in list(self._listeners):
            listener(full_path, None if payload is MISSING else payload)

    async def dispatch(self, path: str, payload: Any = MISSING, *, root: bool = False, namespace: str = "") -> Any:
        full_path = qualify(path, namespace=namespace, root=root)
        target_ns, name = split_path(full_path)
        partition = self.partition(target_ns)
        if name not in partition.action_names():
            raise PaySuperConfigError(f"Unknown action {full_path}")
        _logger.debug("dispatch %s", full_path)
        return await partition.run_action(name, payload)

    async def init_state(self, namespace: str, payload: Any = MISSING) -> Any:
        """Uniform bootstrap entrypoint: dispatch ``<namespace>.init_state``."""
        return await self.dispatch(f"{namespace}.init_state", payload)
