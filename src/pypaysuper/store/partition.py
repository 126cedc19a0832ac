"""Partition template.

A partition is one namespaced unit of client state.  Subclasses declare:

* ``namespace``: dotted path in the root store (``"User.Merchant"``);
* ``initial_state()``: the declared fields and their defaults;
* ``@mutation`` methods: the only writers of the state, synchronous;
* ``@getter`` methods: pure functions of the state;
* ``@action`` coroutines: async operations that talk to the gateway and
  commit mutations, possibly in other partitions via root-scoped calls.

Partitions never hold references to each other.  Anything crossing a
partition boundary goes through :class:`ActionContext`.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Final, TypeVar

from pypaysuper.exceptions import PaySuperConfigError, PaySuperStateError

if TYPE_CHECKING:
    from pypaysuper.store.registry import RootStore

F = TypeVar("F", bound=Callable[..., Any])

_KIND_ATTR: Final = "__pypaysuper_kind__"


class _Missing:
    def __repr__(self) -> str:
        return "<MISSING>"


#: Sentinel meaning "no payload"; the operation is called without one.
MISSING: Final = _Missing()


def mutation(fn: F) -> F:
    """Declare a synchronous state writer ``(self, state, payload)``."""
    setattr(fn, _KIND_ATTR, "mutation")
    return fn


def action(fn: F) -> F:
    """Declare an async operation ``(self, ctx, payload)``."""
    setattr(fn, _KIND_ATTR, "action")
    return fn


def getter(fn: F) -> F:
    """Declare a derived value ``(self, state)``."""
    setattr(fn, _KIND_ATTR, "getter")
    return fn


class PartitionState(dict[str, Any]):
    """Mutable state handed to mutators.

    Only fields declared by ``initial_state()`` may be written.
    """

    def __init__(self, namespace: str, initial: Mapping[str, Any]) -> None:
        super().__init__(initial)
        self._namespace = namespace
        self._declared = frozenset(initial)

    def __setitem__(self, key: str, value: Any) -> None:
        if key not in self._declared:
            raise PaySuperStateError(f"{self._namespace} has no state field {key!r}")
        super().__setitem__(key, value)

    def __delitem__(self, key: str) -> None:
        raise PaySuperStateError(f"{self._namespace} state fields cannot be deleted ({key!r})")

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value


class Partition:
    """Base class for state partitions."""

    namespace: ClassVar[str] = ""

    _mutations: ClassVar[dict[str, Callable[..., Any]]] = {}
    _actions: ClassVar[dict[str, Callable[..., Any]]] = {}
    _getters: ClassVar[dict[str, Callable[..., Any]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        mutations: dict[str, Callable[..., Any]] = {}
        actions: dict[str, Callable[..., Any]] = {}
        getters: dict[str, Callable[..., Any]] = {}
        # Walk the MRO base-first so subclasses override inherited operations.
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                kind = getattr(value, _KIND_ATTR, None)
                if kind == "mutation":
                    mutations[name] = value
                elif kind == "action":
                    actions[name] = value
                elif kind == "getter":
                    getters[name] = value
        cls._mutations = mutations
        cls._actions = actions
        cls._getters = getters

    def __init__(self) -> None:
        if not self.namespace:
            raise PaySuperConfigError(f"{type(self).__name__} must declare a namespace")
        self._state = PartitionState(self.namespace, self.initial_state())
        self._store: RootStore | None = None
        self._tickets: dict[str, int] = {}

    def initial_state(self) -> dict[str, Any]:
        return {}

    # ------------------------------------------------------------------
    # Introspection used by the root store
    # ------------------------------------------------------------------

    @property
    def state(self) -> Mapping[str, Any]:
        """Read-only view of the partition state."""
        return MappingProxyType(self._state)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self._state))

    @classmethod
    def mutation_names(cls) -> frozenset[str]:
        return frozenset(cls._mutations)

    @classmethod
    def action_names(cls) -> frozenset[str]:
        return frozenset(cls._actions)

    @classmethod
    def getter_names(cls) -> frozenset[str]:
        return frozenset(cls._getters)

    def bind(self, store: RootStore) -> None:
        if self._store is not None and self._store is not store:
            raise PaySuperConfigError(f"{self.namespace} is already registered with another store")
        self._store = store

    @property
    def store(self) -> RootStore:
        if self._store is None:
            raise PaySuperConfigError(f"{self.namespace} is not registered with a root store")
        return self._store

    def apply_mutation(self, name: str, payload: Any = MISSING) -> None:
        fn = self._mutations.get(name)
        if fn is None:
            raise PaySuperConfigError(f"Unknown mutation {self.namespace}.{name}")
        if payload is MISSING:
            fn(self, self._state)
        else:
            fn(self, self._state, payload)

    async def run_action(self, name: str, payload: Any = MISSING) -> Any:
        fn = self._actions.get(name)
        if fn is None:
            raise PaySuperConfigError(f"Unknown action {self.namespace}.{name}")
        ctx = ActionContext(store=self.store, partition=self)
        if payload is MISSING:
            return await fn(self, ctx)
        return await fn(self, ctx, payload)

    def read_getter(self, name: str) -> Any:
        fn = self._getters.get(name)
        if fn is None:
            raise PaySuperConfigError(f"Unknown getter {self.namespace}.{name}")
        return fn(self, self.state)

    # ------------------------------------------------------------------
    # Last-write-wins sequencing for fetches
    # ------------------------------------------------------------------

    def take_ticket(self, key: str) -> int:
        """Start a sequenced operation and return its ticket."""
        ticket = self._tickets.get(key, 0) + 1
        self._tickets[key] = ticket
        return ticket

    def is_current(self, key: str, ticket: int) -> bool:
        """Whether *ticket* is still the latest one issued for *key*."""
        return self._tickets.get(key, 0) == ticket


class LocalGetters(Mapping[str, Any]):
    """Mapping view over one partition's getters."""

    def __init__(self, partition: Partition) -> None:
        self._partition = partition

    def __getitem__(self, name: str) -> Any:
        return self._partition.read_getter(name)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._partition.getter_names()))

    def __len__(self) -> int:
        return len(self._partition.getter_names())


@dataclass(frozen=True)
class ActionContext:
    """What an action may touch.

    ``state`` and ``getters`` are the calling partition's own.  Other
    partitions are reachable only through ``root_getters`` and root-scoped
    ``commit``/``dispatch`` calls.
    """

    store: RootStore
    partition: Partition

    @property
    def namespace(self) -> str:
        return self.partition.namespace

    @property
    def state(self) -> Mapping[str, Any]:
        return self.partition.state

    @property
    def getters(self) -> Mapping[str, Any]:
        return LocalGetters(self.partition)

    @property
    def root_getters(self) -> Mapping[str, Any]:
        return self.store.getters

    def commit(self, name: str, payload: Any = MISSING, *, root: bool = False) -> None:
        self.store.commit(name, payload, root=root, namespace=self.namespace)

    async def dispatch(self, name: str, payload: Any = MISSING, *, root: bool = False) -> Any:
        return await self.store.dispatch(name, payload, root=root, namespace=self.namespace)
