import copy
import threading
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from typing import TypeVar

K = TypeVar("K")
V = TypeVar("V")

Merge = Callable[[V | None], V]


class DatabaseError(Exception):
    """Base class for storage-level failures."""


class UniqueViolation(DatabaseError):
    def __init__(self, key: object) -> None:
        super().__init__(f"key already exists: {key}")
        self.key = key


class LeaseTimeout(DatabaseError):
    def __init__(self, key: object, timeout: float) -> None:
        super().__init__(f"could not acquire lease on {key} within {timeout}s")
        self.key = key
        self.timeout = timeout


class _Lease:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class InMemoryKeyValueDatabase[K, V]:
    """
    In-memory key/value database with per-key leases and buffered
    transactions.

    Writes made through a transaction become visible all at once on commit,
    or not at all if the block raises.
    """

    def __init__(self, *, lease_timeout: float = 10.0) -> None:
        self._store: MutableMapping[K, V] = {}
        self._mutex = threading.RLock()
        self._leases: dict[K, _Lease] = {}
        self.lease_timeout = lease_timeout

    def put(self, key: K, value: V) -> None:
        with self._mutex:
            self._store[key] = value

    def get(self, key: K) -> V | None:
        with self._mutex:
            return self._store.get(key)

    def delete(self, key: K) -> None:
        with self._mutex:
            self._store.pop(key, None)

    def all(self) -> list[V]:
        with self._mutex:
            return list(self._store.values())

    def clear(self) -> None:
        with self._mutex:
            self._store.clear()

    def __iter__(self) -> Iterator[V]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._store)

    @contextmanager
    def lease(self, key: K, timeout: float | None = None) -> Iterator[None]:
        """
        Hold an exclusive lease on `key` for the duration of the block.
        Raises LeaseTimeout if another holder does not release it in time.
        """
        timeout = self.lease_timeout if timeout is None else timeout
        with self._mutex:
            entry = self._leases.get(key)
            if entry is None:
                entry = self._leases[key] = _Lease()
            entry.refs += 1

        try:
            if not entry.lock.acquire(timeout=timeout):
                raise LeaseTimeout(key, timeout)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._mutex:
                entry.refs -= 1
                # drop the entry once no holder or waiter refers to it
                if entry.refs == 0:
                    del self._leases[key]

    @contextmanager
    def transaction(self) -> Iterator["Transaction[K, V]"]:
        tx: Transaction[K, V] = Transaction(self)
        yield tx
        # only reached when the block did not raise
        tx.commit()

    def _apply(self, tx: "Transaction[K, V]") -> None:
        with self._mutex:
            for key in tx._inserted:
                if key in self._store:
                    raise UniqueViolation(key)

            for op, key, arg in tx._ops:
                if op == "put":
                    self._store[key] = arg
                elif op == "insert_if_absent":
                    if key not in self._store:
                        self._store[key] = arg
                elif op == "upsert":
                    self._store[key] = arg(self._store.get(key))


class Transaction[K, V]:
    """
    Buffered unit of work against an InMemoryKeyValueDatabase.

    Reads see committed state overlaid with this transaction's own writes.
    Values are returned as deep copies, so mutating a read value has no
    effect until it is written back with put().
    """

    def __init__(self, db: InMemoryKeyValueDatabase[K, V]) -> None:
        self._db = db
        self._ops: list[tuple[str, K, object]] = []
        self._writes: dict[K, V] = {}
        self._inserted: set[K] = set()
        self._committed = False

    def get(self, key: K) -> V | None:
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        value = self._db.get(key)
        return copy.deepcopy(value) if value is not None else None

    def all(self) -> list[V]:
        with self._db._mutex:
            merged = dict(self._db._store)
        merged.update(self._writes)
        return [copy.deepcopy(v) for v in merged.values()]

    def put(self, key: K, value: V) -> None:
        self._writes[key] = value
        self._ops.append(("put", key, value))

    def insert(self, key: K, value: V) -> None:
        """Write a new key; commit fails with UniqueViolation if it exists."""
        if key in self._inserted or self._db.get(key) is not None:
            raise UniqueViolation(key)
        self._inserted.add(key)
        self.put(key, value)

    def insert_if_absent(self, key: K, value: V) -> bool:
        """Write `value` unless the key already exists. Returns True if written."""
        if key in self._writes or self._db.get(key) is not None:
            return False
        self._writes[key] = value
        self._ops.append(("insert_if_absent", key, value))
        return True

    def upsert(self, key: K, merge: Merge) -> None:
        """
        Queue `merge(current)` to run against the committed value at commit
        time, under the store mutex. Concurrent upserts on the same key
        never lose each other's updates.
        """
        self._ops.append(("upsert", key, merge))

    def commit(self) -> None:
        if self._committed:
            return
        self._db._apply(self)
        self._committed = True
