import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Entry(Generic[V]):
    __slots__ = ("lock", "value", "removed")

    def __init__(self, value: V):
        self.lock = threading.Lock()
        self.value = value
        self.removed = False


class KeyedLockMap(Generic[K, V]):
    """Map whose entries each carry their own lock.

    The registry lock is only held to look up, create or drop an entry,
    never while an entry is being worked on, so callers on different keys
    do not wait for each other.
    """

    def __init__(self, factory: Callable[[], V]):
        self.entries: Dict[K, _Entry[V]] = {}  # keyごとに値とLockを管理
        self.lock = threading.Lock()  # entriesへのアクセスを保護
        self.factory = factory

    def _get_or_create(self, key: K) -> _Entry[V]:
        with self.lock:
            entry = self.entries.get(key)
            if entry is None:
                entry = _Entry(self.factory())
                self.entries[key] = entry
            return entry

    @contextmanager
    def locked(self, key: K) -> Iterator[V]:
        """Hold the lock of ``key``, creating its value first if needed

        Args:
            key (K): Key of the entry to work on

        Yields:
            V: The value stored under key, safe to mutate until the block exits
        """
        while True:
            entry = self._get_or_create(key)
            entry.lock.acquire()
            if not entry.removed:
                break
            # dropped between lookup and acquire; look it up again
            entry.lock.release()
        try:
            yield entry.value
        finally:
            entry.lock.release()

    @contextmanager
    def locked_if_present(self, key: K) -> Iterator[Optional[V]]:
        """Like locked() but yields None instead of creating a missing entry"""
        with self.lock:
            entry = self.entries.get(key)
        if entry is None:
            yield None
            return
        with entry.lock:
            yield None if entry.removed else entry.value

    def discard_if(self, key: K, predicate: Callable[[V], bool]) -> bool:
        """Drop the entry for key when predicate holds for its value

        Args:
            key (K): Key of the entry to check
            predicate (Callable[[V], bool]): Evaluated with the entry lock held

        Returns:
            bool: True if the entry was dropped
        """
        with self.lock:
            entry = self.entries.get(key)
        if entry is None:
            return False
        with entry.lock:
            if entry.removed or not predicate(entry.value):
                return False
            entry.removed = True
            with self.lock:
                if self.entries.get(key) is entry:
                    del self.entries[key]
            return True

    def keys(self) -> List[K]:
        """Snapshot of the keys present right now"""
        with self.lock:
            return list(self.entries)

    def __len__(self) -> int:
        with self.lock:
            return len(self.entries)
