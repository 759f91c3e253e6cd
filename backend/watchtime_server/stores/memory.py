"""In-process key/value stores backing the watch-time engine.

Nothing here survives a restart. Each store guards its own dict so single
calls are atomic and iteration works on a snapshot; multi-store
read-modify-write sequences are serialized by the caller through
``KeyLockRegistry``.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from watchtime_server.models.progress import Interval, SessionKey

V = TypeVar('V')


class KeyLockRegistry:
    """Hands out one lock per session key so unrelated keys never contend."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[SessionKey, threading.Lock] = {}

    def lock_for(self, key: SessionKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: SessionKey) -> Iterator[None]:
        lock = self.lock_for(key)
        with lock:
            yield

    def __len__(self):
        return len(self._locks)


class _KeyValueStore(Generic[V]):
    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[SessionKey, V] = {}

    def get(self, key: SessionKey, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: SessionKey, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def pop(self, key: SessionKey, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._data.pop(key, default)

    def keys(self) -> List[SessionKey]:
        with self._lock:
            return list(self._data.keys())

    def __contains__(self, key: SessionKey) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class PendingIntervalStore(_KeyValueStore[List[Interval]]):
    """Hot store: raw intervals reported since the key's last reconciliation."""

    def append(self, key: SessionKey, interval: Interval) -> int:
        with self._lock:
            buf = self._data.setdefault(key, [])
            buf.append(interval)
            return len(buf)

    def drain(self, key: SessionKey) -> List[Interval]:
        """Remove and return the key's buffer; later appends start a fresh one."""
        with self._lock:
            return self._data.pop(key, None) or []

    def peek(self, key: SessionKey) -> Tuple[Interval, ...]:
        with self._lock:
            return tuple(self._data.get(key) or ())

    def pending_keys(self) -> List[SessionKey]:
        with self._lock:
            return [k for k, buf in self._data.items() if buf]


class WatchHistoryStore(_KeyValueStore[Tuple[Interval, ...]]):
    """Cold store: canonical merged history per key.

    Values are immutable tuples replaced wholesale, so readers always see a
    complete history without taking the key lock.
    """

    def history(self, key: SessionKey) -> Tuple[Interval, ...]:
        return self.get(key) or ()

    def replace(self, key: SessionKey, intervals: Tuple[Interval, ...]) -> None:
        self.set(key, tuple(intervals))


class ResumePointStore(_KeyValueStore[float]):
    def resume_point(self, key: SessionKey) -> float:
        value = self.get(key)
        return 0.0 if value is None else float(value)


class LastSeenTimeStore(_KeyValueStore[float]):
    pass
