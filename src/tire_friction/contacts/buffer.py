"""Single-slot mailbox between contact delivery and the simulation tick.

The transport delivers contact batches on its own thread while the estimator
consumes them from the simulation loop.  :class:`ContactBuffer` keeps only the
most recent batch: a new arrival replaces any batch that has not been taken
yet, and :meth:`ContactBuffer.take` hands the batch over exactly once.
Arrivals that cannot be decoded are counted through
:meth:`ContactBuffer.reject`.  The lock only guards the reference swap and
the counters, so delivery never waits on friction computation.
"""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

from tire_friction.contacts.records import ContactBatch

__all__ = ["ContactBuffer"]


T = TypeVar("T")


class _LatestSlot(Generic[T]):
    """Lock-protected slot holding at most one value."""

    __slots__ = ("_lock", "_value", "_received", "_consumed", "_overwritten", "_rejected")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._received = 0
        self._consumed = 0
        self._overwritten = 0
        self._rejected = 0

    def put(self, value: T) -> None:
        with self._lock:
            if self._value is not None:
                self._overwritten += 1
            self._value = value
            self._received += 1

    def reject(self) -> None:
        """Count an arrival that could not be stored."""

        with self._lock:
            self._rejected += 1

    def take(self) -> Optional[T]:
        with self._lock:
            value = self._value
            self._value = None
            if value is not None:
                self._consumed += 1
            return value

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._value is not None

    @property
    def statistics(self) -> dict[str, int]:
        with self._lock:
            return {
                "received": self._received,
                "consumed": self._consumed,
                "overwritten": self._overwritten,
                "rejected": self._rejected,
            }


class ContactBuffer(_LatestSlot[ContactBatch]):
    """Latest-wins buffer of :class:`ContactBatch` objects."""

    __slots__ = ()
