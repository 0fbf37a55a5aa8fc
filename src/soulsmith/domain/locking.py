"""In-process keyed locks serialising condensations per soul."""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID


class SoulLocks:
    """One re-entrant lock per soul id.

    Guards a single process; the version compare-and-set in the commit transaction
    covers concurrent writers in other processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # never evicted: one small lock per soul touched by this process
        self._locks: defaultdict[UUID, threading.RLock] = defaultdict(threading.RLock)

    def lock_for(self, soul_id: UUID) -> threading.RLock:
        with self._guard:
            return self._locks[soul_id]

    @contextmanager
    def hold(self, soul_id: UUID) -> Iterator[None]:
        lock = self.lock_for(soul_id)
        with lock:
            yield
