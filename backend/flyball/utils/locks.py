"""
Per-key mutual exclusion.

The engine serializes every read-check-write on a tournament by holding that
tournament's lock for the whole sequence. Locks for different keys are
independent; the registry lock only guards the dict itself and is never held
while a caller's critical section runs.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLockRegistry:
    def __init__(self):
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, key: Hashable) -> threading.Lock:
        """Return the lock for ``key``, creating it on first use."""
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Example:
            with registry.hold(tournament_id):
                state = store.get(tournament_id)
                store.save(mutate(state))
        """
        lock = self.lock_for(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
