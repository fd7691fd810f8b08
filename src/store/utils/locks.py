"""Process-wide table of per-key re-entrant locks.

Keys are plain strings such as ``item:<id>`` or ``member:<id>``. ``hold``
acquires a batch of keys in sorted order against one shared deadline, so two
callers asking for overlapping sets can never wait on each other in a cycle.
On timeout everything already taken is released and ``ConcurrencyConflictError``
is raised. A key's lock lives in the table only while some caller holds or
waits on it, so the table stays as small as the set of keys in use.
"""

import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import structlog

from store.errors import ConcurrencyConflictError
from store.settings import settings

logger = structlog.get_logger(__name__)


def item_key(item_id) -> str:
    return f"item:{item_id}"


def member_key(member_id) -> str:
    return f"member:{member_id}"


def order_key(order_id) -> str:
    return f"order:{order_id}"


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class LockTable:
    def __init__(self):
        self._guard = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def _checkout(self, key: str) -> _Slot:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.users += 1
            return slot

    def _checkin(self, key: str, slot: _Slot) -> None:
        # A slot leaves the table once no caller holds or waits on it
        with self._guard:
            slot.users -= 1
            if slot.users == 0 and self._slots.get(key) is slot:
                del self._slots[key]

    @contextmanager
    def hold(self, keys: Iterable[str], timeout: float | None = None) -> Iterator[list[str]]:
        ordered = sorted(set(keys))
        timeout = settings.stock_lock_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        acquired: list[tuple[str, _Slot]] = []
        try:
            for key in ordered:
                remaining = max(0.0, deadline - time.monotonic())
                slot = self._checkout(key)
                if not slot.lock.acquire(timeout=remaining):
                    self._checkin(key, slot)
                    logger.warning("lock_timeout", key=key, timeout=timeout, held=len(acquired))
                    raise ConcurrencyConflictError(
                        f"Timed out after {timeout}s waiting for {key}",
                        key=key,
                    )
                acquired.append((key, slot))

            yield ordered
        finally:
            for key, slot in reversed(acquired):
                slot.lock.release()
                self._checkin(key, slot)

    def reset(self) -> None:
        """Forget every lock. Only safe when no thread holds one (tests)."""
        with self._guard:
            self._slots.clear()


locks = LockTable()
