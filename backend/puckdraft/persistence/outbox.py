"""Best-effort write queue in front of a :class:`DraftRepository`.

The in-memory draft is mutated first and its record enqueued afterwards.
A failed write stays queued and is retried on the next flush; a crash
between mutation and write loses that record, which replay tolerates.
"""

from __future__ import annotations

import logging
from collections import deque
from threading import RLock

from .records import DraftPickRecord, DraftRoomRecord
from .repository import DraftRepository

logger = logging.getLogger(__name__)

Record = DraftRoomRecord | DraftPickRecord


class PersistenceOutbox:
    def __init__(self, repository: DraftRepository, max_pending: int = 10_000):
        self.repository = repository
        self.max_pending = max_pending
        self._lock = RLock()
        self._pending: deque[Record] = deque()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def enqueue(self, record: Record) -> None:
        with self._lock:
            if len(self._pending) >= self.max_pending:
                dropped = self._pending.popleft()
                logger.error("Persistence outbox full, dropping %r", dropped)
            self._pending.append(record)
        self.flush()

    def flush(self) -> int:
        """Write queued records in order; stops at the first failure."""
        written = 0
        with self._lock:
            while self._pending:
                record = self._pending[0]
                try:
                    self._write(record)
                except Exception:
                    logger.exception("Failed to persist %s; will retry", type(record).__name__)
                    break
                self._pending.popleft()
                written += 1
        return written

    def _write(self, record: Record) -> None:
        if isinstance(record, DraftRoomRecord):
            self.repository.save_room(record)
            logger.debug("Persisted room %s", record.room_id)
        else:
            self.repository.save_pick(record)
            logger.debug("Persisted pick %s:%d", record.room_id, record.pick_index)
