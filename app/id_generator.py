"""
Snowflake-style id generator for article keys.

Layout (63 bits): 41 bits of milliseconds since ``EPOCH_MS``, 10 bits of
worker id, 12 bits of per-millisecond sequence.  Keys are handed out as
decimal strings; the database treats them as opaque.
"""
import threading
import time

from app.config import settings

EPOCH_MS = 1704067200000  # 2024-01-01T00:00:00Z

WORKER_ID_BITS = 10
SEQUENCE_BITS = 12
MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1


class Snowflake:
    def __init__(self, worker_id: int = 0) -> None:
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}")
        self.worker_id = worker_id
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    def next_id(self) -> int:
        with self._lock:
            now = self._now_ms()
            if now < self._last_ms:
                # Clock moved backwards; keep issuing from the last timestamp.
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted: borrow the next millisecond rather
                    # than wait for the clock under the lock.
                    now = self._last_ms + 1
            else:
                self._sequence = 0
            self._last_ms = now
            return (
                ((now - EPOCH_MS) << (WORKER_ID_BITS + SEQUENCE_BITS))
                | (self.worker_id << SEQUENCE_BITS)
                | self._sequence
            )

    def generate_key(self) -> str:
        return str(self.next_id())


id_generator = Snowflake(settings.WORKER_ID)
