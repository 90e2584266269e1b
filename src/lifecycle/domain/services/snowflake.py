"""
Snowflake ID Generator
Time-ordered 64-bit ids, one generator per worker identity
"""
from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.shared.exceptions import ClockMovedBackwardsError

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)
EPOCH_MS = int(EPOCH.timestamp() * 1000)

WORKER_ID_BITS = 10
SEQUENCE_BITS = 12

MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS


def _system_time_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeGenerator:
    """
    Generates ids laid out as ``[timestamp ms since EPOCH | worker id | sequence]``.

    Ids are strictly increasing per generator and unique across generators
    holding distinct worker ids. State (last timestamp, sequence) belongs to
    the instance and is guarded by its own lock, so a generator must never
    be shared between worker identities.

    Args:
        worker_id: Identity in ``0..1023``
        clock_ms: Source of wall-clock milliseconds since the Unix epoch
    """

    def __init__(self, worker_id: int, clock_ms: Callable[[], int] = _system_time_ms) -> None:
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}, got {worker_id}")
        self.worker_id = worker_id
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._last_timestamp = -1
        self._sequence = 0

    def _current_timestamp(self) -> int:
        return self._clock_ms() - EPOCH_MS

    def next_id(self) -> int:
        """
        Return the next id.

        Raises:
            ClockMovedBackwardsError: If the clock regressed since the previous call.
                The generator stays unusable until the clock catches up.
        """
        with self._lock:
            timestamp = self._current_timestamp()

            if timestamp < self._last_timestamp:
                raise ClockMovedBackwardsError(self._last_timestamp, timestamp)

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond
                    while timestamp <= self._last_timestamp:
                        timestamp = self._current_timestamp()
            else:
                self._sequence = 0

            if timestamp < 0:
                raise ValueError("System clock is before the id epoch")

            self._last_timestamp = timestamp
            return (timestamp << TIMESTAMP_SHIFT) | (self.worker_id << WORKER_ID_SHIFT) | self._sequence


def decode_timestamp(snowflake_id: int) -> int:
    """Milliseconds since EPOCH."""
    return snowflake_id >> TIMESTAMP_SHIFT


def decode_datetime(snowflake_id: int) -> datetime:
    return EPOCH + timedelta(milliseconds=decode_timestamp(snowflake_id))


def decode_worker_identity(snowflake_id: int) -> int:
    return (snowflake_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID


def decode_sequence(snowflake_id: int) -> int:
    return snowflake_id & MAX_SEQUENCE
