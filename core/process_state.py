"""
Process-wide liveness state for the Polymarket Wallet Watcher.

A small thread-safe cell shared by the block processor (writer) and the
status reporter (reader). Created once in main.py and injected into both.

Usage:
    state = ProcessState()
    state.advance(block_number)
    state.last_block_processed
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class ProcessState:
    """
    Monotonic last-processed-block counter plus uptime.

    ``advance`` never moves the counter backwards, so block tasks that
    complete out of order leave it at the highest block seen.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started_at: float = clock()
        self._last_block_processed: int = 0
        self._blocks_processed: int = 0
        self._alerts_dispatched: int = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def advance(self, block_number: int) -> bool:
        """Record block completion. Returns True if the counter moved forward."""
        with self._lock:
            self._blocks_processed += 1
            if block_number > self._last_block_processed:
                self._last_block_processed = block_number
                return True
            return False

    def record_alert(self) -> None:
        with self._lock:
            self._alerts_dispatched += 1

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def last_block_processed(self) -> int:
        with self._lock:
            return self._last_block_processed

    @property
    def blocks_processed(self) -> int:
        with self._lock:
            return self._blocks_processed

    @property
    def alerts_dispatched(self) -> int:
        with self._lock:
            return self._alerts_dispatched

    def uptime_seconds(self) -> float:
        return max(0.0, self._clock() - self._started_at)
