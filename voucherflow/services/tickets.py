"""Ticket-number issuance."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import structlog

LOGGER = structlog.get_logger(__name__)


class TicketGenerator:
    """Issue ticket numbers from a monotonic counter and a nanosecond clock.

    The counter guarantees uniqueness within a process; the nanosecond
    timestamp keeps numbers distinct across restarts and separate workers,
    and the ``ticket_number`` unique constraint rejects anything that still
    collides.
    """

    def __init__(
        self,
        prefix: str = "VOC",
        *,
        start: int = 0,
        clock_ns: Callable[[], int] = time.time_ns,
    ) -> None:
        self._prefix = prefix
        self._counter = start
        self._last_ns = 0
        self._clock_ns = clock_ns
        self._lock = threading.Lock()

    @property
    def issued(self) -> int:
        return self._counter

    def seed(self, floor: int) -> None:
        """Advance the counter to at least ``floor``; never moves it backwards."""

        with self._lock:
            self._counter = max(self._counter, floor)

    def next(self) -> str:
        with self._lock:
            self._counter += 1
            # Strictly increasing even when the clock stalls or steps back.
            now = max(self._clock_ns(), self._last_ns + 1)
            self._last_ns = now
            ticket = f"{self._prefix}-{self._counter:06d}-{now:x}"
        LOGGER.info("ticket_issued", ticket_number=ticket)
        return ticket

    __call__ = next


__all__ = ["TicketGenerator"]
