"""
Client-side admission control for the oprouter SDK.

A ``RateGate`` combines two limits that every request must pass before
touching the network:

- Concurrency: at most ``max_concurrent`` requests in flight (semaphore).
- Rate: at most ``max_requests_per_period`` admissions per rolling
  ``period_seconds`` window (ring buffer of the last N admission times).

The ring buffer is an approximate sliding window: it keeps only N
timestamps (O(N) memory) and guarantees that no N+1 admissions happen within
any period, with slight burst tolerance at the window edges.

Example:
    >>> from oprouter._rate_limit import RateGate
    >>> gate = RateGate(max_concurrent=5, max_requests_per_period=60, period_seconds=60.0)
    >>> with gate.admit():
    ...     response = session.get(url)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from oprouter._errors import RequestCancelledError
from oprouter._utils import interruptible_sleep

logger = logging.getLogger(__name__)


class RateGate:
    """
    Thread-safe admission gate: concurrency slots plus a sliding rate window.

    Blocking happens on the calling thread only. Requests are never dropped;
    the only way out of a wait is admission or cancellation (when a
    ``cancel_event`` is provided and gets set).

    Example:
        >>> gate = RateGate(max_concurrent=2, max_requests_per_period=10, period_seconds=1.0)
        >>> with gate.admit():
        ...     do_request()

    Args:
        max_concurrent: Maximum number of admitted operations at the same time.
        max_requests_per_period: Ring buffer size, i.e. admissions per period.
        period_seconds: Length of the rolling window, in seconds.
        cancel_event: Optional event that aborts waits when set.
        clock: Monotonic clock returning seconds (injectable for tests).
        sleep: Sleep function ``(seconds, cancel_event)`` (injectable for tests).
    """

    # Interval used to re-check the cancel event while waiting for a slot.
    SLOT_POLL_INTERVAL = 0.1

    def __init__(
        self,
        max_concurrent: int,
        max_requests_per_period: int,
        period_seconds: float = 60.0,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float, threading.Event | None], None] | None = None,
    ):
        assert max_concurrent is not None, "max_concurrent cannot be None."
        assert max_concurrent > 0, "max_concurrent must be greater than 0."
        assert max_requests_per_period is not None, "max_requests_per_period cannot be None."
        assert max_requests_per_period > 0, "max_requests_per_period must be greater than 0."
        assert period_seconds is not None, "period_seconds cannot be None."
        assert period_seconds > 0, "period_seconds must be greater than 0."

        self.max_concurrent = max_concurrent
        self.max_requests_per_period = max_requests_per_period
        self.period_seconds = period_seconds
        self.cancel_event = cancel_event

        self._clock = clock or time.monotonic
        self._sleep = sleep or interruptible_sleep

        # Concurrency state
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._in_flight = 0
        self._in_flight_lock = threading.Lock()

        # Rate-window state: None marks a slot never stamped
        self._timestamps: list[float | None] = [None] * max_requests_per_period
        self._cursor = 0
        self._window_lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        """Number of operations currently holding a concurrency slot."""
        return self._in_flight

    def acquire_slot(self) -> None:
        """
        Block until a concurrency slot is available and take it.

        Must be paired with ``release_slot()``; prefer ``admit()``.

        Raises:
            RequestCancelledError: If the cancel event is set while waiting.
        """
        if self.cancel_event is None:
            self._slots.acquire()
        else:
            while not self._slots.acquire(timeout=self.SLOT_POLL_INTERVAL):
                if self.cancel_event.is_set():
                    raise RequestCancelledError("Request cancelled while waiting for a concurrency slot")
            # A slot freed in the same poll as the cancel must not admit the call
            if self.cancel_event.is_set():
                self._slots.release()
                raise RequestCancelledError("Request cancelled while waiting for a concurrency slot")

        with self._in_flight_lock:
            self._in_flight += 1

    def release_slot(self) -> None:
        """Give back a concurrency slot taken by ``acquire_slot()``."""
        with self._in_flight_lock:
            self._in_flight -= 1
        self._slots.release()

    def acquire_rate_window(self) -> None:
        """
        Wait until the rolling window has room, then record this admission.

        Reads the timestamp under the cursor (the admission N requests ago);
        if it is younger than the period, sleeps for the remainder. Then stamps
        the cursor with the current time and advances it. The whole
        read-check-write runs under one lock shared by every caller.

        Raises:
            RequestCancelledError: If the cancel event is set while waiting.
        """
        with self._window_lock:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise RequestCancelledError("Request cancelled while waiting for the rate window")

            now = self._clock()
            oldest = self._timestamps[self._cursor]

            if oldest is not None:
                elapsed = now - oldest
                if elapsed < self.period_seconds:
                    wait_time = self.period_seconds - elapsed
                    logger.debug(
                        f"RateGate | Window full ({self.max_requests_per_period} requests "
                        f"per {self.period_seconds:g}s). Waiting {wait_time:.2f}s..."
                    )
                    self._sleep(wait_time, self.cancel_event)
                    now = self._clock()

            self._timestamps[self._cursor] = now
            self._cursor = (self._cursor + 1) % self.max_requests_per_period

    @contextmanager
    def admit(self) -> Iterator[None]:
        """
        Scoped admission: slot + rate window, with guaranteed slot release.

        The slot is released on every exit path of the ``with`` body
        (normal return, exception, cancellation) and also when the
        rate-window wait itself is cancelled.

        Raises:
            RequestCancelledError: If cancelled before or while waiting.
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RequestCancelledError("Request cancelled before admission")

        self.acquire_slot()
        try:
            self.acquire_rate_window()
            yield
        finally:
            self.release_slot()

    def __repr__(self) -> str:
        return (
            f"RateGate(max_concurrent={self.max_concurrent}, "
            f"max_requests_per_period={self.max_requests_per_period}, "
            f"period_seconds={self.period_seconds})"
        )
