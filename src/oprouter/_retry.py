"""
Retry policy with exponential backoff and jitter.

``RetryPolicy.execute()`` runs one operation, retrying it while it fails with
a RETRYABLE failure and attempts remain. The retry decision is a pure
function of the failure tag (see ``oprouter._errors.Failure``), never of the
exception hierarchy.

Example:
    >>> from oprouter._retry import RetryPolicy
    >>> policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=60.0)
    >>> response = policy.execute(lambda: executor.execute(descriptor))
    >>> print(policy.stats)
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import requests

from oprouter._errors import Failure, MaxRetriesExceededError
from oprouter._utils import interruptible_sleep

if TYPE_CHECKING:
    from oprouter._config import RetryConfig

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def classify_failure(exc: BaseException) -> Failure:
    """
    Map an exception to its failure tag.

    - SDK exceptions carry their own ``failure`` tag.
    - ``requests.Timeout`` / ``requests.ConnectionError`` and plain
      ``OSError`` are network I/O failures: RETRYABLE.
    - Any other ``requests.RequestException`` (invalid URL, bad JSON, ...) and
      every other exception (``ValueError``, ``TypeError``, ...): TERMINAL.

    Example:
        >>> classify_failure(requests.Timeout("read timed out")).is_retryable
        True
        >>> classify_failure(ValueError("bad argument")).is_retryable
        False
    """
    failure = getattr(exc, "failure", None)
    if isinstance(failure, Failure):
        return failure

    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return Failure.retryable(f"Network error: {exc}")
    if isinstance(exc, requests.RequestException):
        return Failure.terminal(f"Request error: {exc}")
    if isinstance(exc, OSError):
        return Failure.retryable(f"I/O error: {exc}")

    return Failure.terminal(str(exc) or type(exc).__name__)


@dataclass(frozen=True)
class RetryStats:
    """
    Snapshot of the retry counters of one ``RetryPolicy``.

    Attributes:
        success_without_retry: Calls that succeeded on the first attempt.
        success_with_retry: Calls that succeeded after at least one retry.
        failed_without_retry: Calls that failed on the first attempt.
        failed_with_retry: Calls that failed after at least one retry.

    Example:
        >>> stats = client.get_retry_stats()
        >>> print(f"{stats.total_calls} calls, {stats.total_failed} failed")
    """

    success_without_retry: int = 0
    success_with_retry: int = 0
    failed_without_retry: int = 0
    failed_with_retry: int = 0

    @property
    def total_success(self) -> int:
        return self.success_without_retry + self.success_with_retry

    @property
    def total_failed(self) -> int:
        return self.failed_without_retry + self.failed_with_retry

    @property
    def total_calls(self) -> int:
        return self.total_success + self.total_failed

    def __str__(self) -> str:
        return (
            f"RetryStats(total={self.total_calls}, "
            f"success={self.total_success} (without retry: {self.success_without_retry}, "
            f"with retry: {self.success_with_retry}), "
            f"failed={self.total_failed} (without retry: {self.failed_without_retry}, "
            f"with retry: {self.failed_with_retry}))"
        )


class RetryPolicy:
    """
    Bounded exponential-backoff retry around a single operation.

    Outcomes of ``execute(operation)``:

    - Success: returns the result. Counted as success with or without retry.
    - RETRYABLE failure with attempts left: sleeps ``compute_delay(attempt)``
      and tries again.
    - RETRYABLE failure on the last attempt: raises MaxRetriesExceededError
      wrapping the last exception (or re-raises it as-is when
      ``max_attempts == 1``).
    - TERMINAL failure: re-raised immediately, no retry budget consumed.

    Statistics are shared by every thread calling ``execute()`` on the same
    instance and are updated under a lock.

    Args:
        max_attempts: Total attempts, including the first one (default: 5).
        base_delay: Delay in seconds before the first retry (default: 1.0).
        max_delay: Cap in seconds for any single delay (default: 60.0).
        backoff_multiplier: Growth factor between attempts (default: 2.0).
        jitter_max: Upper bound of the uniform random seconds added to each
            delay to desynchronize clients (default: 5.0).
        rng: Random generator (injectable for tests).
        sleep: Sleep function ``(seconds, cancel_event)`` (injectable for tests).
        cancel_event: Optional event that aborts backoff sleeps when set.
        logger_prefix: Prefix for log messages.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_multiplier: float = 2.0,
        jitter_max: float = 5.0,
        rng: random.Random | None = None,
        sleep: Callable[[float, threading.Event | None], None] | None = None,
        cancel_event: threading.Event | None = None,
        logger_prefix: str = "",
    ):
        assert max_attempts >= 1, f"max_attempts must be >= 1, got {max_attempts}"
        assert base_delay > 0, f"base_delay must be > 0, got {base_delay}"
        assert max_delay > 0, f"max_delay must be > 0, got {max_delay}"
        assert backoff_multiplier >= 1, f"backoff_multiplier must be >= 1, got {backoff_multiplier}"
        assert jitter_max >= 0, f"jitter_max must be >= 0, got {jitter_max}"

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_multiplier = backoff_multiplier
        self.jitter_max = jitter_max
        self.cancel_event = cancel_event
        self.logger_prefix = logger_prefix

        self._rng = rng or random.Random()
        self._sleep = sleep or interruptible_sleep

        self._stats_lock = threading.Lock()
        self._success_without_retry = 0
        self._success_with_retry = 0
        self._failed_without_retry = 0
        self._failed_with_retry = 0

    @classmethod
    def from_config(cls, cfg: RetryConfig, **kwargs: object) -> RetryPolicy:
        """Build a policy from a ``RetryConfig`` section."""
        return cls(
            max_attempts=cfg.max_retries,
            base_delay=cfg.base_delay,
            max_delay=cfg.max_delay,
            backoff_multiplier=cfg.backoff_multiplier,
            jitter_max=cfg.jitter_max,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def stats(self) -> RetryStats:
        """Consistent snapshot of the four counters."""
        with self._stats_lock:
            return RetryStats(
                success_without_retry=self._success_without_retry,
                success_with_retry=self._success_with_retry,
                failed_without_retry=self._failed_without_retry,
                failed_with_retry=self._failed_with_retry,
            )

    def compute_delay(self, attempt: int) -> float:
        """
        Delay (seconds) to wait after the given failed attempt.

        ``min(base_delay * multiplier ** (attempt - 1) + uniform(0, jitter_max), max_delay)``

        Args:
            attempt: 1-based number of the attempt that just failed.
        """
        assert attempt >= 1, f"attempt must be >= 1, got {attempt}"
        exponential = self.base_delay * (self.backoff_multiplier ** (attempt - 1))
        jitter = self._rng.uniform(0, self.jitter_max) if self.jitter_max > 0 else 0.0
        return min(exponential + jitter, self.max_delay)

    def execute(self, operation: Callable[[], _T]) -> _T:
        """
        Run ``operation`` with retry.

        Args:
            operation: Zero-argument callable performing one attempt.

        Returns:
            Whatever the operation returns on its successful attempt.

        Raises:
            MaxRetriesExceededError: When retryable failures exhaust the attempts.
            Exception: Terminal failures are re-raised unchanged.
            RequestCancelledError: When a backoff sleep is cancelled.
        """
        prefix = f"{self.logger_prefix} | " if self.logger_prefix else ""
        attempt = 1

        while True:
            try:
                result = operation()
            except Exception as exc:
                failure = classify_failure(exc)
                retried = attempt > 1

                if not failure.is_retryable:
                    self._record(success=False, retried=retried)
                    logger.debug(f"{prefix}Attempt {attempt}/{self.max_attempts} failed (not retryable): {failure.reason}")
                    raise

                if attempt >= self.max_attempts:
                    self._record(success=False, retried=retried)
                    logger.error(
                        f"{prefix}Request failed after {attempt} attempt(s). Last error: {failure.reason}"
                    )
                    if self.max_attempts == 1:
                        raise
                    raise MaxRetriesExceededError(
                        f"Max retries exceeded after {attempt} attempts. Last error: {exc}",
                        last_exception=exc,
                        attempts=attempt,
                    ) from exc

                delay = self.compute_delay(attempt)
                if failure.retry_after is not None:
                    logger.warning(f"{prefix}Rate limited. Server asked to retry after {failure.retry_after:g}s")
                logger.warning(
                    f"{prefix}Attempt {attempt}/{self.max_attempts} failed: {failure.reason}. "
                    f"Retrying in {delay:.2f}s..."
                )
                try:
                    self._sleep(delay, self.cancel_event)
                except Exception:
                    self._record(success=False, retried=retried)
                    raise
                attempt += 1
                continue

            self._record(success=True, retried=attempt > 1)
            if attempt > 1:
                logger.info(f"{prefix}Request succeeded after {attempt - 1} retries")
            return result

    def _record(self, success: bool, retried: bool) -> None:
        with self._stats_lock:
            if success and retried:
                self._success_with_retry += 1
            elif success:
                self._success_without_retry += 1
            elif retried:
                self._failed_with_retry += 1
            else:
                self._failed_without_retry += 1

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, base_delay={self.base_delay}, "
            f"max_delay={self.max_delay}, backoff_multiplier={self.backoff_multiplier})"
        )
