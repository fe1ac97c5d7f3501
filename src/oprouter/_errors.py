"""
Failure model and exception taxonomy for the oprouter SDK.

Every failure the SDK raises carries an explicit tag (``Failure``) telling
the retry policy whether it is worth trying again. The policy never inspects
the exception hierarchy itself; it only reads the tag.

Example:
    >>> from oprouter._errors import RateLimitedError, FailureKind
    >>> error = RateLimitedError(retry_after=3)
    >>> error.failure.kind is FailureKind.RETRYABLE
    True
    >>> error.failure.retry_after
    3.0
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class FailureKind(StrEnum):
    """Whether a failure should trigger an automatic retry."""

    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Failure:
    """
    Tagged description of a failed attempt.

    Attributes:
        kind: RETRYABLE or TERMINAL.
        reason: Human-readable description of what went wrong.
        retry_after: Server hint (seconds) before retrying, if any.
    """

    kind: FailureKind
    reason: str
    retry_after: float | None = None

    @property
    def is_retryable(self) -> bool:
        return self.kind is FailureKind.RETRYABLE

    @classmethod
    def retryable(cls, reason: str, retry_after: float | None = None) -> Failure:
        return cls(kind=FailureKind.RETRYABLE, reason=reason, retry_after=retry_after)

    @classmethod
    def terminal(cls, reason: str) -> Failure:
        return cls(kind=FailureKind.TERMINAL, reason=reason)


class OpenRouterError(Exception):
    """
    Base class for every exception raised by the SDK.

    Subclasses set ``failure`` so the retry policy can classify them
    without caring about the concrete type.
    """

    def __init__(self, message: str, failure: Failure | None = None):
        super().__init__(message)
        self.failure = failure or Failure.terminal(message)


class RateLimitedError(OpenRouterError):
    """
    Raised when the API answers HTTP 429 (Too Many Requests).

    Attributes:
        retry_after: Seconds the server asked us to wait (Retry-After header,
            or the 60s default when the header is missing).

    Example:
        >>> try:
        ...     executor.execute(descriptor)
        ... except RateLimitedError as e:
        ...     print(f"Rate limited, retry after {e.retry_after}s")
    """

    DEFAULT_RETRY_AFTER = 60

    def __init__(self, retry_after: int | float | None = None):
        self.retry_after = float(retry_after if retry_after is not None else self.DEFAULT_RETRY_AFTER)
        message = f"Rate limit exceeded. Retry after {self.retry_after:g} seconds"
        super().__init__(message, Failure.retryable(message, retry_after=self.retry_after))


class TransientError(OpenRouterError):
    """
    Raised on network failures, timeouts and HTTP 5xx responses.

    Attributes:
        status_code: The HTTP status for server errors, None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, Failure.retryable(message))


class StreamError(OpenRouterError):
    """Raised when a streaming request cannot be established (non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, Failure.terminal(message))


class RequestCancelledError(OpenRouterError):
    """Raised when the caller cancels a request while it waits for a slot or a backoff."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message, Failure.terminal(message))


class MaxRetriesExceededError(OpenRouterError):
    """
    Raised when all retry attempts are exhausted.

    Wraps the last retryable exception so the caller can inspect the
    original error.

    Attributes:
        last_exception: The exception from the final attempt.
        attempts: Number of attempts performed.

    Example:
        >>> try:
        ...     client.chat_completion(messages)
        ... except MaxRetriesExceededError as e:
        ...     print(f"Gave up after {e.attempts} attempts: {e.last_exception}")
    """

    def __init__(
        self,
        message: str,
        last_exception: Exception | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts
