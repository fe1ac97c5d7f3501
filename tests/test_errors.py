"""Tests for the failure tags carried by SDK exceptions."""

import pytest

from oprouter._errors import (
    Failure,
    FailureKind,
    MaxRetriesExceededError,
    OpenRouterError,
    RateLimitedError,
    RequestCancelledError,
    StreamError,
    TransientError,
)


class TestFailure:
    """Tests for the Failure tag."""

    def test_retryable_factory(self):
        failure = Failure.retryable("boom", retry_after=2)
        assert failure.kind is FailureKind.RETRYABLE
        assert failure.is_retryable
        assert failure.retry_after == 2

    def test_terminal_factory(self):
        failure = Failure.terminal("nope")
        assert failure.kind is FailureKind.TERMINAL
        assert not failure.is_retryable
        assert failure.retry_after is None


class TestExceptionTags:
    """Each exception type carries the right tag."""

    def test_rate_limited_uses_header_value(self):
        error = RateLimitedError(retry_after=3)
        assert error.retry_after == 3.0
        assert error.failure.is_retryable
        assert error.failure.retry_after == 3.0
        assert str(error) == "Rate limit exceeded. Retry after 3 seconds"

    def test_rate_limited_defaults_to_sixty_seconds(self):
        assert RateLimitedError().retry_after == 60.0

    def test_transient_is_retryable(self):
        error = TransientError("Server error: 503", status_code=503)
        assert error.status_code == 503
        assert error.failure.is_retryable

    @pytest.mark.parametrize(
        "error",
        [
            OpenRouterError("generic"),
            StreamError("Stream request failed: 401 - bad key", status_code=401),
            RequestCancelledError(),
            MaxRetriesExceededError("gave up", attempts=5),
        ],
    )
    def test_terminal_errors(self, error):
        assert error.failure.kind is FailureKind.TERMINAL

    def test_max_retries_keeps_last_exception(self):
        cause = TransientError("Request timeout")
        error = MaxRetriesExceededError("gave up", last_exception=cause, attempts=3)
        assert error.last_exception is cause
        assert error.attempts == 3
