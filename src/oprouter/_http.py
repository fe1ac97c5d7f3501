"""
HTTP layer of the oprouter SDK.

This module owns one request/response cycle against the gateway:

    - HttpClient: minimal transport interface (GET/POST returning ``requests.Response``).
    - SessionHttpClient: default transport backed by a pooled ``requests.Session``.
    - RequestDescriptor: immutable description of one call.
    - APIResponse: success/failure envelope returned to callers.
    - RequestExecutor: builds URL and headers, performs the call and
      classifies the outcome (raise retryable, return failed envelope, or
      return success).

Example:
    >>> from oprouter._http import RequestExecutor, RequestDescriptor, SessionHttpClient
    >>> executor = RequestExecutor(api_key="sk-or-v1-...", http_client=SessionHttpClient())
    >>> response = executor.execute(RequestDescriptor(method="GET", path="/models"))
    >>> response.success
    True
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, override

import requests
from requests.adapters import HTTPAdapter

from oprouter._errors import RateLimitedError, StreamError, TransientError

logger = logging.getLogger(__name__)

Timeout = float | tuple[float, float]

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUTS: tuple[float, float] = (30.0, 300.0)
DEFAULT_APP_TITLE = "OpRouter Python Chat Client"
DEFAULT_USER_AGENT = "oprouter-python/1.0"


# =============================================================================
# Transport
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP transports.

    Implementations only move bytes; headers, URLs and status handling are
    the ``RequestExecutor``'s job. Replace it in tests or to plug in a
    custom session (proxies, certificates, instrumentation).

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def get(self, url, headers=None, timeout=30):
        ...         return requests.get(url, headers=headers, timeout=timeout)
        ...     def post(self, url, data=None, headers=None, timeout=30, stream=False):
        ...         return requests.post(url, json=data, headers=headers, timeout=timeout, stream=stream)
    """

    @abstractmethod
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: Timeout = DEFAULT_TIMEOUTS,
    ) -> requests.Response:
        """
        Execute a GET request.

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass

    @abstractmethod
    def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: Timeout = DEFAULT_TIMEOUTS,
        stream: bool = False,
    ) -> requests.Response:
        """
        Execute a POST request with a JSON body.

        Args:
            url: The full URL to request.
            data: JSON-serializable data to send in the request body.
            headers: Headers to send.
            timeout: Seconds, or a ``(connect, read)`` tuple.
            stream: When True the body is not read eagerly (SSE responses).

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass

    def close(self) -> None:  # noqa: B027
        """Release pooled connections. No-op by default."""
        pass


class SessionHttpClient(HttpClient):
    """
    HTTP transport backed by a single pooled ``requests.Session``.

    One instance is shared by every thread of an ``OpenRouterClient``;
    ``requests.Session`` connection pooling is thread-safe for this usage.

    Args:
        pool_maxsize: Connections kept per host (match the concurrency limit).
        session: Optional preconfigured session (proxies, certificates).
    """

    def __init__(self, pool_maxsize: int = 10, session: requests.Session | None = None):
        assert pool_maxsize > 0, "pool_maxsize must be greater than 0."

        self._session = session or requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_maxsize, pool_maxsize=pool_maxsize)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._closed = False

    @override
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: Timeout = DEFAULT_TIMEOUTS,
    ) -> requests.Response:
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."

        return self._session.get(url, headers=headers, timeout=timeout)

    @override
    def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: Timeout = DEFAULT_TIMEOUTS,
        stream: bool = False,
    ) -> requests.Response:
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."

        return self._session.post(url, json=data, headers=headers, timeout=timeout, stream=stream)

    @override
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.close()


# =============================================================================
# Request / Response
# =============================================================================


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Immutable description of one API call.

    Attributes:
        method: "GET" or "POST".
        path: Path relative to the base URL (e.g. "/chat/completions").
        body: JSON body, sent only for POST.
        extra_headers: Headers merged over the defaults (caller wins).
    """

    method: str
    path: str
    body: dict[str, Any] | None = None
    extra_headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        assert self.method in ("GET", "POST"), f"Unsupported HTTP method: {self.method}"
        assert self.path, "path cannot be empty."


@dataclass(frozen=True)
class APIResponse:
    """
    Outcome of one API call that did not raise.

    Exactly one of ``data`` (success) or ``error`` (failure) is set.

    Attributes:
        success: True when the gateway answered 200 with a JSON object.
        status_code: HTTP status code, when a response was received.
        headers: Response headers.
        data: Parsed JSON body, on success.
        error: Human-readable failure description, on failure.
        usage: Token usage block of a chat completion, when present.

    Example:
        >>> response = client.chat_completion(messages)
        >>> if response.success:
        ...     print(response.content)
        ... else:
        ...     print(f"Failed ({response.status_code}): {response.error}")
    """

    success: bool
    status_code: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] | None = None
    error: str | None = None
    usage: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("A successful APIResponse requires data and no error.")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("A failed APIResponse requires an error and no data.")

    @classmethod
    def ok(
        cls,
        data: dict[str, Any],
        usage: dict[str, Any] | None = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> APIResponse:
        return cls(success=True, status_code=status_code, headers=headers or {}, data=data, usage=usage)

    @classmethod
    def failed(
        cls,
        error: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> APIResponse:
        return cls(success=False, status_code=status_code, headers=headers or {}, error=error)

    @property
    def content(self) -> str | None:
        """Assistant text of the first choice (``choices[0].message.content``), if any."""
        if not self.data:
            return None
        try:
            return self.data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None

    @property
    def total_tokens(self) -> int | None:
        if not self.usage:
            return None
        return self.usage.get("total_tokens")


# =============================================================================
# Executor
# =============================================================================


class RequestExecutor:
    """
    Performs one HTTP call and maps the outcome onto the failure taxonomy.

    | Outcome                  | Result                                          |
    |--------------------------|-------------------------------------------------|
    | timeout / connection     | raise ``TransientError``                        |
    | 429                      | raise ``RateLimitedError(retry_after)``         |
    | 400-499                  | return ``APIResponse.failed("Client error ...")`` |
    | 500-599                  | raise ``TransientError("Server error ...")``    |
    | 200 with JSON object     | return ``APIResponse.ok(data, usage)``          |
    | 200 with bad JSON        | return ``APIResponse.failed("Invalid JSON ...")`` |
    | anything else            | return ``APIResponse.failed("Unexpected ...")`` |

    The executor neither retries nor rate-limits; ``OpenRouterClient`` wraps
    it with ``RetryPolicy`` and ``RateGate``.

    Args:
        api_key: Bearer token for the ``Authorization`` header.
        base_url: API base URL.
        http_client: Transport. Defaults to a new ``SessionHttpClient``.
        timeouts: ``(connect, read)`` seconds passed to the transport.
        app_title: Value of the ``X-Title`` header.
        user_agent: Value of the ``User-Agent`` header.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        http_client: HttpClient | None = None,
        timeouts: tuple[float, float] = DEFAULT_TIMEOUTS,
        app_title: str = DEFAULT_APP_TITLE,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        assert api_key, "api_key cannot be empty."
        assert base_url, "base_url cannot be empty."
        assert timeouts is not None, "timeouts cannot be None."
        assert all(t > 0 for t in timeouts), "timeouts must be greater than 0."

        self.api_key = api_key
        self.base_url = base_url
        self.http_client = http_client or SessionHttpClient()
        self.timeouts = timeouts
        self.app_title = app_title
        self.user_agent = user_agent

    def build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        """Default headers, then caller entries (caller wins on conflicts)."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.app_title,
            "User-Agent": self.user_agent,
        }
        if extra:
            headers.update(extra)
        return headers

    def execute(self, descriptor: RequestDescriptor) -> APIResponse:
        """
        Perform the call described by ``descriptor`` and classify the outcome.

        Returns:
            APIResponse: success envelope, or failed envelope for client-side
            and protocol errors.

        Raises:
            RateLimitedError: On HTTP 429.
            TransientError: On HTTP 5xx, timeouts and connection failures.
        """
        url = self.build_url(descriptor.path)
        headers = self.build_headers(descriptor.extra_headers)

        try:
            if descriptor.method == "POST":
                response = self.http_client.post(
                    url, data=descriptor.body, headers=headers, timeout=self.timeouts
                )
            else:
                response = self.http_client.get(url, headers=headers, timeout=self.timeouts)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientError(f"Network error: {e}") from e

        try:
            return self._classify(response)
        finally:
            response.close()

    def open_stream(self, descriptor: RequestDescriptor) -> requests.Response:
        """
        Open a streaming POST and return the live response.

        The caller owns the returned response and must close it.

        Raises:
            StreamError: When the gateway answers with a non-2xx status.
            TransientError: On timeouts and connection failures.
        """
        url = self.build_url(descriptor.path)
        headers = self.build_headers(descriptor.extra_headers)

        try:
            response = self.http_client.post(
                url, data=descriptor.body, headers=headers, timeout=self.timeouts, stream=True
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientError(f"Network error: {e}") from e

        if not 200 <= response.status_code < 300:
            try:
                body = response.text
            finally:
                response.close()
            raise StreamError(
                f"Stream request failed: {response.status_code} - {body}",
                status_code=response.status_code,
            )

        return response

    def _classify(self, response: requests.Response) -> APIResponse:
        status = response.status_code
        headers = dict(response.headers or {})

        if status == 429:
            raise RateLimitedError(retry_after=self._parse_retry_after(response.headers.get("Retry-After")))

        if 400 <= status < 500:
            error = f"Client error {status}: {response.text}"
            logger.error(error)
            return APIResponse.failed(error, status_code=status, headers=headers)

        if 500 <= status < 600:
            raise TransientError(f"Server error {status}: {response.text}", status_code=status)

        if status == 200:
            try:
                data = response.json()
            except ValueError as e:
                error = f"Invalid JSON response: {e}"
                logger.error(error)
                return APIResponse.failed(error, status_code=status, headers=headers)
            if not isinstance(data, dict):
                error = f"Invalid JSON response: expected an object, got {type(data).__name__}"
                logger.error(error)
                return APIResponse.failed(error, status_code=status, headers=headers)

            usage = data.get("usage") if isinstance(data.get("usage"), dict) else None
            if usage:
                logger.debug(f"Request completed successfully. Tokens used: {usage.get('total_tokens')}")
            return APIResponse.ok(data, usage=usage, status_code=status, headers=headers)

        error = f"Unexpected status code {status}: {response.text}"
        logger.warning(error)
        return APIResponse.failed(error, status_code=status, headers=headers)

    @staticmethod
    def _parse_retry_after(value: str | None) -> int:
        if value is None:
            return RateLimitedError.DEFAULT_RETRY_AFTER
        try:
            return max(0, int(value.strip()))
        except ValueError:
            return RateLimitedError.DEFAULT_RETRY_AFTER
