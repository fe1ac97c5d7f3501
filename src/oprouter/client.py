"""
OpenRouter chat-completion client.

``OpenRouterClient`` is the exposed surface of the SDK. Every non-streaming
call goes through the same pipeline:

    RetryPolicy.execute -> RateGate.admit -> RequestExecutor.execute

so rate limiting, 5xx answers and network hiccups are absorbed by retries
with exponential backoff, while client errors come back as failed
``APIResponse`` envelopes. Streaming calls use the gate but are never retried.

Example:
    >>> from oprouter import OpenRouterClient
    >>> with OpenRouterClient() as client:
    ...     response = client.chat_completion([{"role": "user", "content": "Hello!"}])
    ...     if response.success:
    ...         print(response.content)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

import requests

from oprouter._config import ConfigValidationError
from oprouter._errors import StreamError
from oprouter._http import APIResponse, HttpClient, RequestDescriptor, RequestExecutor, SessionHttpClient
from oprouter._models import MessageRole
from oprouter._rate_limit import RateGate
from oprouter._retry import RetryPolicy, RetryStats
from oprouter._stream import StreamDecoder
from oprouter._utils import validate_api_key

if TYPE_CHECKING:
    from oprouter._config import OpRouterConfig
    from oprouter.conversations import Conversation

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"
DEFAULT_TEMPERATURE = 0.7


class OpenRouterClient:
    """
    Thread-safe client for an OpenRouter-compatible chat-completion API.

    One instance may be shared by many worker threads: they share the
    concurrency slots, the rate window, the connection pool and the retry
    statistics.

    Args:
        api_key: API key. Defaults to ``OPROUTER.config.api.api_key``.
        model: Default model for calls that do not name one.
            Defaults to ``OPROUTER.config.api.default_model``.
        config: Configuration snapshot. Defaults to ``OPROUTER.config``;
            read once at construction.
        http_client: Transport. Defaults to a pooled ``SessionHttpClient``
            owned (and closed) by this client.
        cancel_event: Optional event; once set, waits for a slot, for the
            rate window or for a backoff abort with ``RequestCancelledError``.

    Raises:
        ConfigValidationError: If no API key is available.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        config: OpRouterConfig | None = None,
        http_client: HttpClient | None = None,
        cancel_event: threading.Event | None = None,
    ):
        if config is None:
            from oprouter._config import OPROUTER
            config = OPROUTER.config

        if not api_key:
            if not config.api.has_api_key():
                raise ConfigValidationError(
                    "api_key", api_key,
                    "An API key is required. Pass api_key or set OPENROUTER_API_KEY.",
                    section="api",
                )
            api_key = config.api.api_key
        if not validate_api_key(api_key):
            logger.warning("⚠️ API key does not look like a valid OpenRouter key (expected 'sk-or-v1-...').")

        self.config = config
        self.model = model or config.api.default_model
        self.cancel_event = cancel_event

        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = SessionHttpClient(pool_maxsize=config.rate_limit.max_concurrent_requests)
        self.http_client: HttpClient = http_client

        self._executor = RequestExecutor(
            api_key=api_key,
            base_url=config.api.base_url,
            http_client=http_client,
            timeouts=(config.api.connect_timeout, config.api.read_timeout),
            app_title=config.api.app_title,
            user_agent=config.api.user_agent,
        )
        self._gate = RateGate(
            max_concurrent=config.rate_limit.max_concurrent_requests,
            max_requests_per_period=config.rate_limit.max_requests_per_minute,
            period_seconds=config.rate_limit.period_seconds,
            cancel_event=cancel_event,
        )
        self._retry = RetryPolicy.from_config(config.retry, cancel_event=cancel_event, logger_prefix="OpenRouterClient")
        self._closed = False
        self._close_lock = threading.Lock()

        logger.info(f"Initialized OpenRouter client with model: {self.model}")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int | None = None,
        stream: bool = False,
    ) -> APIResponse:
        """
        Send a chat-completion request and wait for the full answer.

        Args:
            messages: Messages in wire format (``{"role": ..., "content": ...}``).
            model: Model to use. Defaults to the client model.
            temperature: Sampling temperature.
            max_tokens: Completion length cap, if any.
            stream: Sets the ``stream`` flag in the payload. Use
                ``chat_completion_stream()`` to actually consume a stream.

        Returns:
            APIResponse: success envelope, or failed envelope for 4xx and
            protocol errors.

        Raises:
            MaxRetriesExceededError: When retryable failures exhaust the attempts.
            RequestCancelledError: When the cancel event is set.
        """
        payload = self._build_payload(messages, model, temperature, max_tokens, stream=stream)
        logger.debug(f"Sending chat completion request with {len(messages)} messages")
        return self._request(RequestDescriptor(method="POST", path=CHAT_COMPLETIONS_PATH, body=payload))

    def chat_completion_stream(
        self,
        messages: list[dict[str, str]],
        on_chunk: Callable[[str], None],
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int | None = None,
    ) -> str:
        """
        Stream a chat completion, calling ``on_chunk`` for every content delta.

        The stream is not retried: a failure to establish it raises, and a
        failure mid-stream raises ``StreamError`` after the chunks already
        delivered.

        Returns:
            The concatenation of every delivered chunk.

        Raises:
            StreamError: On a non-2xx answer or a broken stream.
            TransientError: When the connection cannot be established.
            RequestCancelledError: When the cancel event is set.
        """
        assert on_chunk is not None, "on_chunk cannot be None."

        payload = self._build_payload(messages, model, temperature, max_tokens, stream=True)
        descriptor = RequestDescriptor(method="POST", path=CHAT_COMPLETIONS_PATH, body=payload)
        parts: list[str] = []

        def sink(content: str) -> None:
            parts.append(content)
            on_chunk(content)

        decoder = StreamDecoder(on_chunk=sink)
        with self._gate.admit():
            response = self._executor.open_stream(descriptor)
            try:
                response.encoding = "utf-8"
                decoder.decode(response.iter_lines(decode_unicode=True))
            except requests.RequestException as e:
                raise StreamError(f"Stream interrupted after {decoder.chunks_emitted} chunks: {e}") from e
            finally:
                response.close()

        logger.debug(f"Stream completed with {decoder.chunks_emitted} chunks")
        return "".join(parts)

    def get_models(self) -> APIResponse:
        """List the models available on the gateway (``GET /models``)."""
        return self._request(RequestDescriptor(method="GET", path=MODELS_PATH))

    def health_check(self) -> bool:
        """
        Check whether the API is reachable and accepts the key.

        Never raises: any error is logged and reported as ``False``.
        """
        try:
            return self.get_models().success
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    def get_retry_stats(self) -> RetryStats:
        return self._retry.stats

    def chat(self, conversation: Conversation, user_message: str, **options: Any) -> APIResponse:
        """
        Send ``user_message`` in the context of ``conversation``.

        The request carries the last ``config.conversation.history_limit`` messages
        plus the new one. The conversation is only updated when the call
        succeeds: the user message and the assistant reply (with its token
        usage and cost, when reported) are then appended.

        Args:
            conversation: Conversation to continue.
            user_message: Text of the new user message.
            **options: Forwarded to ``chat_completion`` (model, temperature,
                max_tokens). The model defaults to the conversation's.

        Returns:
            The APIResponse of the completion.
        """
        history = conversation.get_messages_for_api(limit=self.config.conversation.history_limit)
        messages = [*history, {"role": MessageRole.USER.value, "content": user_message}]
        options.setdefault("model", conversation.model)

        response = self.chat_completion(messages, **options)
        if not response.success:
            logger.warning(f"Conversation {conversation.id} | Completion failed: {response.error}")
            return response

        usage = response.usage or {}
        conversation.add_message(MessageRole.USER, user_message)
        conversation.add_message(
            MessageRole.ASSISTANT,
            response.content or "",
            tokens=usage.get("total_tokens"),
            cost=usage.get("cost"),
        )
        return response

    def close(self) -> None:
        """Log retry statistics and release pooled connections. Idempotent."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        stats = self._retry.stats
        if stats.total_calls > 0:
            logger.info(f"Retry statistics: {stats}")
        if self._owns_http_client:
            self.http_client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"OpenRouterClient(model={self.model!r}, base_url={self._executor.base_url!r})"

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _build_payload(
        self,
        messages: list[dict[str, str]],
        model: str | None,
        temperature: float,
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        assert messages is not None, "messages cannot be None."

        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if stream:
            payload["stream"] = True
        return payload

    def _request(self, descriptor: RequestDescriptor) -> APIResponse:
        def attempt() -> APIResponse:
            with self._gate.admit():
                return self._executor.execute(descriptor)

        return self._retry.execute(attempt)
