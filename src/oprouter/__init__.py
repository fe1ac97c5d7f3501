"""
OpenRouter client SDK for Python.

A thread-safe client for OpenRouter-style chat-completion gateways, with
client-side admission control (concurrency + requests per minute), retry with
exponential backoff and jitter, streaming, and in-memory conversation history.

Quick Start:
    >>> from oprouter import OpenRouterClient
    >>> with OpenRouterClient() as client:
    ...     response = client.chat_completion([{"role": "user", "content": "Hello!"}])
    ...     print(response.content)

Streaming:
    >>> with OpenRouterClient() as client:
    ...     text = client.chat_completion_stream(
    ...         [{"role": "user", "content": "Tell me a story"}],
    ...         on_chunk=lambda chunk: print(chunk, end="", flush=True),
    ...     )

Conversations:
    >>> from oprouter import ConversationManager
    >>> manager = ConversationManager()
    >>> conversation = manager.create_conversation(title="Support")
    >>> with OpenRouterClient() as client:
    ...     client.chat(conversation, "Hi there!")
    >>> print(conversation.export_to_text())

Global Configuration:
    >>> from oprouter import OPROUTER
    >>>
    >>> # Pre-loaded with defaults + .env file + env vars
    >>> OPROUTER.config.api.default_model
    >>>
    >>> # Custom configuration
    >>> OPROUTER.configure(
    ...     api={"api_key": "sk-or-v1-..."},
    ...     rate_limit={"max_concurrent_requests": 2, "max_requests_per_minute": 20},
    ...     retry={"max_retries": 3},
    ... )

Main Classes:
    - OpenRouterClient: Client for the chat-completion API.
    - APIResponse: Success/failure envelope returned by the client.
    - Conversation / ConversationManager: In-memory conversation history.
    - Message, MessageRole, ConversationMetadata: Conversation data models.

Configuration:
    - OPROUTER: Global SDK singleton for configuration.
    - OpRouterConfig: Root configuration dataclass.
    - ApiConfig, RateLimitConfig, RetryConfig, LoggingConfig, ConversationConfig: Sections.
    - ConfigEnvVarError: Exception raised when env var parsing fails.
    - ConfigValidationError: Exception raised when config validation fails.
    - setup_logging: Attach file/console handlers to the ``oprouter`` logger.

Building Blocks:
    - RateGate: Concurrency slots plus sliding-window rate limiting.
    - RetryPolicy / RetryStats: Retry with exponential backoff and its counters.
    - RequestExecutor / HttpClient / SessionHttpClient: HTTP layer.
    - StreamDecoder: Decoder for ``data: <json>`` event streams.

Errors:
    - OpenRouterError: Base class of every SDK exception.
    - RateLimitedError, TransientError: Retryable failures.
    - StreamError, RequestCancelledError: Terminal failures.
    - MaxRetriesExceededError: Raised when all retry attempts are exhausted.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("oprouter")

from oprouter._config import (
    OPROUTER,
    ApiConfig,
    ConfigEnvVarError,
    ConfigValidationError,
    ConversationConfig,
    LoggingConfig,
    OpRouterConfig,
    RateLimitConfig,
    RetryConfig,
)
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
from oprouter._http import (
    APIResponse,
    HttpClient,
    RequestDescriptor,
    RequestExecutor,
    SessionHttpClient,
)
from oprouter._logging import setup_logging
from oprouter._models import ConversationMetadata, Message, MessageRole
from oprouter._rate_limit import RateGate
from oprouter._retry import RetryPolicy, RetryStats
from oprouter._stream import StreamDecoder, iter_content
from oprouter._utils import validate_api_key
from oprouter.client import OpenRouterClient
from oprouter.conversations import Conversation, ConversationManager

__all__ = [
    "__version__",
    # Main Classes
    "OpenRouterClient",
    "APIResponse",
    "Conversation",
    "ConversationManager",
    "ConversationMetadata",
    "Message",
    "MessageRole",
    # Configuration
    "OPROUTER",
    "OpRouterConfig",
    "ApiConfig",
    "RateLimitConfig",
    "RetryConfig",
    "LoggingConfig",
    "ConversationConfig",
    "ConfigEnvVarError",
    "ConfigValidationError",
    "setup_logging",
    # Building Blocks
    "RateGate",
    "RetryPolicy",
    "RetryStats",
    "RequestExecutor",
    "RequestDescriptor",
    "HttpClient",
    "SessionHttpClient",
    "StreamDecoder",
    "iter_content",
    "validate_api_key",
    # Errors
    "Failure",
    "FailureKind",
    "OpenRouterError",
    "RateLimitedError",
    "TransientError",
    "StreamError",
    "RequestCancelledError",
    "MaxRetriesExceededError",
]
