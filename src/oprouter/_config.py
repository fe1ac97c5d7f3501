"""
Global configuration for the oprouter SDK.

This module provides a simple configuration system following Convention over Configuration (CoC).
Users can optionally call OPROUTER.configure() at application startup to customize defaults.
If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to the OpenRouterClient constructor
2. Values set via OPROUTER.configure()
3. Environment variables (OPENROUTER_API_KEY, MAX_RETRIES, ...)
4. Values from a ``.env`` file in the working directory
5. Hardcoded defaults (in dataclass fields)

Example:
    >>> from oprouter import OPROUTER
    >>>
    >>> # Pre-loaded with defaults + .env + env vars
    >>> model = OPROUTER.config.api.default_model
    >>>
    >>> # Custom configuration
    >>> OPROUTER.configure(
    ...     api={"api_key": "sk-or-v1-..."},
    ...     retry={"max_retries": 3, "base_delay": 0.5},
    ...     rate_limit={"max_concurrent_requests": 2},
    ... )
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from functools import wraps
from pathlib import Path
from typing import Any, Self

from dotenv import dotenv_values

from oprouter._utils import mask_secret

DEFAULT_ENV_FILE = ".env"

_SECTIONS = ("api", "rate_limit", "retry", "logging", "conversation")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


def load_env_file(path: str | Path | None = DEFAULT_ENV_FILE) -> dict[str, str]:
    """
    Read a ``.env`` file into a dict, without touching ``os.environ``.

    Missing files yield an empty dict. Keys without a value are dropped.

    Args:
        path: Path to the dotenv file. None disables file loading.

    Returns:
        Mapping of variable name to raw string value.
    """
    if path is None:
        return {}
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    return {k: v.strip() for k, v in dotenv_values(env_path).items() if v is not None}


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Process environment wins over values read from the ``.env`` file.

    Example:
        >>> EnvVars.get("MAX_RETRIES", type_hint=int)
        5
        >>> EnvVars.get("OPENROUTER_API_KEY", file_values={"OPENROUTER_API_KEY": "sk-or-v1-x"})
        'sk-or-v1-x'
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def lookup(var_name: str, file_values: Mapping[str, str] | None = None) -> tuple[str | None, str]:
        """
        Find the raw value of a variable and where it came from.

        Returns:
            Tuple of (raw value or None, source label "env" / "dotenv" / "").
        """
        raw_value = os.environ.get(var_name)
        if raw_value:
            return raw_value, "env"
        file_value = (file_values or {}).get(var_name)
        if file_value:
            return file_value, "dotenv"
        return None, ""

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
        file_values: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).
            file_values: Values loaded from a ``.env`` file, used as fallback.

        Returns:
            The converted value, or None if the variable is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value, _ = EnvVars.lookup(var_name, file_values)
        if not raw_value:
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` method for creating new instances
    with partial field updates. Uses strict validation to catch
    typos and invalid field names early.

    Example:
        >>> config = RetryConfig()
        >>> custom = config.with_overrides({"max_retries": 3})
        >>> custom.max_retries
        3
    """

    def with_overrides(
        self,
        overrides: Mapping[str, Any],
        allow_none_fields: set[str] | None = None,
    ) -> Self:
        """
        Return a new instance with specified fields overridden.

        Args:
            overrides: Dict of field names to new values.
                       Only existing fields are allowed.
            allow_none_fields: Set of field names that accept None as a valid value.
                       By default, None values are filtered out.

        Returns:
            New instance with updated values.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        allow_none = allow_none_fields or set()
        filtered = {k: v for k, v in overrides.items() if v is not None or k in allow_none}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self, file_values: Mapping[str, str] | None = None) -> Self:
        """
        Return new instance with environment variables applied.

        Reads env vars declared in field metadata and applies them as overrides.

        Args:
            file_values: Values loaded from a ``.env`` file (lower precedence
                than the process environment).

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(
                    var_name=env_var,
                    type_hint=f.type,
                    converter=f.metadata.get("converter"),
                    file_values=file_values,
                )
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


def _require_http_url(value: str, field_name: str, section: str) -> None:
    if value and not (value.startswith("http://") or value.startswith("https://")):
        raise ConfigValidationError(
            field_name, value,
            "Must start with 'http://' or 'https://'.", section=section
        )


def _require_positive(value: float, field_name: str, section: str) -> None:
    if value <= 0:
        raise ConfigValidationError(
            field_name, value,
            "Must be greater than 0.", section=section
        )


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class ApiConfig(OverridableConfig):
    """
    Connection settings for the chat-completion gateway.

    Attributes:
        api_key: Bearer token sent in the Authorization header.
            Env var: OPENROUTER_API_KEY

        default_model: Model used when a call does not name one.
            Env var: DEFAULT_MODEL

        base_url: Base URL of the API (paths are appended to it).
            Env var: BASE_URL

        connect_timeout: Seconds allowed to connect and send the request.
            Env var: CONNECT_TIMEOUT

        read_timeout: Seconds allowed between bytes of the response. Generation
            can be slow, so this is generous by default.
            Env var: READ_TIMEOUT

        app_title: Value of the X-Title product identification header.

        user_agent: Value of the User-Agent header.

    Example:
        >>> from oprouter import OPROUTER
        >>> OPROUTER.config.api.base_url
        'https://openrouter.ai/api/v1'
    """

    api_key: str | None = field(default=None, metadata={"env": "OPENROUTER_API_KEY"})
    default_model: str = field(default="x-ai/grok-4-fast:free", metadata={"env": "DEFAULT_MODEL"})
    base_url: str = field(default="https://openrouter.ai/api/v1", metadata={"env": "BASE_URL"})
    connect_timeout: float = field(default=30.0, metadata={"env": "CONNECT_TIMEOUT"})
    read_timeout: float = field(default=300.0, metadata={"env": "READ_TIMEOUT"})
    app_title: str = "OpRouter Python Chat Client"
    user_agent: str = "oprouter-python/1.0"

    def has_api_key(self) -> bool:
        """Check if an API key is set."""
        return bool(self.api_key)

    def validate(self) -> Self:
        """Validate API configuration fields."""
        if self.api_key is not None and self.api_key == "":
            raise ConfigValidationError(
                "api_key", self.api_key,
                "Must not be empty string.", section="api"
            )
        if not self.default_model:
            raise ConfigValidationError(
                "default_model", self.default_model,
                "Must not be empty.", section="api"
            )
        _require_http_url(self.base_url, "base_url", "api")
        _require_positive(self.connect_timeout, "connect_timeout", "api")
        _require_positive(self.read_timeout, "read_timeout", "api")
        return self


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Client-side admission control.

    Attributes:
        max_concurrent_requests: Maximum number of requests in flight at once.
            Env var: MAX_CONCURRENT_REQUESTS

        max_requests_per_minute: Maximum admissions per rolling period.
            Env var: MAX_REQUESTS_PER_MINUTE

        period_seconds: Length of the rolling period, in seconds.

    Example:
        >>> from oprouter import OPROUTER
        >>> OPROUTER.config.rate_limit.max_requests_per_minute
        60
    """

    max_concurrent_requests: int = field(default=5, metadata={"env": "MAX_CONCURRENT_REQUESTS"})
    max_requests_per_minute: int = field(default=60, metadata={"env": "MAX_REQUESTS_PER_MINUTE"})
    period_seconds: float = 60.0

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        _require_positive(self.max_concurrent_requests, "max_concurrent_requests", "rate_limit")
        _require_positive(self.max_requests_per_minute, "max_requests_per_minute", "rate_limit")
        _require_positive(self.period_seconds, "period_seconds", "rate_limit")
        return self


@dataclass(frozen=True)
class RetryConfig(OverridableConfig):
    """
    Retry policy settings.

    Attributes:
        max_retries: Total number of attempts, including the first one.
            Env var: MAX_RETRIES

        base_delay: Delay in seconds before the first retry.
            Env var: BASE_DELAY

        max_delay: Upper bound in seconds for any single backoff.
            Env var: MAX_DELAY

        backoff_multiplier: Growth factor of the delay between attempts.
            Env var: BACKOFF_MULTIPLIER

        jitter_max: Maximum random seconds added to each delay.

    Example:
        >>> from oprouter import OPROUTER
        >>> OPROUTER.config.retry.max_retries
        5
    """

    max_retries: int = field(default=5, metadata={"env": "MAX_RETRIES"})
    base_delay: float = field(default=1.0, metadata={"env": "BASE_DELAY"})
    max_delay: float = field(default=60.0, metadata={"env": "MAX_DELAY"})
    backoff_multiplier: float = field(default=2.0, metadata={"env": "BACKOFF_MULTIPLIER"})
    jitter_max: float = 5.0

    def validate(self) -> Self:
        """Validate retry configuration fields."""
        if self.max_retries < 1:
            raise ConfigValidationError(
                "max_retries", self.max_retries,
                "Must be >= 1 (total attempts, including the first).", section="retry"
            )
        _require_positive(self.base_delay, "base_delay", "retry")
        _require_positive(self.max_delay, "max_delay", "retry")
        if self.backoff_multiplier < 1:
            raise ConfigValidationError(
                "backoff_multiplier", self.backoff_multiplier,
                "Must be >= 1.", section="retry"
            )
        if self.jitter_max < 0:
            raise ConfigValidationError(
                "jitter_max", self.jitter_max,
                "Must be >= 0.", section="retry"
            )
        return self


@dataclass(frozen=True)
class LoggingConfig(OverridableConfig):
    """
    Logging settings consumed by ``setup_logging()``.

    The SDK never installs handlers on its own; these values only matter
    when the application calls ``oprouter.setup_logging()``.

    Attributes:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR).
            Env var: LOG_LEVEL

        log_file: File receiving the SDK log records.
            Env var: LOG_FILE

        enable_logging: When False only errors are reported (to stderr).
            Env var: ENABLE_LOGGING
    """

    log_level: str = field(default="INFO", metadata={"env": "LOG_LEVEL"})
    log_file: str = field(default="oprouter.log", metadata={"env": "LOG_FILE"})
    enable_logging: bool = field(default=True, metadata={"env": "ENABLE_LOGGING"})

    def validate(self) -> Self:
        """Validate logging configuration fields."""
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigValidationError(
                "log_level", self.log_level,
                "Must be a standard logging level name.", section="logging"
            )
        if self.enable_logging and not self.log_file:
            raise ConfigValidationError(
                "log_file", self.log_file,
                "Must not be empty when logging is enabled.", section="logging"
            )
        return self


@dataclass(frozen=True)
class ConversationConfig(OverridableConfig):
    """
    Conversation history settings.

    Attributes:
        history_limit: Number of most recent messages sent with each
            ``OpenRouterClient.chat()`` call. 0 sends the whole history.
            Env var: CONVERSATION_HISTORY_LIMIT
    """

    history_limit: int = field(default=100, metadata={"env": "CONVERSATION_HISTORY_LIMIT"})

    def validate(self) -> Self:
        """Validate conversation configuration fields."""
        if self.history_limit < 0:
            raise ConfigValidationError(
                "history_limit", self.history_limit,
                "Must be >= 0.", section="conversation"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Used by explain_data() for structured output.

    Attributes:
        name: The field name (e.g., "max_retries").
        value: The resolved value.
        source: Where the value came from:
            - "default": Hardcoded default value
            - "env:VAR_NAME": Environment variable
            - "dotenv:VAR_NAME": Value read from the .env file
            - "configure": Set via OPROUTER.configure()

    Example:
        >>> entry = ConfigEntry("max_retries", 3, "configure")
        >>> entry.formatted_value
        '3'
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """
        Return value formatted for display.

        Masks the API key and truncates long strings.

        Examples:
            >>> ConfigEntry("api_key", "sk-or-v1-super-secret-key", "env").formatted_value
            'sk-o********-key'
        """
        if self.name == "api_key" and self.value is not None:
            return mask_secret(str(self.value))

        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."

        return str_value


@dataclass(frozen=True)
class ConfigTracker:
    """
    Tracks the source of config field values.

    An immutable tracker that records where each configuration value came from
    (default, env var, .env file, or configure()). Used by OPROUTER.explain().

    Attributes:
        sources: Dict tracking source of each field value.
            Structure: {"section": {"field": "source"}}
    """

    sources: dict[str, dict[str, str]] = field(default_factory=dict)

    @staticmethod
    def track_changes(
        source_type: str,
    ) -> Callable[[Callable[..., OpRouterConfig]], Callable[..., OpRouterConfig]]:
        """
        Decorator that tracks config changes made by the decorated method.

        Wraps methods that return a new OpRouterConfig and records which
        fields the source touched.

        Args:
            source_type: Source label for tracking ("env" or "user").
        """

        def decorator(
            method: Callable[..., OpRouterConfig],
        ) -> Callable[..., OpRouterConfig]:
            @wraps(method)
            def wrapper(self: OpRouterConfig, *args: Any, **kwargs: Any) -> OpRouterConfig:
                new_config = method(self, *args, **kwargs)
                new_tracker = self._tracker.with_changes_tracked(
                    new_config, source_type, **kwargs
                )
                return replace(new_config, _tracker=new_tracker)

            return wrapper

        return decorator

    def with_changes_tracked(
        self,
        new_config: OpRouterConfig,
        source_type: str,
        file_values: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ConfigTracker:
        """
        Return new tracker with the fields touched by ``source_type`` recorded.

        Args:
            new_config: The config after changes.
            source_type: "env" or "user".
            file_values: For "env", the values read from the .env file.
            overrides: For "user", the dict of overrides per section.
        """
        new_sources = {section: dict(flds) for section, flds in self.sources.items()}

        for section_name in _SECTIONS:
            section_config = getattr(new_config, section_name)
            section_sources = new_sources.setdefault(section_name, {})

            for f in fields(section_config):
                if source_type == "env":
                    env_var = f.metadata.get("env")
                    if not env_var:
                        continue
                    _, origin = EnvVars.lookup(env_var, file_values)
                    if origin:
                        section_sources[f.name] = f"{origin}:{env_var}"

                elif source_type == "user":
                    section_overrides = overrides.get(section_name) or {}
                    if f.name in section_overrides:
                        section_sources[f.name] = "configure"

        return ConfigTracker(sources={k: v for k, v in new_sources.items() if v})


@dataclass(frozen=True)
class OpRouterConfig:
    """
    Global configuration for the oprouter SDK.

    Aggregates all configuration sections. Access via the global
    `OPROUTER.config` property.

    Attributes:
        api: Gateway connection settings.
        rate_limit: Client-side admission control.
        retry: Retry policy settings.
        logging: Logging settings.
        conversation: Conversation history settings.

    Example:
        >>> from oprouter import OPROUTER
        >>> OPROUTER.config.retry.base_delay
        1.0
        >>> OPROUTER.config.rate_limit.max_concurrent_requests
        5
    """

    api: ApiConfig = field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    _tracker: ConfigTracker = field(default_factory=ConfigTracker, repr=False)

    @ConfigTracker.track_changes("env")
    def with_env_vars(self, *, file_values: Mapping[str, str] | None = None) -> OpRouterConfig:
        """
        Return a new config with environment variables applied on top.

        Args:
            file_values: Values from a ``.env`` file, used where the process
                environment does not define the variable.

        Example:
            >>> config = OpRouterConfig().with_env_vars(file_values=load_env_file())
        """
        return OpRouterConfig(
            api=self.api.with_env_vars(file_values),
            rate_limit=self.rate_limit.with_env_vars(file_values),
            retry=self.retry.with_env_vars(file_values),
            logging=self.logging.with_env_vars(file_values),
            conversation=self.conversation.with_env_vars(file_values),
            _tracker=self._tracker,
        )

    @ConfigTracker.track_changes("user")
    def with_section_overrides(
        self,
        *,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
        conversation: dict[str, Any] | None = None,
    ) -> OpRouterConfig:
        """
        Return a new config with overrides applied to nested sections.

        Each section dict is merged with the existing section config,
        only overriding the specified fields.

        Example:
            >>> custom = OpRouterConfig().with_section_overrides(
            ...     retry={"max_retries": 2},
            ...     api={"default_model": "openai/gpt-4o-mini"},
            ... )
        """
        return OpRouterConfig(
            api=self.api.with_overrides(api or {}),
            rate_limit=self.rate_limit.with_overrides(rate_limit or {}),
            retry=self.retry.with_overrides(retry or {}),
            logging=self.logging.with_overrides(logging or {}),
            conversation=self.conversation.with_overrides(conversation or {}),
            _tracker=self._tracker,
        )

    def validate(self) -> OpRouterConfig:
        """Validate every section, raising ConfigValidationError on the first problem."""
        for section_name in _SECTIONS:
            getattr(self, section_name).validate()
        return self

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """
        Return config data structured for explain output.

        Returns:
            Dict mapping section names to list of ConfigEntry objects.
        """
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in _SECTIONS:
            section_config = getattr(self, section_name)
            section_sources = self._tracker.sources.get(section_name, {})
            result[section_name] = [
                ConfigEntry(
                    name=f.name,
                    value=getattr(section_config, f.name),
                    source=section_sources.get(f.name, "default"),
                )
                for f in fields(section_config)
            ]
        return result


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _OPROUTER:
    """
    Singleton for SDK configuration.

    Use `OPROUTER.configure()` to customize settings and `OPROUTER.config`
    to access current configuration.

    Example:
        >>> from oprouter import OPROUTER
        >>> OPROUTER.configure(api={"api_key": "sk-or-v1-..."})
        >>> print(OPROUTER.config.retry.max_retries)
    """

    def __init__(self) -> None:
        """Initialize with defaults, .env file values and environment variables."""
        self._config: OpRouterConfig = self._load_base(env_file=DEFAULT_ENV_FILE)

    @staticmethod
    def _load_base(env_file: str | Path | None) -> OpRouterConfig:
        return OpRouterConfig().with_env_vars(file_values=load_env_file(env_file))

    def configure(
        self,
        *,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
        conversation: dict[str, Any] | None = None,
        allow_env_override: bool = True,
        env_file: str | Path | None = DEFAULT_ENV_FILE,
    ) -> OpRouterConfig:
        """
        Configure SDK settings.

        Call at application startup to customize defaults. Updates the
        internal configuration and returns the configured instance.

        Args:
            api: Connection overrides (api_key, default_model, base_url, timeouts).
            rate_limit: Admission control overrides.
            retry: Retry policy overrides.
            logging: Logging overrides.
            conversation: Conversation history overrides.
            allow_env_override: If True (default), env vars and the .env file are
                used as fallback for fields NOT provided. If False, they are ignored.
            env_file: Path of the dotenv file to read (None disables it).

        Returns:
            The configured OpRouterConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = OpRouterConfig()
        if allow_env_override:
            base = self._load_base(env_file)

        self._config = base.with_section_overrides(
            api=api,
            rate_limit=rate_limit,
            retry=retry,
            logging=logging,
            conversation=conversation,
        )
        return self.validate()

    @property
    def config(self) -> OpRouterConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> OpRouterConfig:
        """
        Reset configuration to defaults + .env + environment variables.

        Useful for testing to ensure clean state between tests.
        """
        self._config = self._load_base(env_file=DEFAULT_ENV_FILE)
        return self.validate()

    def validate(self) -> OpRouterConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        return self._config.validate()

    def explain(
        self,
        output: Callable[[str], None] = print,
    ) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `OPROUTER.explain(logger.info)`

        Example:
            >>> OPROUTER.explain()
            OPROUTER Configuration:
            ====================
            [retry]
              max_retries ........... 3   ✎ env:MAX_RETRIES
            ...
        """
        name_width = 25
        value_width = 50
        total_width = 2 + name_width + 2 + (value_width + 2) + 1 + 8

        output("OPROUTER Configuration:")
        output("=" * total_width)
        output(f"  {'Field':<{name_width}} │ {'Value':<{value_width}} │ Source")
        output(f"--{'-' * name_width}-+{'-' * (value_width + 2)}+--------")

        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")

        output("=" * total_width)

    def __repr__(self) -> str:
        return f"OPROUTER(config={self._config!r})"


# Global singleton instance - always reflects current configuration
OPROUTER: _OPROUTER = _OPROUTER()
OPROUTER.validate()  # Validate defaults + env vars on module load
