"""
Optional logging setup for applications using the SDK.

The SDK only emits records through ``logging.getLogger(__name__)`` loggers
and never installs handlers on import. Applications that want the classic
"log to file, only errors to the console" behavior call ``setup_logging()``
once at startup.

Example:
    >>> from oprouter import OPROUTER, setup_logging
    >>> setup_logging(OPROUTER.config.logging)
"""

from __future__ import annotations

import logging
import sys

from oprouter._config import LoggingConfig

SDK_LOGGER_NAME = "oprouter"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARKER = "_oprouter_handler"


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """
    Attach file and stderr handlers to the ``oprouter`` logger.

    - When ``enable_logging`` is True, records at ``log_level`` and above go
      to ``log_file``.
    - ERROR records and above always go to stderr.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        config: Logging settings. Defaults to ``OPROUTER.config.logging``.

    Returns:
        The configured ``oprouter`` logger.
    """
    if config is None:
        from oprouter._config import OPROUTER
        config = OPROUTER.config.logging

    sdk_logger = logging.getLogger(SDK_LOGGER_NAME)
    for handler in list(sdk_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            sdk_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    level = logging.getLevelName(config.log_level.upper())

    if config.enable_logging:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        sdk_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.ERROR)
    console_handler.setFormatter(formatter)
    setattr(console_handler, _HANDLER_MARKER, True)
    sdk_logger.addHandler(console_handler)

    sdk_logger.setLevel(level if config.enable_logging else logging.ERROR)
    return sdk_logger
