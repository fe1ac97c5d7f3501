"""
Utility functions for the oprouter SDK.

This module provides internal helper functions used throughout the client.
These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

import logging
import threading
import time

from oprouter._errors import RequestCancelledError

logger = logging.getLogger(__name__)

OPENROUTER_KEY_PREFIX = "sk-or-v1-"


def interruptible_sleep(seconds: float, cancel_event: threading.Event | None = None) -> None:
    """
    Sleep for the given duration, aborting early if ``cancel_event`` is set.

    Without a cancel event this is a plain ``time.sleep``. With one, the
    thread waits on the event so another thread can cancel the wait.

    Args:
        seconds: Sleep duration in seconds. Non-positive values return at once.
        cancel_event: Optional event that cancels the wait when set.

    Raises:
        RequestCancelledError: If the event is (or becomes) set.

    Example:
        >>> cancel = threading.Event()
        >>> interruptible_sleep(0.5, cancel)  # returns after 0.5s
        >>> cancel.set()
        >>> interruptible_sleep(10.0, cancel)  # raises immediately
    """
    if cancel_event is not None and cancel_event.is_set():
        raise RequestCancelledError("Request cancelled before sleeping")
    if seconds <= 0:
        return
    if cancel_event is None:
        time.sleep(seconds)
        return
    if cancel_event.wait(timeout=seconds):
        raise RequestCancelledError(f"Request cancelled while sleeping ({seconds:.2f}s)")


def validate_api_key(api_key: str | None) -> bool:
    """
    Check whether an API key looks usable.

    OpenRouter keys start with ``sk-or-v1-``; other gateways use different
    formats, so any key longer than 10 characters is also accepted.

    Example:
        >>> validate_api_key("sk-or-v1-0123456789abcdef")
        True
        >>> validate_api_key("short")
        False
    """
    if not api_key:
        return False
    if api_key.startswith(OPENROUTER_KEY_PREFIX) and len(api_key) > 20:
        return True
    return len(api_key) > 10


def mask_secret(secret: str | None) -> str:
    """
    Mask a secret for display, keeping only a few characters visible.

    Examples:
        >>> mask_secret("sk-or-v1-super-secret-key")
        'sk-o********-key'
        >>> mask_secret("short")
        '********t'
    """
    if secret is None:
        return "None"
    if len(secret) >= 12:
        return f"{secret[:4]}********{secret[-4:]}"
    if len(secret) >= 3:
        visible = max(1, len(secret) // 3)
        return f"********{secret[-visible:]}"
    return "********"
