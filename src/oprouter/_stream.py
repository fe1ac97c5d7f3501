"""
Decoder for SSE-style chat-completion streams.

The gateway streams newline-delimited ``data: <json>`` frames and ends with
``data: [DONE]``. Each frame carries a content delta at
``choices[0].delta.content``.

Example:
    >>> decoder = StreamDecoder(on_chunk=lambda text: print(text, end="", flush=True))
    >>> decoder.decode(response.iter_lines(decode_unicode=True))

    >>> # Generator variant
    >>> for text in iter_content(response.iter_lines(decode_unicode=True)):
    ...     print(text, end="")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def _parse_line(line: str | bytes) -> tuple[bool, str | None]:
    """
    Decode one raw line.

    Returns:
        ``(done, content)``: ``done`` is True on the ``[DONE]`` sentinel;
        ``content`` is the delta text, or None when the line carries none.
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")

    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return False, None

    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return True, None

    try:
        chunk: Any = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed stream chunk: {payload[:100]}")
        return False, None

    if not isinstance(chunk, dict):
        logger.debug(f"Skipping non-object stream chunk: {payload[:100]}")
        return False, None

    try:
        content = chunk["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return False, None

    return False, content if isinstance(content, str) else None


class StreamDecoder:
    """
    Push-style decoder invoking a sink once per content delta.

    Lines fed after the ``[DONE]`` sentinel are ignored. A malformed chunk
    is skipped and never aborts the stream.

    Attributes:
        done: True once the sentinel has been seen.
        chunks_emitted: Number of times the sink has been invoked.
    """

    def __init__(self, on_chunk: Callable[[str], None]):
        assert on_chunk is not None, "on_chunk cannot be None."
        self._on_chunk = on_chunk
        self._done = False
        self.chunks_emitted = 0

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, line: str | bytes) -> bool:
        """
        Process one line.

        Returns:
            False once the stream has ended, True otherwise.
        """
        if self._done:
            return False

        done, content = _parse_line(line)
        if done:
            self._done = True
            return False

        if content is not None:
            self._on_chunk(content)
            self.chunks_emitted += 1
        return True

    def decode(self, lines: Iterable[str | bytes]) -> None:
        """Feed every line until the stream ends or the input is exhausted."""
        for line in lines:
            if not self.feed(line):
                break


def iter_content(lines: Iterable[str | bytes]) -> Iterator[str]:
    """Yield delta contents from ``lines`` until ``[DONE]``."""
    for line in lines:
        done, content = _parse_line(line)
        if done:
            return
        if content is not None:
            yield content
