"""Line framing for the child's stdout stream."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

logger = logging.getLogger(__name__)


def looks_like_json_object(line: str) -> bool:
    """Cheap pre-filter: does the line start a JSON object?"""
    return line.lstrip().startswith("{")


async def iter_lines(
    reader: asyncio.StreamReader,
    json_only: bool = True,
) -> AsyncIterator[str]:
    """
    Yield one line per newline-terminated chunk read from ``reader``.

    Line terminators are stripped. The iterator ends at EOF; a final
    chunk without a terminator is still yielded.

    Args:
        reader: The child's stdout stream.
        json_only: Skip lines that cannot start a JSON object, such as
            tsserver's ``Content-Length`` headers and blank separators.
    """
    while True:
        try:
            raw = await reader.readline()
        except ValueError as e:
            # StreamReader reports a line over its limit as ValueError and
            # discards the buffered part.
            logger.warning(f"Dropping oversized line from tsserver: {e}")
            continue

        if not raw:
            return

        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if json_only and not looks_like_json_object(line):
            if line.strip():
                logger.debug(f"Skipping non-JSON line: {line[:80]}")
            continue
        yield line
