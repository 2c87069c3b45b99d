"""Line-oriented pattern scanning over a live byte stream.

Device boot logs arrive over serial in arbitrary chunks. ``scan_until``
reassembles them into lines and turns the first line that contains a known
success or failure marker into a pass/fail decision.

Example:
    >>> log = scan_until(
    ...     serial,
    ...     positive=["Connected to BNO085 on 0x4a"],
    ...     negative=["ERR", "[FATAL"],
    ... )
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Sequence

from paneltest_core.errors import PaneltestError, PatternMatchFailure
from paneltest_core.interfaces.hardware import ByteSource

logger = logging.getLogger(__name__)


def scan_until(
    source: ByteSource,
    positive: Sequence[str],
    negative: Sequence[str],
) -> str:
    """Read from ``source`` until a line matches a positive or negative pattern.

    Patterns are plain substrings. Each complete line is checked against the
    positive patterns first, so a line matching both sets counts as a success.
    Bytes that are not valid UTF-8 are replaced and NUL characters are dropped.

    The scan has no timeout of its own: it blocks until a pattern matches or
    ``source.read()`` raises, so the source's read timeout bounds it.

    Args:
        source: Blocking byte source (usually a serial channel).
        positive: Substrings that mark success.
        negative: Substrings that mark failure.

    Returns:
        Everything read from the source up to and including the matching chunk.

    Raises:
        PatternMatchFailure: On a negative match (the log ends with
            ``"negative match: <line>"``) or when the source raises.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    full_log = ""
    line_buffer = ""

    while True:
        try:
            chunk = source.read()
        except (PaneltestError, OSError) as exc:
            raise PatternMatchFailure(f"{full_log}read error: {exc}") from exc

        text = decoder.decode(chunk).replace("\x00", "")
        full_log += text
        line_buffer += text

        while "\n" in line_buffer:
            line, line_buffer = line_buffer.split("\n", 1)
            line = line.rstrip("\r")
            logger.debug("> %s", line)

            if any(pattern in line for pattern in positive):
                return full_log

            if any(pattern in line for pattern in negative):
                raise PatternMatchFailure(f"{full_log}negative match: {line}")
