"""Line record assembly for line-mode sessions."""

import logging
from typing import List, Tuple

from .utils import LINE_TERMINATOR, unescape_iac

logger = logging.getLogger(__name__)


def split_lines(buffer: bytes) -> Tuple[List[bytes], bytes]:
    """
    Split `buffer` into complete line records and the remaining partial line.

    Empty segments produced by consecutive terminators are dropped. With two
    or more segments, all but the last are complete lines and the last one
    (possibly empty) is the new buffer. A buffer made only of terminators
    yields a single empty line. Anything else is left untouched until more
    data arrives.

    Returns:
        (lines, remainder)
    """
    segments = buffer.split(LINE_TERMINATOR)
    kept = [segment for segment in segments[:-1] if segment]
    kept.append(segments[-1])
    if len(kept) >= 2:
        return kept[:-1], kept[-1]
    if buffer.endswith(LINE_TERMINATOR):
        return [b""], b""
    return [], buffer


def line_to_text(line: bytes, encoding: str = "utf-8") -> str:
    """Decode a delivered line record, dropping the CR of a CR LF pair."""
    text = unescape_iac(line).decode(encoding, errors="replace")
    if text.endswith("\r"):
        text = text[:-1]
    return text
