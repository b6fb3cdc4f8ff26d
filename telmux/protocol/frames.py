"""
Command frame extraction for the inbound Telnet byte stream.

The extractor pulls every complete IAC command out of an accumulated buffer
and hands back the remaining data untouched, so line assembly can run on
what is left. Frames are returned in the order they appear in the stream.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .utils import IAC, SB, SE, get_command_name, get_option_name, unescape_iac

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandFrame:
    """A decoded protocol unit taken out of the stream.

    For the fixed 3-byte form `payload` is empty. For subnegotiation frames
    `payload` holds the bytes between the option byte and IAC SE, with
    doubled IAC bytes collapsed.
    """

    command: int
    option: int
    payload: bytes = b""
    raw: bytes = b""

    @property
    def is_subnegotiation(self) -> bool:
        return self.command == SB

    @property
    def sub_option(self) -> Optional[int]:
        """First payload byte of a subnegotiation (IS/SEND/...), if any."""
        if self.payload:
            return self.payload[0]
        return None

    def __str__(self) -> str:
        name = get_command_name(self.command)
        if self.is_subnegotiation:
            size = len(self.payload)
            return f"IAC SB {get_option_name(self.option)} <{size} bytes> IAC SE"
        return f"IAC {name} {get_option_name(self.option)}"


@dataclass
class FrameScan:
    """Result of one extraction pass over a buffer.

    `data` is the buffer with all complete frames removed, up to the first
    incomplete frame; `pending` is that incomplete frame plus anything after
    it, kept for the next chunk.
    """

    frames: List[CommandFrame] = field(default_factory=list)
    data: bytes = b""
    pending: bytes = b""

    @property
    def residual(self) -> bytes:
        return self.data + self.pending


def _find_subnegotiation_end(buffer: bytes, start: int) -> int:
    """Return the index of the SE byte closing the subnegotiation at `start`.

    The scan walks forward from the frame's own marker and stops at the
    nearest unescaped IAC SE, so it never pairs with the end marker of a
    later subnegotiation. Returns -1 when the frame is not complete yet.
    """
    j = start + 3
    length = len(buffer)
    while j < length:
        if buffer[j] == IAC:
            if j + 1 >= length:
                return -1
            follower = buffer[j + 1]
            if follower == SE:
                return j + 1
            if follower == IAC:
                j += 2
                continue
            if follower == SB:
                # A new subnegotiation began before this one was closed.
                logger.warning(
                    f"[TELNET] Subnegotiation at offset {start} "
                    f"interrupted by IAC SB at {j}"
                )
                return j - 1
        j += 1
    return -1


def _parse_subnegotiation(raw: bytes) -> CommandFrame:
    option = raw[2] if len(raw) > 2 else 0
    if raw.endswith(bytes([IAC, SE])):
        body = raw[3:-2]
    else:
        body = raw[3:]
    return CommandFrame(
        command=SB, option=option, payload=unescape_iac(body), raw=bytes(raw)
    )


def extract_frames(buffer: bytes) -> FrameScan:
    """
    Extract every complete command frame from `buffer`.

    Fixed commands are three bytes (IAC, command, option). Subnegotiations
    run from IAC SB to the nearest IAC SE. IAC IAC is an escaped data byte and
    stays in the data. An incomplete frame at the tail is left unconsumed.

    Args:
        buffer: Accumulated bytes from the transport.

    Returns:
        FrameScan with the frames in stream order, the remaining data and the
        still-incomplete tail.
    """
    buffer = bytes(buffer)
    scan = FrameScan()
    data = bytearray()
    i = 0
    length = len(buffer)
    while i < length:
        marker = buffer.find(IAC, i)
        if marker == -1:
            data += buffer[i:]
            break
        data += buffer[i:marker]
        if marker + 1 >= length:
            # Lone IAC at end, keep it for the next chunk
            scan.pending = buffer[marker:]
            break
        command = buffer[marker + 1]
        if command == IAC:
            data += buffer[marker : marker + 2]
            i = marker + 2
            continue
        if command == SB:
            if marker + 2 >= length:
                scan.pending = buffer[marker:]
                break
            end = _find_subnegotiation_end(buffer, marker)
            if end == -1:
                scan.pending = buffer[marker:]
                break
            frame = _parse_subnegotiation(buffer[marker : end + 1])
            scan.frames.append(frame)
            i = end + 1
            continue
        if marker + 2 >= length:
            # Incomplete 3-byte command, buffer for next chunk
            scan.pending = buffer[marker:]
            break
        raw = buffer[marker : marker + 3]
        scan.frames.append(CommandFrame(command=command, option=raw[2], raw=raw))
        i = marker + 3
    scan.data = bytes(data)
    if scan.frames:
        logger.debug(
            f"[TELNET] Extracted {len(scan.frames)} frame(s), "
            f"{len(scan.data)} data byte(s), {len(scan.pending)} pending"
        )
    return scan


def split_frames(buffer: bytes) -> Tuple[List[CommandFrame], bytes]:
    """Return `(frames, residual)` for callers that do not need the pending split."""
    scan = extract_frames(buffer)
    return scan.frames, scan.residual
