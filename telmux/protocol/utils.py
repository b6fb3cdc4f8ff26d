"""Utility functions and wire constants for Telnet stream handling.

Typing notes:
- Writer parameters are annotated as `Optional[asyncio.StreamWriter]` to reflect
  possibility of absent writer during teardown.
- `_safe_writer_write` centralizes the closing-writer check so callers
  never write into a dead transport.
"""

import asyncio
import logging
from enum import IntEnum
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Telnet constants
IAC = 0xFF
SB = 0xFA
SE = 0xF0
WILL = 0xFB
WONT = 0xFC
DO = 0xFD
DONT = 0xFE
# Additional IAC commands per RFC 854
GA = 0xF9  # Go Ahead
EL = 0xF8  # Erase Line
EC = 0xF7  # Erase Character
AYT = 0xF6  # Are You There
AO = 0xF5  # Abort Output
IP = 0xF4  # Interrupt Process
BRK = 0xF3  # Break
DM = 0xF2  # Data Mark
NOP = 0xF1  # No Operation

# NVT control characters
LF = 0x0A
CR = 0x0D

# Line terminator for inbound records and end of line for outbound text
LINE_TERMINATOR = bytes([LF])
CRLF = bytes([CR, LF])


class TelnetOption(IntEnum):
    """Telnet option codes known to the engine.

    Only GMCP carries live state; every other code is relayed as-is.
    """

    BINARY = 0x00
    ECHO = 0x01
    SGA = 0x03
    STATUS = 0x05
    TIMING_MARK = 0x06
    TTYPE = 0x18
    NAWS = 0x1F
    TSPEED = 0x20
    LFLOW = 0x21
    LINEMODE = 0x22
    OLD_ENVIRON = 0x24
    SLE = 0x2D
    GMCP = 0xC9


# Flat aliases in the style of arpa/telnet.h
TELOPT_BINARY = TelnetOption.BINARY
TELOPT_ECHO = TelnetOption.ECHO
TELOPT_SGA = TelnetOption.SGA
TELOPT_STATUS = TelnetOption.STATUS
TELOPT_TM = TelnetOption.TIMING_MARK
TELOPT_TTYPE = TelnetOption.TTYPE
TELOPT_NAWS = TelnetOption.NAWS
TELOPT_TSPEED = TelnetOption.TSPEED
TELOPT_LFLOW = TelnetOption.LFLOW
TELOPT_LINEMODE = TelnetOption.LINEMODE
TELOPT_OLD_ENVIRON = TelnetOption.OLD_ENVIRON
TELOPT_SLE = TelnetOption.SLE
TELOPT_GMCP = TelnetOption.GMCP

COMMAND_NAMES = {
    SE: "SE",
    NOP: "NOP",
    DM: "DM",
    BRK: "BRK",
    IP: "IP",
    AO: "AO",
    AYT: "AYT",
    EC: "EC",
    EL: "EL",
    GA: "GA",
    SB: "SB",
    WILL: "WILL",
    WONT: "WONT",
    DO: "DO",
    DONT: "DONT",
    IAC: "IAC",
}


def get_command_name(command: int) -> str:
    """Get the human-readable name for a Telnet command byte."""
    return COMMAND_NAMES.get(command, f"0x{command:02x}")


def get_option_name(option: int) -> str:
    """Get the human-readable name for a Telnet option."""
    try:
        return TelnetOption(option).name
    except ValueError:
        return f"0x{option:02x}"


def escape_iac(data: bytes) -> bytes:
    """Double every IAC byte so the data can travel inside the stream."""
    return data.replace(bytes([IAC]), bytes([IAC, IAC]))


def unescape_iac(data: bytes) -> bytes:
    """Collapse doubled IAC bytes back into a single 255 data byte."""
    return data.replace(bytes([IAC, IAC]), bytes([IAC]))


def _safe_writer_write(writer: Optional[Any], data: bytes) -> bool:
    """Write bytes to a writer without awaiting.

    Returns False when the writer is missing or already closing, in which
    case the bytes are dropped.
    """
    if writer is None:
        return False
    is_closing = getattr(writer, "is_closing", None)
    if is_closing is not None and is_closing() is True:
        logger.debug(f"[TELNET] Writer is closing, dropping {len(data)} bytes")
        return False
    writer.write(data)
    return True


def send_iac(writer: Optional[asyncio.StreamWriter], command: bytes) -> None:
    """Send an IAC command to the writer.

    Ensures the IAC (0xFF) prefix is present exactly once. If the provided
    command already begins with IAC, it will not be duplicated.
    """
    if writer is None:
        logger.debug("[TELNET] Writer is None, skipping IAC send")
        return
    payload = (
        command if (len(command) > 0 and command[0] == IAC) else bytes([IAC]) + command
    )
    if _safe_writer_write(writer, payload):
        logger.debug(f"[TELNET] Sent IAC command: {payload.hex()}")


def send_subnegotiation(
    writer: Optional[asyncio.StreamWriter], opt: bytes, data: bytes
) -> None:
    """
    Send subnegotiation.

    Args:
        writer: StreamWriter.
        opt: Option byte.
        data: Subnegotiation data, IAC bytes are escaped here.
    """
    if not writer:
        return

    sub = bytes([IAC, SB]) + opt + escape_iac(data) + bytes([IAC, SE])
    if _safe_writer_write(writer, sub):
        logger.debug(f"[TELNET] Sent subnegotiation: {sub.hex()}")
