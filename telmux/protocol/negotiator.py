"""
Negotiator for the GMCP messaging extension.
Handles Telnet WILL/WONT/DO/DONT for the one option that carries state.
"""

import asyncio
import logging
from typing import Any, Optional

from ..utils.logging_utils import log_negotiation_event
from .state import ConnectionState
from .utils import (
    DO,
    DONT,
    TELOPT_GMCP,
    WILL,
    WONT,
    get_command_name,
    get_option_name,
    send_iac,
)

logger = logging.getLogger(__name__)


class Negotiator:
    """
    Tracks whether the peer has the GMCP extension enabled.

    Every other option passes through without bookkeeping; the connection
    still relays it as an event.
    """

    def __init__(
        self,
        writer: Optional["asyncio.StreamWriter"],
        state: Optional[ConnectionState] = None,
        option: int = TELOPT_GMCP,
    ):
        """
        Initialize the Negotiator.

        Args:
            writer: StreamWriter for sending replies.
            state: Connection state holding the extension flag.
            option: Option code of the tracked extension.
        """
        self.writer = writer
        self.state = state if state is not None else ConnectionState()
        self.option = option

    @property
    def enabled(self) -> bool:
        return self.state.gmcp_enabled

    def _peer(self) -> Any:
        if self.writer is None:
            return None
        return self.writer.get_extra_info("peername")

    def _set_enabled(self, enabled: bool) -> None:
        if self.state.gmcp_enabled != enabled:
            state = "enabled" if enabled else "disabled"
            log_negotiation_event(
                logger, f"{get_option_name(self.option)} {state}", self._peer()
            )
        self.state.gmcp_enabled = enabled

    def offer(self) -> None:
        """Opportunistically announce the extension with IAC WILL."""
        logger.debug(f"[TELNET] Offering WILL {get_option_name(self.option)}")
        send_iac(self.writer, bytes([WILL, self.option]))

    def handle_iac_command(self, command: int, option: int) -> None:
        """
        Handle a Telnet negotiation command.

        Args:
            command: The IAC command (DO, DONT, WILL, WONT).
            option: The Telnet option number.
        """
        logger.debug(
            f"[TELNET] Handling IAC {get_command_name(command)} "
            f"{get_option_name(option)} (0x{option:02x})"
        )
        if option != self.option:
            return

        if command == WILL:
            self._handle_will()
        elif command == WONT:
            self._set_enabled(False)
        elif command == DO:
            # Peer accepted our offer; we already said WILL, no reply.
            self._set_enabled(True)
        elif command == DONT:
            self._set_enabled(False)
        else:
            logger.warning(f"[TELNET] Unknown IAC command 0x{command:02x}")

    def _handle_will(self) -> None:
        """Peer wants to enable the extension: accept with DO."""
        logger.debug(f"[TELNET] Peer WILL {get_option_name(self.option)} - accepting")
        self._set_enabled(True)
        send_iac(self.writer, bytes([DO, self.option]))
