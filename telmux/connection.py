"""
Per-connection Telnet pipeline.

A TelnetConnection sits on one asyncio stream pair. Every chunk read from
the transport is processed to completion before the next read: command
frames are pulled out and negotiated, GMCP messages decoded, and whatever
is left is cut into line records that go either to a pending prompt or to
the `data` listeners.
"""

import asyncio
import logging
from typing import Any, Optional, Union

from .exceptions import ConnectionClosedError
from .protocol.errors import (
    TRANSPORT_ERRORS,
    raise_protocol_error,
    safe_socket_operation,
)
from .protocol.events import (
    EVENT_CHUNK,
    EVENT_CLOSE,
    EVENT_CONNECTION,
    EVENT_DATA,
    EVENT_DO,
    EVENT_DONT,
    EVENT_END,
    EVENT_ERROR,
    EVENT_GMCP,
    EVENT_IAC,
    EVENT_LISTENING,
    EVENT_SB,
    EVENT_SUPPORTS,
    EVENT_WILL,
    EVENT_WONT,
    EventEmitter,
)
from .protocol.frames import CommandFrame, extract_frames
from .protocol.lines import split_lines
from .protocol.messages import Message, SupportsSet, decode_message, encode_message
from .protocol.negotiator import Negotiator
from .protocol.prompt import PromptController
from .protocol.state import DEFAULT_PROMPT, ConnectionState
from .protocol.utils import (
    CRLF,
    DO,
    DONT,
    IAC,
    TELOPT_GMCP,
    WILL,
    WONT,
    _safe_writer_write,
    get_command_name,
    get_option_name,
    send_iac,
    send_subnegotiation,
    unescape_iac,
)
from .utils.logging_utils import log_connection_event, log_data_processing

logger = logging.getLogger(__name__)

_NEGOTIATION_EVENTS = {
    WILL: EVENT_WILL,
    WONT: EVENT_WONT,
    DO: EVENT_DO,
    DONT: EVENT_DONT,
}

# GMCP call names that would shadow the connection's own events.
_RESERVED_EVENTS = frozenset(
    (
        EVENT_CHUNK,
        EVENT_IAC,
        EVENT_WILL,
        EVENT_WONT,
        EVENT_DO,
        EVENT_DONT,
        EVENT_SB,
        EVENT_DATA,
        EVENT_GMCP,
        EVENT_SUPPORTS,
        EVENT_ERROR,
        EVENT_END,
        EVENT_CLOSE,
        EVENT_LISTENING,
        EVENT_CONNECTION,
    )
)


class TelnetConnection(EventEmitter):
    """
    Event-driven Telnet connection over an asyncio stream pair.

    Emits: chunk, iac, will, wont, do, dont, sb, data, gmcp, supports,
    one event per GMCP call name, error, end, close.
    """

    def __init__(
        self,
        reader: Optional[asyncio.StreamReader],
        writer: Optional[asyncio.StreamWriter],
        default_prompt: str = DEFAULT_PROMPT,
        offer_gmcp: bool = True,
        read_size: int = 4096,
    ):
        """
        Initialize the connection.

        Args:
            reader: StreamReader of the transport (None for feed-only use).
            writer: StreamWriter of the transport.
            default_prompt: Prompt text restored after each answered request.
            offer_gmcp: Send IAC WILL GMCP right away.
            read_size: Maximum bytes per transport read.
        """
        super().__init__()
        self.reader = reader
        self.writer = writer
        self.read_size = read_size
        self.state = ConnectionState(default_prompt=default_prompt)
        self.negotiator = Negotiator(writer, self.state)
        self.prompts = PromptController(writer, self.state)
        self._task: Optional["asyncio.Task[None]"] = None
        self._closed = False
        if offer_gmcp:
            self.negotiator.offer()

    def __repr__(self) -> str:
        return f"<TelnetConnection peer={self.peername!r} closed={self._closed}>"

    # --- properties ---

    @property
    def gmcp_enabled(self) -> bool:
        return self.state.gmcp_enabled

    @property
    def prompt(self) -> str:
        return self.state.prompt

    @property
    def default_prompt(self) -> str:
        return self.state.default_prompt

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def peername(self) -> Any:
        if self.writer is None:
            return None
        return self.writer.get_extra_info("peername")

    # --- inbound processing ---

    def feed(self, chunk: bytes) -> None:
        """Process one chunk from the transport synchronously."""
        self.emit(EVENT_CHUNK, chunk)
        scan = extract_frames(self.state.buffer + chunk)
        for frame in scan.frames:
            self._dispatch_frame(frame)
        lines, remainder = split_lines(scan.data)
        self.state.buffer = remainder + scan.pending
        if lines:
            log_data_processing(logger, "Lines assembled", f"{len(lines)} line(s)")
        for line in lines:
            if self.prompts.offer_line(line):
                continue
            self.emit(EVENT_DATA, unescape_iac(line))

    def _dispatch_frame(self, frame: CommandFrame) -> None:
        self.emit(EVENT_IAC, frame)
        event = _NEGOTIATION_EVENTS.get(frame.command)
        if event is not None:
            self.negotiator.handle_iac_command(frame.command, frame.option)
            self.emit(event, frame.option)
        elif frame.is_subnegotiation:
            self.emit(EVENT_SB, frame.option, frame.sub_option, frame.payload)
            if frame.option == TELOPT_GMCP:
                self._dispatch_message(decode_message(frame.payload))
        else:
            logger.debug(f"[TELNET] Received IAC {get_command_name(frame.command)}")

    def _dispatch_message(self, message: Message) -> None:
        logger.debug(f"[GMCP] Received {message.call}")
        self.emit(EVENT_GMCP, message.call, message.argument)
        if isinstance(message, SupportsSet):
            self.emit(EVENT_SUPPORTS, message.supports)
            return
        if not message.call:
            return
        if message.call in _RESERVED_EVENTS:
            logger.warning(
                f"[GMCP] Call name '{message.call}' shadows an event, skipped"
            )
            return
        self.emit(message.call, message.argument)

    # --- transport loop ---

    def start(self) -> "asyncio.Task[None]":
        """Run the reader loop as a background task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self) -> None:
        """Read chunks until the transport ends, then emit close."""
        if self.reader is None:
            raise_protocol_error("Connection has no reader")
        had_error = False
        error: Optional[BaseException] = None
        try:
            while not self._closed:
                chunk = await self.reader.read(self.read_size)
                if self._closed:
                    break
                if not chunk:
                    log_connection_event(logger, "Peer ended the stream", self.peername)
                    self.emit(EVENT_END)
                    break
                self.feed(chunk)
        except TRANSPORT_ERRORS as e:
            had_error = True
            error = e
            logger.warning(f"[CONNECTION] Transport error from {self.peername}: {e}")
            self.emit(EVENT_ERROR, e)
        finally:
            await self._finish(had_error, error)

    async def _finish(
        self, had_error: bool = False, error: Optional[BaseException] = None
    ) -> None:
        if self._closed:
            return
        self._closed = True
        self.prompts.fail(
            ConnectionClosedError(
                "Connection closed before a line arrived",
                context={"peer": self.peername},
                original_exception=error if isinstance(error, Exception) else None,
            )
        )
        peer = self.peername
        await self._close_writer()
        log_connection_event(logger, "Closed", peer)
        self.emit(EVENT_CLOSE, had_error)

    async def _close_writer(self) -> None:
        if self.writer is None:
            return
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except TRANSPORT_ERRORS as e:
            logger.debug(f"[CONNECTION] Error while closing writer: {e}")

    async def close(self) -> None:
        """Close the transport and settle any pending prompt."""
        task = self._task
        current = asyncio.current_task()
        if task is not None and not task.done() and task is not current:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._finish()

    # --- outbound operations ---

    def write(self, data: Union[str, bytes]) -> None:
        """Write raw text or bytes to the transport."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        _safe_writer_write(self.writer, data)

    def send(self, text: str) -> None:
        """Send one line of text followed by CR LF."""
        self.write(text.encode("utf-8") + CRLF)

    def iac(self, command: int, option: int) -> None:
        """Send a raw 3-byte command frame."""
        if not (0 <= command <= 0xFF and 0 <= option <= 0xFF):
            raise_protocol_error(
                "Command bytes out of range", command=command, option=option
            )
        send_iac(self.writer, bytes([IAC, command, option]))

    def will(self, option: int) -> None:
        self.iac(WILL, option)

    def wont(self, option: int) -> None:
        self.iac(WONT, option)

    def do(self, option: int) -> None:
        self.iac(DO, option)

    def dont(self, option: int) -> None:
        self.iac(DONT, option)

    def ask(self, prompt: str, mask: bool = False) -> "asyncio.Future[str]":
        """
        Prompt the peer and return a future for the next line it sends.

        A second ask before the answer arrives replaces the first one, whose
        future then never settles. Closing the connection fails the future
        with ConnectionClosedError.
        """
        if self._closed:
            future: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
            future.set_exception(ConnectionClosedError("Connection is closed"))
            return future
        return self.prompts.request(prompt, mask)

    def send_message(self, call: str, data: Any = None, force: bool = False) -> bool:
        """
        Send a GMCP message to the peer.

        Skipped while the extension is not enabled unless `force` is set.

        Returns:
            True if the message was written.
        """
        if not (self.gmcp_enabled or force):
            logger.debug(
                f"[GMCP] {get_option_name(TELOPT_GMCP)} not enabled, not sending {call}"
            )
            return False
        payload = encode_message(call, data)
        send_subnegotiation(self.writer, bytes([TELOPT_GMCP]), payload)
        return True

    async def drain(self) -> None:
        """Wait until the transport's write buffer is flushed."""
        if self.writer is not None:
            async with safe_socket_operation("Drain"):
                await self.writer.drain()
