"""Single in-flight line request ("ask a line, get the answer")."""

import asyncio
import logging
from typing import Optional

from ..exceptions import ConnectionClosedError
from .lines import line_to_text
from .state import ConnectionState, PendingRequest
from .utils import CRLF, TELOPT_ECHO, WILL, WONT, _safe_writer_write, send_iac

logger = logging.getLogger(__name__)


class PromptController:
    """
    Diverts the next complete line to whoever asked for it.

    Only one request exists at a time. Asking again before the answer arrives
    drops the earlier future without settling it.
    """

    def __init__(
        self,
        writer: Optional["asyncio.StreamWriter"],
        state: Optional[ConnectionState] = None,
    ):
        self.writer = writer
        self.state = state if state is not None else ConnectionState()

    @property
    def pending(self) -> bool:
        request = self.state.pending
        return request is not None and request.live

    def _mask_echo(self) -> None:
        if not self.state.echo_masked:
            self.state.echo_masked = True
            send_iac(self.writer, bytes([WILL, TELOPT_ECHO]))

    def _unmask_echo(self) -> None:
        if self.state.echo_masked:
            self.state.echo_masked = False
            send_iac(self.writer, bytes([WONT, TELOPT_ECHO]))

    def _on_done(self, future: "asyncio.Future[str]") -> None:
        request = self.state.pending
        if not future.cancelled() or request is None or request.future is not future:
            return
        logger.debug("[PROMPT] Request cancelled")
        self.state.pending = None
        self.state.reset_prompt()
        self._unmask_echo()

    def request(self, prompt: str, mask: bool = False) -> "asyncio.Future[str]":
        """
        Write `prompt` and return a future resolved with the next line.

        A replaced or cancelled masked request gives local echo back to the
        peer unless the request taking its place is masked too.

        Args:
            prompt: Text shown to the peer, written after CR LF.
            mask: Ask the peer to stop echoing locally while it answers.
        """
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[str]" = loop.create_future()
        previous = self.state.pending
        if previous is not None and previous.live:
            logger.debug("[PROMPT] Replacing unanswered request")
        self.state.pending = PendingRequest(future=future, mask=mask)
        self.state.prompt = prompt
        future.add_done_callback(self._on_done)
        if mask:
            self._mask_echo()
        else:
            self._unmask_echo()
        _safe_writer_write(self.writer, CRLF + prompt.encode("utf-8"))
        return future

    def offer_line(self, line: bytes) -> bool:
        """
        Hand `line` to the pending request, if there is one.

        Returns:
            True when the line was consumed and must not be broadcast.
        """
        request = self.state.pending
        if request is None:
            return False
        self.state.pending = None
        self.state.reset_prompt()
        self._unmask_echo()
        if not request.live:
            # Cancelled by the caller (e.g. a timeout); nobody wants the line.
            return False
        request.future.set_result(line_to_text(line))
        return True

    def fail(self, exc: Optional[BaseException] = None) -> None:
        """Fail the pending request, used when the connection goes away."""
        request = self.state.pending
        self.state.pending = None
        self.state.echo_masked = False
        if request is None or not request.live:
            return
        if exc is None:
            exc = ConnectionClosedError("Connection closed before a line arrived")
        logger.debug(f"[PROMPT] Failing pending request: {exc}")
        request.future.set_exception(exc)
