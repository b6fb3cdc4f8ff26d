"""
Telnet listeners.

TelnetServer accepts plain TCP connections, SecureTelnetServer accepts TLS
connections with a context bound to one hostname. Both wrap every accepted
stream pair in a TelnetConnection and keep it in `clients` until it closes.
"""

import asyncio
import logging
import ssl
from typing import Any, Dict, List, Optional, Union

from .connection import TelnetConnection
from .exceptions import ConfigurationError
from .protocol.errors import safe_socket_operation
from .protocol.events import (
    EVENT_CLOSE,
    EVENT_CONNECTION,
    EVENT_LISTENING,
    EventEmitter,
)
from .protocol.ssl_wrapper import SSLWrapper, bind_to_hostname
from .utils.logging_utils import log_connection_event

logger = logging.getLogger(__name__)


class TelnetServer(EventEmitter):
    """
    Accepts connections and hands each one out through the `connection` event.

    Emits: listening, connection(TelnetConnection).
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 23,
        ssl_context: Optional[ssl.SSLContext] = None,
        **connection_options: Any,
    ):
        """
        Initialize the server.

        Args:
            host: Interface to bind.
            port: TCP port, 0 picks a free one.
            ssl_context: Server-side TLS context, None for plain TCP.
            connection_options: Keywords passed to every TelnetConnection.
        """
        super().__init__()
        self.host = host
        self.port = port
        self.ssl_context = ssl_context
        self.connection_options = connection_options
        self.clients: Dict[int, TelnetConnection] = {}
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def sockets(self) -> List[Any]:
        if self._server is None:
            return []
        return list(self._server.sockets)

    @property
    def bound_port(self) -> int:
        """The port actually bound (useful when started with port 0)."""
        for sock in self.sockets:
            return int(sock.getsockname()[1])
        return self.port

    async def start(self) -> None:
        """Bind and start accepting connections."""
        if self._server is not None:
            return
        async with safe_socket_operation(f"Listening on {self.host}:{self.port}"):
            self._server = await asyncio.start_server(
                self._handle_client, self.host, self.port, ssl=self.ssl_context
            )
        log_connection_event(logger, "Listening", (self.host, self.bound_port))
        self.emit(EVENT_LISTENING)

    async def serve_forever(self) -> None:
        await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        connection = TelnetConnection(reader, writer, **self.connection_options)
        key = id(connection)
        self.clients[key] = connection
        peer = connection.peername
        log_connection_event(logger, "Accepted", peer)

        def _remove(had_error: bool = False) -> None:
            self.clients.pop(key, None)
            logger.info(
                f"[SERVER] Connection from {peer} closed"
                f"{' with error' if had_error else ''}, {len(self.clients)} active"
            )

        connection.on(EVENT_CLOSE, _remove)
        self.emit(EVENT_CONNECTION, connection)
        try:
            await connection.start()
        except asyncio.CancelledError:
            logger.debug(f"[SERVER] Reader for {peer} cancelled")

    async def close(self) -> None:
        """Stop accepting and close every active connection."""
        if self._server is None:
            return
        self._server.close()
        for connection in list(self.clients.values()):
            await connection.close()
        await self._server.wait_closed()
        self._server = None
        log_connection_event(logger, "Stopped listening", (self.host, self.port))

    async def __aenter__(self) -> "TelnetServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class SecureTelnetServer(TelnetServer):
    """TLS listener whose certificate context is bound to a hostname."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 24,
        context: Union[ssl.SSLContext, SSLWrapper, None] = None,
        hostname: Optional[str] = None,
        **connection_options: Any,
    ):
        """
        Initialize the secure server.

        Args:
            host: Interface to bind.
            port: TCP port.
            context: An SSLWrapper, or an ssl.SSLContext together with `hostname`.
            hostname: Server name the context is bound to.
        """
        if context is None:
            raise ConfigurationError("SecureTelnetServer requires a TLS context")
        if isinstance(context, SSLWrapper):
            self.hostname = hostname or context.hostname
            ssl_context = context.get_context()
            if hostname and hostname != context.hostname:
                bind_to_hostname(ssl_context, hostname)
        else:
            if not hostname:
                raise ConfigurationError(
                    "A hostname is required to bind the TLS context",
                    context={"host": host, "port": port},
                )
            self.hostname = hostname
            ssl_context = context
            bind_to_hostname(ssl_context, hostname)
        super().__init__(host, port, ssl_context=ssl_context, **connection_options)
