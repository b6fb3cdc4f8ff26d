import asyncio
import ssl
from unittest.mock import patch

import pytest

from telmux.connection import TelnetConnection
from telmux.exceptions import ConfigurationError, ConnectionClosedError, ProtocolError
from telmux.protocol.ssl_wrapper import SSLWrapper
from telmux.protocol.utils import IAC, TELOPT_GMCP, WILL
from telmux.server import SecureTelnetServer, TelnetServer

TIMEOUT = 2.0
OFFER = bytes([IAC, WILL, TELOPT_GMCP])


async def open_client(server):
    return await asyncio.wait_for(
        asyncio.open_connection("127.0.0.1", server.bound_port), TIMEOUT
    )


@pytest.mark.asyncio
async def test_start_and_close():
    server = TelnetServer("127.0.0.1", 0)
    events = []
    server.on("listening", lambda: events.append("listening"))
    await server.start()
    try:
        assert server.is_serving
        assert server.bound_port != 0
        assert len(server.sockets) >= 1
        await server.start()
        assert events == ["listening"]
    finally:
        await server.close()
    assert not server.is_serving
    assert server.sockets == []


@pytest.mark.asyncio
async def test_bind_failure_raises_protocol_error():
    async with TelnetServer("127.0.0.1", 0) as first:
        second = TelnetServer("127.0.0.1", first.bound_port)
        with pytest.raises(ProtocolError):
            await second.start()


@pytest.mark.asyncio
async def test_lines_reach_connection_handlers():
    server = TelnetServer("127.0.0.1", 0)
    lines: asyncio.Queue = asyncio.Queue()
    connections = []

    def on_connection(conn):
        connections.append(conn)
        conn.on("data", lines.put_nowait)

    server.on("connection", on_connection)
    async with server:
        reader, writer = await open_client(server)
        assert await asyncio.wait_for(reader.readexactly(3), TIMEOUT) == OFFER
        writer.write(b"hello\r\n")
        await writer.drain()
        assert await asyncio.wait_for(lines.get(), TIMEOUT) == b"hello\r"
        assert isinstance(connections[0], TelnetConnection)
        assert list(server.clients.values()) == connections
        writer.close()
        await writer.wait_closed()


@pytest.mark.asyncio
async def test_client_disconnect_removes_connection():
    server = TelnetServer("127.0.0.1", 0)
    closed = asyncio.Event()
    ended = []

    def on_connection(conn):
        conn.on("end", lambda: ended.append(True))
        conn.on("close", lambda had_error: closed.set())

    server.on("connection", on_connection)
    async with server:
        reader, writer = await open_client(server)
        await asyncio.wait_for(reader.readexactly(3), TIMEOUT)
        writer.close()
        await writer.wait_closed()
        await asyncio.wait_for(closed.wait(), TIMEOUT)
        assert ended == [True]
        assert server.clients == {}


@pytest.mark.asyncio
async def test_ask_over_the_wire():
    server = TelnetServer("127.0.0.1", 0)
    answers: asyncio.Queue = asyncio.Queue()

    def on_connection(conn):
        async def login():
            answers.put_nowait(await conn.ask("Name: "))

        asyncio.get_running_loop().create_task(login())

    server.on("connection", on_connection)
    async with server:
        reader, writer = await open_client(server)
        greeting = await asyncio.wait_for(reader.readexactly(11), TIMEOUT)
        assert greeting == OFFER + b"\r\nName: "
        writer.write(b"bob\r\n")
        await writer.drain()
        assert await asyncio.wait_for(answers.get(), TIMEOUT) == "bob"
        writer.close()
        await writer.wait_closed()


@pytest.mark.asyncio
async def test_close_fails_pending_asks():
    server = TelnetServer("127.0.0.1", 0)
    futures = []
    server.on("connection", lambda conn: futures.append(conn.ask("Name: ")))
    await server.start()
    reader, writer = await open_client(server)
    try:
        await asyncio.wait_for(reader.readexactly(11), TIMEOUT)
        await asyncio.wait_for(server.close(), TIMEOUT)
        with pytest.raises(ConnectionClosedError):
            await futures[0]
        assert server.clients == {}
    finally:
        writer.close()


@pytest.mark.asyncio
async def test_connection_options_are_passed_through():
    server = TelnetServer("127.0.0.1", 0, default_prompt="$ ", offer_gmcp=False)
    accepted: asyncio.Queue = asyncio.Queue()
    server.on("connection", accepted.put_nowait)
    async with server:
        reader, writer = await open_client(server)
        conn = await asyncio.wait_for(accepted.get(), TIMEOUT)
        assert conn.default_prompt == "$ "
        assert conn.gmcp_enabled is False
        writer.close()
        await writer.wait_closed()


class TestSecureTelnetServer:
    def test_requires_context(self):
        with pytest.raises(ConfigurationError):
            SecureTelnetServer()

    def test_raw_context_requires_hostname(self):
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        with pytest.raises(ConfigurationError) as excinfo:
            SecureTelnetServer("127.0.0.1", 0, context=context)
        assert excinfo.value.get_context("port") == 0

    def test_raw_context_is_bound(self):
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        server = SecureTelnetServer(
            "127.0.0.1", 0, context=context, hostname="mud.example.org"
        )
        assert server.ssl_context is context
        assert server.hostname == "mud.example.org"
        callback = context.sni_callback
        assert callback is not None
        assert callback(None, "MUD.example.org", context) is None
        assert callback(None, None, context) is None
        assert (
            callback(None, "other.example.org", context)
            == ssl.ALERT_DESCRIPTION_UNRECOGNIZED_NAME
        )

    def test_wrapper_context(self):
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        wrapper = SSLWrapper("cert.pem", hostname="mud.example.org")
        with patch.object(SSLWrapper, "get_context", return_value=context):
            server = SecureTelnetServer(context=wrapper, read_size=512)
        assert server.ssl_context is context
        assert server.hostname == "mud.example.org"
        assert server.port == 24
        assert server.connection_options == {"read_size": 512}

    def test_wrapper_rebound_to_other_hostname(self):
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        wrapper = SSLWrapper("cert.pem", hostname="mud.example.org")
        with patch.object(SSLWrapper, "get_context", return_value=context):
            server = SecureTelnetServer(context=wrapper, hostname="play.example.org")
        assert server.hostname == "play.example.org"
        assert context.sni_callback(None, "play.example.org", context) is None
