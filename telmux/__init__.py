"""
telmux package init.
Exports the Telnet connection, servers and logging setup.
"""

import argparse
import asyncio
import datetime
import json
import logging
import os
from typing import Any, Dict, List, Optional

from .config import ServerConfig
from .connection import TelnetConnection
from .exceptions import (
    ConfigurationError,
    ConnectionClosedError,
    ProtocolError,
    TelmuxError,
)
from .protocol.messages import Support
from .protocol.ssl_wrapper import SSLError, SSLWrapper
from .protocol.utils import TelnetOption
from .server import SecureTelnetServer, TelnetServer


class JSONFormatter(logging.Formatter):
    """JSON formatter with structured logging support."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        peer = getattr(record, "peer", None)
        if peer:
            log_entry["peer"] = peer

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING", use_json: Optional[bool] = None) -> None:
    """
    Setup basic logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Structured JSON output; defaults to TELMUX_LOG_JSON.
    """
    if use_json is None:
        use_json = os.environ.get("TELMUX_LOG_JSON", "false").lower() == "true"
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    if use_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    else:
        logging.basicConfig(level=getattr(logging, level.upper()))


def build_server(config: ServerConfig) -> TelnetServer:
    """Create the listener described by `config`."""
    config.validate()
    options = config.connection_options()
    if config.tls:
        assert config.certfile is not None
        wrapper = SSLWrapper(
            certfile=config.certfile,
            keyfile=config.keyfile,
            hostname=config.hostname or config.host,
        )
        return SecureTelnetServer(config.host, config.port, context=wrapper, **options)
    return TelnetServer(config.host, config.port, **options)


def _attach_echo_session(connection: TelnetConnection) -> None:
    """Demo session: greet, log GMCP traffic, echo lines, `quit` to leave."""
    log = logging.getLogger(__name__)

    def _on_gmcp(call: str, argument: Any) -> None:
        log.info(f"[GMCP] {connection.peername} {call} {argument!r}")

    def _on_supports(supports: List[Support]) -> None:
        names = ", ".join(
            f"{s.name}={'on' if s.supported else 'off'}" for s in supports
        )
        log.info(f"[GMCP] {connection.peername} supports {names}")

    def _on_data(line: bytes) -> None:
        text = line.decode("utf-8", errors="replace").rstrip("\r")
        if text.strip().lower() == "quit":
            connection.send("Bye.")
            asyncio.get_running_loop().create_task(connection.close())
            return
        connection.send(f"You said: {text}")
        connection.write("\r\n" + connection.prompt)

    connection.on("gmcp", _on_gmcp)
    connection.on("supports", _on_supports)
    connection.on("data", _on_data)
    connection.send("Welcome to telmux. Type 'quit' to leave.")
    connection.write(connection.prompt)


async def _serve(config: ServerConfig) -> None:
    server = build_server(config)
    server.on("connection", _attach_echo_session)
    await server.serve_forever()


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point: run a line-echo Telnet server."""
    env_config = ServerConfig.from_env()
    parser = argparse.ArgumentParser(description="telmux - Telnet line/GMCP server")
    parser.add_argument("host", nargs="?", default=env_config.host, help="Bind address")
    parser.add_argument(
        "port", type=int, nargs="?", default=env_config.port, help="Port (default 23)"
    )
    parser.add_argument("--tls", action="store_true", default=env_config.tls)
    parser.add_argument("--certfile", default=env_config.certfile)
    parser.add_argument("--keyfile", default=env_config.keyfile)
    parser.add_argument("--hostname", default=env_config.hostname)
    parser.add_argument("--prompt", default=env_config.default_prompt)
    parser.add_argument(
        "--no-gmcp",
        dest="offer_gmcp",
        action="store_false",
        default=env_config.offer_gmcp,
        help="Do not offer GMCP on connect",
    )
    parser.add_argument("--log-level", default=env_config.log_level)
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        tls=args.tls,
        certfile=args.certfile,
        keyfile=args.keyfile,
        hostname=args.hostname,
        default_prompt=args.prompt,
        offer_gmcp=args.offer_gmcp,
        read_size=env_config.read_size,
        log_level=args.log_level,
        log_json=env_config.log_json,
    )
    log = logging.getLogger(__name__)
    try:
        config.validate()
        setup_logging(config.log_level, config.log_json)
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down.")
    except (TelmuxError, SSLError) as e:
        log.error(f"Server failed: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()


__all__ = [
    "ConfigurationError",
    "ConnectionClosedError",
    "JSONFormatter",
    "ProtocolError",
    "SSLWrapper",
    "SecureTelnetServer",
    "ServerConfig",
    "Support",
    "TelmuxError",
    "TelnetConnection",
    "TelnetOption",
    "TelnetServer",
    "build_server",
    "main",
    "setup_logging",
]
