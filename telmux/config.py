"""Server configuration from keywords or TELMUX_* environment variables."""

import logging
import os
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigurationError
from .protocol.state import DEFAULT_PROMPT

logger = logging.getLogger(__name__)

ENV_PREFIX = "TELMUX_"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ServerConfig:
    """Configuration for a telmux listener and its connections."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 23,
        tls: bool = False,
        certfile: Optional[str] = None,
        keyfile: Optional[str] = None,
        hostname: Optional[str] = None,
        default_prompt: str = DEFAULT_PROMPT,
        offer_gmcp: bool = True,
        read_size: int = 4096,
        log_level: str = "WARNING",
        log_json: bool = False,
    ):
        """
        Initialize server configuration.

        Args:
            host: Interface to bind
            port: TCP port to listen on
            tls: Accept TLS instead of plain TCP
            certfile: PEM certificate chain for TLS
            keyfile: Private key for TLS (defaults to certfile)
            hostname: Server name the TLS context is bound to
            default_prompt: Prompt restored after each answered request
            offer_gmcp: Send IAC WILL GMCP on every new connection
            read_size: Maximum bytes per transport read
            log_level: Root logging level
            log_json: Emit structured JSON log records
        """
        self.host = host
        self.port = port
        self.tls = tls
        self.certfile = certfile
        self.keyfile = keyfile
        self.hostname = hostname
        self.default_prompt = default_prompt
        self.offer_gmcp = offer_gmcp
        self.read_size = read_size
        self.log_level = log_level
        self.log_json = log_json

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Build a configuration from TELMUX_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        config = cls()

        def get(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name)

        try:
            if get("HOST"):
                config.host = str(get("HOST"))
            if get("PORT"):
                config.port = int(str(get("PORT")))
            if get("TLS"):
                config.tls = _env_bool(str(get("TLS")))
            if get("CERTFILE"):
                config.certfile = get("CERTFILE")
            if get("KEYFILE"):
                config.keyfile = get("KEYFILE")
            if get("HOSTNAME"):
                config.hostname = get("HOSTNAME")
            if get("PROMPT") is not None:
                config.default_prompt = str(get("PROMPT"))
            if get("OFFER_GMCP"):
                config.offer_gmcp = _env_bool(str(get("OFFER_GMCP")))
            if get("READ_SIZE"):
                config.read_size = int(str(get("READ_SIZE")))
            if get("LOG_LEVEL"):
                config.log_level = str(get("LOG_LEVEL")).upper()
            if get("LOG_JSON"):
                config.log_json = _env_bool(str(get("LOG_JSON")))
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid {ENV_PREFIX}* value: {e}", original_exception=e
            ) from e
        return config

    def validate(self) -> "ServerConfig":
        """Check the configuration, raising ConfigurationError on the first problem."""
        if not (0 <= self.port <= 65535):
            raise ConfigurationError("Port out of range", context={"port": self.port})
        if self.read_size <= 0:
            raise ConfigurationError(
                "read_size must be positive", context={"read_size": self.read_size}
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(
                "Unknown log level", context={"log_level": self.log_level}
            )
        if self.tls and not self.certfile:
            raise ConfigurationError("TLS requires a certificate file")
        return self

    def connection_options(self) -> Dict[str, Any]:
        """Keywords for TelnetConnection."""
        return {
            "default_prompt": self.default_prompt,
            "offer_gmcp": self.offer_gmcp,
            "read_size": self.read_size,
        }

    def __repr__(self) -> str:
        return (
            f"ServerConfig(host={self.host!r}, port={self.port}, tls={self.tls}, "
            f"hostname={self.hostname!r}, offer_gmcp={self.offer_gmcp})"
        )
