"""Exceptions for telmux with contextual information."""

from typing import Any, Dict, Optional

_MAX_CONTEXT_VALUE = 50


def _shorten(value: Any) -> str:
    text = value.hex() if isinstance(value, (bytes, bytearray)) else str(value)
    if len(text) > _MAX_CONTEXT_VALUE:
        text = text[: _MAX_CONTEXT_VALUE - 3] + "..."
    return text


class TelmuxError(Exception):
    """Base error for telmux.

    Carries a ``context`` dict (peer, option, call name, ...) that is appended
    to the message, and the lower-level exception that caused it, if any.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context) if context else {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={_shorten(v)}" for k, v in self.context.items())
        return f"{self.message} (Context: {details})"

    def __repr__(self) -> str:
        if self.context:
            return f"{type(self).__name__}({self.message!r}, context={self.context!r})"
        return f"{type(self).__name__}({self.message!r})"

    def add_context(self, key: str, value: Any) -> "TelmuxError":
        """Attach one more context entry; returns self so it can be re-raised inline."""
        self.context[key] = value
        return self

    def get_context(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)


class ConnectionError(TelmuxError):
    """Transport-level failure on a connection."""


class ConnectionClosedError(ConnectionError):
    """Raised into pending operations when the connection goes away."""


class ProtocolError(TelmuxError):
    """Protocol misuse or a wrapped socket/TLS failure."""


class ConfigurationError(TelmuxError):
    """Invalid server or connection configuration."""
