"""Exceptions for protocol handling."""

from ..exceptions import ConnectionClosedError, ProtocolError

__all__ = [
    "ConnectionClosedError",
    "ProtocolError",
]
