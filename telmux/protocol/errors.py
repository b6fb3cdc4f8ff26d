"""
Centralized error handling utilities for transport operations.

Provides the context manager used around socket/TLS calls in the server and
connection code so low-level failures surface as telmux exceptions.
"""

import asyncio
import logging
import ssl
from typing import Any, NoReturn, Optional

from .exceptions import ProtocolError

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (OSError, ssl.SSLError, asyncio.TimeoutError)


class safe_socket_operation:
    """
    Async context manager for safe socket/SSL operations.

    Catches OSError, ssl.SSLError, asyncio.TimeoutError; logs and raises
    ProtocolError with original message. Use for bind, drain and close ops.
    """

    def __init__(self, operation: str = "Socket/SSL operation"):
        self.operation = operation

    def __enter__(self) -> "safe_socket_operation":
        return self

    async def __aenter__(self) -> "safe_socket_operation":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._check(exc_type, exc_val)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._check(exc_type, exc_val)

    def _check(self, exc_type: Any, exc_val: Any) -> None:
        if exc_type is not None and issubclass(exc_type, TRANSPORT_ERRORS):
            logger.error(f"{self.operation} failed: {exc_val}", exc_info=True)
            raise ProtocolError(
                f"{self.operation} failed: {exc_val}", original_exception=exc_val
            ) from exc_val


def raise_protocol_error(
    message: str, exc: Optional[Exception] = None, **context: Any
) -> NoReturn:
    """Log and raise a ProtocolError, chained to `exc` when one is given."""
    detail = f": {exc}" if exc else ""
    logger.error(f"[PROTOCOL] {message}{detail}", exc_info=exc)
    raise ProtocolError(
        message, context=context or None, original_exception=exc
    ) from exc
