"""
Logging helpers shared by the connection, negotiator and server.

Each helper writes one tagged line. When a peer address is given it is also
attached to the record as ``peer`` so the JSON formatter can emit it as a
separate field.
"""

import logging
from typing import Any, Dict, Optional


def _peer_extra(peer: Any) -> Optional[Dict[str, Any]]:
    if peer is None:
        return None
    return {"peer": peer}


def _format_peer(peer: Any) -> str:
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"{peer[0]}:{peer[1]}"
    return str(peer)


def log_negotiation_event(
    logger: logging.Logger, event_type: str, peer: Any = None
) -> None:
    """Log an option state change."""
    suffix = f" ({_format_peer(peer)})" if peer is not None else ""
    logger.info(f"[NEGOTIATION] {event_type}{suffix}", extra=_peer_extra(peer))


def log_parsing_warning(logger: logging.Logger, operation: str, reason: str) -> None:
    logger.warning(f"{operation}: {reason}")


def log_connection_event(
    logger: logging.Logger, event_type: str, peer: Any = None
) -> None:
    """Log a transport lifecycle event, with the peer or bound address if known."""
    if peer is None:
        logger.info(f"[CONNECTION] {event_type}")
    else:
        logger.info(
            f"[CONNECTION] {event_type} - {_format_peer(peer)}",
            extra=_peer_extra(peer),
        )


def log_data_processing(
    logger: logging.Logger, operation: str, data_info: str = ""
) -> None:
    info_str = f" - {data_info}" if data_info else ""
    logger.debug(f"[DATA] {operation}{info_str}")


__all__ = [
    "log_negotiation_event",
    "log_parsing_warning",
    "log_connection_event",
    "log_data_processing",
]
