"""
Utilities package for telmux.

Contains common utility functions used across the telmux codebase.
"""

from .logging_utils import (
    log_connection_event,
    log_data_processing,
    log_negotiation_event,
    log_parsing_warning,
)

__all__ = [
    "log_negotiation_event",
    "log_parsing_warning",
    "log_connection_event",
    "log_data_processing",
]
