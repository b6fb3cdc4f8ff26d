"""Telnet protocol engine: frames, lines, negotiation, GMCP messages, prompts."""

from .events import EventEmitter
from .frames import CommandFrame, FrameScan, extract_frames
from .lines import split_lines
from .messages import GenericCall, Support, SupportsSet, decode_message, encode_message
from .negotiator import Negotiator
from .prompt import PromptController
from .state import ConnectionState, PendingRequest
from .utils import TelnetOption

__all__ = [
    "CommandFrame",
    "ConnectionState",
    "EventEmitter",
    "FrameScan",
    "GenericCall",
    "Negotiator",
    "PendingRequest",
    "PromptController",
    "Support",
    "SupportsSet",
    "TelnetOption",
    "decode_message",
    "encode_message",
    "extract_frames",
    "split_lines",
]
