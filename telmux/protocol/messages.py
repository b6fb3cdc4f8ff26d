"""
GMCP message decoding.

A GMCP subnegotiation payload is UTF-8 text of the form ``Namespace.Verb``
or ``Namespace.Verb <json>``. Decoding turns it into one of a closed set of
message variants; the connection decides which events each variant fires.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from ..utils.logging_utils import log_parsing_warning

logger = logging.getLogger(__name__)

CONTROL_NAMESPACE = "Core"
SUPPORTS_SET_VERB = "Supports.Set"
SUPPORTS_SET = f"{CONTROL_NAMESPACE}.{SUPPORTS_SET_VERB}"

_TRUE_WORDS = ("true", "yes", "on")


@dataclass(frozen=True)
class Support:
    """One entry of a capability list: a package name and whether it is on."""

    name: str
    supported: bool


@dataclass(frozen=True)
class GenericCall:
    """Any message without a dedicated decoding, kept verbatim."""

    call: str
    namespace: str
    verb: str
    argument: Any = None


@dataclass(frozen=True)
class SupportsSet:
    """``Core.Supports.Set`` with its argument turned into Support pairs."""

    call: str
    supports: List[Support] = field(default_factory=list)
    argument: Any = None


Message = Union[GenericCall, SupportsSet]


def split_call(call: str) -> Tuple[str, str]:
    """Split ``Namespace.Verb.Qualifier`` into ``("Namespace", "Verb.Qualifier")``."""
    namespace, _, verb = call.partition(".")
    return namespace, verb


def parse_argument(text: str) -> Any:
    """Parse the JSON remainder of a message; malformed JSON yields None."""
    if not text:
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        log_parsing_warning(logger, "[GMCP] Malformed JSON argument", str(e))
        return None


def _parse_flag(token: Optional[str]) -> bool:
    if token is None:
        return False
    try:
        return int(token) > 0
    except ValueError:
        return token.lower() in _TRUE_WORDS


def parse_supports(argument: Any) -> List[Support]:
    """
    Turn a ``["Name 1", "Other 0"]`` list into Support pairs.

    Non-list arguments give an empty list and non-string entries are skipped.
    """
    if not isinstance(argument, list):
        if argument is not None:
            log_parsing_warning(
                logger,
                f"[GMCP] {SUPPORTS_SET}",
                f"expected a list, got {type(argument).__name__}",
            )
        return []
    supports = []
    for entry in argument:
        if not isinstance(entry, str):
            log_parsing_warning(
                logger, f"[GMCP] {SUPPORTS_SET}", f"skipping entry {entry!r}"
            )
            continue
        parts = entry.split()
        if not parts:
            continue
        flag = parts[1] if len(parts) > 1 else None
        supports.append(Support(name=parts[0], supported=_parse_flag(flag)))
    return supports


def decode_message(payload: bytes) -> Message:
    """
    Decode a GMCP subnegotiation payload.

    Args:
        payload: Bytes between the option byte and IAC SE.

    Returns:
        SupportsSet for the capability-list call, GenericCall otherwise.
    """
    text = payload.decode("utf-8", errors="replace")
    call, _, remainder = text.partition(" ")
    argument = parse_argument(remainder.strip())
    namespace, verb = split_call(call)
    if namespace == CONTROL_NAMESPACE and verb == SUPPORTS_SET_VERB:
        return SupportsSet(
            call=call, supports=parse_supports(argument), argument=argument
        )
    return GenericCall(call=call, namespace=namespace, verb=verb, argument=argument)


def encode_message(call: str, data: Any = None) -> bytes:
    """Build an outbound GMCP payload, ``call`` or ``call <json>``."""
    if data is None:
        return call.encode("utf-8")
    return f"{call} {json.dumps(data, separators=(',', ':'))}".encode("utf-8")
