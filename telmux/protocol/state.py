"""Per-connection protocol state."""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_PROMPT = "> "


@dataclass
class PendingRequest:
    """The single in-flight line request of a connection."""

    future: "asyncio.Future[str]"
    mask: bool = False

    @property
    def live(self) -> bool:
        return not self.future.done()


@dataclass
class ConnectionState:
    """State owned by exactly one connection.

    The buffer grows with every chunk and shrinks as frames and lines are
    taken out of it. `gmcp_enabled` tracks the messaging extension only;
    `echo_masked` is True while the peer has been told we echo (WILL ECHO).
    """

    default_prompt: str = DEFAULT_PROMPT
    buffer: bytes = b""
    gmcp_enabled: bool = False
    prompt: str = field(default="")
    pending: Optional[PendingRequest] = None
    echo_masked: bool = False

    def __post_init__(self) -> None:
        if not self.prompt:
            self.prompt = self.default_prompt

    def reset_prompt(self) -> None:
        self.prompt = self.default_prompt
