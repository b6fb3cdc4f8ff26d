import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from telmux.connection import TelnetConnection
from telmux.protocol.state import ConnectionState

PEER = ("127.0.0.1", 50000)


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based tests")


def _written(writer) -> bytes:
    """All bytes passed to a mocked writer's write(), in call order."""
    return b"".join(call.args[0] for call in writer.write.call_args_list)


@pytest.fixture
def mock_writer():
    """StreamWriter stand-in that records writes and reports itself open."""
    writer = MagicMock()
    writer.is_closing.return_value = False
    writer.wait_closed = AsyncMock()
    writer.drain = AsyncMock()
    writer.get_extra_info.return_value = PEER
    return writer


@pytest.fixture
def written():
    return _written


@pytest.fixture
def state():
    return ConnectionState()


@pytest.fixture
def connection(mock_writer):
    """Feed-only connection (no reader) that does not offer GMCP on creation."""
    return TelnetConnection(None, mock_writer, offer_gmcp=False)


@pytest.fixture
def recorder():
    """Collects (event, args) tuples from any number of emitters."""

    class Recorder:
        def __init__(self):
            self.events = []

        def attach(self, emitter, *names):
            for name in names:
                emitter.on(name, self._make(name))

        def _make(self, name):
            def _record(*args):
                self.events.append((name, args))

            return _record

        def names(self):
            return [name for name, _ in self.events]

        def args(self, name):
            return [args for event, args in self.events if event == name]

    return Recorder()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
