import logging

from telmux.protocol.events import EventEmitter


def test_handlers_run_in_registration_order():
    emitter = EventEmitter()
    calls = []
    emitter.on("data", lambda line: calls.append(("first", line)))
    emitter.on("data", lambda line: calls.append(("second", line)))
    assert emitter.emit("data", b"hello") is True
    assert calls == [("first", b"hello"), ("second", b"hello")]


def test_emit_without_handlers():
    assert EventEmitter().emit("nothing") is False


def test_on_returns_handler():
    emitter = EventEmitter()

    def handler():
        pass

    assert emitter.on("end", handler) is handler
    assert emitter.listeners("end") == [handler]
    assert emitter.listener_count("end") == 1


def test_failing_handler_does_not_stop_others(caplog):
    emitter = EventEmitter()
    seen = []

    def broken(*args):
        raise RuntimeError("boom")

    emitter.on("gmcp", broken)
    emitter.on("gmcp", lambda call, arg: seen.append(call))
    with caplog.at_level(logging.ERROR):
        emitter.emit("gmcp", "Core.Ping", None)
    assert seen == ["Core.Ping"]
    assert "Handler for 'gmcp' failed: boom" in caplog.text


def test_once_fires_a_single_time():
    emitter = EventEmitter()
    seen = []
    emitter.once("close", seen.append)
    emitter.emit("close", False)
    emitter.emit("close", True)
    assert seen == [False]
    assert emitter.listener_count("close") == 0


def test_off_removes_handler():
    emitter = EventEmitter()
    seen = []
    emitter.on("end", seen.append)
    emitter.off("end", seen.append)
    emitter.emit("end", 1)
    assert seen == []


def test_off_unknown_handler_warns(caplog):
    emitter = EventEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.off("end", print)
    assert "Handler not found for event: end" in caplog.text


def test_handler_added_during_emit_waits_for_next_emit():
    emitter = EventEmitter()
    seen = []

    def add_more(value):
        seen.append(("outer", value))
        emitter.on("chunk", lambda v: seen.append(("inner", v)))

    emitter.on("chunk", add_more)
    emitter.emit("chunk", 1)
    assert seen == [("outer", 1)]
