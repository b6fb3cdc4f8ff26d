import logging

import pytest

from telmux.protocol.messages import (
    SUPPORTS_SET,
    GenericCall,
    Support,
    SupportsSet,
    decode_message,
    encode_message,
    parse_supports,
    split_call,
)


class TestDecodeMessage:
    def test_call_with_json_object(self):
        message = decode_message(b'Core.Hello {"client": "Mudlet", "version": "4.17"}')
        assert isinstance(message, GenericCall)
        assert message.call == "Core.Hello"
        assert message.namespace == "Core"
        assert message.verb == "Hello"
        assert message.argument == {"client": "Mudlet", "version": "4.17"}

    def test_call_without_argument(self):
        message = decode_message(b"Core.Ping")
        assert message == GenericCall(call="Core.Ping", namespace="Core", verb="Ping")

    def test_nested_verb(self):
        message = decode_message(b"Char.Items.Inv")
        assert message.namespace == "Char"
        assert message.verb == "Items.Inv"

    @pytest.mark.parametrize(
        "payload, argument",
        [
            (b'Comm.Say "hi there"', "hi there"),
            (b"Char.Vitals   [1, 2]", [1, 2]),
            (b"Room.Id 42", 42),
            (b"Flag.Set true", True),
            (b"Nothing.Here null", None),
        ],
    )
    def test_json_scalars_and_lists(self, payload, argument):
        assert decode_message(payload).argument == argument

    def test_malformed_json_keeps_call(self, caplog):
        with caplog.at_level(logging.WARNING):
            message = decode_message(b"Char.Vitals {hp: 10")
        assert message.call == "Char.Vitals"
        assert message.argument is None
        assert "Malformed JSON" in caplog.text

    def test_deeply_nested_json_is_malformed(self, caplog):
        with caplog.at_level(logging.WARNING):
            message = decode_message(b"Char.Vitals " + b"[" * 100000)
        assert message.call == "Char.Vitals"
        assert message.argument is None
        assert "Malformed JSON" in caplog.text

    def test_utf8_argument(self):
        message = decode_message('Comm.Say "héllo"'.encode("utf-8"))
        assert message.argument == "héllo"

    def test_supports_set(self):
        payload = SUPPORTS_SET.encode() + b' ["Char 1", "Room 0", "Comm.Channel 1"]'
        message = decode_message(payload)
        assert isinstance(message, SupportsSet)
        assert message.call == "Core.Supports.Set"
        assert message.supports == [
            Support("Char", True),
            Support("Room", False),
            Support("Comm.Channel", True),
        ]
        assert message.argument == ["Char 1", "Room 0", "Comm.Channel 1"]

    def test_supports_set_in_other_namespace_is_generic(self):
        message = decode_message(b'Other.Supports.Set ["Char 1"]')
        assert isinstance(message, GenericCall)
        assert message.verb == "Supports.Set"

    def test_empty_payload(self):
        message = decode_message(b"")
        assert message.call == ""
        assert message.argument is None


class TestParseSupports:
    @pytest.mark.parametrize(
        "entry, supported",
        [
            ("Foo 1", True),
            ("Foo 2", True),
            ("Foo 0", False),
            ("Foo -1", False),
            ("Foo yes", True),
            ("Foo ON", True),
            ("Foo no", False),
            ("Foo", False),
        ],
    )
    def test_flags(self, entry, supported):
        assert parse_supports([entry]) == [Support("Foo", supported)]

    def test_non_list_argument(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_supports({"Char": 1}) == []
        assert "expected a list" in caplog.text
        assert parse_supports(None) == []

    def test_non_string_and_blank_entries_skipped(self):
        assert parse_supports(["Char 1", 5, None, "   ", "Room 1"]) == [
            Support("Char", True),
            Support("Room", True),
        ]


def test_split_call():
    assert split_call("Char.Vitals") == ("Char", "Vitals")
    assert split_call("Core.Supports.Set") == ("Core", "Supports.Set")
    assert split_call("Lonely") == ("Lonely", "")


def test_encode_message():
    assert encode_message("Core.Ping") == b"Core.Ping"
    assert encode_message("Char.Vitals", {"hp": 10, "mp": 5}) == (
        b'Char.Vitals {"hp":10,"mp":5}'
    )
    assert encode_message("Comm.Say", "héllo") == b'Comm.Say "h\\u00e9llo"'
