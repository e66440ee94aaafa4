from __future__ import annotations

import pytest

from kvdict.dict.protocol import (
    Request,
    Response,
    encode_response,
    parse_frame,
    tab_escape,
    tab_unescape,
)


def test_escape_control_bytes():
    assert tab_escape("a\tb\nc\x00d\x01e") == "a\x01tb\x01lc\x010d\x011e"
    assert tab_escape("plain") == "plain"


def test_carriage_return_is_escaped_on_output():
    # CR is recognized on input, so it must also be produced on output.
    assert tab_escape("a\rb") == "a\x01rb"
    assert tab_unescape("a\x01rb") == "a\rb"


@pytest.mark.parametrize(
    "s",
    ["", "hello", "\x00\x01\t\r\n", "\x01\x01t", "tab\there\nand\x01marker", "ünïcödé\t✓"],
)
def test_round_trip(s):
    assert tab_unescape(tab_escape(s)) == s


def test_unescape_unknown_tag_drops_marker():
    assert tab_unescape("a\x01zb") == "azb"


def test_unescape_trailing_marker_is_kept():
    assert tab_unescape("abc\x01") == "abc\x01"


def test_parse_frame_splits_and_unescapes():
    req = parse_frame(b"Lshared/a\x01tb\tuser\n")
    assert req == Request(command="L", args=["shared/a\tb", "user"])


def test_parse_frame_empty_and_crlf():
    assert parse_frame(b"\n") is None
    assert parse_frame(b"") is None
    assert parse_frame(b"H3\t2\t0\t\tdict\r\n").args == ["3", "2", "0", "", "dict"]


def test_parse_frame_unknown_command_is_valid():
    req = parse_frame(b"Xwhatever\n")
    assert req is not None and req.command == "X"
    assert req.args == ["whatever"]


def test_encode_response():
    assert encode_response("O", "value") == b"O\tvalue\n"
    assert encode_response("N") == b"N\n"
    assert encode_response("O", "k", "line1\nline2") == b"O\tk\tline1\x01lline2\n"
    assert Response("F", ("boom",)).encode() == b"F\tboom\n"


def test_non_utf8_bytes_survive():
    req = parse_frame(b"L\xff\xfekey\tu\n")
    assert encode_response("O", req.args[0]) == b"O\t\xff\xfekey\n"



def test_response_dataclass_encodes_like_helper():
    assert Response("O", ("k", "a\tb")).encode() == encode_response("O", "k", "a\tb")
    assert Response("N").encode() == b"N\n"
