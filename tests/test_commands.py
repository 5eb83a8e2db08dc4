import pytest
from pyresp.commands import COMMANDS, Invalid, Ping, dispatch, interpret, render
from pyresp.protocol import BulkElement, decode


@pytest.mark.parametrize("content, expected", [
    ("PING", Ping()),
    ("PING hello", Ping("hello")),
    ("PING   hello    world", Ping("hello world")),
    ("  PING  ", Ping()),
    ("PING \x00\x00", Ping()),
    ("PING hi\x00", Ping("hi")),
    ("ping", Invalid()),
    ("Ping hello", Invalid()),
    ("ECHO", Invalid()),
    ("ECHO PING", Invalid()),
    ("", Invalid()),
    ("   ", Invalid()),
])
def test_interpret(content, expected):
    assert interpret(BulkElement(len(content), content)) == expected


def test_interpret_null_element():
    assert interpret(BulkElement(-1)) == Invalid()


def test_interpret_empty_element():
    element = decode(b"*1\r\n$0\r\n\r\n").elements[0]
    assert interpret(element) == Invalid()


def test_ping_is_the_only_verb():
    assert list(COMMANDS) == ["PING"]


@pytest.mark.parametrize("command, expected", [
    (Invalid(), b"+INVALID COMMAND\r\n"),
    (Ping(), b"+PONG\r\n"),
    (Ping("hello"), b"+hello\r\n"),
    (Ping("hello world"), b"+hello world\r\n"),
])
def test_render(command, expected):
    assert render(command) == expected


def test_ping_frame():
    commands = [interpret(e) for e in decode(b"*1\r\n$4\r\nPING\r\n").elements]
    assert commands == [Ping()]
    assert [render(c) for c in commands] == [b"+PONG\r\n"]


def test_ping_with_argument_frame():
    commands = [interpret(e) for e in decode(b"*1\r\n$11\r\nPING hello\r\n").elements]
    assert [render(c) for c in commands] == [b"+hello\r\n"]


def test_dispatch_empty_buffer():
    buffer = bytearray()
    assert dispatch(buffer) == []
    assert buffer == bytearray()


def test_dispatch_batch_keeps_order():
    buffer = bytearray(b"*3\r\n$4\r\nPING\r\n$4\r\nECHO\r\n$7\r\nPING hi\r\n")
    assert dispatch(buffer) == [Ping(), Invalid(), Ping("hi")]
    assert buffer == bytearray()


def test_dispatch_consecutive_frames():
    buffer = bytearray(b"*1\r\n$4\r\nPING\r\n*1\r\n$10\r\nPING again\r\n")
    assert dispatch(buffer) == [Ping(), Ping("again")]
    assert buffer == bytearray()


def test_dispatch_keeps_incomplete_frame():
    buffer = bytearray(b"*1\r\n$4\r\nPING\r\n*1\r\n$4\r\nPI")
    assert dispatch(buffer) == [Ping()]
    assert buffer == bytearray(b"*1\r\n$4\r\nPI")

    buffer += b"NG\r\n"
    assert dispatch(buffer) == [Ping()]
    assert buffer == bytearray()


def test_dispatch_empty_element_without_content_line():
    buffer = bytearray(b"*2\r\n$0\r\n$4\r\nPING\r\n")
    assert dispatch(buffer) == [Invalid(), Ping()]
    assert buffer == bytearray()


def test_dispatch_empty_element_then_next_frame():
    buffer = bytearray(b"*1\r\n$0\r\n*1\r\n$4\r\nPING\r\n")
    assert dispatch(buffer) == [Invalid(), Ping()]
    assert buffer == bytearray()


def test_dispatch_malformed_frame():
    buffer = bytearray(b"*x\r\n$4\r\nPING\r\n")
    assert dispatch(buffer) == [Invalid()]
    assert buffer == bytearray()


def test_dispatch_malformed_after_valid_frame():
    buffer = bytearray(b"*1\r\n$4\r\nPING\r\nGARBAGE\r\n")
    assert dispatch(buffer) == [Ping(), Invalid()]
    assert buffer == bytearray()


def test_dispatch_clears_padding():
    buffer = bytearray(b"\x00\x00\r\n")
    assert dispatch(buffer) == []
    assert buffer == bytearray()
