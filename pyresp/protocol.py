import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# Inbound frames are arrays of bulk strings:
#   *<count>\r\n followed by <count> times $<length>\r\n<content>\r\n
# A null bulk string is $-1\r\n and carries no content line.
# The only reply type is the simple string: +<text>\r\n

CRLF = b"\r\n"
ARRAY_PREFIX = "*"
BULK_PREFIX = "$"
NUL = b"\x00"
PADDING = b"\x00 \t\r\n"
INTEGER = re.compile(r"-?[0-9]+")


class ProtocolError(ValueError):
    """Raised for input that cannot be decoded as an array of bulk strings."""


@dataclass
class SimpleString:
    data: str

    def encode(self):
        return f"+{self.data}\r\n".encode()


@dataclass
class BulkElement:
    declared_length: int
    content: str = ""

    @property
    def is_null(self):
        return self.declared_length < 0


@dataclass
class ArrayFrame:
    count: int
    elements: List[BulkElement] = field(default_factory=list)


def _parse_header(line: bytes, prefix: str) -> int:
    try:
        text = line.decode("ascii")
    except UnicodeDecodeError:
        raise ProtocolError(f"non-ascii header {line!r}") from None

    if not text.startswith(prefix):
        raise ProtocolError(f"expected '{prefix}' header, got {text!r}")
    if not INTEGER.fullmatch(text[1:]):
        raise ProtocolError(f"invalid length in header {text!r}")
    return int(text[1:])


def _decode_content(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError("bulk string content is not valid utf-8") from None


def _decode_element(lines: List[bytes]) -> BulkElement:
    """Consume one bulk string (header plus optional content line) from ``lines``."""
    declared_length = _parse_header(lines.pop(0), BULK_PREFIX)

    if declared_length < 0:
        return BulkElement(declared_length=-1)

    if declared_length == 0:
        # $0\r\n\r\n
        if lines and lines[0] == b"":
            lines.pop(0)
        return BulkElement(declared_length=0)

    if not lines:
        return BulkElement(declared_length=declared_length)

    line = lines.pop(0)
    # One byte of slack for lengths that also count the line's CR.
    if len(line) + 1 < declared_length:
        return BulkElement(declared_length=declared_length)
    return BulkElement(declared_length=declared_length, content=_decode_content(line[:declared_length]))


def decode(buffer: bytes) -> ArrayFrame:
    """Decode a buffer holding one RESP array of bulk strings.

    Trailing NUL padding and surrounding whitespace are ignored, and an empty
    buffer decodes to an empty array. Lines after the declared elements are
    not part of the frame. Raises ProtocolError for malformed headers or for
    an array that declares more elements than the buffer holds.
    """
    data = bytes(buffer).rstrip(NUL).strip()
    if not data:
        return ArrayFrame(count=0)

    lines = data.split(CRLF)
    count = _parse_header(lines.pop(0), ARRAY_PREFIX)

    elements = []
    for _ in range(count):
        if not lines:
            raise ProtocolError(f"array declares {count} elements, found {len(elements)}")
        elements.append(_decode_element(lines))

    return ArrayFrame(count=count, elements=elements)


def _read_line(buffer: bytes, cursor: int) -> Tuple[Optional[bytes], int]:
    end = buffer.find(CRLF, cursor)
    if end == -1:
        return None, cursor
    return buffer[cursor:end], end + 2


def parse_frame(buffer: bytes) -> Tuple[Optional[ArrayFrame], int]:
    """Find the first complete frame in ``buffer``.

    Returns the decoded frame and the number of bytes it spans, or
    ``(None, 0)`` while the frame is still incomplete.
    """
    buffer = bytes(buffer)
    start = len(buffer) - len(buffer.lstrip(PADDING))

    header, cursor = _read_line(buffer, start)
    if header is None:
        return None, 0
    count = _parse_header(header, ARRAY_PREFIX)

    for _ in range(count):
        line, cursor = _read_line(buffer, cursor)
        if line is None:
            return None, 0
        declared_length = _parse_header(line, BULK_PREFIX)
        if declared_length > 0:
            line, cursor = _read_line(buffer, cursor)
            if line is None:
                return None, 0
        elif declared_length == 0:
            # $0 may be followed by an empty content line
            line, after = _read_line(buffer, cursor)
            if line == b"":
                cursor = after

    return decode(buffer[start:cursor]), cursor
