import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from pyresp.protocol import BulkElement, PADDING, ProtocolError, SimpleString, parse_frame

logger = logging.getLogger(__name__)

INVALID_COMMAND = "INVALID COMMAND"
PONG = "PONG"


@dataclass
class Invalid:
    def reply(self):
        return INVALID_COMMAND


@dataclass
class Ping:
    argument: Optional[str] = None

    def reply(self):
        if self.argument is None:
            return PONG
        return self.argument

    @classmethod
    def from_args(cls, args: List[str]) -> "Ping":
        argument = " ".join(args).strip("\x00")
        return cls(argument or None)


Command = Union[Invalid, Ping]

# Verb -> constructor taking the remaining tokens. Verbs are case-sensitive.
COMMANDS: Dict[str, Callable[[List[str]], Command]] = {
    "PING": Ping.from_args,
}


def interpret(element: BulkElement) -> Command:
    """Map the whitespace-separated tokens of a bulk string to a command."""
    tokens = element.content.split()
    if not tokens:
        return Invalid()

    verb, *args = tokens
    factory = COMMANDS.get(verb)
    if factory is None:
        return Invalid()
    return factory(args)


def render(command: Command) -> bytes:
    return SimpleString(command.reply()).encode()


def dispatch(buffer: bytearray) -> List[Command]:
    """Take every complete frame off the front of ``buffer`` and interpret it.

    A malformed frame yields a single Invalid command and discards the
    buffered bytes, since there is no way to find the next frame boundary.
    """
    commands = []
    while buffer:
        try:
            frame, consumed = parse_frame(buffer)
        except ProtocolError as e:
            logger.warning("Malformed frame: %s", e)
            commands.append(Invalid())
            buffer.clear()
            break

        if frame is None:
            if not buffer.strip(PADDING):
                buffer.clear()
            break

        del buffer[:consumed]
        commands.extend(interpret(element) for element in frame.elements)

    return commands
