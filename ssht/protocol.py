"""Text protocol spoken on the local socket.

A request is one message of the form ``<verb> <direction>``:

    has_pane up      -> "true" / "false"
    move_pane left   -> "ok"
    anything else    -> "unrecognized command <original text>"

Parsing never raises; ``None`` means the message was not understood.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ssht.constants import REPLY_FALSE, REPLY_OK, REPLY_TRUE, UNRECOGNIZED_PREFIX


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class HasPane:
    """Is there a pane next to the focused one in ``direction``?"""

    direction: Direction


@dataclass(frozen=True)
class MovePane:
    """Move focus to the neighbouring pane in ``direction``."""

    direction: Direction


Request = Union[HasPane, MovePane]

_VERBS: dict[str, type[HasPane] | type[MovePane]] = {
    "has_pane": HasPane,
    "move_pane": MovePane,
}


def parse_direction(token: str) -> Optional[Direction]:
    """Map a lowercase direction word to a Direction (case-sensitive)."""
    try:
        return Direction(token)
    except ValueError:
        return None


def parse_command(line: str) -> Optional[Request]:
    """Parse ``<verb> <direction>``; tokens are split on single spaces."""
    tokens = line.split(" ")
    if len(tokens) != 2:
        return None
    verb, token = tokens
    request_type = _VERBS.get(verb)
    direction = parse_direction(token)
    if request_type is None or direction is None:
        return None
    return request_type(direction)


def encode_bool(value: bool) -> str:
    return REPLY_TRUE if value else REPLY_FALSE


def encode_unrecognized(text: str) -> str:
    return f"{UNRECOGNIZED_PREFIX}{text}"


__all__ = [
    "Direction",
    "HasPane",
    "MovePane",
    "REPLY_OK",
    "Request",
    "encode_bool",
    "encode_unrecognized",
    "parse_command",
    "parse_direction",
]
