"""Translate pane navigation requests into remote tmux calls."""

from __future__ import annotations

from instrukt_ai_logging import get_logger

from ssht.constants import AT_EDGE_FALSE
from ssht.protocol import (
    REPLY_OK,
    Direction,
    HasPane,
    MovePane,
    Request,
    encode_bool,
)
from ssht.remote import RemoteExecutor

logger = get_logger(__name__)

# tmux names the vertical edges top/bottom but the horizontal ones left/right.
_EDGE_PREDICATES = {
    Direction.UP: "top",
    Direction.DOWN: "bottom",
    Direction.LEFT: "left",
    Direction.RIGHT: "right",
}


def edge_predicate(direction: Direction) -> str:
    """Return the tmux format that reports whether the active pane is at that edge."""
    return f"#{{pane_at_{_EDGE_PREDICATES[direction]}}}"


def select_pane_flag(direction: Direction) -> str:
    """Return the ``select-pane`` flag for ``direction`` (-U, -D, -L, -R)."""
    return f"-{direction.value[0].upper()}"


async def pane_in_direction(session: RemoteExecutor, direction: Direction, tmux_binary: str = "tmux") -> bool:
    """Return True if the focused pane has a neighbour in ``direction``.

    tmux prints ``1`` when the pane sits at the edge and ``0`` otherwise, so
    only an exact ``0\\n`` means there is a pane beyond it. Anything else,
    including empty or garbled output, counts as no pane.
    """
    result = await session.run(tmux_binary, "display-message", "-p", edge_predicate(direction))
    return result.stdout == AT_EDGE_FALSE


async def move_in_direction(session: RemoteExecutor, direction: Direction, tmux_binary: str = "tmux") -> None:
    """Move tmux focus one pane towards ``direction``.

    The exit status is ignored: selecting past the edge is a no-op in tmux.
    """
    result = await session.run(tmux_binary, "select-pane", select_pane_flag(direction))
    if result.returncode != 0:
        logger.debug("select-pane %s exited with %d", select_pane_flag(direction), result.returncode)


async def handle_request(session: RemoteExecutor, request: Request, tmux_binary: str = "tmux") -> str:
    """Execute ``request`` against the remote session and return the reply text."""
    if isinstance(request, HasPane):
        return encode_bool(await pane_in_direction(session, request.direction, tmux_binary))
    if isinstance(request, MovePane):
        await move_in_direction(session, request.direction, tmux_binary)
        return REPLY_OK
    raise TypeError(f"Unsupported request: {request!r}")
