"""Local Unix socket server answering pane navigation requests.

Connections are handled strictly one at a time: accept, read one message,
run it against the remote session, write one reply, close, accept the next.
A slow remote round-trip therefore delays every client queued behind it.
"""

from __future__ import annotations

import asyncio
import os
import socket
from pathlib import Path
from types import TracebackType
from typing import Optional

from instrukt_ai_logging import get_logger

from ssht.constants import MAX_MESSAGE_SIZE, SOCKET_DIR, SOCKET_MODE
from ssht.navigation import handle_request
from ssht.protocol import encode_unrecognized, parse_command
from ssht.remote import RemoteExecutor

logger = get_logger(__name__)


class ClientProtocolError(Exception):
    """A client sent something that cannot be read as a request."""


def socket_path_for_pid(pid: Optional[int] = None, socket_dir: Path | str = SOCKET_DIR) -> Path:
    """Return the per-process socket path, ``<socket_dir>/<pid>.sock``."""
    if pid is None:
        pid = os.getpid()
    return Path(socket_dir) / f"{pid}.sock"


def decode_message(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ClientProtocolError(f"message is not valid UTF-8: {e}") from e


class PaneServer:
    """Serve requests from one socket against one remote session."""

    def __init__(
        self,
        session: RemoteExecutor,
        socket_path: Path,
        *,
        max_message_size: int = MAX_MESSAGE_SIZE,
        tmux_binary: str = "tmux",
    ):
        self.session = session
        self.socket_path = socket_path
        self.max_message_size = max_message_size
        self.tmux_binary = tmux_binary
        self._sock: Optional[socket.socket] = None

    def bind(self) -> None:
        """Create the parent directory and start listening.

        Raises:
            OSError: If the socket cannot be bound (for example the path exists).
        """
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(self.socket_path))
            self.socket_path.chmod(SOCKET_MODE)
            sock.listen()
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        self._sock = sock
        logger.info("Listening on socket: %s", self.socket_path)

    async def respond(self, text: str) -> str:
        """Return the reply for one decoded message."""
        request = parse_command(text)
        if request is None:
            logger.debug("Unrecognized command: %r", text)
            return encode_unrecognized(text)
        logger.debug("Handling %r", request)
        return await handle_request(self.session, request, self.tmux_binary)

    async def handle_connection(self, conn: socket.socket) -> None:
        """Read one request from ``conn``, write one reply, then close it.

        Client-side failures end only this connection. Remote failures
        propagate to the caller.
        """
        loop = asyncio.get_running_loop()
        with conn:
            try:
                data = await loop.sock_recv(conn, self.max_message_size)
                reply = await self.respond(decode_message(data))
                await loop.sock_sendall(conn, reply.encode("utf-8"))
            except ClientProtocolError as e:
                logger.warning("Dropping client: %s", e)
            except (ConnectionResetError, BrokenPipeError) as e:
                logger.debug("Client went away: %s", e)

    async def serve_forever(self) -> None:
        """Accept and handle connections until cancelled or a remote call fails."""
        if self._sock is None:
            self.bind()
        assert self._sock is not None
        loop = asyncio.get_running_loop()
        while True:
            conn, _ = await loop.sock_accept(self._sock)
            conn.setblocking(False)
            await self.handle_connection(conn)

    def close(self) -> None:
        """Stop listening and remove the socket file."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        try:
            self.socket_path.unlink()
        except FileNotFoundError:
            pass
        logger.info("Removed socket: %s", self.socket_path)

    async def __aenter__(self) -> "PaneServer":
        self.bind()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        try:
            self.close()
        except OSError as e:
            logger.warning("Failed to remove socket %s: %s", self.socket_path, e)
