"""Process lifecycle: one ssh session, one socket, two racing tasks.

The socket server and the foreground tmux attach run side by side. Whichever
finishes first cancels the other and the process moves on to teardown. A
client whose request is in flight when the server is cancelled gets its
connection closed without a reply.
"""

from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Callable, Optional

import anyio
from instrukt_ai_logging import get_logger

from ssht.config import SshtConfig
from ssht.foreground import run_tmux
from ssht.ipc_server import PaneServer, socket_path_for_pid
from ssht.remote import RemoteExecutor, SshSession

logger = get_logger(__name__)


async def race(server: PaneServer, foreground: Callable[[], Awaitable[int]]) -> Optional[int]:
    """Run ``server`` and ``foreground`` until the first one finishes.

    Returns:
        The foreground exit status, or None if the server finished first.

    Raises:
        RemoteError: If the server stopped because a remote call failed.
    """
    result: dict[str, Optional[int]] = {"returncode": None}

    try:
        async with anyio.create_task_group() as tg:

            async def serve() -> None:
                await server.serve_forever()
                logger.info("Socket server stopped")
                tg.cancel_scope.cancel()

            async def attach() -> None:
                result["returncode"] = await foreground()
                tg.cancel_scope.cancel()

            tg.start_soon(serve)
            tg.start_soon(attach)
    except ExceptionGroup as eg:
        # Only one task can fail before the other is cancelled
        if len(eg.exceptions) == 1:
            raise eg.exceptions[0] from None
        raise

    return result["returncode"]


async def serve_session(session: RemoteExecutor, control_path: Path, socket_path: Path, settings: SshtConfig) -> int:
    """Serve ``session`` on ``socket_path`` while tmux is attached in the foreground."""

    async def foreground() -> int:
        return await run_tmux(
            control_path,
            settings.tmux.session_name,
            ssh_binary=settings.ssh.binary,
            tmux_binary=settings.tmux.binary,
        )

    async with PaneServer(
        session,
        socket_path,
        max_message_size=settings.max_message_size,
        tmux_binary=settings.tmux.binary,
    ) as server:
        returncode = await race(server, foreground)

    return returncode if returncode is not None else 0


async def run_session(destination: str, settings: SshtConfig, pid: Optional[int] = None) -> int:
    """Connect to ``destination`` and serve pane requests until tmux exits.

    The socket is removed and the ssh connection closed on every exit path;
    failures while doing so are logged, not raised.
    """
    socket_path = socket_path_for_pid(pid, settings.socket_dir)
    async with SshSession.connect(
        destination,
        ssh_binary=settings.ssh.binary,
        strict_host_keys=settings.ssh.strict_host_keys,
    ) as session:
        return await serve_session(session, session.control_socket, socket_path, settings)
