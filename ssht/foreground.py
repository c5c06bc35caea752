"""Interactive tmux attach on the remote host.

Runs plain ``ssh -t`` against the existing control socket so the terminal gets
a pseudo-terminal while reusing the already authenticated connection.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from instrukt_ai_logging import get_logger

from ssht.constants import TMUX_SESSION_NAME
from ssht.remote import reap_process

logger = get_logger(__name__)


def attach_command(
    control_path: Path,
    session_name: str = TMUX_SESSION_NAME,
    *,
    ssh_binary: str = "ssh",
    tmux_binary: str = "tmux",
) -> list[str]:
    # ssh ignores the host argument when -S points at a live master
    return [
        ssh_binary,
        "-t",
        "-S",
        str(control_path),
        "none",
        tmux_binary,
        "new-session",
        "-A",
        "-s",
        session_name,
    ]


async def run_tmux(
    control_path: Path,
    session_name: str = TMUX_SESSION_NAME,
    *,
    ssh_binary: str = "ssh",
    tmux_binary: str = "tmux",
) -> int:
    """Attach (or create) the remote tmux session in the foreground.

    Stdin, stdout and stderr are inherited from this process.

    Returns:
        The exit status of the ssh client.
    """
    cmd = attach_command(control_path, session_name, ssh_binary=ssh_binary, tmux_binary=tmux_binary)
    logger.info("Attaching to remote tmux session %s", session_name)
    process = await asyncio.create_subprocess_exec(*cmd)
    try:
        returncode = await process.wait()
    finally:
        await reap_process(process)
    logger.info("Remote tmux session %s detached (exit %d)", session_name, returncode)
    return returncode
