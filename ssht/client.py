"""Client side of the pane socket, for terminal keybindings.

Example kitty mapping::

    map ctrl+k launch --type=background ssht-send /tmp/ssht/12345.sock move_pane up
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ssht.config import load_config
from ssht.constants import REPLY_FALSE, UNRECOGNIZED_PREFIX
from ssht.ipc_server import socket_path_for_pid

# Replies arrive in a single write; the longest echoes a whole request back
REPLY_READ_SIZE = 65536


class IPCError(Exception):
    pass


async def send_command(text: str, socket_path: Path, timeout: Optional[float] = 10.0) -> str:
    """Send one message to the server at ``socket_path`` and return its reply."""
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_unix_connection(str(socket_path)), timeout=timeout)
    except (ConnectionRefusedError, FileNotFoundError) as e:
        raise IPCError(f"No ssht server listening on {socket_path}") from e

    try:
        writer.write(text.encode("utf-8"))
        await writer.drain()
        writer.write_eof()
        data = await asyncio.wait_for(reader.read(REPLY_READ_SIZE), timeout=timeout)
    finally:
        writer.close()
        await writer.wait_closed()

    if not data:
        raise IPCError("Connection closed without a reply")
    return data.decode("utf-8")


def resolve_socket(target: str, socket_dir: Optional[Path] = None) -> Path:
    """Accept either a socket path or the pid of a running ssht process.

    The config file is only read to resolve a pid.
    """
    if target.isdigit():
        if socket_dir is None:
            socket_dir = load_config().socket_dir
        return socket_path_for_pid(int(target), socket_dir)
    return Path(target).expanduser()


def exit_status(reply: str) -> int:
    """0 for ``true``/``ok``, 1 for ``false`` or an unrecognized command."""
    if reply == REPLY_FALSE or reply.startswith(UNRECOGNIZED_PREFIX):
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="ssht-send", description="Send a pane command to a running ssht.")
    parser.add_argument("socket", help="socket path or pid of the ssht process")
    parser.add_argument("message", nargs="+", help="command words, e.g. has_pane up")
    args = parser.parse_args(argv)

    try:
        socket_path = resolve_socket(args.socket)
    except ValidationError as e:
        print(f"ssht-send: invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        reply = asyncio.run(send_command(" ".join(args.message), socket_path))
    except (IPCError, OSError, asyncio.TimeoutError) as e:
        print(f"ssht-send: {e}", file=sys.stderr)
        return 2

    print(reply)
    return exit_status(reply)


if __name__ == "__main__":
    sys.exit(main())
