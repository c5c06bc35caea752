"""Remote command execution over a shared OpenSSH ControlMaster connection.

One ``SshSession`` owns one multiplexed ssh connection. Commands run through it
with ``ssh -S <control path> none '<program> <args>'`` (one shell-quoted word,
since the remote shell parses it); ssh ignores the host argument
once a control socket is given, so every call rides the same authenticated
connection. The control path is also handed to the foreground tmux attach.
"""

from __future__ import annotations

import asyncio
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Optional, Protocol, Sequence, runtime_checkable

import anyio
from instrukt_ai_logging import get_logger

from ssht.constants import SSH_ERROR_EXIT_CODE

logger = get_logger(__name__)


class RemoteError(Exception):
    """The ssh connection failed; the process cannot continue."""

    def __init__(self, operation: str, detail: str = "", returncode: Optional[int] = None):
        self.operation = operation
        self.detail = detail
        self.returncode = returncode
        message = f"{operation} failed"
        if returncode is not None:
            message += f" (exit {returncode})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


@dataclass(frozen=True)
class RemoteOutput:
    """Captured result of a remote command."""

    stdout: bytes
    returncode: int


@runtime_checkable
class RemoteExecutor(Protocol):
    """Anything that can run a program on the remote host."""

    async def run(self, program: str, *args: str) -> RemoteOutput:
        """Run ``program args...`` remotely and capture stdout and exit status.

        Raises:
            RemoteError: If the command could not be executed at all.
        """
        ...


async def reap_process(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` if it is still running and wait for it to exit.

    Runs shielded so a cancelled caller still reaps the child.
    """
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass
    with anyio.CancelScope(shield=True):
        await process.wait()


def normalize_destination(destination: str) -> str:
    """Return ``destination`` as an ``ssh://`` URI (allows ``user@host:port``)."""
    if destination.startswith("ssh://"):
        return destination
    return f"ssh://{destination}"


class SshSession:
    """A live ControlMaster connection to one remote host.

    Use ``await SshSession.connect(...)`` or ``async with SshSession.connect(...)``.
    """

    def __init__(self, control_dir: Path, destination: str, ssh_binary: str = "ssh"):
        self.control_dir = control_dir
        self.destination = destination
        self.ssh_binary = ssh_binary
        self.closed = False

    @property
    def control_socket(self) -> Path:
        return self.control_dir / "master"

    @property
    def log_path(self) -> Path:
        return self.control_dir / "log"

    @classmethod
    def connect(
        cls,
        destination: str,
        *,
        ssh_binary: str = "ssh",
        strict_host_keys: bool = True,
    ) -> "_Connector":
        """Open the master connection to ``destination``.

        Awaiting the result yields an open session; using it with ``async with``
        also closes the session when the block exits.
        """
        return _Connector(cls, destination, ssh_binary, strict_host_keys)

    def master_command(self, strict_host_keys: bool) -> list[str]:
        return [
            self.ssh_binary,
            "-E",
            str(self.log_path),
            "-S",
            str(self.control_socket),
            "-M",
            "-f",
            "-N",
            "-o",
            "ControlPersist=yes",
            "-o",
            "BatchMode=yes",
            "-o",
            f"StrictHostKeyChecking={'yes' if strict_host_keys else 'accept-new'}",
            normalize_destination(self.destination),
        ]

    def control_command(self, operation: str) -> list[str]:
        return [self.ssh_binary, "-S", str(self.control_socket), "-O", operation, "none"]

    def remote_command(self, program: str, args: Sequence[str]) -> list[str]:
        return [
            self.ssh_binary,
            "-T",
            "-S",
            str(self.control_socket),
            "-o",
            "BatchMode=yes",
            "none",
            # ssh hands the words to the remote login shell as one string
            shlex.join([program, *args]),
        ]

    async def _exec(self, cmd: list[str], operation: str) -> tuple[bytes, bytes, int]:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RemoteError(operation, str(e)) from e
        try:
            stdout, stderr = await process.communicate()
        finally:
            await reap_process(process)
        returncode = process.returncode if process.returncode is not None else -1
        return stdout, stderr, returncode

    def _read_log(self) -> str:
        try:
            return self.log_path.read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return ""

    async def _start(self, strict_host_keys: bool) -> None:
        logger.info("Connecting to %s", self.destination)
        _, stderr, returncode = await self._exec(self.master_command(strict_host_keys), "ssh connect")
        if returncode != 0:
            detail = self._read_log() or stderr.decode("utf-8", errors="replace").strip()
            raise RemoteError(f"ssh connect to {self.destination}", detail, returncode)

        _, stderr, returncode = await self._exec(self.control_command("check"), "ssh control check")
        if returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise RemoteError(f"ssh control check for {self.destination}", detail, returncode)
        logger.info("Connected to %s (control socket %s)", self.destination, self.control_socket)

    async def run(self, program: str, *args: str) -> RemoteOutput:
        """Run ``program args...`` on the remote host.

        The remote exit status is returned as-is. Only ssh's own failure
        status (255) is treated as an error.
        """
        if self.closed:
            raise RemoteError(f"remote {program}", "session is closed")
        stdout, stderr, returncode = await self._exec(self.remote_command(program, args), f"remote {program}")
        if returncode == SSH_ERROR_EXIT_CODE:
            raise RemoteError(f"remote {program}", stderr.decode("utf-8", errors="replace").strip(), returncode)
        logger.trace("remote %s %s -> exit %d, %d bytes", program, " ".join(args), returncode, len(stdout))
        return RemoteOutput(stdout=stdout, returncode=returncode)

    async def close(self) -> None:
        """Stop the master connection and remove its private directory."""
        if self.closed:
            return
        self.closed = True
        try:
            _, stderr, returncode = await self._exec(self.control_command("exit"), "ssh control exit")
            if returncode != 0:
                raise RemoteError(
                    f"ssh control exit for {self.destination}",
                    stderr.decode("utf-8", errors="replace").strip(),
                    returncode,
                )
            logger.info("Closed connection to %s", self.destination)
        finally:
            shutil.rmtree(self.control_dir, ignore_errors=True)


class _Connector:
    """Awaitable / async context manager returned by ``SshSession.connect``."""

    def __init__(self, cls: type[SshSession], destination: str, ssh_binary: str, strict_host_keys: bool):
        self._cls = cls
        self._destination = destination
        self._ssh_binary = ssh_binary
        self._strict_host_keys = strict_host_keys
        self._session: Optional[SshSession] = None

    async def _open(self) -> SshSession:
        control_dir = Path(tempfile.mkdtemp(prefix=".ssht-connection"))
        session = self._cls(control_dir, self._destination, self._ssh_binary)
        try:
            await session._start(self._strict_host_keys)
        except BaseException:
            shutil.rmtree(control_dir, ignore_errors=True)
            raise
        return session

    def __await__(self):  # type: ignore[no-untyped-def]
        return self._open().__await__()

    async def __aenter__(self) -> SshSession:
        self._session = await self._open()
        return self._session

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self._session is None:
            return
        try:
            await self._session.close()
        except Exception as e:  # noqa: BLE001 - teardown is best-effort
            logger.warning("Failed to close ssh session to %s: %s", self._destination, e)
