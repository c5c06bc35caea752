"""Pytest configuration for ssht tests."""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import pytest

try:
    import instrukt_ai_logging

    def _noop_configure_logging(*_args, **_kwargs):  # type: ignore[no-untyped-def]
        return None

    instrukt_ai_logging.configure_logging = _noop_configure_logging  # type: ignore[assignment]
    logging.getLogger("ssht").handlers.clear()
    logging.getLogger().handlers.clear()
except Exception:
    pass

from ssht.remote import RemoteOutput


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


class FakeRemote:
    """Scripted stand-in for a remote ssh session.

    ``outputs`` maps the tmux subcommand (``display-message``, ``select-pane``)
    to what the remote side prints. Every call is recorded in ``calls``.
    """

    def __init__(self, outputs: Optional[dict[str, RemoteOutput]] = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[tuple[str, ...]] = []
        self.gate: Optional[asyncio.Event] = None
        self.on_call: Optional[Callable[[tuple[str, ...]], None]] = None

    async def run(self, program: str, *args: str) -> RemoteOutput:
        call = (program, *args)
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)
        if self.gate is not None:
            await self.gate.wait()
        subcommand = args[0] if args else ""
        return self.outputs.get(subcommand, RemoteOutput(stdout=b"", returncode=0))


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def socket_dir():
    """Short-lived directory for sockets (kept short for AF_UNIX path limits)."""
    path = Path(tempfile.mkdtemp(prefix="ssht-"))
    yield path
    shutil.rmtree(path, ignore_errors=True)
