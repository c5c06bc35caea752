"""Unit tests for the ssht entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from ssht import cli
from ssht.remote import RemoteError


@pytest.mark.parametrize("argv", [[], ["a@b", "extra"]])
def test_wrong_argument_count_exits_before_connecting(argv):
    with patch.object(cli, "run_session") as mock_run:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(argv)

    assert exc_info.value.code == 2
    mock_run.assert_not_called()


def test_returns_foreground_exit_status():
    with patch.object(cli, "run_session", new=AsyncMock(return_value=0)) as mock_run:
        assert cli.main(["me@example.com"]) == 0

    assert mock_run.await_args[0][0] == "me@example.com"


def test_remote_error_exits_nonzero():
    failing = AsyncMock(side_effect=RemoteError("remote tmux", "broken pipe", 255))
    with patch.object(cli, "run_session", new=failing):
        assert cli.main(["me@example.com"]) == 1


def test_invalid_config_exits_nonzero(tmp_path, monkeypatch):
    config_path = tmp_path / "ssht.yml"
    config_path.write_text("max_message_size: -1\n", encoding="utf-8")
    monkeypatch.setenv("SSHT_CONFIG", str(config_path))

    with patch.object(cli, "run_session") as mock_run:
        assert cli.main(["me@example.com"]) == 1

    mock_run.assert_not_called()
