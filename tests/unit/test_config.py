"""Unit tests for config loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ssht.config import SshtConfig, default_config_path, expand_env_vars, load_config


def test_missing_file_gives_defaults(tmp_path: Path):
    config = load_config(tmp_path / "absent.yml")

    assert config == SshtConfig()
    assert config.socket_dir == Path("/tmp/ssht")
    assert config.max_message_size == 1024
    assert config.tmux.session_name == "main"
    assert config.tmux.binary == "tmux"
    assert config.ssh.binary == "ssh"
    assert config.ssh.strict_host_keys is True


def test_empty_file_gives_defaults(tmp_path: Path):
    path = tmp_path / "ssht.yml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == SshtConfig()


def test_values_and_env_expansion(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SSHT_TEST_DIR", "/run/user/1000/ssht")
    path = tmp_path / "ssht.yml"
    path.write_text(
        "socket_dir: ${SSHT_TEST_DIR}\n"
        "max_message_size: 4096\n"
        "tmux:\n"
        "  session_name: work\n"
        "ssh:\n"
        "  strict_host_keys: false\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.socket_dir == Path("/run/user/1000/ssht")
    assert config.max_message_size == 4096
    assert config.tmux.session_name == "work"
    assert config.ssh.strict_host_keys is False


def test_invalid_message_size_rejected(tmp_path: Path):
    path = tmp_path / "ssht.yml"
    path.write_text("max_message_size: 0\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(path)


def test_malformed_yaml_falls_back_to_defaults(tmp_path: Path):
    path = tmp_path / "ssht.yml"
    path.write_text("tmux: [unclosed\n", encoding="utf-8")

    assert load_config(path) == SshtConfig()


def test_unknown_keys_are_kept_not_fatal(tmp_path: Path):
    path = tmp_path / "ssht.yml"
    path.write_text("colour: blue\ntmux:\n  socket: x\n", encoding="utf-8")

    config = load_config(path)

    assert config.model_extra == {"colour": "blue"}
    assert config.tmux.model_extra == {"socket": "x"}


def test_default_config_path_env_override(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SSHT_CONFIG", "/etc/ssht.yml")
    assert default_config_path() == Path("/etc/ssht.yml")

    monkeypatch.delenv("SSHT_CONFIG")
    assert default_config_path() == Path("~/.config/ssht/ssht.yml").expanduser()


def test_expand_env_vars_leaves_unknown_variables(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("SSHT_NOT_SET", raising=False)

    assert expand_env_vars({"a": ["${SSHT_NOT_SET}", 3]}) == {"a": ["${SSHT_NOT_SET}", 3]}
