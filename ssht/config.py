"""Configuration loading for ssht.

Settings live in an optional YAML file (`~/.config/ssht/ssht.yml`, or the path
in `SSHT_CONFIG`). A missing file means defaults; `${VAR}` references are
expanded from the environment before validation.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from instrukt_ai_logging import get_logger
from pydantic import BaseModel, ConfigDict, Field

from ssht.constants import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    MAX_MESSAGE_SIZE,
    SOCKET_DIR,
    TMUX_SESSION_NAME,
)

logger = get_logger(__name__)


class TmuxConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    binary: str = "tmux"
    session_name: str = TMUX_SESSION_NAME


class SshConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    binary: str = "ssh"
    strict_host_keys: bool = True


class SshtConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    socket_dir: Path = Path(SOCKET_DIR)
    max_message_size: int = Field(default=MAX_MESSAGE_SIZE, ge=1)
    tmux: TmuxConfig = TmuxConfig()
    ssh: SshConfig = SshConfig()


def expand_env_vars(config: object) -> object:
    """Recursively replace ${VAR} patterns with environment variable values."""
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}  # type: ignore[misc]
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH).expanduser()


def load_config(path: Optional[Path] = None) -> SshtConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to `SSHT_CONFIG` or
            `~/.config/ssht/ssht.yml`.

    Returns:
        The validated configuration. Defaults when the file is absent or unreadable.

    Raises:
        pydantic.ValidationError: If the file holds invalid values.
    """
    if path is None:
        path = default_config_path()

    if not path.exists():
        return SshtConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return SshtConfig()

    model = SshtConfig.model_validate(expand_env_vars(raw))
    _warn_unknown_keys(model, "root", path)
    return model
