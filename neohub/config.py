"""Configuration loader for the NeoHub daemon and CLI.

Configuration is read from ~/.config/neohub/config.json when present and then
overridden by environment variables. Every field has a default, so a missing
file is not an error.
"""

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .constants import (
    ConfigPaths,
    DEFAULT_EDITOR_BINARY,
    ENV_EDITOR_BINARY,
    ENV_SOCKET_PATH,
    NO_FORK_FLAG,
)
from .errors import ConfigLoadError

logger = logging.getLogger(__name__)


class HubConfig(BaseModel):
    """NeoHub settings."""

    socket_path: Path = Field(
        ConfigPaths.IPC_SOCKET_PATH,
        description="UNIX socket shared by the hub and the CLI",
    )
    editor_binary: str = Field(
        DEFAULT_EDITOR_BINARY,
        description="Editor executable name (looked up in PATH) or absolute path",
    )
    no_fork_flag: str = Field(
        NO_FORK_FLAG,
        description="Flag that keeps the editor attached to the spawned process",
    )
    restart_timeout: float = Field(
        5.0,
        description="Seconds to wait for an editor to exit during restart",
        gt=0,
    )
    restart_poll_interval: float = Field(
        0.1,
        description="Seconds between registry checks during restart",
        gt=0,
    )
    client_timeout: float = Field(
        5.0,
        description="Seconds the CLI waits for the hub acknowledgement",
        gt=0,
    )
    notifications: bool = Field(
        True,
        description="Send desktop notifications for hub failures",
    )
    switcher_app_id: Optional[str] = Field(
        None,
        description="app_id of the hub's switcher window, never used as a focus target",
    )


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> HubConfig:
    """Load hub configuration.

    Args:
        config_file: JSON file to read (default: ~/.config/neohub/config.json)
        environ: Environment mapping for overrides (default: os.environ)

    Returns:
        HubConfig instance

    Raises:
        ConfigLoadError: If the file exists but is not valid configuration
    """
    config_file = config_file or ConfigPaths.CONFIG_FILE
    environ = os.environ if environ is None else environ

    data = {}
    if config_file.exists():
        try:
            with open(config_file) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigLoadError(str(config_file), str(e))
        if not isinstance(data, dict):
            raise ConfigLoadError(str(config_file), "top-level value must be an object")
        logger.debug(f"Loaded configuration from {config_file}")
    else:
        logger.debug(f"No configuration file at {config_file}, using defaults")

    if environ.get(ENV_SOCKET_PATH):
        data["socket_path"] = environ[ENV_SOCKET_PATH]
    if environ.get(ENV_EDITOR_BINARY):
        data["editor_binary"] = environ[ENV_EDITOR_BINARY]

    try:
        return HubConfig(**data)
    except ValidationError as e:
        raise ConfigLoadError(str(config_file), str(e))
