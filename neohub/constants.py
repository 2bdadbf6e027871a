"""Centralized paths and constants for NeoHub.

Single source of truth for file paths and protocol literals shared by the hub
daemon and the CLI.
"""

from pathlib import Path
from typing import Final


APP_NAME: Final[str] = "NeoHub"

# Process identity of the editor binary the CLI looks up by default
DEFAULT_EDITOR_BINARY: Final[str] = "neovide"

# Editors must stay attached to the process the hub spawned, otherwise the
# termination callback fires immediately and the entry is reaped.
NO_FORK_FLAG: Final[str] = "--no-fork"

# Wire protocol
FRAME_HEADER_SIZE: Final[int] = 4
RESPONSE_OK: Final[bytes] = b"OK"
RESPONSE_ERROR: Final[bytes] = b"ERR"

# Environment overrides
ENV_LOG_LEVEL: Final[str] = "NEOHUB_LOG"
ENV_SOCKET_PATH: Final[str] = "NEOHUB_SOCKET"
ENV_EDITOR_BINARY: Final[str] = "NEOHUB_EDITOR_BIN"


class ConfigPaths:
    """Centralized configuration paths.

    All paths are computed once at import time based on user's home directory.

    Example:
        from .constants import ConfigPaths

        config = json.loads(ConfigPaths.CONFIG_FILE.read_text())
    """

    HOME: Final[Path] = Path.home()
    CONFIG_DIR: Final[Path] = HOME / ".config" / "neohub"
    CONFIG_FILE: Final[Path] = CONFIG_DIR / "config.json"

    # IPC socket (well-known path shared with the CLI)
    IPC_SOCKET_PATH: Final[Path] = Path("/tmp/neohub.sock")

