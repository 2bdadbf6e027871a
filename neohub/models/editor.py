"""Managed editor instance model."""

import re
import time
from pathlib import Path
from typing import Optional

from .request import EditorID, RunRequest


class Editor:
    """One editor process owned by the EditorRegistry.

    Holds everything needed to activate, quit or relaunch the editor:
    its identity, display name, process handle, last access time and the
    original RunRequest.
    """

    def __init__(
        self,
        editor_id: EditorID,
        name: Optional[str],
        process,
        request: RunRequest,
    ):
        """Initialize editor.

        Args:
            editor_id: Registry key
            name: Display name (falls back to the last path component)
            process: EditorProcess handle
            request: Request the editor was launched with
        """
        self.id = editor_id
        self.name = name or editor_id.last_path_component
        self.process = process
        self.request = request
        self.last_access_time = time.time()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def display_path(self) -> str:
        """Editor path with the home directory shortened to ``~/``."""
        home = str(Path.home()).rstrip("/")
        if not home:
            return self.id.path
        return re.sub(rf"^{re.escape(home)}/", "~/", self.id.path)

    def touch(self) -> None:
        """Record a successful activation."""
        self.last_access_time = time.time()

    def quit(self) -> None:
        """Request termination of the editor process."""
        self.process.terminate()

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and diagnostics."""
        return {
            "id": self.id.path,
            "name": self.name,
            "pid": self.pid,
            "display_path": self.display_path,
            "last_access_time": self.last_access_time,
        }

    def __repr__(self) -> str:
        return f"Editor(id={self.id.path!r}, name={self.name!r}, pid={self.pid})"
