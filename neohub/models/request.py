"""Run request and editor identity models.

The RunRequest is what the CLI sends over the socket. Its JSON shape is:

    {"wd": str, "bin": str, "name": str|null, "path": str|null,
     "opts": [str], "env": {str: str}}
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, Field, field_validator


def _path_from_wire(value) -> Path:
    """Accept a plain path or a file:// URL and return an absolute Path."""
    if isinstance(value, Path):
        path = value
    else:
        text = str(value)
        if text.startswith("file://"):
            text = unquote(urlparse(text).path)
        path = Path(text)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {value}")
    return path


class RunRequest(BaseModel):
    """Request to run (or activate) an editor."""

    wd: Path = Field(..., description="Working directory of the CLI invocation")
    bin: Path = Field(..., description="Absolute path to the editor binary")
    name: Optional[str] = Field(None, description="Display name for the editor")
    path: Optional[str] = Field(None, description="Path argument passed to the editor")
    opts: List[str] = Field(default_factory=list, description="Options passed to the editor")
    env: Dict[str, str] = Field(default_factory=dict, description="Environment for the editor process")

    model_config = {"frozen": True}

    @field_validator("wd", "bin", mode="before")
    @classmethod
    def validate_absolute(cls, v) -> Path:
        """Validate wd/bin are absolute (plain paths or file:// URLs)."""
        return _path_from_wire(v)

    @field_validator("name", "path")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings the same as a missing value."""
        return v or None

    def to_wire(self) -> dict:
        """Convert to the JSON-serializable wire representation."""
        return {
            "wd": str(self.wd),
            "bin": str(self.bin),
            "name": self.name,
            "path": self.path,
            "opts": list(self.opts),
            "env": dict(self.env),
        }


@dataclass(frozen=True)
class EditorID:
    """Canonical absolute path identifying one editor instance."""

    path: str

    @classmethod
    def from_request(cls, request: RunRequest) -> "EditorID":
        """Resolve the request's path argument against its working directory.

        No path (or an empty one) means the working directory itself.
        """
        location = request.wd
        if request.path:
            location = request.wd / Path(request.path).expanduser()
        return cls(os.path.normpath(str(location)))

    @property
    def last_path_component(self) -> str:
        return os.path.basename(self.path) or self.path

    def __str__(self) -> str:
        return self.path
