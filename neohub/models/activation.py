"""Focus bookkeeping models.

ActivationTarget is a tagged union: exactly one of HubWindowTarget,
EditorTarget or ForeignAppTarget (or None when nothing should regain focus).
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class ForegroundApp:
    """Application owning the focused window, as reported by the window system."""

    pid: int
    window_id: Optional[int] = None  # Sway container ID
    app_id: Optional[str] = None  # Wayland app_id or X11 class


@dataclass(frozen=True)
class HubWindow:
    """A window owned by the hub process itself."""

    window_id: int
    title: Optional[str] = None


@dataclass(frozen=True)
class HubWindowTarget:
    """Restore focus to one of the hub's own (non-switcher) windows."""

    window: HubWindow


@dataclass(frozen=True)
class EditorTarget:
    """Restore focus to a registered editor, referenced by process ID."""

    pid: int


@dataclass(frozen=True)
class ForeignAppTarget:
    """Restore focus to an arbitrary application."""

    app: ForegroundApp


ActivationTarget = Union[HubWindowTarget, EditorTarget, ForeignAppTarget]
