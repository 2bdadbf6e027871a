"""Foreground-application collaborator.

Queries which application owns the focused window and moves focus around.
The hub runs under Sway (or i3), so the concrete implementation talks to the
window manager over i3ipc: the focused leaf container is the foreground
application, ``focus`` activates and ``move scratchpad`` hides.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from i3ipc.aio import Con, Connection

from ..models import ForegroundApp, HubWindow

logger = logging.getLogger(__name__)

SCRATCHPAD_WORKSPACE = "__i3_scratch"


def get_window_class(container) -> Optional[str]:
    """Get window class in a Sway/i3-compatible way.

    Sway native Wayland windows expose app_id; XWayland and i3 windows expose
    window_class.
    """
    if getattr(container, "app_id", None):
        return container.app_id
    if getattr(container, "window_class", None):
        return container.window_class
    return None


class WindowSystem(ABC):
    """Window manager operations the hub depends on."""

    @abstractmethod
    async def frontmost_application(self) -> Optional[ForegroundApp]:
        """Return the application owning the focused window, if any."""

    @abstractmethod
    async def activate(self, app: ForegroundApp) -> bool:
        """Bring the application (or its specific window) to the foreground."""

    @abstractmethod
    async def hide(self, app: ForegroundApp) -> bool:
        """Hide the application's windows."""

    @abstractmethod
    async def visible_hub_window(self, exclude_app_id: Optional[str] = None) -> Optional[HubWindow]:
        """Return a visible window owned by the hub, skipping ``exclude_app_id``."""


class SwayWindowSystem(WindowSystem):
    """WindowSystem backed by the Sway/i3 IPC socket."""

    def __init__(self, connection: Optional[Connection] = None, hub_pid: Optional[int] = None):
        """Initialize Sway window system.

        Args:
            connection: Connected i3ipc.aio.Connection (connect() creates one if None)
            hub_pid: PID whose windows belong to the hub (default: this process)
        """
        self.sway = connection
        self.hub_pid = hub_pid if hub_pid is not None else os.getpid()

    async def connect(self) -> None:
        """Connect to the Sway IPC socket."""
        if self.sway is None:
            self.sway = await Connection(auto_reconnect=True).connect()
            logger.info("Connected to Sway IPC")

    async def frontmost_application(self) -> Optional[ForegroundApp]:
        tree = await self.sway.get_tree()
        focused = tree.find_focused()

        # An empty workspace can be focused, it has no pid
        if focused is None or not focused.pid:
            return None

        return ForegroundApp(
            pid=focused.pid,
            window_id=focused.id,
            app_id=get_window_class(focused),
        )

    async def activate(self, app: ForegroundApp) -> bool:
        return await self._run(app, "focus")

    async def hide(self, app: ForegroundApp) -> bool:
        return await self._run(app, "move scratchpad")

    async def visible_hub_window(self, exclude_app_id: Optional[str] = None) -> Optional[HubWindow]:
        tree = await self.sway.get_tree()
        workspaces = await self.sway.get_workspaces()
        visible = {ws.name for ws in workspaces if ws.visible}

        candidates = []
        for leaf in tree.leaves():
            if leaf.pid != self.hub_pid:
                continue
            if exclude_app_id and get_window_class(leaf) == exclude_app_id:
                continue
            workspace = leaf.workspace()
            if workspace is None or workspace.name == SCRATCHPAD_WORKSPACE:
                continue
            if workspace.name not in visible:
                continue
            candidates.append(leaf)

        if not candidates:
            return None

        # Prefer the window that currently has focus
        window: Con = next((c for c in candidates if c.focused), candidates[0])
        return HubWindow(window_id=window.id, title=window.name)

    async def _run(self, app: ForegroundApp, command: str) -> bool:
        criteria = f"con_id={app.window_id}" if app.window_id else f"pid={app.pid}"
        replies = await self.sway.command(f"[{criteria}] {command}")
        success = bool(replies) and all(reply.success for reply in replies)
        if not success:
            errors = [reply.error for reply in replies or [] if not reply.success]
            logger.warning(f"Sway command '[{criteria}] {command}' failed: {errors}")
        return success
