"""Activation target tracking.

Remembers what should get focus back after a focus-stealing action (launching
an editor, opening the switcher). The target is one of:

- one of the hub's own windows, other than the switcher surface
- a registered editor, referenced by PID so it survives registry churn
- any other application

It is replaced wholesale by every set_activation_target() call and only read
by activate_target().
"""

import logging
import os
from typing import Iterable, Optional

from ..errors import ActivationFailure
from ..models import (
    ActivationTarget,
    Editor,
    EditorTarget,
    ForeignAppTarget,
    ForegroundApp,
    HubWindowTarget,
)
from .reporter import Reporter
from .window_system import WindowSystem

logger = logging.getLogger(__name__)


class ActivationTracker:
    """Tri-state record of what should regain focus."""

    def __init__(
        self,
        window_system: WindowSystem,
        reporter: Reporter,
        hub_pid: Optional[int] = None,
        switcher_app_id: Optional[str] = None,
    ):
        """Initialize activation tracker.

        Args:
            window_system: Window manager collaborator
            reporter: Failure reporter
            hub_pid: PID of the hub process (default: this process)
            switcher_app_id: app_id of the switcher surface, never a target
        """
        self.window_system = window_system
        self.reporter = reporter
        self.hub_pid = hub_pid if hub_pid is not None else os.getpid()
        self.switcher_app_id = switcher_app_id
        self._target: Optional[ActivationTarget] = None
        self._registry = None

    def bind_registry(self, registry) -> None:
        """Attach the EditorRegistry used to resolve editor targets."""
        self._registry = registry

    @property
    def activation_target(self) -> Optional[ActivationTarget]:
        return self._target

    @property
    def editor_target_pid(self) -> Optional[int]:
        """PID of the editor target, or None if the target is not an editor."""
        if isinstance(self._target, EditorTarget):
            return self._target.pid
        return None

    async def set_activation_target(
        self,
        current_app: Optional[ForegroundApp],
        editors: Iterable[Editor],
    ) -> None:
        """Record what currently has focus.

        Args:
            current_app: Foreground application (None if nothing is focused)
            editors: Registered editors, used to recognise editor windows
        """
        target: Optional[ActivationTarget]

        if current_app is None:
            target = None
        elif current_app.pid == self.hub_pid:
            window = await self.window_system.visible_hub_window(exclude_app_id=self.switcher_app_id)
            target = HubWindowTarget(window) if window is not None else None
        elif any(editor.pid == current_app.pid for editor in editors):
            target = EditorTarget(current_app.pid)
        else:
            target = ForeignAppTarget(current_app)

        logger.debug(f"Activation target: {target}")
        self._target = target

    async def activate_target(self) -> None:
        """Give focus back to the recorded target. No-op if nothing is recorded."""
        target = self._target

        if target is None:
            logger.debug("No activation target recorded")
            return

        if isinstance(target, HubWindowTarget):
            activated = await self.window_system.activate(
                ForegroundApp(pid=self.hub_pid, window_id=target.window.window_id)
            )
        elif isinstance(target, EditorTarget):
            editor = self._registry.find_by_pid(target.pid) if self._registry else None
            if editor is None:
                self.reporter.report(
                    ActivationFailure(
                        "Failed to find the editor to activate",
                        context={"pid": target.pid},
                    )
                )
                return
            # The registry reports its own activation failures
            await self._registry.activate_editor(editor)
            return
        else:
            activated = await self.window_system.activate(target.app)

        if not activated:
            self.reporter.report(
                ActivationFailure(
                    "Failed to restore focus",
                    context={"target": repr(target)},
                )
            )

    async def on_hub_resigned_active(self, surface_was_cause: bool) -> None:
        """Restore focus when the hub loses active status.

        Args:
            surface_was_cause: True when the focus-stealing surface itself moved
                focus away (the user picked something), so nothing is restored
        """
        if not surface_was_cause:
            await self.activate_target()
