"""Editor registry.

Owns the canonical map of live editor processes: launches new editors,
activates existing ones instead of spawning duplicates, restarts and quits
them, and serves the sorted views used by the menu and the switcher.

Concurrency model:
- Every mutation of the map happens under one asyncio.Lock on the hub loop.
- Process exit notifications are marshalled into an asyncio.Queue with
  call_soon_threadsafe() and drained by a single reaper task, which is the
  only code path that removes editors.
- Views return list snapshots and never mutate the map.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from ..constants import NO_FORK_FLAG
from ..errors import ActivationFailure, ProcessLaunchFailure, RestartTimeout
from ..models import Editor, EditorID, ForegroundApp, RunRequest
from .activation_tracker import ActivationTracker
from .process import EditorProcess
from .reporter import Reporter
from .window_system import WindowSystem

logger = logging.getLogger(__name__)

SpawnFn = Callable[[Path, List[str], Path, Dict[str, str]], Awaitable[EditorProcess]]


class EditorRegistry:
    """Single source of truth for managed editors."""

    def __init__(
        self,
        window_system: WindowSystem,
        tracker: ActivationTracker,
        reporter: Reporter,
        restart_timeout: float = 5.0,
        restart_poll_interval: float = 0.1,
        no_fork_flag: str = NO_FORK_FLAG,
        spawn: Optional[SpawnFn] = None,
    ):
        """Initialize editor registry.

        Args:
            window_system: Window manager collaborator
            tracker: ActivationTracker updated before each launch
            reporter: Failure reporter
            restart_timeout: Seconds to wait for an editor to exit during restart
            restart_poll_interval: Seconds between registry checks during restart
            no_fork_flag: Flag that keeps the editor attached to its process
            spawn: Process factory (default: EditorProcess.spawn)
        """
        self.window_system = window_system
        self.tracker = tracker
        self.reporter = reporter
        self.restart_timeout = restart_timeout
        self.restart_poll_interval = restart_poll_interval
        self.no_fork_flag = no_fork_flag
        self._spawn = spawn or EditorProcess.spawn

        self._editors: Dict[EditorID, Editor] = {}
        self._lock = asyncio.Lock()
        self._exits: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reaper: Optional[asyncio.Task] = None

        tracker.bind_registry(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the reaper task. Must run on the hub event loop."""
        self._loop = asyncio.get_running_loop()
        self._exits = asyncio.Queue()
        self._reaper = asyncio.create_task(self._reap_exits(), name="neohub-reaper")
        logger.info("Editor registry started")

    async def stop(self) -> None:
        """Stop the reaper task. Running editors are left alone."""
        if self._reaper:
            self._reaper.cancel()
            try:
                await self._reaper
            except asyncio.CancelledError:
                pass
            self._reaper = None
        logger.info(f"Editor registry stopped ({len(self._editors)} editors still running)")

    def _notify_exit(self, editor_id: EditorID, pid: int) -> None:
        """Termination callback; safe to call from any thread."""
        self._loop.call_soon_threadsafe(self._exits.put_nowait, (editor_id, pid))

    async def _reap_exits(self) -> None:
        while True:
            editor_id, pid = await self._exits.get()
            await self._remove(editor_id, pid)

    async def _remove(self, editor_id: EditorID, pid: int) -> None:
        async with self._lock:
            editor = self._editors.get(editor_id)
            if editor is None or editor.pid != pid:
                logger.debug(f"Exited process {pid} at {editor_id} is not registered")
                return
            del self._editors[editor_id]
            logger.info(f"Removing editor {editor_id} (PID {pid}) from the hub")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._editors)

    def __contains__(self, editor_id: EditorID) -> bool:
        return editor_id in self._editors

    def get(self, editor_id: EditorID) -> Optional[Editor]:
        return self._editors.get(editor_id)

    def get_editors(self) -> List[Editor]:
        """Unordered snapshot of registered editors."""
        return list(self._editors.values())

    def find_by_pid(self, pid: int) -> Optional[Editor]:
        return next((e for e in self._editors.values() if e.pid == pid), None)

    def editors_for_menu(self) -> List[Editor]:
        """Editors by display name, descending."""
        return sorted(self.get_editors(), key=lambda e: e.name, reverse=True)

    def editors_for_switcher(self) -> List[Editor]:
        """Editors by last access time, most recent first.

        If the most recent editor is the one the switcher will give focus back
        to, the first two entries are swapped so a single confirm toggles
        between the two latest editors.
        """
        editors = sorted(self.get_editors(), key=lambda e: e.last_access_time, reverse=True)

        previous_pid = self.tracker.editor_target_pid
        if len(editors) > 1 and previous_pid is not None and editors[0].pid == previous_pid:
            editors[0], editors[1] = editors[1], editors[0]

        return editors

    def last_active_editor(self) -> List[Editor]:
        """The most recently accessed editor, as a list of at most one."""
        editors = sorted(self.get_editors(), key=lambda e: e.last_access_time, reverse=True)
        return editors[:1]

    def filter_editors(self, query: str) -> List[Editor]:
        """Switcher view narrowed by a search query.

        Matches the display name (case-sensitive) or the display path
        (case-insensitive). An empty query matches everything.
        """
        editors = self.editors_for_switcher()
        if not query:
            return editors
        lowered = query.lower()
        return [e for e in editors if query in e.name or lowered in e.display_path.lower()]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def build_arguments(self, request: RunRequest) -> List[str]:
        """Editor argv (without argv[0]): options, the no-fork flag once, then the path."""
        args: List[str] = []
        for opt in request.opts:
            if opt == self.no_fork_flag and opt in args:
                continue
            args.append(opt)

        if self.no_fork_flag not in args:
            args.append(self.no_fork_flag)

        if request.path:
            args.append(request.path)

        return args

    async def run_editor(self, request: RunRequest) -> None:
        """Activate the editor for the request, launching it if needed."""
        logger.info("Running an editor...")

        editor_id = EditorID.from_request(request)
        logger.info(f"Editor ID: {editor_id}")

        async with self._lock:
            editor = self._editors.get(editor_id)
            if editor is None:
                logger.info(f"No editors at {editor_id} found. Launching a new one.")
                await self._launch(editor_id, request)
                return

        logger.info(f"Editor at {editor_id} is already in the hub. Activating it.")
        await self.activate_editor(editor)

    async def _launch(self, editor_id: EditorID, request: RunRequest) -> None:
        # Spawning steals focus, so snapshot the foreground app first
        current_app = await self._frontmost()
        args = self.build_arguments(request)
        meta = {
            "editor_id": editor_id.path,
            "working_directory": str(request.wd),
            "binary": str(request.bin),
            "path_argument": request.path or "-",
            "options": list(request.opts),
        }

        logger.info(f"Running editor at {request.wd}")
        try:
            process = await self._spawn(request.bin, args, request.wd, dict(request.env))
        except (OSError, ValueError) as e:
            self.reporter.report(ProcessLaunchFailure("Failed to run editor process", context=meta, error=e))
            return

        process.on_exit(lambda p: self._notify_exit(editor_id, p.pid))

        if not process.is_running():
            meta["pid"] = process.pid
            meta["termination_status"] = process.returncode
            self.reporter.report(ProcessLaunchFailure("Editor process is not running", context=meta))
            return

        editor = Editor(editor_id, request.name, process, request)
        self._editors[editor_id] = editor
        logger.info(f"Editor is launched at {editor_id} with PID {editor.pid}")

        await self.tracker.set_activation_target(current_app, self.get_editors())

    async def activate_editor(self, editor: Editor) -> bool:
        """Bring an editor to the foreground and record the access.

        Returns:
            True if the window system accepted the focus change
        """
        try:
            activated = await self.window_system.activate(ForegroundApp(pid=editor.pid))
        except Exception as e:
            self.reporter.report(
                ActivationFailure("Failed to activate editor instance", context=editor.to_dict(), error=e)
            )
            return False

        if not activated:
            self.reporter.report(ActivationFailure("Failed to activate editor instance", context=editor.to_dict()))
            return False

        editor.touch()
        return True

    async def restart_active_editor(self) -> None:
        """Relaunch the focused editor with its original request.

        Does nothing if the foreground application is not a managed editor.
        """
        current_app = await self._frontmost()
        if current_app is None:
            logger.info("No foreground application, nothing to restart")
            return

        editor = self.find_by_pid(current_app.pid)
        if editor is None:
            logger.info(f"Foreground application (PID {current_app.pid}) is not a managed editor")
            return

        logger.info(f"Restarting editor {editor.id} (PID {editor.pid})")
        editor.quit()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.restart_timeout

        while self._editors.get(editor.id) is editor:
            if loop.time() >= deadline:
                self.reporter.report(
                    RestartTimeout(editor.id.path, editor.pid, self.restart_timeout),
                    critical=True,
                )
                return
            await asyncio.sleep(self.restart_poll_interval)

        await self.run_editor(editor.request)

    async def quit_editor(self, editor_id: EditorID) -> bool:
        """Request termination of one editor. Removal follows its exit."""
        editor = self._editors.get(editor_id)
        if editor is None:
            return False
        editor.quit()
        return True

    async def quit_all_editors(self) -> None:
        """Request termination of every editor without waiting for exits."""
        editors = self.get_editors()
        logger.info(f"Quitting {len(editors)} editors")

        async def quit_one(editor: Editor) -> None:
            editor.quit()

        await asyncio.gather(*(quit_one(editor) for editor in editors))

    async def toggle_last_active_editor(self) -> None:
        """Show the most recent editor, or hide it if it already has focus."""
        editors = self.last_active_editor()
        if not editors:
            logger.debug("No editors to toggle")
            return

        editor = editors[0]
        current_app = await self._frontmost()

        if current_app is None or current_app.pid == editor.pid:
            await self.window_system.hide(ForegroundApp(pid=editor.pid))
            return

        await self.tracker.set_activation_target(current_app, self.get_editors())
        await self.activate_editor(editor)

    async def _frontmost(self) -> Optional[ForegroundApp]:
        try:
            return await self.window_system.frontmost_application()
        except Exception as e:
            logger.warning(f"Failed to query the foreground application: {e}")
            return None
