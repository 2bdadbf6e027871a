"""
Pytest configuration and fixtures for NeoHub tests.

Provides fake collaborators (window system, reporter, editor processes) so the
registry and tracker can be driven without Sway or real editors.
"""

import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Make the package importable without installing it
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from neohub.models import RunRequest
from neohub.services.activation_tracker import ActivationTracker
from neohub.services.editor_registry import EditorRegistry
from neohub.services.reporter import Reporter

HUB_PID = 4242


class FakeProcess:
    """Stand-in for EditorProcess with a controllable lifecycle."""

    def __init__(self, pid: int, alive: bool = True, exits_on_terminate: bool = True):
        self.pid = pid
        self.returncode: Optional[int] = None if alive else 1
        self.exits_on_terminate = exits_on_terminate
        self.terminate_calls = 0
        self._exit_callback: Optional[Callable] = None

    def is_running(self) -> bool:
        return self.returncode is None

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self.exits_on_terminate:
            self.exit(-15)

    def on_exit(self, callback: Callable) -> None:
        self._exit_callback = callback

    def exit(self, returncode: int = 0) -> None:
        """Simulate process termination, firing the exit callback."""
        if self.returncode is None:
            self.returncode = returncode
        if self._exit_callback is not None:
            self._exit_callback(self)


class FakeSpawner:
    """Records spawn calls and hands out FakeProcess instances."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.processes: List[FakeProcess] = []
        self.next_pid = 1000
        self.alive = True
        self.exits_on_terminate = True
        self.error: Optional[Exception] = None

    async def __call__(self, binary, args, cwd, env) -> FakeProcess:
        self.calls.append((binary, list(args), cwd, env))
        if self.error is not None:
            raise self.error
        self.next_pid += 1
        process = FakeProcess(self.next_pid, alive=self.alive, exits_on_terminate=self.exits_on_terminate)
        self.processes.append(process)
        return process


async def settle(iterations: int = 20) -> None:
    """Let scheduled callbacks and the reaper task run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def settle_loop() -> Callable:
    """Coroutine function that lets pending callbacks and the reaper run."""
    return settle


@pytest.fixture
def window_system() -> AsyncMock:
    """Mock window system: nothing focused, every focus change succeeds."""
    ws = AsyncMock()
    ws.frontmost_application = AsyncMock(return_value=None)
    ws.activate = AsyncMock(return_value=True)
    ws.hide = AsyncMock(return_value=True)
    ws.visible_hub_window = AsyncMock(return_value=None)
    return ws


@pytest.fixture
def reporter() -> MagicMock:
    """Mock reporter recording every report() call."""
    return MagicMock(spec=Reporter)


@pytest.fixture
def tracker(window_system, reporter) -> ActivationTracker:
    return ActivationTracker(window_system, reporter, hub_pid=HUB_PID)


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def registry(window_system, tracker, reporter, spawner) -> EditorRegistry:
    """EditorRegistry wired to fakes. Tests must start() it on their loop."""
    return EditorRegistry(
        window_system,
        tracker,
        reporter,
        restart_timeout=0.2,
        restart_poll_interval=0.01,
        spawn=spawner,
    )


@pytest.fixture
def make_request() -> Callable[..., RunRequest]:
    """Factory for run requests rooted at /home/tester/projects."""

    def factory(path: Optional[str] = None, wd: str = "/home/tester/projects", **kwargs) -> RunRequest:
        return RunRequest(
            wd=Path(wd),
            bin=Path("/usr/bin/neovide"),
            path=path,
            opts=kwargs.pop("opts", []),
            env=kwargs.pop("env", {"HOME": "/home/tester"}),
            **kwargs,
        )

    return factory


@pytest.fixture
def socket_path() -> Generator[Path, None, None]:
    """Short socket path in a private temp dir (AF_UNIX paths are length-limited)."""
    tmpdir = tempfile.mkdtemp(prefix="neohub-", dir="/tmp")
    try:
        yield Path(tmpdir) / "hub.sock"
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)
