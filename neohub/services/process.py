"""Editor process handle.

Thin wrapper around an asyncio subprocess exposing what the registry needs:
a post-spawn running check, the PID, terminate(), and a termination callback
that fires exactly once when the process exits.
"""

import asyncio
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)


class EditorProcess:
    """A spawned editor process."""

    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process
        self._exit_callback: Optional[Callable[["EditorProcess"], None]] = None
        self._watcher: Optional[asyncio.Task] = None

    @classmethod
    async def spawn(
        cls,
        binary: Path,
        args: List[str],
        cwd: Path,
        env: Dict[str, str],
    ) -> "EditorProcess":
        """Spawn the editor.

        Args:
            binary: Absolute path to the executable
            args: Argument list (without argv[0])
            cwd: Working directory for the process
            env: Complete environment for the process

        Raises:
            OSError: If the executable cannot be started
            ValueError: If an argument or environment entry cannot be passed
                to exec (NUL bytes, "=" in a variable name)
        """
        process = await asyncio.create_subprocess_exec(
            str(binary),
            *args,
            cwd=str(cwd),
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            # Editors must survive a hub restart
            start_new_session=True,
        )
        return cls(process)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    def is_running(self) -> bool:
        """Check if the process is alive (exited-but-unreaped counts as dead)."""
        if self._process.returncode is not None:
            return False
        try:
            return psutil.Process(self.pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

    def terminate(self) -> None:
        """Send SIGTERM to the editor."""
        logger.info(f"Terminating editor process {self.pid}")
        try:
            self._process.terminate()
        except ProcessLookupError:
            logger.debug(f"Process {self.pid} already exited")

    def on_exit(self, callback: Callable[["EditorProcess"], None]) -> None:
        """Register the termination callback.

        The callback is invoked exactly once, after the process has exited.
        Only one callback can be registered.
        """
        if self._exit_callback is not None:
            raise RuntimeError(f"Exit callback already registered for process {self.pid}")
        self._exit_callback = callback
        self._watcher = asyncio.create_task(self._wait_for_exit())

    async def _wait_for_exit(self) -> None:
        returncode = await self._process.wait()
        logger.debug(f"Process {self.pid} exited with code {returncode}")
        self._exit_callback(self)
