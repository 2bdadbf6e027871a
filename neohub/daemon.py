"""Hub daemon entry point with systemd integration.

Wires the window system, activation tracker, editor registry and socket
server together and runs until SIGTERM/SIGINT. Menu-style actions are bound
to signals so they can be driven from Sway keybindings:

    SIGUSR1  restart the focused editor
    SIGUSR2  toggle the most recently used editor
    SIGHUP   quit all editors
"""

import asyncio
import contextlib
import logging
import os
import signal
import sys
from typing import Optional, Set

try:
    from systemd import journal, daemon as sd_daemon
    SYSTEMD_AVAILABLE = True
except ImportError:
    SYSTEMD_AVAILABLE = False

from . import __version__
from .config import HubConfig, load_config
from .ipc_server import SocketServer
from .logging_config import env_log_level
from .services.activation_tracker import ActivationTracker
from .services.editor_registry import EditorRegistry
from .services.reporter import Reporter
from .services.window_system import SwayWindowSystem

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _suppress_stderr_fd():
    """Suppress stderr at the file descriptor level.

    systemd-python writes directly to file descriptor 2, bypassing sys.stderr.
    """
    stderr_fd = sys.stderr.fileno()
    saved_stderr_fd = os.dup(stderr_fd)

    devnull_fd = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull_fd, stderr_fd)
    os.close(devnull_fd)

    try:
        yield
    finally:
        os.dup2(saved_stderr_fd, stderr_fd)
        os.close(saved_stderr_fd)


def _sd_notify(state: str) -> None:
    if SYSTEMD_AVAILABLE:
        with _suppress_stderr_fd():
            sd_daemon.notify(state)
        logger.info(f"Sent {state} to systemd")
    else:
        logger.debug(f"Systemd not available, skipping {state} notification")


class NeoHubDaemon:
    """Main hub daemon."""

    def __init__(self, config: Optional[HubConfig] = None) -> None:
        self.config = config
        self.reporter: Optional[Reporter] = None
        self.window_system: Optional[SwayWindowSystem] = None
        self.tracker: Optional[ActivationTracker] = None
        self.registry: Optional[EditorRegistry] = None
        self.server: Optional[SocketServer] = None
        self.shutdown_event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._actions: Set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Initialize all components and start listening."""
        logger.info("Initializing NeoHub daemon...")
        self._loop = asyncio.get_running_loop()

        if self.config is None:
            self.config = load_config()

        self.reporter = Reporter(notifications=self.config.notifications)

        self.window_system = SwayWindowSystem()
        await self.window_system.connect()

        self.tracker = ActivationTracker(
            self.window_system,
            self.reporter,
            switcher_app_id=self.config.switcher_app_id,
        )
        self.registry = EditorRegistry(
            self.window_system,
            self.tracker,
            self.reporter,
            restart_timeout=self.config.restart_timeout,
            restart_poll_interval=self.config.restart_poll_interval,
            no_fork_flag=self.config.no_fork_flag,
        )
        await self.registry.start()

        self.server = await SocketServer.from_systemd_socket(
            self.registry,
            self.reporter,
            self.config.socket_path,
        )

        _sd_notify("READY=1")
        logger.info("NeoHub daemon initialized")

    async def run(self) -> None:
        """Wait until a shutdown signal arrives."""
        await self.shutdown_event.wait()

    async def shutdown(self) -> None:
        """Graceful shutdown with timeouts. Editors keep running."""
        logger.info("Shutting down daemon...")
        _sd_notify("STOPPING=1")

        if self.server:
            try:
                await asyncio.wait_for(self.server.stop(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Socket server shutdown timed out after 5s (continuing)")

        if self.registry:
            try:
                await asyncio.wait_for(self.registry.stop(), timeout=2.0)
            except asyncio.TimeoutError:
                logger.warning("Editor registry shutdown timed out after 2s (continuing)")

        if self.reporter:
            await self.reporter.close()

        logger.info("Daemon shutdown complete")

    def run_action(self, action: str) -> None:
        """Schedule a registry action (e.g. ``quit_all_editors``) on the hub loop."""
        if self.registry is None:
            logger.warning(f"Ignoring {action}: daemon is not initialized")
            return
        task = asyncio.create_task(getattr(self.registry, action)(), name=action)
        self._actions.add(task)
        task.add_done_callback(self._actions.discard)

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for shutdown and editor actions."""
        loop = self._loop or asyncio.get_event_loop()

        def shutdown_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            loop.call_soon_threadsafe(self.shutdown_event.set)

        def action_handler(action: str):
            def handler(signum, frame):
                logger.info(f"Received signal {signum}, running {action}")
                loop.call_soon_threadsafe(self.run_action, action)
            return handler

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        signal.signal(signal.SIGUSR1, action_handler("restart_active_editor"))
        signal.signal(signal.SIGUSR2, action_handler("toggle_last_active_editor"))
        signal.signal(signal.SIGHUP, action_handler("quit_all_editors"))


def setup_logging() -> None:
    """Setup logging to systemd journal or stderr."""
    log_level = env_log_level()
    if log_level is None:
        log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if SYSTEMD_AVAILABLE:
        with _suppress_stderr_fd():
            handler = journal.JournalHandler(SYSLOG_IDENTIFIER="neohub")
    else:
        handler = logging.StreamHandler(sys.stderr)

    formatter = logging.Formatter("%(levelname)s [%(name)s] %(message)s")
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger.info(f"Logging configured: level={logging.getLevelName(log_level)}")


async def main_async() -> int:
    """Async main function.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    daemon = NeoHubDaemon()

    try:
        await daemon.initialize()
        daemon.setup_signal_handlers()
        await daemon.run()
        await daemon.shutdown()
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        await daemon.shutdown()
        return 1


def main() -> None:
    """Main entry point."""
    setup_logging()

    logger.info(f"NeoHub {__version__} starting...")
    logger.info(f"PID: {os.getpid()}")

    try:
        exit_code = asyncio.run(main_async())
        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
