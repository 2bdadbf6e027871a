"""Failure reporting.

Every server-side failure is reported once: logged with its structured
context and, when enabled, shown as a desktop notification via notify-send.
Notifications run as background tasks so a slow notification daemon never
holds up the hub loop.
"""

import asyncio
import logging
from typing import Set

from ..constants import APP_NAME
from ..errors import HubError

logger = logging.getLogger(__name__)


class Reporter:
    """Send failure reports to the log and the user's notification daemon.

    Example:
        >>> reporter = Reporter(notifications=True)
        >>> reporter.report(ProcessLaunchFailure("Editor process is not running"))
    """

    def __init__(self, notifications: bool = True, app_name: str = APP_NAME, timeout: float = 10.0):
        """Initialize reporter.

        Args:
            notifications: Whether to send desktop notifications
            app_name: Application name shown in notifications
            timeout: Seconds to wait for notify-send before killing it
        """
        self.notifications = notifications
        self.app_name = app_name
        self.timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    def report(self, error: HubError, critical: bool = False) -> None:
        """Report a failure.

        Args:
            error: The failure to report
            critical: Whether the hub can no longer serve requests
        """
        report = error.to_report()
        log = logger.critical if critical else logger.error
        log(f"{error} [{error.code.name}] at {error.location}: {report}")

        if self.notifications:
            self._schedule(
                self.send_notification(
                    summary=f"{self.app_name}: {error.message}",
                    body=error.suggestion or "",
                    urgency="critical" if critical else "normal",
                )
            )

    def _schedule(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the hub loop (e.g. startup before the loop runs)
            asyncio.run(coro)
            return
        task = loop.create_task(coro, name="notify-send")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Cancel notifications that are still running."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def send_notification(self, summary: str, body: str = "", urgency: str = "normal") -> bool:
        """Send a desktop notification.

        Args:
            summary: Notification title
            body: Notification body text
            urgency: Notification urgency (low, normal, critical)

        Returns:
            True if notification was sent successfully
        """
        cmd = [
            "notify-send",
            "--app-name",
            self.app_name,
            "--urgency",
            urgency,
            summary,
        ]

        if body:
            cmd.append(body)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.error("notify-send not found")
            return False

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("notify-send timed out")
            _kill(proc)
            await proc.wait()
            return False
        except asyncio.CancelledError:
            _kill(proc)
            await proc.wait()
            raise

        if proc.returncode != 0:
            logger.error(f"notify-send failed: {stderr.decode(errors='replace')}")
            return False

        logger.debug(f"Notification sent: {summary}")
        return True


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
