"""
Error handling for NeoHub.

Every failure the hub or the CLI can run into is a HubError subclass carrying
a structured ErrorCode, a human-readable message, a recovery suggestion and a
context dictionary. Server-side failures are turned into reports for the
Reporter via to_report(); client-side failures are printed by the CLI.
"""

import inspect
import os
import platform
from enum import Enum
from typing import Any, Dict, Optional

from . import __version__


class ErrorCode(Enum):
    """
    Error codes for NeoHub.

    Codes:
    - 1000-1099: Client/transport errors
    - 1100-1199: Protocol errors
    - 1200-1299: Process errors
    - 1300-1399: Activation errors
    - 1400-1499: Configuration errors
    """

    # Client/transport errors (1000-1099)
    CONNECTION_UNAVAILABLE = 1000
    TRANSPORT_FAILURE = 1001
    REQUEST_REJECTED = 1002
    BINARY_NOT_FOUND = 1003

    # Protocol errors (1100-1199)
    PROTOCOL_DECODE_FAILURE = 1100

    # Process errors (1200-1299)
    PROCESS_LAUNCH_FAILURE = 1200
    RESTART_TIMEOUT = 1201
    SERVER_START_FAILURE = 1202

    # Activation errors (1300-1399)
    ACTIVATION_FAILURE = 1300

    # Configuration errors (1400-1499)
    CONFIG_LOAD_FAILED = 1400


def _caller_context() -> str:
    """Return ``module#function`` of the first frame outside this module."""
    frame = inspect.currentframe()
    try:
        while frame is not None and frame.f_code.co_filename == __file__:
            frame = frame.f_back
        if frame is None:
            return "unknown"
        module = os.path.splitext(os.path.basename(frame.f_code.co_filename))[0]
        return f"{module}#{frame.f_code.co_name}"
    finally:
        del frame


class HubError(Exception):
    """Base exception for NeoHub errors."""

    code: ErrorCode = ErrorCode.TRANSPORT_FAILURE

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        code: Optional[ErrorCode] = None,
    ):
        """
        Initialize hub error.

        Args:
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional metadata for debugging
            error: Original exception, if this error wraps one
            code: Overrides the class default error code
        """
        if code is not None:
            self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        self.original_error = error
        self.location = _caller_context()
        super().__init__(message)

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"{self.message}: {self.original_error}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message,
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result

    def to_report(self) -> Dict[str, Any]:
        """Build the structured failure report handed to the Reporter."""
        report = self.to_dict()
        report["location"] = self.location
        report["app_version"] = __version__
        report["os"] = f"{platform.system()} {platform.release()}"
        report["arch"] = platform.machine() or "?"
        if self.original_error is not None:
            report["original_error"] = repr(self.original_error)
        return report


class ConnectionUnavailable(HubError):
    """The hub socket does not exist, so the hub is not running."""

    code = ErrorCode.CONNECTION_UNAVAILABLE

    def __init__(self, socket_path: str):
        super().__init__(
            message="NeoHub app is not running",
            suggestion="Start the hub (neohub-hub or systemctl --user start neohub) and retry",
            context={"socket_path": socket_path},
        )


class TransportFailure(HubError):
    """Connecting to, writing to or reading from the hub socket failed."""

    code = ErrorCode.TRANSPORT_FAILURE

    def __init__(self, reason: str, error: Optional[BaseException] = None):
        super().__init__(
            message=f"Failed to communicate with NeoHub: {reason}",
            suggestion="Check that the hub is running and its socket is accessible",
            error=error,
        )


class RequestRejected(HubError):
    """The hub answered, but could not decode the request."""

    code = ErrorCode.REQUEST_REJECTED

    def __init__(self, response: str):
        super().__init__(
            message="NeoHub rejected the request",
            suggestion="Make sure the CLI and the hub versions match",
            context={"response": response},
        )


class BinaryNotFound(HubError):
    """The editor binary could not be located by the CLI."""

    code = ErrorCode.BINARY_NOT_FOUND

    def __init__(self, binary: str):
        super().__init__(
            message=f"Failed to get a path to {binary} binary",
            suggestion=f"Make sure {binary} is available in your PATH",
            context={"binary": binary},
        )


class ProtocolDecodeFailure(HubError):
    """A framed request body is not a valid RunRequest."""

    code = ErrorCode.PROTOCOL_DECODE_FAILURE


class ProcessLaunchFailure(HubError):
    """Spawning the editor failed or it was not running right after spawn."""

    code = ErrorCode.PROCESS_LAUNCH_FAILURE


class ServerStartFailure(HubError):
    """The hub could not bind its listening socket."""

    code = ErrorCode.SERVER_START_FAILURE

    def __init__(self, socket_path: str, error: Optional[BaseException] = None):
        super().__init__(
            message="Failed to start the socket server",
            suggestion="Check that no other hub is running and the socket path is writable",
            context={"socket_path": socket_path},
            error=error,
        )


class ActivationFailure(HubError):
    """The target window/process could not be brought to the foreground."""

    code = ErrorCode.ACTIVATION_FAILURE


class RestartTimeout(HubError):
    """The editor being restarted did not exit within the restart bound."""

    code = ErrorCode.RESTART_TIMEOUT

    def __init__(self, editor_id: str, pid: int, timeout: float):
        super().__init__(
            message="Failed to restart the editor: the old process did not exit in time",
            suggestion="Quit the editor manually and launch it again",
            context={"editor_id": editor_id, "pid": pid, "timeout_seconds": timeout},
        )


class ConfigLoadError(HubError):
    """Configuration loading error."""

    code = ErrorCode.CONFIG_LOAD_FAILED

    def __init__(self, file_path: str, reason: str):
        """
        Initialize configuration load error.

        Args:
            file_path: Path to configuration file
            reason: Reason for load failure
        """
        super().__init__(
            message=f"Failed to load configuration from {file_path}: {reason}",
            suggestion="Check file syntax and permissions",
            context={"file_path": file_path, "reason": reason},
        )
