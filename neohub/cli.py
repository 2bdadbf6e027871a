"""neohub command-line client.

Asks the running hub to open an editor for a path:

    neohub                      # editor for the current directory
    neohub src/main.rs          # editor for a file, relative to cwd
    neohub . --name api         # custom display name
    neohub --opts --frame none  # pass options through to the editor
"""

import argparse
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .client import SocketClient
from .config import HubConfig, load_config
from .errors import BinaryNotFound, HubError
from .logging_config import setup_logging
from .models import RunRequest

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def print_error_with_remediation(error: HubError) -> None:
    """Print error with remediation steps.

    Format: "Error: <issue>" followed by "Remediation: <steps>" when known.
    """
    console.print(f"[red]✗ Error:[/red] {escape(str(error))}")
    if error.suggestion:
        console.print(f"[blue]  Remediation:[/blue] {escape(error.suggestion)}")


def resolve_binary(
    config: HubConfig,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Path:
    """Locate the editor executable.

    Raises:
        BinaryNotFound: If it is neither an executable path nor found in PATH
    """
    binary = config.editor_binary

    if os.path.isabs(binary):
        if os.path.isfile(binary) and os.access(binary, os.X_OK):
            return Path(binary)
        raise BinaryNotFound(binary)

    found = which(binary)
    if not found:
        raise BinaryNotFound(binary)

    return Path(found).absolute()


def build_request(
    args: argparse.Namespace,
    binary: Path,
    cwd: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunRequest:
    """Build a RunRequest from parsed arguments and the caller's context."""
    return RunRequest(
        wd=cwd or Path.cwd(),
        bin=binary,
        name=args.name,
        path=args.path,
        opts=list(args.opts or []),
        env=dict(os.environ if environ is None else environ),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="neohub",
        description="Open a path in an editor managed by the NeoHub daemon",
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="File or directory to open (default: current directory)",
    )
    parser.add_argument(
        "--name",
        help="Display name for the editor (default: last path component)",
    )
    parser.add_argument(
        "--opts",
        nargs=argparse.REMAINDER,
        default=[],
        help="Options passed to the editor; must come last",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 = request accepted by the hub)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug)

    try:
        config = load_config()
        binary = resolve_binary(config)
        request = build_request(args, binary)

        logger.info(f"Sending request: wd={request.wd} path={request.path} bin={request.bin}")
        if args.debug:
            logger.debug(f"Environment: {request.env}")

        client = SocketClient(config.socket_path, timeout=config.client_timeout)
        response = client.send(request)
        logger.info(f"Hub responded: {response}")
        return 0

    except HubError as e:
        logger.debug(f"Request failed: {e.to_dict()}")
        print_error_with_remediation(e)
        return 1

    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
