"""Socket server accepting run requests from the neohub CLI.

Listens on a well-known UNIX socket (or a socket inherited through systemd
socket activation). Each connection gets its own MessageAssembler; every
completed frame is decoded, handed to the EditorRegistry without waiting for
the outcome, and acknowledged with ``OK`` (``ERR`` if it could not be decoded).
"""

import asyncio
import logging
import os
import socket
from pathlib import Path
from typing import Optional, Set

from .constants import RESPONSE_ERROR, RESPONSE_OK
from .errors import HubError, ProtocolDecodeFailure, ServerStartFailure
from .protocol import MessageAssembler, decode_request
from .services.editor_registry import EditorRegistry
from .services.reporter import Reporter

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class SocketServer:
    """UNIX socket server for CLI run requests."""

    def __init__(self, registry: EditorRegistry, reporter: Reporter, socket_path: Path) -> None:
        """Initialize socket server.

        Args:
            registry: EditorRegistry that handles decoded requests
            reporter: Failure reporter
            socket_path: Filesystem path of the listening socket
        """
        self.registry = registry
        self.reporter = reporter
        self.socket_path = Path(socket_path)
        self.server: Optional[asyncio.Server] = None
        self.clients: Set[asyncio.StreamWriter] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._owns_socket_file = False

    @classmethod
    async def from_systemd_socket(
        cls,
        registry: EditorRegistry,
        reporter: Reporter,
        socket_path: Path,
    ) -> "SocketServer":
        """Create and start a server, using a systemd-passed socket if there is one."""
        server = cls(registry, reporter, socket_path)

        listen_fds = int(os.environ.get("LISTEN_FDS", 0))
        if listen_fds > 0:
            # Socket FD starts at 3 (0=stdin, 1=stdout, 2=stderr)
            fd = 3
            logger.info(f"Using systemd socket activation (FD {fd})")
            await server.start(socket.socket(fileno=fd))
        else:
            await server.start(None)

        return server

    async def start(self, sock: Optional[socket.socket] = None) -> None:
        """Start listening.

        Args:
            sock: Existing socket to use (from systemd), or None to bind socket_path

        Raises:
            ServerStartFailure: If the socket cannot be bound
        """
        try:
            if sock:
                self.server = await asyncio.start_unix_server(self._handle_client, sock=sock)
                logger.info("Socket server listening on inherited socket")
                return

            self.socket_path.parent.mkdir(parents=True, exist_ok=True)

            # Remove stale socket left by a previous hub
            if self.socket_path.exists() or self.socket_path.is_symlink():
                logger.info(f"Removing stale socket {self.socket_path}")
                self.socket_path.unlink()

            self.server = await asyncio.start_unix_server(self._handle_client, path=str(self.socket_path))
            self._owns_socket_file = True

            # Socket is user-only accessible
            self.socket_path.chmod(0o600)
        except OSError as e:
            error = ServerStartFailure(str(self.socket_path), error=e)
            self.reporter.report(error, critical=True)
            raise error from e

        logger.info(f"Socket server listening on {self.socket_path} (permissions: 0600)")

    async def stop(self) -> None:
        """Stop listening, close clients and remove the socket file."""
        if self.server:
            self.server.close()

        for writer in list(self.clients):
            writer.close()

        if self.server:
            await self.server.wait_closed()
            self.server = None

        if self._owns_socket_file:
            try:
                self.socket_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to remove socket {self.socket_path}: {e}")
            self._owns_socket_file = False

        logger.info("Socket server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Handle one CLI connection."""
        self.clients.add(writer)
        assembler = MessageAssembler()
        logger.debug("Client connected")

        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break

                logger.debug(f"Received {len(chunk)} bytes")
                try:
                    payloads = assembler.feed(chunk)
                except ProtocolDecodeFailure as e:
                    self.reporter.report(e)
                    writer.write(RESPONSE_ERROR)
                    await writer.drain()
                    break

                for payload in payloads:
                    writer.write(self._dispatch(payload))
                    await writer.drain()

        except ConnectionError as e:
            logger.debug(f"Client connection lost: {e}")

        finally:
            self.clients.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
            logger.debug("Client disconnected")

    def _dispatch(self, payload: bytes) -> bytes:
        """Decode one frame and schedule it. Returns the acknowledgement."""
        try:
            request = decode_request(payload)
        except ProtocolDecodeFailure as e:
            self.reporter.report(e)
            return RESPONSE_ERROR

        logger.debug(f"Decoded request: wd={request.wd} path={request.path}")
        task = asyncio.create_task(self.registry.run_editor(request))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return RESPONSE_OK

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, HubError):
            self.reporter.report(error)
        else:
            logger.error(f"Unhandled error while running editor: {error}", exc_info=error)
