"""Socket client used by the neohub CLI to hand a run request to the hub.

One connection per request: connect, write a single frame, wait for the
literal acknowledgement, close.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .constants import ConfigPaths, RESPONSE_ERROR
from .errors import ConnectionUnavailable, RequestRejected, TransportFailure
from .models import RunRequest
from .protocol import encode_frame

logger = logging.getLogger(__name__)

RESPONSE_READ_SIZE = 1024


class SocketClient:
    """Client for the hub's UNIX socket."""

    def __init__(self, socket_path: Optional[Path] = None, timeout: float = 5.0):
        """Initialize socket client.

        Args:
            socket_path: Path to the hub socket (default: /tmp/neohub.sock)
            timeout: Seconds to wait for connect, write and acknowledgement
        """
        self.socket_path = Path(socket_path or ConfigPaths.IPC_SOCKET_PATH)
        self.timeout = timeout

    def send(self, request: RunRequest) -> str:
        """Send a request and block until the hub acknowledges it.

        Returns:
            The acknowledgement text (``OK``)

        Raises:
            ConnectionUnavailable: If the socket file does not exist
            TransportFailure: If connecting, writing or reading fails or times out
            RequestRejected: If the hub could not decode the request
        """
        return asyncio.run(self.send_async(request))

    async def send_async(self, request: RunRequest) -> str:
        """Async variant of send()."""
        # No socket file means no hub; don't even try to connect
        if not self.socket_path.exists():
            raise ConnectionUnavailable(str(self.socket_path))

        frame = encode_frame(request)

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_unix_connection(str(self.socket_path)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise TransportFailure(f"connection timeout at {self.socket_path}")
        except OSError as e:
            raise TransportFailure("failed to connect to the socket", error=e)

        try:
            logger.debug(f"Sending {len(frame)} bytes to {self.socket_path}")
            writer.write(frame)
            await asyncio.wait_for(writer.drain(), timeout=self.timeout)

            data = await asyncio.wait_for(reader.read(RESPONSE_READ_SIZE), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise TransportFailure("no response from the hub")
        except OSError as e:
            raise TransportFailure("failed to exchange data with the hub", error=e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        if not data:
            raise TransportFailure("connection closed before response")

        response = data.decode("utf-8", errors="replace")
        logger.debug(f"Hub responded with {response!r}")

        if data == RESPONSE_ERROR:
            raise RequestRejected(response)

        return response
