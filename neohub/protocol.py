"""Wire protocol between the neohub CLI and the hub daemon.

A frame is a 4-byte big-endian unsigned length followed by that many bytes of
UTF-8 JSON encoding a RunRequest. The hub answers every complete frame with an
unframed literal: ``OK``, or ``ERR`` when the body could not be decoded.

Frames may arrive split across any number of reads, so each connection owns a
MessageAssembler that tracks a small state machine:

    Ready(header)            nothing buffered (or a partial 4-byte header)
    Reading(length, buffer)  declared length known, len(buffer) < length
"""

import json
import logging
import struct
from dataclasses import dataclass
from typing import List, Union

from pydantic import ValidationError

from .constants import FRAME_HEADER_SIZE
from .errors import ProtocolDecodeFailure
from .models import RunRequest

logger = logging.getLogger(__name__)

# Requests carry the caller's environment, which is a few KB in practice
MAX_MESSAGE_SIZE = 16 * 1024 * 1024

_HEADER = struct.Struct(">I")


@dataclass(frozen=True)
class Ready:
    """No message in flight. ``header`` holds header bytes split across reads."""

    header: bytes = b""


@dataclass(frozen=True)
class Reading:
    """Declared length known; accumulating the body."""

    length: int
    buffer: bytes


MessageHandlerState = Union[Ready, Reading]


class MessageAssembler:
    """Per-connection frame reassembly."""

    def __init__(self) -> None:
        self.state: MessageHandlerState = Ready()

    def feed(self, chunk: bytes) -> List[bytes]:
        """Consume one inbound chunk.

        Args:
            chunk: Bytes as read from the connection

        Returns:
            Payloads of every frame completed by this chunk (usually zero or one)

        Raises:
            ProtocolDecodeFailure: If a frame declares a length above MAX_MESSAGE_SIZE
        """
        completed: List[bytes] = []
        data = chunk

        while data:
            state = self.state

            if isinstance(state, Ready):
                header = state.header + data
                if len(header) < FRAME_HEADER_SIZE:
                    self.state = Ready(header)
                    break

                (length,) = _HEADER.unpack(header[:FRAME_HEADER_SIZE])
                data = header[FRAME_HEADER_SIZE:]
                logger.debug(f"Message size is {length} bytes")

                if length > MAX_MESSAGE_SIZE:
                    self.state = Ready()
                    raise ProtocolDecodeFailure(
                        "Declared message length exceeds the maximum",
                        context={"length": length, "max": MAX_MESSAGE_SIZE},
                    )

                if length == 0:
                    completed.append(b"")
                    continue

                self.state = Reading(length, b"")
                continue

            needed = state.length - len(state.buffer)
            buffer = state.buffer + data[:needed]
            data = data[needed:]

            if len(buffer) >= state.length:
                logger.debug("Message fully received")
                self.state = Ready()
                completed.append(buffer)
            else:
                logger.debug("There will be more packets. Waiting.")
                self.state = Reading(state.length, buffer)

        return completed


def encode_frame(request: RunRequest) -> bytes:
    """Serialize a RunRequest into one length-prefixed frame."""
    body = json.dumps(request.to_wire()).encode("utf-8")
    return _HEADER.pack(len(body)) + body


def decode_request(payload: bytes) -> RunRequest:
    """Decode a frame body into a RunRequest.

    Raises:
        ProtocolDecodeFailure: If the body is not UTF-8 JSON matching the schema
    """
    try:
        data = json.loads(payload.decode("utf-8"))
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        return RunRequest.model_validate(data)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError, ValidationError) as e:
        raise ProtocolDecodeFailure(
            "Failed to decode request from the CLI",
            context={"payload_size": len(payload)},
            error=e,
        )
