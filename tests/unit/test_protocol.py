"""
Unit tests for the wire protocol.

Tests cover frame reassembly under arbitrary chunking, the assembler state
machine and request decoding.
"""

import json
import struct
from pathlib import Path

import pytest

from neohub.errors import ProtocolDecodeFailure
from neohub.models import RunRequest
from neohub.protocol import (
    MAX_MESSAGE_SIZE,
    MessageAssembler,
    Ready,
    Reading,
    decode_request,
    encode_frame,
)


@pytest.fixture
def request_obj():
    return RunRequest(
        wd=Path("/home/tester/projects"),
        bin=Path("/usr/bin/neovide"),
        name="api",
        path="src/main.rs",
        opts=["--frame", "none"],
        env={"HOME": "/home/tester", "LANG": "C.UTF-8"},
    )


@pytest.fixture
def frame(request_obj):
    return encode_frame(request_obj)


class TestEncodeFrame:
    """Test frame layout."""

    def test_header_is_big_endian_length(self, frame):
        """Test the first four bytes hold the body length, big-endian."""
        (length,) = struct.unpack(">I", frame[:4])

        assert length == len(frame) - 4

    def test_body_is_json(self, frame):
        """Test the body is the request's JSON representation."""
        body = json.loads(frame[4:].decode("utf-8"))

        assert body["wd"] == "/home/tester/projects"
        assert body["bin"] == "/usr/bin/neovide"
        assert body["path"] == "src/main.rs"
        assert body["opts"] == ["--frame", "none"]


class TestMessageAssembler:
    """Test frame reassembly."""

    def test_single_chunk(self, frame):
        """Test a whole frame in one chunk yields its body."""
        assembler = MessageAssembler()

        assert assembler.feed(frame) == [frame[4:]]
        assert assembler.state == Ready()

    def test_byte_at_a_time(self, frame):
        """Test one-byte chunks reassemble to the same body exactly once."""
        assembler = MessageAssembler()
        completed = []
        for i in range(len(frame)):
            completed.extend(assembler.feed(frame[i:i + 1]))

        assert completed == [frame[4:]]

    def test_every_two_chunk_split(self, frame):
        """Test every split point of a two-chunk delivery."""
        for split in range(1, len(frame)):
            assembler = MessageAssembler()
            completed = assembler.feed(frame[:split]) + assembler.feed(frame[split:])

            assert completed == [frame[4:]], f"split at {split}"

    def test_uneven_chunks(self, frame):
        """Test irregular chunk sizes."""
        sizes = [1, 2, 3, 7, 11, 64]
        assembler = MessageAssembler()
        completed = []
        offset = 0
        index = 0
        while offset < len(frame):
            size = sizes[index % len(sizes)]
            completed.extend(assembler.feed(frame[offset:offset + size]))
            offset += size
            index += 1

        assert completed == [frame[4:]]

    def test_split_header_is_buffered(self, frame):
        """Test a partial header is kept in the Ready state."""
        assembler = MessageAssembler()

        assert assembler.feed(frame[:2]) == []
        assert assembler.state == Ready(frame[:2])

        assert assembler.feed(frame[2:6]) == []
        assert isinstance(assembler.state, Reading)
        assert assembler.state.length == len(frame) - 4
        assert assembler.state.buffer == frame[4:6]

    def test_two_frames_in_one_chunk(self, frame):
        """Test bytes after a complete frame start the next one."""
        assembler = MessageAssembler()

        assert assembler.feed(frame + frame) == [frame[4:], frame[4:]]
        assert assembler.state == Ready()

    def test_trailing_partial_frame(self, frame):
        """Test leftovers after a complete frame are kept for later."""
        assembler = MessageAssembler()

        assert assembler.feed(frame + frame[:10]) == [frame[4:]]
        assert assembler.feed(frame[10:]) == [frame[4:]]

    def test_zero_length_frame(self):
        """Test a zero-length frame yields an empty body."""
        assembler = MessageAssembler()

        assert assembler.feed(struct.pack(">I", 0)) == [b""]
        assert assembler.state == Ready()

    def test_oversized_length_rejected(self):
        """Test a declared length above the maximum is rejected."""
        assembler = MessageAssembler()

        with pytest.raises(ProtocolDecodeFailure):
            assembler.feed(struct.pack(">I", MAX_MESSAGE_SIZE + 1))
        assert assembler.state == Ready()

    def test_empty_chunk(self):
        """Test an empty chunk changes nothing."""
        assembler = MessageAssembler()

        assert assembler.feed(b"") == []
        assert assembler.state == Ready()


class TestDecodeRequest:
    """Test request decoding."""

    def test_decodes_encoded_request(self, request_obj, frame):
        """Test a body produced by encode_frame decodes to an equal request."""
        assert decode_request(frame[4:]) == request_obj

    def test_accepts_file_urls(self):
        """Test file:// URLs for wd and bin."""
        payload = json.dumps({
            "wd": "file:///home/tester/my%20project/",
            "bin": "file:///usr/bin/neovide",
            "name": None,
            "path": None,
            "opts": [],
            "env": {},
        }).encode("utf-8")

        request = decode_request(payload)

        assert request.wd == Path("/home/tester/my project")
        assert request.bin == Path("/usr/bin/neovide")

    def test_optional_fields_default(self):
        """Test name, path, opts and env may be omitted."""
        request = decode_request(b'{"wd": "/tmp", "bin": "/usr/bin/neovide"}')

        assert request.name is None
        assert request.path is None
        assert request.opts == []
        assert request.env == {}

    @pytest.mark.parametrize("payload", [
        b"",
        b"not json",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        b'{"bin": "/usr/bin/neovide"}',
        b'{"wd": "relative/dir", "bin": "/usr/bin/neovide"}',
        b'{"wd": "/tmp", "bin": "/usr/bin/neovide", "opts": "--no-fork"}',
    ])
    def test_invalid_payloads(self, payload):
        """Test malformed bodies raise ProtocolDecodeFailure."""
        with pytest.raises(ProtocolDecodeFailure):
            decode_request(payload)
