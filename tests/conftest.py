"""Shared test fixtures: scripted byte streams and a simulated ECM."""

from collections import deque

import pytest

from ecmdiag.ecm.dictionary import JsonDictionary
from ecmdiag.protocol.constants import ACK, CLIENT_ID, ECM_ID, EOT, Command
from ecmdiag.protocol.frames import Pdu

VERSION = "BUEIB310 12-11-03"
RT_DATA_LEN = 100


def frame_offset(data_offset: int) -> int:
    """Offset in the realtime frame of a realtime data byte (header + ACK)."""
    return 7 + data_offset


def response(data: bytes = b"", status: int = ACK) -> Pdu:
    """Build an ECM response PDU."""
    return Pdu(payload=bytes([status]) + data + bytes([EOT]), sender=ECM_ID, recipient=CLIENT_ID)


class ScriptedStream:
    """Byte stream that delivers pre-loaded chunks, one chunk per wake-up.

    A chunk of ``None`` means end of stream. ``reply`` chunks are queued by the
    first write, after any input reset the writer did.
    """

    def __init__(self, chunks=(), reply=()):
        self.chunks = deque(chunks)
        self.reply = list(reply)
        self.written = bytearray()
        self.is_open = False
        self.resets = 0

    def feed(self, *chunks) -> None:
        self.chunks.extend(chunks)

    @property
    def in_waiting(self) -> int:
        if not self.chunks:
            return 0
        head = self.chunks[0]
        return 1 if head is None else len(head)

    def read(self, size: int = 1) -> bytes:
        head = self.chunks[0]
        if head is None:
            return b""
        data, rest = head[:size], head[size:]
        if rest:
            self.chunks[0] = rest
        else:
            self.chunks.popleft()
        return bytes(data)

    def write(self, data: bytes) -> int:
        self.written.extend(data)
        self.chunks.extend(self.reply)
        self.reply = []
        return len(data)

    def reset_input_buffer(self) -> None:
        self.chunks.clear()
        self.resets += 1

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


class SimulatedEcm(ScriptedStream):
    """Answers DDFI requests like a module would.

    Memory is kept per page in the module's own address space (256 bytes per
    page). Responses are delivered in chunks of ``chunk_size`` bytes.
    """

    def __init__(self, version: str = VERSION, chunk_size: int = 5):
        super().__init__()
        self.version = version
        self.chunk_size = chunk_size
        self.memory = {page: bytearray(256) for page in range(8)}
        self.rt_data = bytearray(RT_DATA_LEN)
        self.state: int | None = 0  # None answers with an empty ACK
        self.refuse: dict[int, int] = {}  # command -> error indicator
        self.silent = False
        self.requests: list[Pdu] = []

    def write(self, data: bytes) -> int:
        super().write(data)
        request = Pdu.from_bytes(data)
        self.requests.append(request)
        if self.silent:
            return len(data)

        command = request.payload[0]
        if command in self.refuse:
            reply = response(status=self.refuse[command])
        elif command == Command.GET_VERSION:
            reply = response(self.version.encode("ascii"))
        elif command == Command.GET_STATE:
            reply = response(bytes([self.state]) if self.state is not None else b"")
        elif command == Command.GET_RUNTIME_DATA:
            reply = response(bytes(self.rt_data))
        elif command == Command.GET:
            offset, page, length = request.payload[1:4]
            reply = response(bytes(self.memory[page][offset : offset + length]))
        else:
            reply = response()

        frame = reply.to_bytes()
        for i in range(0, len(frame), self.chunk_size):
            self.chunks.append(frame[i : i + self.chunk_size])
        return len(data)

    def page_requests(self) -> list[tuple[int, int, int]]:
        """(page, offset, length) of every page read request so far."""
        return [(p.payload[2], p.payload[1], p.payload[3]) for p in self.requests if p.payload[0] == Command.GET]


@pytest.fixture
def dictionary() -> JsonDictionary:
    """The dictionary shipped with the package."""
    return JsonDictionary.load_default()


@pytest.fixture
def ecm() -> SimulatedEcm:
    """A simulated DDFI-2 module."""
    return SimulatedEcm()
