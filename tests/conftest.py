"""Shared test fixtures."""

from collections import deque

import pytest

from icsc.serial.transport import ReadResult


class ScriptedTransport:
    """In-memory transport replaying a fixed script of bytes and timeouts.

    Once the script is exhausted every read reports end of stream, which
    makes ``Station.run()`` return.
    """

    TIMEOUT = object()

    def __init__(self, *chunks):
        self._items = deque()
        self.written = []
        for chunk in chunks:
            self.feed(chunk)

    def feed(self, chunk) -> None:
        if chunk is self.TIMEOUT:
            self._items.append(self.TIMEOUT)
        else:
            self._items.extend(bytes(chunk))

    async def write(self, data: bytes) -> None:
        self.written.append(bytes(data))

    async def read_byte(self, timeout: float) -> ReadResult:
        if not self._items:
            return ReadResult.end_of_stream()
        item = self._items.popleft()
        if item is self.TIMEOUT:
            return ReadResult.timeout()
        return ReadResult.byte(item)

    @property
    def remaining(self) -> int:
        return len(self._items)


@pytest.fixture
def scripted():
    """The ScriptedTransport class, for building transports in tests."""
    return ScriptedTransport
