"""Tests for the serial transport's read and write mapping."""

import asyncio

import pytest
import serial

from icsc.config import SerialConfig
from icsc.protocol.errors import TransportError
from icsc.serial.connection import SerialTransport
from icsc.serial.transport import ReadResult, ReadStatus


class StubWriter:
    """Stands in for the StreamWriter returned by pyserial-asyncio."""

    def __init__(self, error=None):
        self.error = error
        self.data = bytearray()
        self.closed = False

    def write(self, data):
        self.data += data

    async def drain(self):
        if self.error:
            raise self.error

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


def connected(writer=None):
    """A transport wired to an in-memory reader; call inside a running loop."""
    transport = SerialTransport(SerialConfig(port="/dev/ttyTEST"))
    transport._reader = asyncio.StreamReader()
    transport._writer = writer or StubWriter()
    transport._connected = True
    return transport


class TestReadByte:
    """Tests for read_byte result mapping."""

    def test_byte(self):
        async def scenario():
            transport = connected()
            transport._reader.feed_data(b"\x01\x42")
            return [await transport.read_byte(0.1) for _ in range(2)], transport.stats

        results, stats = asyncio.run(scenario())

        assert results == [ReadResult.byte(0x01), ReadResult.byte(0x42)]
        assert stats["bytes_read"] == 2

    def test_timeout_is_a_value(self):
        async def scenario():
            transport = connected()
            return await transport.read_byte(0.01), transport

        result, transport = asyncio.run(scenario())

        assert result.status is ReadStatus.TIMEOUT
        assert transport.stats["read_timeouts"] == 1
        assert transport.connected

    def test_end_of_stream(self):
        async def scenario():
            transport = connected()
            transport._reader.feed_eof()
            return await transport.read_byte(0.1)

        assert asyncio.run(scenario()) == ReadResult.end_of_stream()

    @pytest.mark.parametrize(
        "error", [serial.SerialException("device reports readiness"), OSError(5, "I/O error")]
    )
    def test_device_failure_raises(self, error):
        async def scenario():
            transport = connected()
            transport._reader.set_exception(error)
            with pytest.raises(TransportError):
                await transport.read_byte(0.1)
            return transport

        transport = asyncio.run(scenario())

        assert not transport.connected

    def test_not_connected(self):
        transport = SerialTransport(SerialConfig())

        with pytest.raises(TransportError):
            asyncio.run(transport.read_byte(0.1))


class TestWrite:
    """Tests for write and disconnect."""

    def test_write(self):
        writer = StubWriter()

        async def scenario():
            transport = connected(writer)
            await transport.write(b"\x01B")
            return transport

        transport = asyncio.run(scenario())

        assert writer.data == b"\x01B"
        assert transport.stats["bytes_written"] == 2

    @pytest.mark.parametrize(
        "error", [serial.SerialException("write failed"), OSError(5, "I/O error")]
    )
    def test_device_failure_raises(self, error):
        async def scenario():
            transport = connected(StubWriter(error))
            with pytest.raises(TransportError):
                await transport.write(b"\x01")
            return transport

        transport = asyncio.run(scenario())

        assert not transport.connected
        assert transport.stats["bytes_written"] == 0

    def test_not_connected(self):
        transport = SerialTransport(SerialConfig())

        with pytest.raises(TransportError):
            asyncio.run(transport.write(b"\x01"))

    def test_disconnect(self):
        writer = StubWriter()

        async def scenario():
            transport = connected(writer)
            await transport.disconnect()
            return transport

        transport = asyncio.run(scenario())

        assert writer.closed
        assert not transport.connected
        with pytest.raises(TransportError):
            asyncio.run(transport.write(b"\x01"))
