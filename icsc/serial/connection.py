"""Async serial transport for ICSC stations."""

import asyncio
import logging
from typing import Optional

import serial
import serial_asyncio

from ..config import SerialConfig
from ..protocol.errors import TransportError
from .transport import ReadResult

logger = logging.getLogger(__name__)


class SerialTransport:
    """Serial port transport built on pyserial-asyncio.

    Handles opening the port with the configured line settings and
    exposes the byte-level read/write contract a station needs.
    """

    def __init__(self, config: SerialConfig):
        """Initialize the transport.

        Args:
            config: Serial port configuration
        """
        self.config = config
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._connected = False
        self._stats = {
            "bytes_written": 0,
            "bytes_read": 0,
            "read_timeouts": 0,
        }

    @property
    def connected(self) -> bool:
        """Check if the serial port is open."""
        return self._connected

    async def connect(self) -> None:
        """Open the serial port.

        Raises:
            TransportError: If the port cannot be opened
        """
        logger.info(f"Connecting to {self.config.port} at {self.config.baudrate} baud")

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.config.port,
                baudrate=self.config.baudrate,
                bytesize=self.config.databits,
                parity=self.config.parity_char,
                stopbits=self.config.stopbits,
            )
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to connect to {self.config.port}: {e}")
            raise TransportError(f"Cannot open {self.config.port}: {e}") from e

        self._connected = True
        logger.info(f"Connected to {self.config.port}")

    async def disconnect(self) -> None:
        """Close the serial port."""
        if self._writer:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (serial.SerialException, OSError) as e:
                logger.debug(f"Error while closing {self.config.port}: {e}")
            self._writer = None

        self._reader = None
        self._connected = False
        logger.info("Disconnected from serial port")

    async def write(self, data: bytes) -> None:
        """Write bytes to the port.

        Raises:
            TransportError: If not connected or the write fails
        """
        if not self._writer or not self._connected:
            raise TransportError("Not connected to serial port")

        logger.debug(f"TX {len(data)} bytes: {data.hex()}")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (serial.SerialException, OSError) as e:
            self._connected = False
            raise TransportError(f"Write to {self.config.port} failed: {e}") from e

        self._stats["bytes_written"] += len(data)

    async def read_byte(self, timeout: float) -> ReadResult:
        """Read a single byte, waiting at most ``timeout`` seconds.

        Returns:
            The byte, a timeout result, or end of stream if the port closed

        Raises:
            TransportError: If not connected or the device failed
        """
        if not self._reader or not self._connected:
            raise TransportError("Not connected to serial port")

        try:
            data = await asyncio.wait_for(self._reader.read(1), timeout=timeout)
        except asyncio.TimeoutError:
            self._stats["read_timeouts"] += 1
            return ReadResult.timeout()
        except (serial.SerialException, OSError) as e:
            self._connected = False
            raise TransportError(f"Read from {self.config.port} failed: {e}") from e

        if not data:
            return ReadResult.end_of_stream()

        self._stats["bytes_read"] += 1
        return ReadResult.byte(data[0])

    @property
    def stats(self) -> dict:
        """Get transport statistics."""
        return {
            "connected": self._connected,
            "port": self.config.port,
            **self._stats,
        }
