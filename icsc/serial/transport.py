"""Transport contract used by the station engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class ReadStatus(Enum):
    """Outcome of a single bounded byte read."""

    BYTE = "byte"
    TIMEOUT = "timeout"
    END_OF_STREAM = "end_of_stream"


@dataclass(frozen=True)
class ReadResult:
    """Tri-state result of :meth:`Transport.read_byte`.

    A timeout is the normal "no byte available" outcome and is returned as
    a value, not raised.
    """

    status: ReadStatus
    value: Optional[int] = None

    @classmethod
    def byte(cls, value: int) -> "ReadResult":
        return cls(ReadStatus.BYTE, value)

    @classmethod
    def timeout(cls) -> "ReadResult":
        return cls(ReadStatus.TIMEOUT)

    @classmethod
    def end_of_stream(cls) -> "ReadResult":
        return cls(ReadStatus.END_OF_STREAM)


@runtime_checkable
class Transport(Protocol):
    """Byte transport owned by a station.

    Device configuration (port, baud rate, parity) happens before the
    transport is handed to a station.
    """

    async def write(self, data: bytes) -> None:
        """Write a complete frame.

        Raises:
            TransportError: If the device failed
        """
        ...

    async def read_byte(self, timeout: float) -> ReadResult:
        """Read one byte, waiting at most ``timeout`` seconds.

        Raises:
            TransportError: If the device failed
        """
        ...
