"""Frame reassembly from a timeout-bounded byte stream."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..protocol.constants import EOT, MAX_FRAME_LENGTH
from ..protocol.errors import FlowError
from ..protocol.inbound import FrameDecoder
from ..protocol.message import Message
from .transport import ReadStatus, Transport

logger = logging.getLogger(__name__)

# Errors that may just mean "the frame is not complete yet"
CONTINUABLE_ERRORS = frozenset({FlowError.BAD_LEN_FIELD, FlowError.TOO_SHORT_MSG})


@dataclass(frozen=True)
class AssemblyResult:
    """Outcome of one read-and-reassemble cycle."""

    error: FlowError
    message: Optional[Message] = None
    raw: bytes = b""
    end_of_stream: bool = False

    @property
    def ok(self) -> bool:
        return self.error is FlowError.NO_ERROR

    @property
    def idle(self) -> bool:
        """Nothing arrived at all during the cycle."""
        return not self.raw


class FrameAssembler:
    """Pull bytes from a transport and reassemble them into frames.

    A bounded read collects bytes until an EOT-valued byte, a read timeout,
    or the end of the stream. EOT can also occur as ordinary payload data
    (or as the checksum), so when the collected bytes are structurally
    short and the last one was EOT, further bounded reads are appended
    until the frame decodes, fails with some other error, or no more bytes
    arrive.
    """

    def __init__(self, transport: Transport, decoder: FrameDecoder, read_timeout: float):
        """Initialize the assembler.

        Args:
            transport: Byte source
            decoder: Decoder bound to the receiving station
            read_timeout: Seconds to wait for each byte
        """
        self._transport = transport
        self._decoder = decoder
        self.read_timeout = read_timeout
        self._stats = {
            "bytes_received": 0,
            "frames_assembled": 0,
            "continuations": 0,
        }

    async def read_chunk(self) -> tuple[bytes, bool]:
        """Perform one bounded read.

        Returns:
            The bytes read and whether the stream ended
        """
        chunk = bytearray()
        while True:
            result = await self._transport.read_byte(self.read_timeout)
            if result.status is ReadStatus.TIMEOUT:
                return bytes(chunk), False
            if result.status is ReadStatus.END_OF_STREAM:
                return bytes(chunk), True

            chunk.append(result.value)
            if result.value == EOT:
                return bytes(chunk), False

    async def receive(self) -> AssemblyResult:
        """Read and reassemble a single frame.

        Returns:
            AssemblyResult carrying the message or the last flow error,
            along with every byte consumed during the cycle
        """
        buffer, end_of_stream = await self.read_chunk()
        self._stats["bytes_received"] += len(buffer)
        if not buffer:
            return AssemblyResult(
                error=FlowError.TOO_SHORT_MSG, end_of_stream=end_of_stream
            )

        result = self._decoder.decode(buffer)

        while (
            result.error in CONTINUABLE_ERRORS
            and buffer[-1] == EOT
            and not end_of_stream
            and len(buffer) < MAX_FRAME_LENGTH
        ):
            chunk, end_of_stream = await self.read_chunk()
            if not chunk:
                logger.debug(f"No continuation after {len(buffer)} bytes ({result.error.name})")
                break

            self._stats["continuations"] += 1
            self._stats["bytes_received"] += len(chunk)
            buffer += chunk
            logger.debug(f"Continued frame with {len(chunk)} bytes, now {len(buffer)}")
            result = self._decoder.decode(buffer)

        if result.ok:
            self._stats["frames_assembled"] += 1

        return AssemblyResult(
            error=result.error,
            message=result.message,
            raw=buffer,
            end_of_stream=end_of_stream,
        )

    @property
    def stats(self) -> dict:
        """Get assembler statistics."""
        return self._stats.copy()
