"""Inbound frame validation and decoding."""

import logging
from dataclasses import dataclass
from typing import Optional

from .codes import ByteCode, CodeLike
from .constants import (
    SOH,
    STX,
    ETX,
    EOT,
    BROADCAST,
    SOH_IDX,
    DEST_IDX,
    ORIG_IDX,
    CMD_IDX,
    LEN_IDX,
    STX_IDX,
    PAYLOAD_IDX,
    FRAME_OVERHEAD,
    MIN_FRAME_LENGTH,
    etx_index,
    eot_index,
)
from .errors import FlowError
from .message import Message, calculate_checksum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeResult:
    """Either a message with NO_ERROR, or no message and an error."""

    error: FlowError
    message: Optional[Message] = None

    @property
    def ok(self) -> bool:
        return self.error is FlowError.NO_ERROR

    @classmethod
    def failure(cls, error: FlowError) -> "DecodeResult":
        return cls(error=error)


class FrameDecoder:
    """Validate byte buffers as frames addressed to one station.

    Checks run cheapest first and stop at the first failure:

        1. Buffer shorter than 9 bytes      -> TOO_SHORT_MSG
        2. Buffer length != 9 + LEN         -> BAD_LEN_FIELD
        3. DEST not this station/broadcast  -> WRONG_DEST_STATION
        4. SOH, STX, ETX, EOT (that order)  -> MISSING_SOH ... MISSING_EOT
        5. Checksum mismatch                -> BAD_CHECKSUM

    BAD_LEN_FIELD doubles as the "frame may be incomplete" signal used by
    the reassembly loop.
    """

    def __init__(self, station: CodeLike):
        """Initialize the decoder.

        Args:
            station: Address of the receiving station
        """
        self.station = ByteCode.coerce(station)

    def decode(self, buffer: bytes) -> DecodeResult:
        """Decode a buffer that may hold a frame, part of one, or garbage.

        Args:
            buffer: Raw bytes, starting where SOH is expected

        Returns:
            DecodeResult; never raises for malformed input
        """
        error = self.validate(buffer)
        if error.is_error:
            logger.debug(f"Rejected {len(buffer)} bytes ({error.name}): {bytes(buffer).hex()}")
            return DecodeResult.failure(error)

        length = buffer[LEN_IDX]
        message = Message(
            dest=buffer[DEST_IDX],
            orig=buffer[ORIG_IDX],
            cmd=buffer[CMD_IDX],
            payload=bytes(buffer[PAYLOAD_IDX:PAYLOAD_IDX + length]),
        )
        return DecodeResult(error=FlowError.NO_ERROR, message=message)

    def validate(self, buffer: bytes) -> FlowError:
        """Run the frame checks and return the first failure, if any."""
        if len(buffer) < MIN_FRAME_LENGTH:
            return FlowError.TOO_SHORT_MSG

        length = buffer[LEN_IDX]
        if len(buffer) != FRAME_OVERHEAD + length:
            return FlowError.BAD_LEN_FIELD

        if buffer[DEST_IDX] not in (self.station, BROADCAST):
            return FlowError.WRONG_DEST_STATION

        if buffer[SOH_IDX] != SOH:
            return FlowError.MISSING_SOH
        if buffer[STX_IDX] != STX:
            return FlowError.MISSING_STX
        if buffer[etx_index(length)] != ETX:
            return FlowError.MISSING_ETX
        if buffer[eot_index(length)] != EOT:
            return FlowError.MISSING_EOT

        header = bytes(buffer[DEST_IDX:STX_IDX])
        payload = bytes(buffer[PAYLOAD_IDX:PAYLOAD_IDX + length])
        if calculate_checksum(header, payload) != buffer[-2]:
            return FlowError.BAD_CHECKSUM

        return FlowError.NO_ERROR


def decode(buffer: bytes, station: CodeLike) -> DecodeResult:
    """Decode ``buffer`` as a frame received by ``station``."""
    return FrameDecoder(station).decode(buffer)
