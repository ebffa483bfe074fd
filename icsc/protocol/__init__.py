"""ICSC protocol encoding and decoding."""

from .constants import (
    SOH,
    STX,
    ETX,
    EOT,
    BROADCAST,
    PING,
    PONG,
    MAX_PAYLOAD_LENGTH,
)
from .codes import ByteCode, station_address
from .errors import FlowError, ICSCError, TransportError, PayloadTooLongError
from .message import Message, encode, calculate_checksum
from .inbound import FrameDecoder, DecodeResult, decode
from .outbound import PingMessage, PongMessage

__all__ = [
    "SOH",
    "STX",
    "ETX",
    "EOT",
    "BROADCAST",
    "PING",
    "PONG",
    "MAX_PAYLOAD_LENGTH",
    "ByteCode",
    "station_address",
    "FlowError",
    "ICSCError",
    "TransportError",
    "PayloadTooLongError",
    "Message",
    "encode",
    "calculate_checksum",
    "FrameDecoder",
    "DecodeResult",
    "decode",
    "PingMessage",
    "PongMessage",
]
