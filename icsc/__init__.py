"""ICSC: framed, checksummed messaging between stations on a serial bus."""

__version__ = "0.1.0"

from .protocol import (
    BROADCAST,
    PING,
    PONG,
    ByteCode,
    FlowError,
    ICSCError,
    TransportError,
    PayloadTooLongError,
    Message,
    encode,
    decode,
)
from .handlers import MessageHandler, PingResponder
from .station import Station

__all__ = [
    "__version__",
    "BROADCAST",
    "PING",
    "PONG",
    "ByteCode",
    "FlowError",
    "ICSCError",
    "TransportError",
    "PayloadTooLongError",
    "Message",
    "encode",
    "decode",
    "MessageHandler",
    "PingResponder",
    "Station",
]
