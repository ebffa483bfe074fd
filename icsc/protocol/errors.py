"""Frame validation outcomes and protocol exceptions."""

from enum import IntEnum


class FlowError(IntEnum):
    """Outcome of validating a received frame.

    Every decode attempt yields exactly one of these. Only part of the
    enumeration is produced by the frame decoder; the remaining values are
    reserved for additional validation layers (origin or command
    whitelisting, retry accounting) and are kept so callers can match on
    them without the enumeration changing shape.
    """

    NO_ERROR = 0
    BAD_FORMAT = 1
    VOID_MSG = 2
    TOO_SHORT_MSG = 3
    UNEXPECTED_ORIGIN = 4
    UNEXPECTED_CMD = 5
    WRONG_DEST_STATION = 6
    BAD_LEN_FIELD = 7
    BAD_CHECKSUM = 8
    MISSING_SOH = 9
    MISSING_STX = 10
    MISSING_ETX = 11
    MISSING_EOT = 12
    TIMEOUT = 13
    MANY_RETRIES = 14

    @property
    def is_error(self) -> bool:
        """True for anything other than NO_ERROR."""
        return self is not FlowError.NO_ERROR


class ICSCError(Exception):
    """Base class for ICSC exceptions."""


class TransportError(ICSCError):
    """The underlying transport failed (device gone, write failed).

    Fatal for the station's receive loop; retrying is left to the caller.
    """


class PayloadTooLongError(ICSCError, ValueError):
    """Payload does not fit in a single frame (more than 255 bytes)."""
