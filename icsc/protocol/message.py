"""Message class and frame encoding for the ICSC protocol."""

from typing import Union

from .codes import ByteCode, CodeLike
from .constants import SOH, STX, ETX, EOT, MAX_PAYLOAD_LENGTH
from .errors import PayloadTooLongError

PayloadLike = Union[bytes, bytearray, str, int, None]


def calculate_checksum(header: bytes, payload: bytes) -> int:
    """Single-byte checksum over the header fields and payload.

    Args:
        header: DEST, ORIG, CMD and LEN bytes
        payload: Payload bytes

    Returns:
        (sum(header) + sum(payload)) mod 256
    """
    return (sum(header) + sum(payload)) % 256


def to_payload(data: PayloadLike) -> bytes:
    """Normalise user data to payload bytes.

    Strings are encoded as latin-1 so every character maps to one byte,
    a single int becomes a one-byte payload and None an empty one.
    """
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("latin-1")
    if isinstance(data, int) and not isinstance(data, bool):
        return bytes([ByteCode.from_byte(data)])
    return bytes(data)


class Message:
    """A decoded (or to-be-encoded) ICSC message."""

    def __init__(
        self,
        dest: CodeLike,
        orig: CodeLike,
        cmd: CodeLike,
        payload: bytes = b"",
    ):
        """Initialize a message.

        Args:
            dest: Destination station (0 for broadcast)
            orig: Origin station
            cmd: Command code
            payload: Message payload bytes (at most 255)

        Raises:
            PayloadTooLongError: If the payload does not fit in one frame
        """
        self.dest = ByteCode.coerce(dest)
        self.orig = ByteCode.coerce(orig)
        self.cmd = ByteCode.coerce(cmd)
        self.payload = bytes(payload)

        if len(self.payload) > MAX_PAYLOAD_LENGTH:
            raise PayloadTooLongError(
                f"Payload of {len(self.payload)} bytes exceeds "
                f"{MAX_PAYLOAD_LENGTH} byte limit"
            )

    @property
    def length(self) -> int:
        """Payload length as carried in the LEN field."""
        return len(self.payload)

    @property
    def header(self) -> bytes:
        """The four checksummed header bytes: DEST, ORIG, CMD, LEN."""
        return bytes([self.dest, self.orig, self.cmd, self.length])

    @property
    def checksum(self) -> int:
        return calculate_checksum(self.header, self.payload)

    def to_bytes(self) -> bytes:
        """Serialize the message to a complete frame."""
        return (
            bytes([SOH])
            + self.header
            + bytes([STX])
            + self.payload
            + bytes([ETX, self.checksum, EOT])
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return (
            self.dest == other.dest
            and self.orig == other.orig
            and self.cmd == other.cmd
            and self.payload == other.payload
        )

    def __hash__(self) -> int:
        return hash((int(self.dest), int(self.orig), int(self.cmd), self.payload))

    def __repr__(self) -> str:
        return (
            f"Message(dest={self.dest!r}, orig={self.orig!r}, "
            f"cmd={self.cmd!r}, payload={self.payload.hex()})"
        )


def encode(
    dest: CodeLike,
    orig: CodeLike,
    cmd: CodeLike,
    payload: PayloadLike = b"",
) -> bytes:
    """Encode a message into a frame.

    Args:
        dest: Destination station
        orig: Origin station
        cmd: Command code
        payload: Payload bytes, a latin-1 string, a single byte value or None

    Returns:
        The complete frame, 9 + len(payload) bytes long

    Raises:
        PayloadTooLongError: If the payload is longer than 255 bytes
        ValueError: If an address or command is not a byte value
    """
    return Message(dest, orig, cmd, to_payload(payload)).to_bytes()
