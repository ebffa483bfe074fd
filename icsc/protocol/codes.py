"""Single-byte station addresses and command codes.

Both may be written either as a single printable character (``"A"``) or
as a raw byte value (``65``). :class:`ByteCode` normalises the two forms
at the API boundary so the rest of the engine only ever sees integers.
"""

from typing import Union

from .constants import BROADCAST

CodeLike = Union["ByteCode", int, str, bytes]


class ByteCode(int):
    """An unsigned 8-bit value used as a station address or command code."""

    def __new__(cls, value: int) -> "ByteCode":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected an int, got {type(value).__name__}")
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Byte value out of range: {value}")
        return super().__new__(cls, value)

    @classmethod
    def from_char(cls, char: str) -> "ByteCode":
        """Build from a single character, using its code point."""
        if len(char) != 1:
            raise ValueError(f"Expected a single character, got {char!r}")
        return cls(ord(char))

    @classmethod
    def from_byte(cls, value: int) -> "ByteCode":
        """Build from a raw byte value (0-255)."""
        return cls(value)

    @classmethod
    def coerce(cls, value: CodeLike) -> "ByteCode":
        """Accept a ByteCode, an int, a one-character str or a one-byte bytes."""
        if isinstance(value, ByteCode):
            return value
        if isinstance(value, str):
            return cls.from_char(value)
        if isinstance(value, (bytes, bytearray)):
            if len(value) != 1:
                raise ValueError(f"Expected a single byte, got {bytes(value)!r}")
            return cls(value[0])
        return cls.from_byte(value)

    @property
    def char(self) -> str:
        """Character form of the code."""
        return chr(self)

    def __repr__(self) -> str:
        if 0x20 < self < 0x7F:
            return f"ByteCode({chr(self)!r})"
        return f"ByteCode(0x{int(self):02X})"


def station_address(value: CodeLike) -> ByteCode:
    """Coerce a value to an address a station may claim for itself.

    Raises:
        ValueError: If the value is the broadcast address
    """
    address = ByteCode.coerce(value)
    if address == BROADCAST:
        raise ValueError("Address 0 is reserved for broadcast")
    return address
