"""ICSC wire protocol constants.

Frame format::

    [SOH][DEST][ORIG][CMD][LEN][STX][payload: LEN bytes][ETX][CHK][EOT]

CHK is (DEST + ORIG + CMD + LEN + sum(payload)) mod 256.
"""

# Framing sentinels
SOH = 0x01
STX = 0x02
ETX = 0x03
EOT = 0x04

# Reserved addresses
BROADCAST = 0x00

# Reserved command codes
PING = 0x05  # ENQ
PONG = 0x06  # ACK

RESERVED_COMMANDS = frozenset({PING, PONG})

# Byte positions within a frame (0-indexed from SOH)
SOH_IDX = 0
DEST_IDX = 1
ORIG_IDX = 2
CMD_IDX = 3
LEN_IDX = 4
STX_IDX = 5
PAYLOAD_IDX = 6

# SOH + 4 header bytes + STX + ETX + CHK + EOT
FRAME_OVERHEAD = 9
MIN_FRAME_LENGTH = FRAME_OVERHEAD
MAX_PAYLOAD_LENGTH = 255
MAX_FRAME_LENGTH = FRAME_OVERHEAD + MAX_PAYLOAD_LENGTH

# Default time to wait for a single byte, in seconds
DEFAULT_READ_TIMEOUT = 1.0


def etx_index(length: int) -> int:
    """Position of ETX for a payload of ``length`` bytes."""
    return PAYLOAD_IDX + length


def eot_index(length: int) -> int:
    """Position of EOT for a payload of ``length`` bytes."""
    return PAYLOAD_IDX + length + 2
