"""Outbound message builders for the reserved keepalive commands."""

from .codes import CodeLike
from .constants import PING, PONG
from .message import Message


class PingMessage(Message):
    """Keepalive request (command 0x05, ENQ).

    Packet format:
        [SOH, DEST, ORIG, 5, 0, STX, ETX, CHK, EOT]
    """

    def __init__(self, dest: CodeLike, orig: CodeLike):
        """Initialize a ping.

        Args:
            dest: Station expected to answer
            orig: Station sending the ping
        """
        super().__init__(dest=dest, orig=orig, cmd=PING)


class PongMessage(Message):
    """Keepalive reply (command 0x06, ACK), always with an empty payload."""

    def __init__(self, dest: CodeLike, orig: CodeLike):
        """Initialize a pong.

        Args:
            dest: Origin of the ping being answered
            orig: Station answering
        """
        super().__init__(dest=dest, orig=orig, cmd=PONG)
