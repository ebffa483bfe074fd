"""Transport and reassembly for ICSC stations."""

from .transport import Transport, ReadResult, ReadStatus
from .assembler import FrameAssembler, AssemblyResult
from .connection import SerialTransport

__all__ = [
    "Transport",
    "ReadResult",
    "ReadStatus",
    "FrameAssembler",
    "AssemblyResult",
    "SerialTransport",
]
