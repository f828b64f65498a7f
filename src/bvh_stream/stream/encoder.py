"""
Line Encoder
============

Maps a raw motion line to the bytes sent to a client.

Formats:
    RAW (0):       the line exactly as stored in the BVH file, terminator
                   included.
    ANNOTATED (1): Axis Neuron framing. Three separate writes: a fixed
                   prologue naming the avatar, the line without its final
                   byte, and a fixed epilogue.

The prologue and epilogue each end in a NUL byte. Deployed consumers
receive these exact bytes, so they are kept.
"""

from enum import IntEnum
from typing import Tuple


AXIS_NEURON_PROLOGUE = b"0 Avatarname \x00"
AXIS_NEURON_EPILOGUE = b" ||\r\n\x00"


class OutputFormat(IntEnum):
    """
    Wire format selected at startup.
    
    Attributes:
        RAW: Send each line verbatim
        ANNOTATED: Wrap each line in Axis Neuron framing
    """
    
    RAW = 0
    ANNOTATED = 1


def encode_parts(line: bytes, fmt: OutputFormat) -> Tuple[bytes, ...]:
    """
    Split the output for one line into its transmission units.
    
    Args:
        line: Motion line including its trailing terminator
        fmt: Output format
        
    Returns:
        Tuple of byte strings, each to be written separately and in order.
    """
    if fmt == OutputFormat.ANNOTATED:
        return (AXIS_NEURON_PROLOGUE, line[:-1], AXIS_NEURON_EPILOGUE)
    return (line,)


def encode(line: bytes, fmt: OutputFormat) -> bytes:
    """Return the complete byte sequence sent for one line."""
    return b"".join(encode_parts(line, fmt))
