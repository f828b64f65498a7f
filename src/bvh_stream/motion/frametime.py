"""
Frame Time Extraction
=====================

Derives the inter-line delay from the "Frame Time" declaration of a BVH
file.

The declared value is parsed as a fixed-point number with exactly six
fractional digits and the resulting digit string is read as an integer,
which is then used directly as a microsecond count:

    Frame Time: 0.008333  ->  "0008333"  ->  8333
    Frame Time: 0.0333333 ->  "0033333"  ->  33333
    Frame Time: 1         ->  "1000000"  ->  1000000

Existing clients are tuned to this scale, so it must stay as is.
"""

import logging
import re

from bvh_stream.errors import FrameTimeMarkerNotFound, FrameTimeValueNotFound
from bvh_stream.motion.store import MotionBuffer


logger = logging.getLogger(__name__)


FRAME_TIME_MARKER = b"Frame Time"

# Number of fractional digits kept
FRACTION_DIGITS = 6

# Longest digit string that still fits an unsigned long
MAX_DIGITS = 19

_DIGITS = b"0123456789"
_FIRST_DIGIT = re.compile(rb"[0-9]")


def parse_fixed_point(data: bytes, start: int = 0) -> int:
    """
    Parse an unsigned decimal literal into a six-digit fixed-point integer.
    
    Digits are collected until a non-digit, non-'.' byte, until six
    fractional digits have been read, or until MAX_DIGITS input bytes have
    been consumed. Missing fractional digits are padded with zeros.
    
    Args:
        data: Bytes containing the literal
        start: Offset of the first byte of the literal
        
    Returns:
        Integer value of the collected digits
    """
    digits = bytearray()
    in_fraction = False
    fraction = 0
    
    i = 0
    while i < MAX_DIGITS and fraction < FRACTION_DIGITS:
        pos = start + i
        if pos >= len(data):
            break
        byte = data[pos]
        if byte == ord("."):
            in_fraction = True
        elif byte in _DIGITS:
            digits.append(byte)
            if in_fraction:
                fraction += 1
        else:
            break
        i += 1
    
    while len(digits) < MAX_DIGITS and fraction < FRACTION_DIGITS:
        digits.append(ord("0"))
        fraction += 1
    
    return int(digits) if digits else 0


def extract_frame_time(buffer: MotionBuffer) -> int:
    """
    Read the declared frame time of a motion buffer.
    
    Args:
        buffer: Loaded motion file
        
    Returns:
        Frame time in microseconds (see module docstring for the scale)
        
    Raises:
        FrameTimeMarkerNotFound: No "Frame Time" marker in the buffer
        FrameTimeValueNotFound: Marker present but no digit follows it
    """
    data = buffer.data
    
    marker = data.find(FRAME_TIME_MARKER)
    if marker < 0:
        raise FrameTimeMarkerNotFound(
            f"No 'Frame Time' marker in {buffer.path or 'motion data'}"
        )
    
    match = _FIRST_DIGIT.search(data, marker + len(FRAME_TIME_MARKER))
    if match is not None:
        frame_time = parse_fixed_point(data, match.start())
        logger.debug(f"Frame time parsed at offset {match.start()}: {frame_time}")
        return frame_time
    
    raise FrameTimeValueNotFound(
        f"'Frame Time' marker at offset {marker} has no value"
    )
