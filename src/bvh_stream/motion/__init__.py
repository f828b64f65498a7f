"""
Motion Module
=============

Loading and parsing of BVH motion data.

    - MotionBuffer / load_motion_file: immutable in-memory copy of the file
    - extract_frame_time: declared frame interval in microseconds
    - CursorState / read_motion_line / MotionCursor: looping line replay
"""

from bvh_stream.motion.store import MotionBuffer, load_motion_file
from bvh_stream.motion.frametime import extract_frame_time, parse_fixed_point
from bvh_stream.motion.cursor import (
    CursorState,
    MotionCursor,
    MotionLine,
    read_motion_line,
)


__all__ = [
    "MotionBuffer",
    "load_motion_file",
    "extract_frame_time",
    "parse_fixed_point",
    "CursorState",
    "MotionCursor",
    "MotionLine",
    "read_motion_line",
]
