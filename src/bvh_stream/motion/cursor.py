"""
Motion Cursor
=============

Line-by-line replay over the motion block of a BVH buffer.

The cursor never interprets motion values. It only finds line boundaries:
a motion line starts at a digit or '-' and ends at the next '\\n' or '\\r'.
When the last line has been returned, the next read starts over at the
first motion line, so playback loops forever.

Cursor state is an immutable value that is passed into and returned from
every read. Each client session owns its own state, so sessions can be at
different playback positions without affecting each other.

Example:
    state = CursorState()
    while True:
        line, state = read_motion_line(buffer, state)
        if line is None:
            break
        send(line.data)
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from bvh_stream.motion.frametime import FRAME_TIME_MARKER
from bvh_stream.motion.store import MotionBuffer


logger = logging.getLogger(__name__)


_LINE_END = re.compile(rb"[\r\n]")
_DATA_START = re.compile(rb"[-0-9]")


@dataclass(frozen=True, slots=True)
class CursorState:
    """
    Playback position of one session.
    
    Attributes:
        first_line: Offset of the first motion line, None until located
        position: Offset where the next line starts
        wraps: Number of times playback looped back to the first line
    """
    
    first_line: Optional[int] = None
    position: int = 0
    wraps: int = 0


@dataclass(frozen=True, slots=True)
class MotionLine:
    """A motion line as a span of the buffer."""
    
    buffer: MotionBuffer
    start: int
    length: int
    
    @property
    def data(self) -> bytes:
        """Line bytes including the trailing terminator, if any."""
        return self.buffer.data[self.start:self.start + self.length]
    
    def __repr__(self) -> str:
        return f"MotionLine(start={self.start}, length={self.length})"


def _scan(data: bytes, start: int, pattern: re.Pattern) -> int:
    """Return the offset of the first match of pattern at or after start."""
    match = pattern.search(data, start)
    if match is None:
        return len(data)
    return match.start()


def find_first_motion_line(data: bytes) -> Optional[int]:
    """
    Locate the first motion line of a BVH buffer.
    
    Skips to the "Frame Time" declaration, then to the end of that line,
    then to the first byte that starts a number.
    
    Returns:
        Offset of the first motion line, or None if there is none.
    """
    marker = data.find(FRAME_TIME_MARKER)
    if marker < 0:
        return None
    
    pos = _scan(data, marker, _LINE_END)
    pos = _scan(data, pos, _DATA_START)
    if pos >= len(data):
        return None
    return pos


def read_motion_line(
    buffer: MotionBuffer,
    state: CursorState,
) -> Tuple[Optional[MotionLine], CursorState]:
    """
    Read the next motion line.
    
    Args:
        buffer: Loaded motion file
        state: Current cursor state (CursorState() for a new session)
        
    Returns:
        (line, new_state). line is None when the buffer holds no motion
        data; the session should end in that case.
    """
    data = buffer.data
    
    if state.first_line is None:
        first = find_first_motion_line(data)
        if first is None:
            return None, state
        state = CursorState(first_line=first, position=first)
    
    start = state.position
    end = _scan(data, start, _LINE_END)
    length = min(end + 1, len(data)) - start
    if length <= 0:
        return None, state
    
    following = _scan(data, end, _DATA_START)
    if following >= len(data):
        next_state = replace(state, position=state.first_line, wraps=state.wraps + 1)
    else:
        next_state = replace(state, position=following)
    
    return MotionLine(buffer=buffer, start=start, length=length), next_state


class MotionCursor:
    """
    Convenience wrapper owning one CursorState.
    
    Each ClientSession creates its own MotionCursor. Cursors are never
    shared between sessions.
    """
    
    def __init__(self, buffer: MotionBuffer) -> None:
        self._buffer = buffer
        self._state = CursorState()
    
    @property
    def state(self) -> CursorState:
        """Current cursor state."""
        return self._state
    
    def next_line(self) -> Optional[bytes]:
        """
        Return the next motion line, looping at end of file.
        
        Returns:
            Line bytes, or None if the buffer has no motion data.
        """
        line, self._state = read_motion_line(self._buffer, self._state)
        if line is None:
            return None
        return line.data
