"""
Motion Data Store
=================

Loads a BVH motion file into memory once at startup.

The resulting MotionBuffer is immutable and is read concurrently by the
frame time extractor and every client session. Nothing writes to it after
loading, so no locking is needed.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from bvh_stream.errors import MotionFileError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MotionBuffer:
    """
    Complete contents of a loaded motion file.
    
    Attributes:
        data: Raw file bytes
        path: Path the file was loaded from
    """
    
    data: bytes
    path: str = ""
    
    @property
    def size(self) -> int:
        """Total number of bytes in the buffer."""
        return len(self.data)
    
    def __repr__(self) -> str:
        """Compact repr that doesn't dump the file contents."""
        return f"MotionBuffer(path={self.path!r}, size={self.size})"


def load_motion_file(path: Union[str, Path]) -> MotionBuffer:
    """
    Read a motion file into memory.
    
    Args:
        path: Path to the BVH file
        
    Returns:
        MotionBuffer holding the whole file
        
    Raises:
        MotionFileError: File cannot be opened, or fewer bytes were read
            than the file size reported by the filesystem.
    """
    path = str(path)
    
    try:
        with open(path, "rb") as f:
            expected = os.fstat(f.fileno()).st_size
            data = f.read()
    except OSError as e:
        raise MotionFileError(f'Can not open file: "{path}" ({e})') from e
    
    if len(data) != expected:
        raise MotionFileError(
            f'Read failed: "{path}" ({len(data)} of {expected} bytes)'
        )
    
    logger.info(f"Loaded motion file {path} ({len(data)} bytes)")
    return MotionBuffer(data=data, path=path)
