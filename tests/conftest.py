"""
Test Configuration
==================

Pytest fixtures and test configuration for bvh-stream.
"""

import pytest


SAMPLE_BVH = (
    b"HIERARCHY\n"
    b"ROOT Hips\n"
    b"{\n"
    b"\tOFFSET 0.00 0.00 0.00\n"
    b"\tCHANNELS 6 Xposition Yposition Zposition Zrotation Xrotation Yrotation\n"
    b"\tEnd Site\n"
    b"\t{\n"
    b"\t\tOFFSET 0.00 10.00 0.00\n"
    b"\t}\n"
    b"}\n"
    b"MOTION\n"
    b"Frames: 3\n"
    b"Frame Time: 0.008333\n"
    b"0.00 1.00 2.00 3.00 4.00 5.00\n"
    b"-1.00 1.50 2.50 3.50 4.50 5.50\n"
    b"2.00 -3.00 4.00 5.00 6.00 7.00\n"
)

SAMPLE_LINES = [
    b"0.00 1.00 2.00 3.00 4.00 5.00\n",
    b"-1.00 1.50 2.50 3.50 4.50 5.50\n",
    b"2.00 -3.00 4.00 5.00 6.00 7.00\n",
]


@pytest.fixture
def sample_bvh() -> bytes:
    """Provide the raw bytes of a small three-frame BVH file."""
    return SAMPLE_BVH


@pytest.fixture
def sample_lines() -> list:
    """Provide the motion lines of the sample BVH file, in order."""
    return list(SAMPLE_LINES)


@pytest.fixture
def sample_buffer():
    """Provide a MotionBuffer holding the sample BVH file."""
    from bvh_stream.motion import MotionBuffer
    
    return MotionBuffer(data=SAMPLE_BVH, path="sample.bvh")


@pytest.fixture
def sample_bvh_file(tmp_path):
    """Write the sample BVH file to disk and return its path."""
    path = tmp_path / "sample.bvh"
    path.write_bytes(SAMPLE_BVH)
    return path
