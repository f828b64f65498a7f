"""
bvh-stream
==========

Minimal BVH motion line server.

Reads a BVH motion file once, listens on a TCP port and sends each motion
line to every connected client, looping back to the first line at end of
file. Every client has its own playback position and pacing.

Components:
    - motion: File loading, frame time extraction, line cursor
    - stream: Line encoding, client sessions, connection acceptor
    - config: YAML/environment/command line settings

Example:
    bvh-stream 7001 10000 0 example.bvh
"""

__version__ = "0.1.0"
__author__ = "bvh-stream contributors"

__all__ = [
    "__version__",
]
