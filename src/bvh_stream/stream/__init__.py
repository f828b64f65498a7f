"""
Stream Module
=============

Network delivery of motion lines.

    - OutputFormat / encode: wire formats for one motion line
    - ClientSession: paced replay loop for one connected client
    - ConnectionAcceptor: TCP listener spawning one session per client

Example:
    from bvh_stream.stream import ConnectionAcceptor, OutputFormat
    
    shutdown = asyncio.Event()
    acceptor = ConnectionAcceptor(buffer, 8333, OutputFormat.RAW, 7001, shutdown)
    await acceptor.start()
    await acceptor.serve()
"""

from bvh_stream.stream.encoder import (
    AXIS_NEURON_EPILOGUE,
    AXIS_NEURON_PROLOGUE,
    OutputFormat,
    encode,
    encode_parts,
)
from bvh_stream.stream.session import ClientSession, SessionMetrics
from bvh_stream.stream.acceptor import ConnectionAcceptor


__all__ = [
    "AXIS_NEURON_EPILOGUE",
    "AXIS_NEURON_PROLOGUE",
    "OutputFormat",
    "encode",
    "encode_parts",
    "ClientSession",
    "SessionMetrics",
    "ConnectionAcceptor",
]
