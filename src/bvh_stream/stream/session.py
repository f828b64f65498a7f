"""
Client Session
==============

Per-connection replay loop.

Each accepted connection gets one ClientSession running as its own asyncio
task. The session owns a private MotionCursor, so clients connected at
different times are at different playback positions.

Loop:
    1. Stop if shutdown was requested or the cursor has no data
    2. Encode the next line and write it to the client
    3. Stop if the write failed
    4. Wait frame_time_us microseconds
"""

import asyncio
import logging
import time
from typing import Optional

from bvh_stream.errors import TransmitError
from bvh_stream.motion import MotionBuffer, MotionCursor
from bvh_stream.stream.encoder import OutputFormat, encode_parts


logger = logging.getLogger(__name__)


class SessionMetrics:
    """Metrics for one client session."""
    
    __slots__ = (
        "lines_sent",
        "bytes_sent",
        "wraps",
        "started_at",
        "end_reason",
    )
    
    def __init__(self) -> None:
        self.lines_sent: int = 0
        self.bytes_sent: int = 0
        self.wraps: int = 0
        self.started_at: float = time.time()
        self.end_reason: Optional[str] = None
    
    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "lines_sent": self.lines_sent,
            "bytes_sent": self.bytes_sent,
            "wraps": self.wraps,
            "duration_seconds": round(time.time() - self.started_at, 1),
            "end_reason": self.end_reason,
        }


class ClientSession:
    """
    Replays motion lines to one connected client.
    
    Attributes:
        peer: Remote address of the client
        metrics: Per-session counters
        
    Example:
        session = ClientSession(writer, buffer, 8333,
                                OutputFormat.RAW, shutdown_event)
        await session.run()
    """
    
    def __init__(
        self,
        writer: asyncio.StreamWriter,
        buffer: MotionBuffer,
        frame_time_us: int,
        output_format: OutputFormat,
        shutdown: asyncio.Event,
    ) -> None:
        """
        Initialize session.
        
        Args:
            writer: Stream writer of the accepted connection
            buffer: Shared, read-only motion buffer
            frame_time_us: Delay between lines in microseconds
            output_format: Wire format for every line
            shutdown: Process-wide shutdown flag
        """
        self._writer = writer
        self._cursor = MotionCursor(buffer)
        self._delay = frame_time_us / 1_000_000
        self._format = output_format
        self._shutdown = shutdown
        
        self.peer = writer.get_extra_info("peername")
        self.metrics = SessionMetrics()
    
    async def run(self) -> None:
        """Run until shutdown, end of data, or a failed send."""
        logger.info(f"Session started for {self.peer}")
        
        try:
            while True:
                if self._shutdown.is_set():
                    self.metrics.end_reason = "shutdown"
                    break
                
                line = self._cursor.next_line()
                if line is None:
                    self.metrics.end_reason = "no_data"
                    logger.warning(f"No motion data to send to {self.peer}")
                    break
                
                try:
                    await self._send(line)
                except TransmitError as e:
                    self.metrics.end_reason = "send_failed"
                    logger.info(f"Send to {self.peer} failed: {e}")
                    break
                
                self.metrics.wraps = self._cursor.state.wraps
                await self._pause()
        except asyncio.CancelledError:
            # close() alone waits for buffered output to flush
            self.metrics.end_reason = "cancelled"
            self._writer.transport.abort()
            raise
        finally:
            await self._close()
            logger.info(f"Session ended for {self.peer}: {self.metrics.to_dict()}")
    
    async def _send(self, line: bytes) -> None:
        """
        Write one encoded line.
        
        Raises:
            TransmitError: Any part could not be written. Parts already
                written are not rolled back.
        """
        if self._writer.is_closing():
            raise TransmitError("connection closed by peer")
        
        try:
            for part in encode_parts(line, self._format):
                self._writer.write(part)
                await self._writer.drain()
                self.metrics.bytes_sent += len(part)
        except (ConnectionError, OSError) as e:
            raise TransmitError(str(e) or type(e).__name__) from e
        
        self.metrics.lines_sent += 1
    
    async def _pause(self) -> None:
        """Wait one frame time, returning early if shutdown is requested."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=self._delay)
        except asyncio.TimeoutError:
            pass
    
    async def _close(self) -> None:
        """Close the connection, ignoring errors from an already dead peer."""
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error while closing {self.peer}: {e}")
