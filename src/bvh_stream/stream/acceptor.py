"""
Connection Acceptor
===================

TCP listener that starts one ClientSession per accepted connection.

Sessions run as independent asyncio tasks, so accepting the next client
never waits on existing sessions. On shutdown the acceptor stops accepting,
releases the listening socket and waits for running sessions to notice the
shutdown flag and end on their own.

Example:
    shutdown = asyncio.Event()
    acceptor = ConnectionAcceptor(
        buffer=buffer,
        frame_time_us=8333,
        output_format=OutputFormat.RAW,
        port=7001,
        shutdown=shutdown,
    )
    await acceptor.start()
    await acceptor.serve()   # returns after shutdown.set()
"""

import asyncio
import logging
import socket
from typing import Optional, Set

from bvh_stream.errors import BindError, ListenError
from bvh_stream.motion import MotionBuffer
from bvh_stream.stream.encoder import OutputFormat
from bvh_stream.stream.session import ClientSession


logger = logging.getLogger(__name__)


class ConnectionAcceptor:
    """
    Accepts clients and spawns a replay session for each.
    
    Attributes:
        host: Bind address
        port: Requested port (0 = any free port)
        backlog: Listen backlog
        shutdown_grace: Seconds running sessions get to end on their own
            after shutdown before they are cancelled
        active_sessions: Number of sessions currently running
        total_sessions: Number of sessions started since start()
    """
    
    def __init__(
        self,
        buffer: MotionBuffer,
        frame_time_us: int,
        output_format: OutputFormat,
        port: int,
        shutdown: asyncio.Event,
        host: str = "0.0.0.0",
        backlog: int = 5,
        shutdown_grace: float = 5.0,
    ) -> None:
        self.buffer = buffer
        self.frame_time_us = frame_time_us
        self.output_format = output_format
        self.host = host
        self.port = port
        self.backlog = backlog
        self.shutdown_grace = shutdown_grace
        
        self._shutdown = shutdown
        self._server: Optional[asyncio.AbstractServer] = None
        self._sessions: Set[asyncio.Task] = set()
        self.total_sessions: int = 0
    
    @property
    def active_sessions(self) -> int:
        """Number of sessions currently running."""
        return len(self._sessions)
    
    @property
    def bound_port(self) -> Optional[int]:
        """Port the listening socket is actually bound to."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]
    
    async def start(self) -> None:
        """
        Bind and listen on the configured address.
        
        Raises:
            BindError: Address could not be bound
            ListenError: Socket could not be put into listening state
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise BindError(
                f"Could not bind TCP socket to {self.host}:{self.port}: {e}"
            ) from e
        
        try:
            sock.listen(self.backlog)
            self._server = await asyncio.start_server(
                self._handle_connection,
                sock=sock,
            )
        except OSError as e:
            sock.close()
            raise ListenError(f"Could not listen on TCP socket: {e}") from e
        
        logger.info(f"Listening on {self.host}:{self.bound_port}")
    
    async def serve(self) -> None:
        """
        Accept clients until shutdown is requested.
        
        Returns once the listening socket is closed and every session has
        ended.
        """
        if self._server is None:
            await self.start()
        
        await self._shutdown.wait()
        logger.info("Shutdown requested, no longer accepting connections")
        
        await self.close()
    
    async def close(self) -> None:
        """
        Release the listening socket and wait for sessions to finish.
        
        Sessions still running after shutdown_grace seconds (for example
        blocked on a client that stopped reading) are cancelled and their
        connections aborted.
        """
        if self._server is not None:
            self._server.close()
        
        if self._sessions:
            logger.info(f"Waiting for {len(self._sessions)} session(s) to end")
            _, pending = await asyncio.wait(
                set(self._sessions),
                timeout=self.shutdown_grace,
            )
            if pending:
                logger.warning(
                    f"Cancelling {len(pending)} session(s) still running "
                    f"after {self.shutdown_grace:.1f}s"
                )
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        
        if self._server is not None:
            await self._server.wait_closed()
            self._server = None
        
        logger.info("Acceptor stopped")
    
    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Run one session for a newly accepted connection."""
        if self._shutdown.is_set():
            writer.close()
            return
        
        peer = writer.get_extra_info("peername")
        logger.info(f"Accepted connection from {peer}")
        
        task = asyncio.current_task()
        self._sessions.add(task)
        self.total_sessions += 1
        
        session = ClientSession(
            writer=writer,
            buffer=self.buffer,
            frame_time_us=self.frame_time_us,
            output_format=self.output_format,
            shutdown=self._shutdown,
        )
        try:
            await session.run()
        except asyncio.CancelledError:
            logger.info(f"Session for {peer} cancelled")
        except Exception as e:
            logger.error(f"Session error ({peer}): {e}")
        finally:
            self._sessions.discard(task)
