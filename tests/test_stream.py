"""
Stream Tests
============

End-to-end tests for client sessions and the connection acceptor, run
against a real listening socket on 127.0.0.1.
"""

import asyncio

from bvh_stream.stream import (
    AXIS_NEURON_EPILOGUE,
    AXIS_NEURON_PROLOGUE,
    ConnectionAcceptor,
    OutputFormat,
)
from bvh_stream.motion import MotionBuffer


FRAME_TIME_US = 1000


async def _start_acceptor(
    buffer,
    output_format=OutputFormat.RAW,
    frame_time_us=FRAME_TIME_US,
    shutdown_grace=5.0,
):
    shutdown = asyncio.Event()
    acceptor = ConnectionAcceptor(
        buffer=buffer,
        frame_time_us=frame_time_us,
        output_format=output_format,
        port=0,
        shutdown=shutdown,
        host="127.0.0.1",
        shutdown_grace=shutdown_grace,
    )
    await acceptor.start()
    serve_task = asyncio.create_task(acceptor.serve())
    return acceptor, shutdown, serve_task


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


class TestClientSession:
    """Tests for the per-connection replay loop."""
    
    def test_raw_lines_loop(self, sample_buffer, sample_lines):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(sample_buffer)
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            
            received = [await reader.readline() for _ in range(7)]
            
            writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return received
        
        received = asyncio.run(scenario())
        assert received == sample_lines * 2 + sample_lines[:1]
    
    def test_annotated_lines(self, sample_buffer, sample_lines):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(
                sample_buffer, output_format=OutputFormat.ANNOTATED
            )
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            
            records = []
            for _ in range(2):
                prologue = await reader.readuntil(b"\x00")
                rest = await reader.readuntil(b"\x00")
                records.append((prologue, rest))
            
            writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return records
        
        records = asyncio.run(scenario())
        for (prologue, rest), line in zip(records, sample_lines):
            assert prologue == AXIS_NEURON_PROLOGUE
            assert rest == line[:-1] + AXIS_NEURON_EPILOGUE
    
    def test_sessions_have_independent_positions(self, sample_buffer, sample_lines):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(sample_buffer)
            first_reader, first_writer = await asyncio.open_connection(
                "127.0.0.1", acceptor.bound_port
            )
            first = [await first_reader.readline() for _ in range(2)]
            
            second_reader, second_writer = await asyncio.open_connection(
                "127.0.0.1", acceptor.bound_port
            )
            second = await second_reader.readline()
            
            first_writer.close()
            second_writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return first, second
        
        first, second = asyncio.run(scenario())
        assert first == sample_lines[:2]
        assert second == sample_lines[0]
    
    def test_session_ends_when_client_disconnects(self, sample_buffer):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(sample_buffer)
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            await reader.readline()
            
            writer.close()
            await writer.wait_closed()
            ended = await _wait_until(lambda: acceptor.active_sessions == 0)
            
            # Acceptor keeps serving after a session failed
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            line = await reader.readline()
            
            writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return ended, line, acceptor.total_sessions
        
        ended, line, total = asyncio.run(scenario())
        assert ended
        assert line
        assert total == 2
    
    def test_session_ends_without_motion_data(self):
        buffer = MotionBuffer(data=b"MOTION\nFrames: 0\nFrame Time: 0.01\n")
        
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(buffer)
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            data = await asyncio.wait_for(reader.read(), timeout=5.0)
            
            writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return data
        
        assert asyncio.run(scenario()) == b""

    def test_lines_are_paced_by_frame_time(self, sample_buffer):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(
                sample_buffer, frame_time_us=50_000
            )
            reader, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            loop = asyncio.get_running_loop()
            
            await reader.readline()
            first = loop.time()
            await reader.readline()
            second = loop.time()
            await reader.readline()
            third = loop.time()
            
            writer.close()
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return second - first, third - second
        
        gaps = asyncio.run(scenario())
        for gap in gaps:
            assert gap >= 0.045


class TestConnectionAcceptor:
    """Tests for accepting clients and shutdown."""
    
    def test_shutdown_ends_all_sessions(self, sample_buffer):
        async def scenario():
            # Long frame time: sessions must wake up early on shutdown
            acceptor, shutdown, serve_task = await _start_acceptor(
                sample_buffer, frame_time_us=30_000_000
            )
            clients = []
            for _ in range(3):
                reader, writer = await asyncio.open_connection(
                    "127.0.0.1", acceptor.bound_port
                )
                await reader.readline()
                clients.append((reader, writer))
            
            active_before = acceptor.active_sessions
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            
            tails = [await asyncio.wait_for(r.read(), timeout=5.0) for r, _ in clients]
            for _, writer in clients:
                writer.close()
            return active_before, acceptor.active_sessions, tails
        
        active_before, active_after, tails = asyncio.run(scenario())
        assert active_before == 3
        assert active_after == 0
        assert tails == [b"", b"", b""]
    
    def test_no_new_sessions_after_shutdown(self, sample_buffer):
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(sample_buffer)
            port = acceptor.bound_port
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            
            try:
                await asyncio.open_connection("127.0.0.1", port)
            except OSError:
                refused = True
            else:
                refused = False
            return refused, acceptor.total_sessions
        
        refused, total = asyncio.run(scenario())
        assert refused
        assert total == 0
    
    def test_bind_failure(self, sample_buffer):
        from bvh_stream.errors import BindError, ServerSocketError
        
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(sample_buffer)
            other = ConnectionAcceptor(
                buffer=sample_buffer,
                frame_time_us=FRAME_TIME_US,
                output_format=OutputFormat.RAW,
                port=acceptor.bound_port,
                shutdown=asyncio.Event(),
                host="127.0.0.1",
            )
            try:
                await other.start()
            except BindError as e:
                error = e
            else:
                error = None
            
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=5.0)
            return error
        
        error = asyncio.run(scenario())
        assert isinstance(error, BindError)
        assert isinstance(error, ServerSocketError)
    
    def test_shutdown_with_client_that_never_reads(self):
        # 16 KB lines with no delay fill the socket buffers quickly
        buffer = MotionBuffer(data=b"Frame Time: 0.01\n" + b"1.00 " * 3300 + b"\n")
        
        async def scenario():
            acceptor, shutdown, serve_task = await _start_acceptor(
                buffer, frame_time_us=1, shutdown_grace=0.5
            )
            _, writer = await asyncio.open_connection("127.0.0.1", acceptor.bound_port)
            await _wait_until(lambda: acceptor.active_sessions == 1)
            await asyncio.sleep(0.5)
            
            shutdown.set()
            await asyncio.wait_for(serve_task, timeout=3.0)
            
            writer.close()
            return acceptor.active_sessions
        
        assert asyncio.run(scenario()) == 0
