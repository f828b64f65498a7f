#!/usr/bin/env python3
"""
Motion Line Receiver
====================

Standalone client for checking a running bvh-stream server.

This script:
    1. Connects to a running bvh-stream server
    2. Receives motion lines for a configurable duration
    3. Logs line rate every few seconds
    4. Reports final summary

Usage:
    python scripts/receive_lines.py --port 7001 --duration 30
    python scripts/receive_lines.py --host 10.0.0.5 --port 7001 --format 1
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from bvh_stream.stream import AXIS_NEURON_EPILOGUE, OutputFormat


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def read_record(reader: asyncio.StreamReader, fmt: OutputFormat) -> bytes:
    """Read one line (RAW) or one framed record (ANNOTATED)."""
    if fmt == OutputFormat.ANNOTATED:
        return await reader.readuntil(AXIS_NEURON_EPILOGUE)
    return await reader.readline()


async def run_receiver(
    host: str,
    port: int,
    duration: int,
    fmt: OutputFormat,
    report_interval: int,
) -> dict:
    """
    Receive lines from the server.

    Args:
        host: Server address
        port: Server port
        duration: Receive duration in seconds
        fmt: Wire format the server was started with
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    logger.info(f"Connecting to {host}:{port} ({fmt.name}) for {duration}s")
    reader, writer = await asyncio.open_connection(host, port)

    start_time = time.time()
    last_report_time = start_time
    lines_received = 0
    bytes_received = 0
    last_count = 0
    first_record = None

    try:
        while time.time() - start_time < duration:
            try:
                record = await asyncio.wait_for(read_record(reader, fmt), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            if not record:
                logger.warning("Server closed the connection")
                break

            if first_record is None:
                first_record = record
                logger.info(f"First record: {record[:60]!r}")
            lines_received += 1
            bytes_received += len(record)

            time_since_report = time.time() - last_report_time
            if time_since_report >= report_interval:
                rate = (lines_received - last_count) / time_since_report
                logger.info(f"Lines received: {lines_received} ({rate:.1f}/s)")
                last_report_time = time.time()
                last_count = lines_received
    except (asyncio.IncompleteReadError, ConnectionError) as e:
        logger.warning(f"Connection lost: {e}")
    finally:
        writer.close()

    total_time = time.time() - start_time
    avg_rate = lines_received / total_time if total_time > 0 else 0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Lines received: {lines_received}")
    logger.info(f"Bytes received: {bytes_received}")
    logger.info(f"Average rate: {avg_rate:.1f} lines/s")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "lines_received": lines_received,
        "bytes_received": bytes_received,
        "avg_rate": avg_rate,
    }


def main():
    parser = argparse.ArgumentParser(description="Receive lines from a bvh-stream server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Server address")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("BVHSTREAM_PORT", "7001")),
        help="Server port (default: 7001)",
    )
    parser.add_argument(
        "--format",
        type=int,
        choices=[0, 1],
        default=0,
        help="Wire format the server uses (default: 0)",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Receive duration in seconds (default: 10)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=2,
        help="Seconds between progress reports (default: 2)",
    )

    args = parser.parse_args()

    result = asyncio.run(run_receiver(
        host=args.host,
        port=args.port,
        duration=args.duration,
        fmt=OutputFormat(args.format),
        report_interval=args.report_interval,
    ))

    sys.exit(0 if result["lines_received"] > 0 else 1)


if __name__ == "__main__":
    main()
