"""
bvh-stream Main Application
===========================

Command line entry point for the motion line server.

Usage:
    bvh-stream PORT FRAMETIME FORMAT BVHFILE [--config PATH] [--host HOST]
               [--log-level LEVEL]

    bvh-stream 7001 10000 0 example.bvh

Startup order:
    1. Parse arguments and load configuration
    2. Load the BVH file into memory
    3. Bind and listen on the TCP port
    4. Derive the frame time from the file if FRAMETIME is 0
    5. Install SIGINT/SIGTERM handlers
    6. Serve clients until a signal arrives

Any startup failure releases what was already opened and exits with 1.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from bvh_stream import __version__
from bvh_stream.config import Settings, load_config, setup_logging
from bvh_stream.errors import BvhStreamError, SignalSetupError
from bvh_stream.motion import extract_frame_time, load_motion_file
from bvh_stream.stream import ConnectionAcceptor, OutputFormat


logger = logging.getLogger(__name__)


PROG_NAME = "bvh-stream"

USAGE_EPILOG = f"""\
example:
  {PROG_NAME} 7001 10000 0 example.bvh

format:
  0 = just send the complete line as it is in the BVH file
  1 = use Axis Neuron format
"""


# =============================================================================
# Argument Parsing
# =============================================================================

class UsageParser(argparse.ArgumentParser):
    """Argument parser that prints the full help screen on usage errors."""

    def error(self, message: str) -> None:
        self.print_help(sys.stderr)
        self.exit(2, f"\n{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = UsageParser(
        prog=PROG_NAME,
        description=(
            f"{PROG_NAME} {__version__}: sends each motion line of a BVH "
            "file to every connected TCP client, looping at end of file."
        ),
        epilog=USAGE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("port", type=int, help="TCP port number")
    parser.add_argument(
        "frametime",
        type=int,
        help="Delay between motion lines in microseconds "
             "(0 = use frame time from BVH file)",
    )
    parser.add_argument(
        "format",
        type=int,
        choices=[f.value for f in OutputFormat],
        help="Output format (0 = raw, 1 = Axis Neuron)",
    )
    parser.add_argument("bvhfile", help="Name and path of BVH file to be sent")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Bind address (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{PROG_NAME} {__version__}",
    )
    return parser


def parse_settings(argv: Optional[List[str]] = None) -> Settings:
    """
    Parse command line arguments into Settings.

    Raises:
        SystemExit: Wrong number or type of arguments (usage is printed)
        ConfigError: Values rejected by config validation
    """
    args = build_parser().parse_args(argv)

    overrides = {
        "server": {"port": args.port},
        "playback": {
            "frame_time_us": args.frametime,
            "output_format": args.format,
            "motion_file": args.bvhfile,
        },
    }
    if args.host is not None:
        overrides["server"]["host"] = args.host
    if args.log_level is not None:
        overrides["logging"] = {"level": args.log_level}

    return load_config(args.config, overrides=overrides)


# =============================================================================
# Server Lifecycle
# =============================================================================

def install_signal_handlers(shutdown: asyncio.Event) -> None:
    """
    Set the shutdown event on SIGINT and SIGTERM.

    Raises:
        SignalSetupError: Handlers cannot be installed on this platform
    """
    loop = asyncio.get_running_loop()

    def _handle_signal(signame: str) -> None:
        logger.info(f"Received {signame}, initiating graceful shutdown...")
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig.name)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            raise SignalSetupError(
                f"Could not set {sig.name} handler to close sockets gracefully: {e}"
            ) from e


async def run_server(
    settings: Settings,
    shutdown: Optional[asyncio.Event] = None,
    install_signals: bool = True,
) -> ConnectionAcceptor:
    """
    Load the motion file and serve clients until shutdown.

    Args:
        settings: Loaded configuration
        shutdown: Shutdown event; a new one is created if None
        install_signals: Whether to hook SIGINT/SIGTERM to the event

    Returns:
        The acceptor, after it has stopped.

    Raises:
        BvhStreamError: Any startup failure
    """
    if shutdown is None:
        shutdown = asyncio.Event()

    buffer = load_motion_file(settings.playback.motion_file)

    acceptor = ConnectionAcceptor(
        buffer=buffer,
        frame_time_us=settings.playback.frame_time_us,
        output_format=OutputFormat(settings.playback.output_format),
        port=settings.server.port,
        shutdown=shutdown,
        host=settings.server.host,
        backlog=settings.server.backlog,
        shutdown_grace=settings.server.shutdown_grace_seconds,
    )
    await acceptor.start()

    try:
        if acceptor.frame_time_us == 0:
            acceptor.frame_time_us = extract_frame_time(buffer)
            logger.info(f"Frametime: {acceptor.frame_time_us}")

        if install_signals:
            install_signal_handlers(shutdown)
    except BvhStreamError:
        await acceptor.close()
        raise

    logger.info(
        f"Serving {buffer.path} every {acceptor.frame_time_us}us "
        f"in {acceptor.output_format.name} format"
    )
    await acceptor.serve()
    return acceptor


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run bvh-stream.

    Returns:
        Process exit code: 0 after graceful shutdown, 1 on startup failure.
    """
    try:
        settings = parse_settings(argv)
    except BvhStreamError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings)
    logger.info(f"Starting {PROG_NAME} {__version__}")

    try:
        asyncio.run(run_server(settings))
    except BvhStreamError as e:
        logger.error(str(e))
        return 1

    logger.info("Shutdown complete")
    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
