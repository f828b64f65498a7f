"""
Error Types
===========

Exception hierarchy for bvh-stream.

Startup errors (configuration, file loading, frame time parsing, socket
setup, signal installation) are fatal to the process and are turned into a
non-zero exit code by the entry point. ``TransmitError`` is local to one
client session and never reaches the acceptor.
"""


class BvhStreamError(Exception):
    """Base class for all bvh-stream errors."""


class ConfigError(BvhStreamError):
    """Invalid or missing startup parameters."""


class MotionFileError(BvhStreamError, OSError):
    """Motion file could not be opened or read in full."""


class FrameTimeParseError(BvhStreamError):
    """Frame time could not be derived from the motion file."""


class FrameTimeMarkerNotFound(FrameTimeParseError):
    """The buffer contains no "Frame Time" marker."""


class FrameTimeValueNotFound(FrameTimeParseError):
    """The "Frame Time" marker is not followed by any digit."""


class ServerSocketError(BvhStreamError):
    """Listening socket could not be created."""


class BindError(ServerSocketError):
    """Listening socket could not be bound to the configured address."""


class ListenError(ServerSocketError):
    """Bound socket could not be put into listening state."""


class SignalSetupError(BvhStreamError):
    """Shutdown signal handler could not be installed."""


class TransmitError(BvhStreamError):
    """Sending to a connected client failed."""
