"""Escape-sequence framing and output for the terminal.

Handles two per-run decisions:
- Whether frames need wrapping for tmux/screen passthrough (from TERM)
- Whether bytes go straight to the controlling TTY device or to stdout
"""

from __future__ import annotations

import logging
import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from enum import Enum
from typing import IO

logger = logging.getLogger(__name__)

ESC = "\x1b"
BEL = "\x07"

# OSC introducer and terminator
OSC = f"{ESC}]"
ST = BEL

# tmux requires unrecognized OSC sequences to be wrapped with DCS tmux;
# <sequence> ST, and for all ESCs in <sequence> to be replaced with ESC ESC.
TMUX_OSC = f"{ESC}Ptmux;{ESC}{ESC}]"
TMUX_ST = f"{BEL}{ESC}\\"

MULTIPLEXER_TERM_PREFIXES = ("screen", "tmux")


class TransportMode(Enum):
    """How escape sequences are delimited."""

    PLAIN = "plain"
    MULTIPLEXER_WRAPPED = "multiplexer"


class EmissionTarget(Enum):
    """Where frames are written."""

    DIRECT_TTY_DEVICE = "tty"
    STANDARD_OUTPUT_STREAM = "stdout"


def detect_transport_mode(term: str | None) -> TransportMode:
    """Pick the transport mode for a TERM value.

    Args:
        term: Value of the TERM environment variable, or None if unset

    Returns:
        MULTIPLEXER_WRAPPED when TERM starts with "screen" or "tmux"
    """
    if term and term.startswith(MULTIPLEXER_TERM_PREFIXES):
        return TransportMode.MULTIPLEXER_WRAPPED
    return TransportMode.PLAIN


def resolve_tty_name() -> str | None:
    """Return the device path of the controlling terminal, if any."""
    for stream in (sys.stdin, sys.stdout, sys.stderr):
        try:
            return os.ttyname(stream.fileno())
        except (AttributeError, OSError, ValueError):
            continue
    return None


class OutputSink(ABC):
    """Destination for frame text."""

    target: EmissionTarget

    @abstractmethod
    def write(self, text: str) -> None:
        """Append text to the output."""
        pass

    def close(self) -> None:
        """Release the underlying handle."""
        pass


class TTYDeviceSink(OutputSink):
    """Writes to an opened terminal device, flushing after every write."""

    target = EmissionTarget.DIRECT_TTY_DEVICE

    def __init__(self, handle: IO[str]) -> None:
        self._handle = handle

    @classmethod
    def open(cls, path: str) -> TTYDeviceSink:
        return cls(open(path, "w", encoding="utf-8", errors="surrogateescape"))

    def write(self, text: str) -> None:
        self._handle.write(text)
        self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class StreamSink(OutputSink):
    """Writes to a text stream such as stdout."""

    target = EmissionTarget.STANDARD_OUTPUT_STREAM

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> IO[str]:
        # Looked up lazily so redirected stdout (e.g. under test) is honored
        return self._stream if self._stream is not None else sys.stdout

    def write(self, text: str) -> None:
        stream = self.stream
        try:
            stream.write(text)
        except UnicodeEncodeError:
            # Undecodable filenames arrive from argv surrogate-escaped
            stream.flush()
            stream.buffer.write(text.encode(stream.encoding or "utf-8", "surrogateescape"))

    def close(self) -> None:
        self.stream.flush()


def open_sink(tty_resolver: Callable[[], str | None] = resolve_tty_name) -> OutputSink:
    """Open the controlling TTY for writing, falling back to stdout.

    The fallback is silent so piping to non-terminal consumers keeps working.
    """
    tty_name = tty_resolver()
    if tty_name:
        try:
            sink = TTYDeviceSink.open(tty_name)
            logger.debug("Writing frames to TTY device %s", tty_name)
            return sink
        except OSError as e:
            logger.debug("Could not open %s (%s), falling back to stdout", tty_name, e)
    else:
        logger.debug("No controlling terminal, falling back to stdout")
    return StreamSink()


class Transport:
    """Frames escape sequences and writes them to a single sink.

    The mode and sink are fixed at construction and used for every frame
    written during the run.
    """

    def __init__(self, sink: OutputSink, mode: TransportMode = TransportMode.PLAIN) -> None:
        self.sink = sink
        self.mode = mode
        self.frame_open = False
        if mode == TransportMode.MULTIPLEXER_WRAPPED:
            self._open, self._close = TMUX_OSC, TMUX_ST
        else:
            self._open, self._close = OSC, ST

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        tty_resolver: Callable[[], str | None] = resolve_tty_name,
    ) -> Transport:
        """Build a transport from TERM and the controlling terminal."""
        if environ is None:
            environ = os.environ
        mode = detect_transport_mode(environ.get("TERM"))
        logger.debug("Terminal type %r, transport mode %s", environ.get("TERM"), mode.value)
        return cls(open_sink(tty_resolver), mode)

    @property
    def target(self) -> EmissionTarget:
        return self.sink.target

    def open_frame(self) -> None:
        """Write the frame introducer."""
        self.sink.write(self._open)
        self.frame_open = True

    def close_frame(self) -> None:
        """Write the frame terminator."""
        self.sink.write(self._close)
        self.frame_open = False

    def write(self, text: str) -> None:
        self.sink.write(text)

    def close(self) -> None:
        self.sink.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
