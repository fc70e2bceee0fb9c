"""Shared fixtures for itermcat tests."""

from __future__ import annotations

import pytest

from itermcat.transport import EmissionTarget, OutputSink, Transport, TransportMode


class MemorySink(OutputSink):
    """Sink that records every write."""

    target = EmissionTarget.STANDARD_OUTPUT_STREAM

    def __init__(self) -> None:
        self.writes: list[str] = []
        self.closed = False

    @property
    def text(self) -> str:
        return "".join(self.writes)

    def write(self, text: str) -> None:
        self.writes.append(text)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def transport(sink: MemorySink) -> Transport:
    return Transport(sink, TransportMode.PLAIN)


@pytest.fixture
def tmux_transport(sink: MemorySink) -> Transport:
    return Transport(sink, TransportMode.MULTIPLEXER_WRAPPED)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point config storage at a temporary directory."""
    path = tmp_path / "config"
    monkeypatch.setenv("ITERMCAT_CONFIG_DIR", str(path))
    return path
