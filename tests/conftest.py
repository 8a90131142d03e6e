"""Shared test fixtures for ringfile."""

import logging
import logging.handlers
from pathlib import Path

import pytest
import structlog

from ringfile.ringbuffer import RingBuffer

RECORD_LENGTH = 20


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point $HOME at a temp dir so config and log paths never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging.configure() so file handlers don't leak between tests."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def ring_path(tmp_path: Path) -> Path:
    """Path for a buffer file that doesn't exist yet."""
    return tmp_path / "ring.dat"


@pytest.fixture
def ring(ring_path: Path):
    """Open a fresh 10 x 20B buffer, closed after the test."""
    buffer = RingBuffer.create(ring_path, capacity=10, record_length=RECORD_LENGTH)
    yield buffer
    buffer.close()


def make_record(tag: int, length: int = RECORD_LENGTH) -> bytes:
    """Create a record whose first byte is tag and the rest derived from it."""
    return bytes([tag % 256]) + bytes((tag + i) % 256 for i in range(1, length))


def tags(records: list[bytes]) -> list[int]:
    """Return the first byte of every record."""
    return [r[0] for r in records]


class FailingWrites:
    """File wrapper whose writes fail like a full disk."""

    def __init__(self, file):
        self._file = file

    def __getattr__(self, name):
        return getattr(self._file, name)

    def write(self, data):
        raise OSError(28, "No space left on device")
