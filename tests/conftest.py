import io
import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bitops import BitReader, BitWriter  # noqa: E402


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def sample_file(tmp_path: Path):
    """Write a small text file with skewed byte frequencies."""
    path = tmp_path / "sample.txt"
    path.write_bytes(b"abracadabra, said the wizard.\n" * 20)
    return path


class MemoryStreams:
    """Build in-memory bit readers and writers for core tests."""

    @staticmethod
    def writer():
        buf = io.BytesIO()
        return BitWriter(buf), buf

    @staticmethod
    def reader(data: bytes):
        return BitReader(io.BytesIO(data))

    @staticmethod
    def contents(writer, buf) -> bytes:
        writer.flush()
        return buf.getvalue()


@pytest.fixture()
def streams():
    """Provide helpers for in-memory bit streams."""
    return MemoryStreams()
