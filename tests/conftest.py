# tests/conftest.py

import io
import logging
import zipfile
from pathlib import Path

import pytest


class UnseekableSink(io.RawIOBase):
    """Write-only sink that refuses tell()/seek(), like a socket or HTTP response."""

    def __init__(self):
        super().__init__()
        self.buf = bytearray()
        self.fail_after = None  # bytes accepted before every write raises

    def writable(self):
        return True

    def write(self, b):
        if self.fail_after is not None and len(self.buf) + len(b) > self.fail_after:
            raise BrokenPipeError("peer went away")
        self.buf += bytes(b)
        return len(b)

    def zip(self) -> zipfile.ZipFile:
        return zipfile.ZipFile(io.BytesIO(bytes(self.buf)))


@pytest.fixture
def sink():
    return UnseekableSink()


@pytest.fixture
def temp_dir(tmp_path):
    """Private temp area injected into StableCopy so leftovers are observable"""
    d = tmp_path / "tmp"
    d.mkdir()
    return d


@pytest.fixture
def logs_dir(tmp_path):
    """
    <base>/logs
      catalina.log        (10 bytes)
      archive/old.log     (20 bytes)
    """
    base = tmp_path / "base"
    logs = base / "logs"
    (logs / "archive").mkdir(parents=True)
    (logs / "catalina.log").write_bytes(b"0123456789")
    (logs / "archive" / "old.log").write_bytes(b"a" * 20)
    return logs


@pytest.fixture
def quiet_logger():
    log = logging.getLogger("logzip.tests")
    log.setLevel(logging.DEBUG)
    return log


def make_tree(root: Path, layout: dict) -> None:
    """Create files (bytes values) and directories (dict values) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        if isinstance(value, dict):
            make_tree(root / name, value)
        else:
            (root / name).write_bytes(value)


@pytest.fixture
def tree():
    return make_tree
