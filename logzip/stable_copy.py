# logzip/stable_copy.py
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, NamedTuple, Optional

from .errors import FileCopyError
from .logging_utils import get_logger, block

# Size of buffer to use for copying operations.
BUFFER_SIZE = 4096
TEMP_PREFIX = "templog-"
TEMP_SUFFIX = ".txt"


class Snapshot(NamedTuple):
    source: str
    path: str    # private temporary copy
    size: int    # bytes copied
    mtime: float # source mtime at copy time


class StableCopy:
    """
    Takes a private byte-for-byte copy of a file so that whatever reads it next
    sees a fixed length, even while the original is appended to or rotated.

    Temp files land in `temp_dir` (platform temp area when None). The caller owns
    the returned Snapshot and must hand it back to discard().
    """

    def __init__(self, temp_dir: Optional[str] = None, buffer_size: int = BUFFER_SIZE,
                 logger: Optional[logging.Logger] = None):
        self.temp_dir = temp_dir
        self.buffer_size = buffer_size
        self.log = logger or get_logger("logzip.stable_copy")

    def _allocate(self) -> str:
        fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=self.temp_dir)
        os.close(fd)
        self.log.debug("\n" + block("TEMP FILE", path=path))
        return path

    def stabilize(self, source: str) -> Snapshot:
        """Copy `source` into a fresh temp file. Raises FileCopyError; never leaves the temp file behind."""
        try:
            tmp = self._allocate()
        except OSError as e:
            self.log.warning("\n" + block("TEMP ALLOCATION FAILED", source=source,
                                          temp_dir=self.temp_dir or tempfile.gettempdir(), error=e))
            raise FileCopyError(source, str(e)) from e

        try:
            with open(source, "rb") as src, open(tmp, "wb") as dst:
                mtime = os.fstat(src.fileno()).st_mtime
                shutil.copyfileobj(src, dst, self.buffer_size)
                size = dst.tell()
        except OSError as e:
            self.log.warning("\n" + block("COPY FAILED", source=source, tmp=tmp, error=e))
            self._remove(tmp)
            raise FileCopyError(source, str(e)) from e

        return Snapshot(source=source, path=tmp, size=size, mtime=mtime)

    def discard(self, snapshot: Snapshot) -> None:
        """Best-effort delete of a snapshot. Failures are logged only."""
        self._remove(snapshot.path)

    def _remove(self, path: str) -> None:
        try:
            os.remove(path)
            self.log.debug("\n" + block("TEMP FILE DELETED", path=path))
        except FileNotFoundError:
            pass
        except OSError:
            self.log.warning("\n" + block("TEMP CLEANUP FAILED", path=path), exc_info=True)

    @contextmanager
    def snapshot(self, source: str) -> Iterator[Snapshot]:
        snap = self.stabilize(source)
        try:
            yield snap
        finally:
            self.discard(snap)
