# logzip/archive_writer.py
import logging
import time
import zipfile
from typing import BinaryIO, Optional, Tuple

from .errors import ArchiveStateError, StreamWriteError
from .logging_utils import get_logger, block

DateTime = Tuple[int, int, int, int, int, int]

# Earliest timestamp a zip header can carry.
ZIP_EPOCH: DateTime = (1980, 1, 1, 0, 0, 0)


def zip_date_time(ts: Optional[float] = None) -> DateTime:
    dt = time.localtime(time.time() if ts is None else ts)[:6]
    return max(dt, ZIP_EPOCH)


class ArchiveWriter:
    """
    Sequential zip encoder over one outbound byte sink.

      begin_entry(name) -> write_chunk(bytes)* -> end_entry()   (repeat)
      finish()                                                  (once)

    The sink only needs write()/flush(); when it can't tell()/seek() the entries
    carry data descriptors, so nothing is ever rewritten and sizes are never
    declared up front. One entry at a time; interleaving is an ArchiveStateError.
    """

    def __init__(self, sink: BinaryIO, compression: int = zipfile.ZIP_DEFLATED,
                 logger: Optional[logging.Logger] = None):
        self.log = logger or get_logger("logzip.archive_writer")
        self.compression = compression
        self.entries = 0
        self._entry = None
        self._entry_name: Optional[str] = None
        self._finished = False
        self._closed = False
        try:
            self._zip = zipfile.ZipFile(sink, mode="w", compression=compression, allowZip64=True)
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"Cannot open archive on sink: {e}") from e

    # ---------- state ----------
    @property
    def entry_open(self) -> bool:
        return self._entry is not None

    @property
    def finished(self) -> bool:
        return self._finished

    def _ensure_usable(self, action: str):
        if self._finished or self._closed:
            raise ArchiveStateError(f"Cannot {action}: archive already finished")

    # ---------- entries ----------
    def begin_entry(self, name: str, date_time: Optional[DateTime] = None,
                    size_hint: Optional[int] = None) -> None:
        """
        Start a new member called `name` ("/"-delimited, no leading slash).
        `size_hint` only decides whether zip64 fields are needed; the real size
        is whatever gets written.
        """
        self._ensure_usable("begin entry")
        if self._entry is not None:
            raise ArchiveStateError(f"Cannot begin {name!r}: entry {self._entry_name!r} is still open")
        if not name or name.startswith("/"):
            raise ValueError(f"Invalid entry name: {name!r}")
        try:
            name.encode("utf-8")
        except UnicodeEncodeError as e:
            # Raised before anything reaches the sink; the archive stays usable.
            raise ValueError(f"Entry name not representable in a zip header: {name!r}") from e

        zinfo = zipfile.ZipInfo(name, date_time=date_time or zip_date_time())
        zinfo.compress_type = self.compression
        zinfo.external_attr = 0o644 << 16
        if size_hint is not None:
            zinfo.file_size = size_hint
        try:
            self._entry = self._zip.open(zinfo, mode="w")
        except StreamWriteError:
            raise
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"Cannot begin entry {name!r}: {e}") from e
        self._entry_name = name

    def write_chunk(self, data: bytes) -> None:
        if self._entry is None:
            raise ArchiveStateError("Cannot write: no entry is open")
        try:
            self._entry.write(data)
        except StreamWriteError:
            raise
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"Write to {self._entry_name!r} failed: {e}") from e

    def end_entry(self) -> None:
        if self._entry is None:
            raise ArchiveStateError("Cannot end entry: no entry is open")
        entry, name = self._entry, self._entry_name
        self._entry = None
        self._entry_name = None
        try:
            entry.close()
        except StreamWriteError:
            raise
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"Cannot close entry {name!r}: {e}") from e
        self.entries += 1

    def abandon_entry(self) -> None:
        """Best-effort close of the open entry after a failure; never raises."""
        if self._entry is None:
            return
        name = self._entry_name
        try:
            self.end_entry()
        except Exception as e:
            self.log.warning("\n" + block("ENTRY ABANDONED", name=name, error=e))

    # ---------- archive ----------
    def finish(self) -> None:
        """Write the central directory. Exactly once, after the last end_entry()."""
        self._ensure_usable("finish")
        if self._entry is not None:
            raise ArchiveStateError(f"Cannot finish: entry {self._entry_name!r} is still open")
        self._finished = True
        try:
            self._zip.close()
        except StreamWriteError:
            raise
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"Cannot write archive trailer: {e}") from e

    def close(self) -> None:
        """
        Release the encoder. After finish() this is a no-op; otherwise the open
        entry is abandoned and no trailer is written, so a failed walk never
        looks like a complete archive.
        """
        if self._finished or self._closed:
            return
        self._closed = True
        self.abandon_entry()
        # Detach the sink so ZipFile.close()/__del__ can't write a central directory.
        self._zip.fp = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
