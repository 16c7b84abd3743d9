# logzip/tree_archiver.py
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .archive_writer import ArchiveWriter, zip_date_time
from .errors import DirectoryListError, FileCopyError, StreamWriteError
from .logging_utils import get_logger, block
from .stable_copy import BUFFER_SIZE, Snapshot, StableCopy


def zip_name(path: str) -> str:
    """
    Entry name a zip header can carry. Bytes that aren't UTF-8 (surrogate-escaped
    by os.scandir) become U+FFFD.
    """
    return os.fsencode(path).decode("utf-8", "replace")


class FileOutcome(enum.Enum):
    ARCHIVED = "archived"  # entry written, counted
    SKIPPED = "skipped"    # snapshot failed, no entry opened
    FAILED = "failed"      # entry opened but the snapshot couldn't be streamed in full


@dataclass
class FileResult:
    name: str
    source: str
    outcome: FileOutcome
    size: int = 0
    error: Optional[str] = None


@dataclass
class ArchiveReport:
    count: int = 0
    results: List[FileResult] = field(default_factory=list)

    def by_outcome(self, outcome: FileOutcome) -> List[FileResult]:
        return [r for r in self.results if r.outcome is outcome]


class TreeArchiver:
    """
    Recursively zips a directory into an ArchiveWriter.

    Each regular file is snapshotted through StableCopy and streamed from the
    snapshot under `prefix + name`; subdirectories recurse with `prefix + dir + "/"`.
    Symlinks and special files are skipped. A file whose snapshot fails is
    skipped and the walk goes on; a directory that can't be listed or a dead
    sink aborts the walk.
    """

    def __init__(self, writer: ArchiveWriter, stable_copy: StableCopy,
                 logger: Optional[logging.Logger] = None, buffer_size: int = BUFFER_SIZE):
        self.writer = writer
        self.stable_copy = stable_copy
        self.buffer_size = buffer_size
        self.log = logger or get_logger("logzip.tree_archiver")
        self.report = ArchiveReport()

    def archive(self, directory: str, prefix: str = "") -> int:
        """Zip `directory` recursively; returns the number of files archived."""
        count = 0
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            self.log.error("\n" + block("DIRECTORY LIST FAILED", path=directory, error=e))
            raise DirectoryListError(directory, str(e)) from e

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                count += self.archive(entry.path, prefix + entry.name + "/")
            elif entry.is_file(follow_symlinks=False):
                result = self.archive_file(zip_name(prefix + entry.name), entry.path)
                self.report.results.append(result)
                if result.outcome is FileOutcome.ARCHIVED:
                    count += 1
                    self.report.count += 1
        return count

    def archive_file(self, name: str, source: str) -> FileResult:
        self.log.info("\n" + block("ZIPPING", name=name))
        try:
            snap = self.stable_copy.stabilize(source)
        except FileCopyError as e:
            return FileResult(name, source, FileOutcome.SKIPPED, error=str(e))

        try:
            return self._stream_snapshot(name, snap)
        finally:
            self.stable_copy.discard(snap)

    def _stream_snapshot(self, name: str, snap: Snapshot) -> FileResult:
        try:
            self.writer.begin_entry(name, date_time=zip_date_time(snap.mtime), size_hint=snap.size)
        except ValueError as e:
            self.log.warning("\n" + block("ENTRY REJECTED", name=name, error=e))
            return FileResult(name, snap.source, FileOutcome.SKIPPED, error=str(e))
        written = 0
        try:
            with open(snap.path, "rb") as fh:
                for chunk in iter(lambda: fh.read(self.buffer_size), b""):
                    self.writer.write_chunk(chunk)
                    written += len(chunk)
        except StreamWriteError:
            self.writer.abandon_entry()
            raise
        except OSError as e:
            # Snapshot unreadable: keep the archive well-formed, don't count the file.
            self.log.warning("\n" + block("SNAPSHOT READ FAILED", name=name, tmp=snap.path,
                                          written=written, error=e))
            self.writer.abandon_entry()
            return FileResult(name, snap.source, FileOutcome.FAILED, size=written, error=str(e))

        self.writer.end_entry()
        return FileResult(name, snap.source, FileOutcome.ARCHIVED, size=written)
