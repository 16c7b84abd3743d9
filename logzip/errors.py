# logzip/errors.py
from typing import Optional


class LogZipError(Exception):
    """Base class for everything logzip raises on purpose."""


class ConfigurationMissing(LogZipError):
    """Base directory unset, or its logs directory absent. Nothing was streamed yet."""


class DirectoryListError(LogZipError):
    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        msg = f"Cannot list directory: {path}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class FileCopyError(LogZipError):
    """A source file could not be copied into its temporary snapshot."""

    def __init__(self, source: str, reason: Optional[str] = None):
        self.source = source
        msg = f"Cannot copy contents of logfile {source} to temporary file"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class StreamWriteError(LogZipError):
    """The outbound sink is unusable (client gone, pipe aborted, sink closed)."""


class ArchiveStateError(LogZipError):
    """ArchiveWriter called out of order (entry already open, none open, finished)."""
