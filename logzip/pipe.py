# logzip/pipe.py
import io
import queue
import threading
from typing import Iterator, Optional

from .errors import StreamWriteError

DEFAULT_MAX_CHUNKS = 64
_POLL = 0.25
_EOF = object()


class ResponsePipe(io.RawIOBase):
    """
    One-way, bounded byte pipe between the archive walk (writer thread) and the
    HTTP response iterator (reader).

    Unseekable on purpose: zipfile falls back to data descriptors. write()
    blocks while `max_chunks` chunks are pending and raises StreamWriteError
    once the reader has gone away (abort()).
    """

    def __init__(self, max_chunks: int = DEFAULT_MAX_CHUNKS):
        super().__init__()
        self._queue: "queue.Queue" = queue.Queue(maxsize=max_chunks)
        self._aborted = threading.Event()
        self._ended = False
        self._error: Optional[BaseException] = None
        self.bytes_written = 0

    # ---------- writer side ----------
    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self._ended:
            raise StreamWriteError("Pipe already ended")
        data = bytes(b)
        if not data:
            return 0
        self._put(data)
        self.bytes_written += len(data)
        return len(data)

    def _put(self, item) -> None:
        while True:
            if self._aborted.is_set():
                raise StreamWriteError("Client disconnected")
            try:
                self._queue.put(item, timeout=_POLL)
                return
            except queue.Full:
                continue

    def close_writer(self, error: Optional[BaseException] = None) -> None:
        """Mark end of stream. With `error`, the reader re-raises it after the last chunk."""
        if self._ended:
            return
        self._ended = True
        self._error = error
        try:
            self._put(_EOF)
        except StreamWriteError:
            pass  # nobody is reading any more

    # ---------- reader side ----------
    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self) -> None:
        """Reader gave up: fail the writer's next write and unblock a pending one."""
        self._aborted.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return

    def chunks(self) -> Iterator[bytes]:
        while True:
            item = self._queue.get()
            if item is _EOF:
                if self._error is not None:
                    raise self._error
                return
            yield item
