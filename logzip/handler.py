# logzip/handler.py
import logging
import threading
from typing import BinaryIO, Iterator, Optional

from .archive_writer import ArchiveWriter
from .logging_utils import get_logger, block
from .pipe import DEFAULT_MAX_CHUNKS, ResponsePipe
from .stable_copy import StableCopy
from .tree_archiver import ArchiveReport, FileOutcome, TreeArchiver

log = get_logger("logzip.handler")


def write_logs_archive(logs_dir: str, sink: BinaryIO, temp_dir: Optional[str] = None,
                       logger: Optional[logging.Logger] = None) -> ArchiveReport:
    """
    Zip `logs_dir` into `sink`, start to finish. The writer is released on every
    exit path; the trailer is only written when the whole walk succeeded.
    """
    logger = logger or log
    writer = ArchiveWriter(sink, logger=logger)
    archiver = TreeArchiver(writer, StableCopy(temp_dir, logger=logger), logger=logger)
    with writer:
        count = archiver.archive(logs_dir)
        writer.finish()

    report = archiver.report
    logger.info("\n" + block(
        f"zipped and served {count} logfiles",
        logs_dir=logs_dir,
        skipped=len(report.by_outcome(FileOutcome.SKIPPED)),
        failed=len(report.by_outcome(FileOutcome.FAILED)),
    ))
    return report


def stream_logs_archive(logs_dir: str, temp_dir: Optional[str] = None,
                        logger: Optional[logging.Logger] = None,
                        max_chunks: int = DEFAULT_MAX_CHUNKS) -> Iterator[bytes]:
    """
    Generator of zip bytes for `logs_dir`, suitable as a streamed response body.

    The walk runs on its own thread (started on first next()) and writes into a
    bounded ResponsePipe. Closing the generator early aborts the pipe, which
    fails the walk's next write and unwinds it. A walk error is re-raised here
    after the bytes already produced.
    """
    logger = logger or log
    pipe = ResponsePipe(max_chunks=max_chunks)

    def _produce():
        try:
            write_logs_archive(logs_dir, pipe, temp_dir=temp_dir, logger=logger)
        except Exception as e:
            if pipe.aborted:
                logger.warning("\n" + block("DOWNLOAD ABORTED BY CLIENT", logs_dir=logs_dir,
                                            sent=pipe.bytes_written, error=e))
            else:
                logger.error("\n" + block("ARCHIVE WALK FAILED", logs_dir=logs_dir,
                                          sent=pipe.bytes_written, error=e))
            pipe.close_writer(error=e)
        else:
            pipe.close_writer()

    worker = threading.Thread(target=_produce, name="logzip-walk", daemon=True)
    worker.start()
    completed = False
    try:
        yield from pipe.chunks()
        completed = True
    finally:
        if not completed:
            pipe.abort()
        worker.join()
