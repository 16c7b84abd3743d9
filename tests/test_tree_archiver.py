import os
import sys

import pytest

from logzip.archive_writer import ArchiveWriter
from logzip.errors import DirectoryListError, StreamWriteError
from logzip.stable_copy import StableCopy
from logzip.tree_archiver import FileOutcome, TreeArchiver, zip_name


def make_archiver(sink, temp_dir, buffer_size=4096, writer_cls=ArchiveWriter):
    writer = writer_cls(sink)
    return TreeArchiver(writer, StableCopy(temp_dir=str(temp_dir)), buffer_size=buffer_size), writer


def test_catalina_scenario(logs_dir, sink, temp_dir):
    archiver, writer = make_archiver(sink, temp_dir)
    count = archiver.archive(str(logs_dir))
    writer.finish()

    assert count == 2
    zf = sink.zip()
    assert sorted(zf.namelist()) == ["archive/old.log", "catalina.log"]
    assert zf.read("catalina.log") == b"0123456789"
    assert zf.read("archive/old.log") == b"a" * 20
    assert archiver.report.count == 2
    assert list(temp_dir.iterdir()) == []


def test_nested_tree_names_and_count(tmp_path, sink, temp_dir, tree):
    root = tmp_path / "logs"
    tree(root, {
        "a.log": b"A",
        "same.log": b"top",
        "x": {"same.log": b"x", "y": {"same.log": b"xy", "z": {"deep.log": b"deep"}}},
        "empty": {},
    })
    archiver, writer = make_archiver(sink, temp_dir)
    count = archiver.archive(str(root))
    writer.finish()

    names = sorted(sink.zip().namelist())
    assert names == ["a.log", "same.log", "x/same.log", "x/y/same.log", "x/y/z/deep.log"]
    assert count == len(names)
    assert sink.zip().read("x/y/same.log") == b"xy"


def test_empty_directory(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    root.mkdir()
    archiver, writer = make_archiver(sink, temp_dir)
    assert archiver.archive(str(root)) == 0
    writer.finish()
    assert sink.zip().namelist() == []
    assert archiver.report.results == []


def test_only_subdirectories_aggregate_counts(tmp_path, sink, temp_dir, tree):
    root = tmp_path / "logs"
    tree(root, {"one": {"1.log": b"1"}, "two": {"2.log": b"2", "three": {"3.log": b"3"}}})
    archiver, writer = make_archiver(sink, temp_dir)
    assert archiver.archive(str(root)) == 3
    writer.finish()
    assert sorted(sink.zip().namelist()) == ["one/1.log", "two/2.log", "two/three/3.log"]


def test_large_file_streams_in_chunks(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    root.mkdir()
    payload = os.urandom(50_000)
    (root / "big.log").write_bytes(payload)
    archiver, writer = make_archiver(sink, temp_dir, buffer_size=1024)
    assert archiver.archive(str(root)) == 1
    writer.finish()
    assert sink.zip().read("big.log") == payload
    assert archiver.report.results[0].size == 50_000


def test_file_rewritten_mid_stream_keeps_snapshot_bytes(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    root.mkdir()
    live = root / "catalina.log"
    original = b"line\n" * 2000
    live.write_bytes(original)

    class RewritingWriter(ArchiveWriter):
        def write_chunk(self, data):
            super().write_chunk(data)
            # log rotation + heavy append while the entry is being streamed
            live.write_bytes(b"rotated" * 5000)

    archiver, writer = make_archiver(sink, temp_dir, buffer_size=512, writer_cls=RewritingWriter)
    assert archiver.archive(str(root)) == 1
    writer.finish()
    zf = sink.zip()
    assert zf.testzip() is None
    assert zf.read("catalina.log") == original


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
def test_symlinks_are_skipped(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    root.mkdir()
    (root / "real.log").write_bytes(b"real")
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.log").write_bytes(b"secret")
    os.symlink(root / "real.log", root / "link.log")
    os.symlink(outside, root / "linkdir")

    archiver, writer = make_archiver(sink, temp_dir)
    assert archiver.archive(str(root)) == 1
    writer.finish()
    assert sink.zip().namelist() == ["real.log"]


def test_copy_failure_skips_file_without_opening_entry(tmp_path, sink, temp_dir, monkeypatch):
    root = tmp_path / "logs"
    root.mkdir()
    (root / "good.log").write_bytes(b"good")
    (root / "bad.log").write_bytes(b"bad")

    real_open = open

    def guarded_open(path, *args, **kwargs):
        if str(path).endswith("bad.log"):
            raise PermissionError("denied")
        return real_open(path, *args, **kwargs)
    monkeypatch.setattr("builtins.open", guarded_open)

    archiver, writer = make_archiver(sink, temp_dir)
    count = archiver.archive(str(root))
    writer.finish()
    monkeypatch.undo()

    assert count == 1
    assert sink.zip().namelist() == ["good.log"]  # no zero-byte entry for bad.log
    skipped = archiver.report.by_outcome(FileOutcome.SKIPPED)
    assert [r.name for r in skipped] == ["bad.log"]
    assert "denied" in skipped[0].error
    assert list(temp_dir.iterdir()) == []


def test_snapshot_read_failure_closes_entry_and_continues(tmp_path, sink, temp_dir, monkeypatch):
    root = tmp_path / "logs"
    root.mkdir()
    (root / "only.log").write_bytes(b"payload")

    real_open = open

    def failing_reader(path, mode="r", *args, **kwargs):
        fh = real_open(path, mode, *args, **kwargs)
        if os.path.dirname(str(path)) == str(temp_dir) and mode == "rb":
            fh.close()
            raise OSError("snapshot vanished")
        return fh
    monkeypatch.setattr("builtins.open", failing_reader)

    archiver, writer = make_archiver(sink, temp_dir)
    assert archiver.archive(str(root)) == 0
    writer.finish()
    monkeypatch.undo()

    assert not writer.entry_open
    zf = sink.zip()
    assert zf.testzip() is None
    assert zf.namelist() == ["only.log"]
    assert zf.read("only.log") == b""
    failed = archiver.report.by_outcome(FileOutcome.FAILED)
    assert [r.name for r in failed] == ["only.log"]
    assert list(temp_dir.iterdir()) == []


def test_sink_failure_aborts_and_cleans_temp(logs_dir, sink, temp_dir):
    archiver, writer = make_archiver(sink, temp_dir)
    sink.fail_after = 0
    with pytest.raises(StreamWriteError):
        archiver.archive(str(logs_dir))
    writer.close()
    assert not writer.entry_open
    assert list(temp_dir.iterdir()) == []


def test_unlistable_directory_raises(tmp_path, sink, temp_dir):
    archiver, _ = make_archiver(sink, temp_dir)
    with pytest.raises(DirectoryListError) as ei:
        archiver.archive(str(tmp_path / "does-not-exist"))
    assert ei.value.path == str(tmp_path / "does-not-exist")


def _write_raw_name(directory, raw_name: bytes, data: bytes):
    if sys.getfilesystemencoding().lower() not in ("utf-8", "utf8"):
        pytest.skip("needs a UTF-8 filesystem encoding")
    try:
        with open(os.path.join(os.fsencode(str(directory)), raw_name), "wb") as f:
            f.write(data)
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 names")


def test_non_utf8_names_are_archived_with_replacement(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    (root / "sub").mkdir(parents=True)
    (root / "good.log").write_bytes(b"good")
    _write_raw_name(root, b"bad\xff.log", b"bad bytes")
    _write_raw_name(root / "sub", b"rotated\xfe.1", b"older")

    archiver, writer = make_archiver(sink, temp_dir)
    count = archiver.archive(str(root))
    writer.finish()

    assert count == 3
    zf = sink.zip()
    assert zf.testzip() is None
    assert sorted(zf.namelist()) == ["bad�.log", "good.log", "sub/rotated�.1"]
    assert zf.read("bad�.log") == b"bad bytes"
    assert archiver.report.by_outcome(FileOutcome.SKIPPED) == []
    assert list(temp_dir.iterdir()) == []


def test_rejected_entry_name_is_skipped_not_fatal(tmp_path, sink, temp_dir):
    root = tmp_path / "logs"
    root.mkdir()
    (root / "a.log").write_bytes(b"a")
    archiver, writer = make_archiver(sink, temp_dir)

    result = archiver.archive_file("bad\udcff.log", str(root / "a.log"))
    assert result.outcome is FileOutcome.SKIPPED
    assert not writer.entry_open

    assert archiver.archive(str(root)) == 1
    writer.finish()
    assert sink.zip().namelist() == ["a.log"]
    assert list(temp_dir.iterdir()) == []


def test_zip_name_replaces_undecodable_bytes():
    assert zip_name("x/" + os.fsdecode(b"bad\xff.log")) == "x/bad�.log"
    assert zip_name("plain/ascii.log") == "plain/ascii.log"
    assert zip_name("déjà.log") == "déjà.log"
