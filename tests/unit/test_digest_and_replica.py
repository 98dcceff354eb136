import hashlib
from pathlib import Path

import pytest

from todosync_core.digest import compute_fingerprint, fingerprint_of_path
from todosync_core.errors import DataError, TransientError
from todosync_core.replica import LocalReplica


def test_fingerprint_matches_drive_md5(tmp_path: Path):
    data = b"(A) call mom\nbuy milk\n"
    p = tmp_path / "todo.txt"
    p.write_bytes(data)

    assert compute_fingerprint(data) == hashlib.md5(data).hexdigest()
    assert fingerprint_of_path(p) == compute_fingerprint(data)


def test_absent_file_has_no_fingerprint(tmp_path: Path):
    assert fingerprint_of_path(tmp_path / "missing.txt") is None
    # Absent never equals real content, not even empty content
    assert compute_fingerprint(b"") is not None


def test_fingerprint_distinguishes_content():
    assert compute_fingerprint(b"a") != compute_fingerprint(b"a\n")


def test_unreadable_path_raises(tmp_path: Path):
    with pytest.raises(OSError):
        fingerprint_of_path(tmp_path)  # a directory


def test_replica_write_replaces_whole_file(tmp_path: Path):
    replica = LocalReplica()
    p = tmp_path / "done.txt"
    p.write_bytes(b"a much longer original content\n")

    replica.write(p, b"short\n")

    assert p.read_bytes() == b"short\n"
    assert not list(tmp_path.glob(".*todosynctmp"))


def test_replica_read_missing_returns_none(tmp_path: Path):
    assert LocalReplica().read(tmp_path / "nope.txt") is None


def test_replica_write_into_missing_directory_is_transient(tmp_path: Path):
    with pytest.raises(TransientError) as exc:
        LocalReplica().write(tmp_path / "no-such-dir" / "todo.txt", b"x")
    assert exc.value.operation == "write"
    assert "todo.txt" in str(exc.value)


def test_replica_copy_and_missing_source(tmp_path: Path):
    replica = LocalReplica()
    src = tmp_path / "a.txt"
    dest = tmp_path / "b.txt"
    src.write_bytes(b"x")

    assert replica.copy(src, dest) == b"x"
    assert dest.read_bytes() == b"x"

    with pytest.raises(DataError):
        replica.copy(tmp_path / "gone.txt", dest)


def test_replica_remove(tmp_path: Path):
    replica = LocalReplica()
    p = tmp_path / "todo.txt"
    p.write_bytes(b"x")

    replica.remove(p)
    replica.remove(p)  # already gone

    assert not p.exists()


def test_replica_fingerprint_wraps_errors(tmp_path: Path):
    with pytest.raises(TransientError) as exc:
        LocalReplica().fingerprint(tmp_path)
    assert exc.value.operation == "fingerprint"
