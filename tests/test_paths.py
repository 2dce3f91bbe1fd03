import io
from pathlib import Path

import pytest

from app.config import ConfigurationError
from app.utils.utils import (
    PathValidationError, StoragePathResolver, atomic_write_stream, dir_exists,
    parse_path, sanitize_segment,
)


# ============================================================================
# parse_path
# ============================================================================
def test_parse_path_expands_home():
    assert parse_path("~", home_dir="/home/alice") == Path("/home/alice")
    assert parse_path("~", "dbs", home_dir="/home/alice") == Path("/home/alice/dbs")
    assert parse_path("~/dbs", home_dir="/home/alice") == Path("/home/alice/dbs")


def test_parse_path_without_home_fails_fast():
    with pytest.raises(ConfigurationError):
        parse_path("~")
    with pytest.raises(ConfigurationError):
        parse_path("~/dbs", home_dir="")


def test_parse_path_plain_and_empty_segments():
    assert parse_path("/srv/data") == Path("/srv/data")
    assert parse_path("/srv", "", "data") == Path("/srv/data")
    assert parse_path("/srv/~backup") == Path("/srv/~backup")


# ============================================================================
# dir_exists
# ============================================================================
def test_dir_exists(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    assert dir_exists(tmp_path) is True
    assert dir_exists(f) is False
    assert dir_exists(tmp_path / "missing") is False


def test_dir_exists_swallows_os_errors(tmp_path, monkeypatch):
    def boom(self):
        raise PermissionError("denied")
    monkeypatch.setattr(Path, "is_dir", boom)
    assert dir_exists(tmp_path) is False


# ============================================================================
# Resolver
# ============================================================================
def test_resolve_under_root(tmp_path):
    r = StoragePathResolver(tmp_path)
    target = r.resolve("alice", "proj", "a.txt")
    assert target == tmp_path.resolve() / "alice" / "proj" / "a.txt"
    assert r.relative(target) == "alice/proj/a.txt"


def test_resolve_skips_empty_segments(tmp_path):
    r = StoragePathResolver(tmp_path)
    assert r.resolve("alice", None, "a.txt") == r.resolve("alice", "", "a.txt")
    assert r.relative(r.resolve("alice", "  ", "a.txt")) == "alice/a.txt"


@pytest.mark.parametrize("segment", [
    "..", ".", "../etc", "a/b", "a\\b", "/etc/passwd", "bad\0name", "C:evil",
])
def test_resolve_rejects_traversal(tmp_path, segment):
    r = StoragePathResolver(tmp_path)
    with pytest.raises(PathValidationError):
        r.resolve("alice", segment)


def test_resolve_requires_a_segment(tmp_path):
    with pytest.raises(PathValidationError):
        StoragePathResolver(tmp_path).resolve("", None)


def test_resolve_rejects_symlink_escape(tmp_path):
    root = tmp_path / "root"
    outside = tmp_path / "outside"
    root.mkdir()
    outside.mkdir()
    (root / "alice").symlink_to(outside, target_is_directory=True)
    with pytest.raises(PathValidationError):
        StoragePathResolver(root).resolve("alice", "a.txt")


def test_sanitize_segment_strips():
    assert sanitize_segment("  report.pdf ", "file name") == "report.pdf"
    assert sanitize_segment("~", "username") == "~"


# ============================================================================
# Scrittura atomica
# ============================================================================
def test_atomic_write_overwrites(tmp_path):
    target = tmp_path / "nested" / "a.bin"
    assert atomic_write_stream(target, io.BytesIO(b"first version")) == 13
    assert atomic_write_stream(target, io.BytesIO(b"second")) == 6
    assert target.read_bytes() == b"second"
    assert [p.name for p in target.parent.iterdir()] == ["a.bin"]


def test_atomic_write_cleans_tmp_on_failure(tmp_path):
    class Broken(io.RawIOBase):
        def read(self, n=-1):
            raise OSError("disk gone")

    target = tmp_path / "a.bin"
    with pytest.raises(OSError):
        atomic_write_stream(target, Broken())
    assert list(tmp_path.iterdir()) == []
