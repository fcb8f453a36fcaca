"""Tests for cross-filesystem copy and glob expansion."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest

from dfsops.fs.exceptions import InvalidArgumentError, PathExistsError, PathNotFoundError
from dfsops.fs.fileutil import copy, copy_bytes, glob_status, stat_to_paths
from dfsops.fs.identity import UserIdentity
from dfsops.fs.local import LocalFileSystem
from dfsops.fs.memory import InMemoryCluster, InMemoryFileSystem
from dfsops.fs.paths import DFSPath
from dfsops.fs.permissions import FsPermission

if TYPE_CHECKING:
    from pathlib import Path


def _p(path: str) -> DFSPath:
    return DFSPath.parse(path).with_location("mem", "fu")


def _write(fs: InMemoryFileSystem, path: str, data: bytes) -> None:
    with fs.create(_p(path)) as out:
        out.write(data)


def _read(fs: InMemoryFileSystem, path: str) -> bytes:
    with fs.open(_p(path)) as inp:
        return inp.read()


@pytest.fixture
def fs() -> InMemoryFileSystem:
    cluster = InMemoryCluster("fu")
    return cluster.connect(UserIdentity.create_remote_user(cluster.superuser))


@pytest.fixture
def tree(fs: InMemoryFileSystem) -> InMemoryFileSystem:
    """/data/{a.csv,b.csv,notes.txt} and /data/sub/c.csv."""
    _write(fs, "/data/a.csv", b"a")
    _write(fs, "/data/b.csv", b"bb")
    _write(fs, "/data/notes.txt", b"notes")
    _write(fs, "/data/sub/c.csv", b"ccc")
    return fs


class TestCopyBytes:
    def test_copies_in_chunks(self):
        src = io.BytesIO(b"x" * 10)
        dst = io.BytesIO()
        assert copy_bytes(src, dst, buffer_size=3) == 10
        assert dst.getvalue() == b"x" * 10

    def test_empty(self):
        dst = io.BytesIO()
        assert copy_bytes(io.BytesIO(), dst) == 0


class TestCopy:
    def test_file_to_new_path(self, tree: InMemoryFileSystem):
        assert copy(tree, _p("/data/a.csv"), tree, _p("/out/a.csv"))
        assert _read(tree, "/out/a.csv") == b"a"
        assert tree.exists(_p("/data/a.csv"))

    def test_file_into_existing_directory(self, tree: InMemoryFileSystem):
        tree.mkdirs(_p("/out"), FsPermission.default())
        copy(tree, _p("/data/b.csv"), tree, _p("/out"))
        assert _read(tree, "/out/b.csv") == b"bb"

    def test_directory_recursive(self, tree: InMemoryFileSystem):
        copy(tree, _p("/data"), tree, _p("/backup"))
        assert _read(tree, "/backup/sub/c.csv") == b"ccc"
        assert _read(tree, "/backup/notes.txt") == b"notes"

    def test_directory_keeps_permission(self, tree: InMemoryFileSystem):
        tree.set_permission(_p("/data"), FsPermission.from_octal(0o750))
        copy(tree, _p("/data"), tree, _p("/backup"))
        assert tree.get_file_status(_p("/backup")).permission.to_octal() == 0o750

    def test_refuses_overwrite(self, tree: InMemoryFileSystem):
        with pytest.raises(PathExistsError):
            copy(tree, _p("/data/a.csv"), tree, _p("/data/b.csv"))
        assert _read(tree, "/data/b.csv") == b"bb"

    def test_overwrite(self, tree: InMemoryFileSystem):
        copy(tree, _p("/data/a.csv"), tree, _p("/data/b.csv"), overwrite=True)
        assert _read(tree, "/data/b.csv") == b"a"

    def test_delete_source(self, tree: InMemoryFileSystem):
        assert copy(tree, _p("/data/a.csv"), tree, _p("/moved.csv"), delete_source=True)
        assert not tree.exists(_p("/data/a.csv"))
        assert _read(tree, "/moved.csv") == b"a"

    def test_into_own_subdirectory(self, tree: InMemoryFileSystem):
        with pytest.raises(InvalidArgumentError, match="subdirectory"):
            copy(tree, _p("/data"), tree, _p("/data/sub/deeper"))

    def test_missing_source(self, tree: InMemoryFileSystem):
        with pytest.raises(PathNotFoundError):
            copy(tree, _p("/nope"), tree, _p("/out"))

    def test_between_filesystems(self, tree: InMemoryFileSystem, tmp_path: Path):
        local = LocalFileSystem(UserIdentity.create_remote_user("alice"))
        target = DFSPath(str(tmp_path / "export"), "file", "")
        copy(tree, _p("/data"), local, target)
        assert (tmp_path / "export" / "sub" / "c.csv").read_bytes() == b"ccc"

        copy(local, target / "a.csv", tree, _p("/imported.csv"))
        assert _read(tree, "/imported.csv") == b"a"


class TestGlobStatus:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            pytest.param("/data/*.csv", ["/data/a.csv", "/data/b.csv"], id="star"),
            pytest.param("/data/?.csv", ["/data/a.csv", "/data/b.csv"], id="question"),
            pytest.param("/data/[a].csv", ["/data/a.csv"], id="class"),
            pytest.param("/data/{a.csv,notes.txt}", ["/data/a.csv", "/data/notes.txt"], id="braces"),
            pytest.param("/*/sub/*.csv", ["/data/sub/c.csv"], id="multi-segment"),
            pytest.param("/data/*.parquet", [], id="no-match"),
            pytest.param("/data/a.csv", ["/data/a.csv"], id="literal"),
            pytest.param("/data/missing.csv", [], id="literal-missing"),
        ],
    )
    def test_patterns(self, tree: InMemoryFileSystem, pattern: str, expected: list[str]):
        assert [s.path.path for s in glob_status(tree, _p(pattern))] == expected

    def test_results_are_qualified(self, tree: InMemoryFileSystem):
        (status,) = glob_status(tree, _p("/data/a*"))
        assert status.path.scheme == "mem"
        assert status.path.authority == "fu"


class TestStatToPaths:
    def test_matches(self, tree: InMemoryFileSystem):
        pattern = _p("/data/*.csv")
        paths = stat_to_paths(glob_status(tree, pattern), pattern)
        assert [p.path for p in paths] == ["/data/a.csv", "/data/b.csv"]

    def test_literal_without_match_keeps_itself(self):
        pattern = _p("/data/missing.csv")
        assert stat_to_paths([], pattern) == [pattern]

    def test_glob_without_match_is_empty(self):
        assert stat_to_paths([], _p("/data/*.x")) == []
