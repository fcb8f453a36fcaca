"""Tests for the scheme registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dfsops.config import DFSConfig
from dfsops.fs import registry
from dfsops.fs.exceptions import InvalidPathError, SessionAcquisitionError
from dfsops.fs.identity import UserIdentity
from dfsops.fs.local import LocalFileSystem
from dfsops.fs.memory import InMemoryFileSystem, get_cluster
from dfsops.fs.registry import get_filesystem, register_filesystem, registered_schemes, split_uri
from dfsops.fs.webhdfs import WebHDFSFileSystem

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def _restore_registry() -> Iterator[None]:
    registry._load_builtins()
    saved = dict(registry._CONNECTORS)
    yield
    registry._CONNECTORS.clear()
    registry._CONNECTORS.update(saved)


class TestSplitUri:
    @pytest.mark.parametrize(
        ("uri", "expected"),
        [
            pytest.param("hopsfs://namenode:8020", ("hopsfs", "namenode:8020"), id="hopsfs"),
            pytest.param("mem://test", ("mem", "test"), id="mem"),
            pytest.param("file:///", ("file", ""), id="file"),
            pytest.param("HDFS://nn/", ("hdfs", "nn"), id="uppercase"),
        ],
    )
    def test_split(self, uri: str, expected: tuple[str, str]):
        assert split_uri(uri) == expected

    def test_no_scheme(self):
        with pytest.raises(InvalidPathError):
            split_uri("/just/a/path")


class TestGetFilesystem:
    def test_builtin_schemes(self):
        assert {"file", "mem", "hopsfs", "hdfs"} <= set(registered_schemes())

    def test_memory(self):
        fs = UserIdentity.create_remote_user("alice").do_as(
            lambda: get_filesystem("mem://reg", DFSConfig(umask=0o077))
        )
        assert isinstance(fs, InMemoryFileSystem)
        assert fs.cluster is get_cluster("reg")
        assert fs.user.user_name == "alice"
        assert fs.authority == "reg"

    def test_local(self):
        fs = get_filesystem("file:///", DFSConfig())
        assert isinstance(fs, LocalFileSystem)

    @pytest.mark.parametrize("scheme", ["hopsfs", "hdfs"])
    def test_webhdfs(self, scheme: str):
        fs = UserIdentity.create_remote_user("alice").do_as(
            lambda: get_filesystem(f"{scheme}://nn:8020", DFSConfig())
        )
        assert isinstance(fs, WebHDFSFileSystem)
        assert fs.scheme == scheme
        assert fs.authority == "nn:8020"
        assert fs.user.user_name == "alice"
        fs.close()

    def test_unknown_scheme(self):
        with pytest.raises(SessionAcquisitionError, match="s3a"):
            get_filesystem("s3a://bucket", DFSConfig())

    @pytest.mark.usefixtures("_restore_registry")
    def test_register_custom(self):
        seen: list[str] = []

        def connector(authority: str, config: DFSConfig) -> InMemoryFileSystem:
            seen.append(authority)
            return get_cluster("custom").connect()

        register_filesystem("CUSTOM", connector)
        fs = get_filesystem("custom://anything", DFSConfig())
        assert seen == ["anything"]
        assert isinstance(fs, InMemoryFileSystem)
