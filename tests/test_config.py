"""Tests for DFSConfig."""

from __future__ import annotations

import pytest

from dfsops.config import DEFAULT_BUFFER_SIZE, DFSConfig
from dfsops.fs.exceptions import InvalidArgumentError


class TestDefaults:
    def test_defaults(self):
        config = DFSConfig()
        assert config.default_fs == "hopsfs://localhost:8020"
        assert config.umask == 0o022
        assert config.buffer_size == DEFAULT_BUFFER_SIZE == 64 * 1024
        assert config.webhdfs_scheme == "http"
        assert config.timeout is None
        assert config.verify is True

    def test_umask_string(self):
        assert DFSConfig(umask="077").umask == 0o077  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "kwargs",
        [
            pytest.param({"umask": "9z"}, id="bad-umask"),
            pytest.param({"buffer_size": 0}, id="zero-buffer"),
            pytest.param({"webhdfs_scheme": "ftp"}, id="bad-scheme"),
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidArgumentError):
            DFSConfig(**kwargs)


class TestFromMapping:
    def test_hadoop_keys(self):
        config = DFSConfig.from_mapping(
            {
                "fs.defaultFS": "hopsfs://namenode.service.consul:8020",
                "fs.permissions.umask-mode": "027",
                "io.file.buffer.size": "131072",
                "dfs.namenode.http-address": "namenode.service.consul:50070",
                "dfs.http.policy": "HTTPS_ONLY",
                "dfs.replication": "3",
            }
        )
        assert config.default_fs == "hopsfs://namenode.service.consul:8020"
        assert config.umask == 0o027
        assert config.buffer_size == 131072
        assert config.webhdfs_port == 50070
        assert config.webhdfs_scheme == "https"
        assert config.get("dfs.replication") == "3"
        assert config.get("missing", "x") == "x"

    def test_field_names(self):
        config = DFSConfig.from_mapping({"timeout": "2.5", "verify": "false", "webhdfs_port": "9870"})
        assert config.timeout == 2.5
        assert config.verify is False
        assert config.webhdfs_port == 9870

    def test_verify_accepts_bundle_path(self):
        config = DFSConfig.from_mapping({"verify": "/etc/ssl/ca.pem"})
        assert config.verify == "/etc/ssl/ca.pem"


class TestFromEnv:
    def test_reads_prefixed_variables(self):
        config = DFSConfig.from_env(
            {
                "DFSOPS_DEFAULT_FS": "mem://dev",
                "DFSOPS_UMASK": "077",
                "DFSOPS_TIMEOUT": "",
                "HOME": "/root",
            }
        )
        assert config.default_fs == "mem://dev"
        assert config.umask == 0o077
        assert config.timeout is None
        assert config.properties == {}

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DFSOPS_BUFFER_SIZE", "4096")
        assert DFSConfig.from_env().buffer_size == 4096


class TestCopy:
    def test_copy_is_independent(self):
        original = DFSConfig(properties={"a": "1"})
        clone = original.copy(umask=0o077)
        clone.properties["b"] = "2"
        assert clone.umask == 0o077
        assert original.umask == 0o022
        assert "b" not in original.properties
