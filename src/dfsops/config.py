"""DFSConfig — connection and behavior settings for a session."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING, Any

from dfsops.fs.exceptions import InvalidArgumentError
from dfsops.fs.registry import HOPSFS_SCHEME

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_BUFFER_SIZE = 64 * 1024

# Hadoop-style property keys understood by ``from_mapping``
_HADOOP_KEYS = {
    "fs.defaultFS": "default_fs",
    "fs.default.name": "default_fs",
    "fs.permissions.umask-mode": "umask",
    "io.file.buffer.size": "buffer_size",
    "dfs.namenode.http-port": "webhdfs_port",
    "dfs.namenode.http-address": "webhdfs_port",
    "dfs.http.policy": "webhdfs_scheme",
}

_ENV_PREFIX = "DFSOPS_"


def _parse_umask(value: int | str) -> int:
    if isinstance(value, int):
        return value
    try:
        return int(value, 8)
    except ValueError:
        raise InvalidArgumentError(f"Invalid umask: {value!r}") from None


def _parse_scheme(value: str) -> str:
    value = value.strip().lower()
    # dfs.http.policy values are HTTP_ONLY / HTTPS_ONLY
    if value in ("https", "https_only"):
        return "https"
    if value in ("http", "http_only"):
        return "http"
    raise InvalidArgumentError(f"Invalid WebHDFS scheme: {value!r}")


def _parse_bool_or_path(value: str | bool) -> bool | str:
    if isinstance(value, bool):
        return value
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    return value


@dataclass
class DFSConfig:
    """Settings shared by every handle a session acquires."""

    default_fs: str = f"{HOPSFS_SCHEME}://localhost:8020"
    """Filesystem URI used when a session is opened without an explicit endpoint."""

    umask: int = 0o022
    """Mask applied to default file and directory permissions."""

    buffer_size: int = DEFAULT_BUFFER_SIZE
    """Chunk size for reads and cross-filesystem copies."""

    webhdfs_port: int = 50070
    """HTTP port of the namenode's WebHDFS endpoint."""

    webhdfs_scheme: str = "http"
    """``http`` or ``https`` for WebHDFS."""

    timeout: float | None = None
    """Transport timeout in seconds; ``None`` waits indefinitely."""

    verify: bool | str = True
    """TLS verification flag or CA bundle path for WebHDFS."""

    properties: dict[str, str] = field(default_factory=dict)
    """Unrecognized properties, kept for connectors that want them."""

    def __post_init__(self) -> None:
        self.umask = _parse_umask(self.umask)
        if self.buffer_size <= 0:
            raise InvalidArgumentError(f"buffer_size must be positive, got {self.buffer_size}")
        self.webhdfs_scheme = _parse_scheme(self.webhdfs_scheme)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> DFSConfig:
        """Build from field names or Hadoop-style keys.

        Unknown keys are kept in ``properties``.
        """
        known = {f.name for f in fields(cls)} - {"properties"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, str] = {}
        for key, value in mapping.items():
            target = _HADOOP_KEYS.get(key, key)
            if target not in known:
                extra[key] = str(value)
                continue
            kwargs[target] = cls._coerce(target, value)
        return cls(properties=extra, **kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DFSConfig:
        """Build from ``DFSOPS_*`` environment variables (e.g. ``DFSOPS_DEFAULT_FS``)."""
        environ = os.environ if environ is None else environ
        values = {
            key[len(_ENV_PREFIX) :].lower(): value
            for key, value in environ.items()
            if key.startswith(_ENV_PREFIX)
        }
        return cls.from_mapping(values)

    @staticmethod
    def _coerce(name: str, value: Any) -> Any:
        if name == "umask":
            return _parse_umask(value)
        if name == "webhdfs_port" and isinstance(value, str) and ":" in value:
            # dfs.namenode.http-address is host:port
            return int(value.rpartition(":")[2])
        if name in ("buffer_size", "webhdfs_port"):
            return int(value)
        if name == "timeout":
            if value in (None, ""):
                return None
            return float(value)
        if name == "verify":
            return _parse_bool_or_path(value)
        return value

    def get(self, key: str, default: str | None = None) -> str | None:
        """Look up a raw property."""
        return self.properties.get(key, default)

    def copy(self, **changes: Any) -> DFSConfig:
        return replace(self, properties=dict(self.properties), **changes)
