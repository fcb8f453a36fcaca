"""Scheme registry — maps URI schemes to handle connectors.

A connector is ``(authority, config) -> FileSystemClient``.  It is always
called inside ``UserIdentity.do_as`` so it binds the handle to
``current_user()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .exceptions import InvalidPathError, SessionAcquisitionError
from .paths import DFSPath

if TYPE_CHECKING:
    from dfsops.config import DFSConfig

    from .protocol import FileSystemClient

logger = logging.getLogger(__name__)

HOPSFS_SCHEME = "hopsfs"
HDFS_SCHEME = "hdfs"


class Connector(Protocol):
    def __call__(self, authority: str, config: DFSConfig) -> FileSystemClient: ...


_CONNECTORS: dict[str, Connector] = {}


def register_filesystem(scheme: str, connector: Connector) -> None:
    """Register *connector* for *scheme*, replacing any previous one."""
    _CONNECTORS[scheme.lower()] = connector


def registered_schemes() -> list[str]:
    _load_builtins()
    return sorted(_CONNECTORS)


def split_uri(uri: str) -> tuple[str, str]:
    """Return ``(scheme, authority)`` of a filesystem URI."""
    parsed = DFSPath.parse(uri if "://" in uri else f"{uri}://")
    if not parsed.scheme:
        raise InvalidPathError(f"Filesystem URI has no scheme: {uri!r}")
    return parsed.scheme, parsed.authority


def get_filesystem(uri: str, config: DFSConfig) -> FileSystemClient:
    """Connect to the filesystem named by *uri*."""
    _load_builtins()
    scheme, authority = split_uri(uri)
    connector = _CONNECTORS.get(scheme)
    if connector is None:
        raise SessionAcquisitionError(f"No filesystem for scheme: {scheme}")
    logger.debug("Connecting to %s://%s", scheme, authority)
    return connector(authority, config)


_builtins_loaded = False


def _load_builtins() -> None:
    global _builtins_loaded
    if _builtins_loaded:
        return
    _builtins_loaded = True

    from . import local, memory, webhdfs

    _CONNECTORS.setdefault(local.LOCAL_SCHEME, local.connect)
    _CONNECTORS.setdefault(memory.MEMORY_SCHEME, memory.connect)
    _CONNECTORS.setdefault(HOPSFS_SCHEME, webhdfs.connect)
    _CONNECTORS.setdefault(HDFS_SCHEME, webhdfs.connect_hdfs)
