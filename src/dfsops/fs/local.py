"""LocalFileSystem — the ``file://`` side of cross-filesystem copies."""

from __future__ import annotations

import os
import shutil
import stat
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import (
    DirectoryNotEmptyError,
    PathExistsError,
    PathNotFoundError,
    StorageError,
)
from .identity import UserIdentity, current_user
from .paths import DFSPath
from .permissions import FsPermission
from .types import FileStatus

if TYPE_CHECKING:
    from dfsops.config import DFSConfig

LOCAL_SCHEME = "file"


class LocalFileSystem:
    """Direct access to the host filesystem.

    Implements the core ``FileSystemClient`` protocol only.  Permission
    checks are left to the operating system, so the bound ``user`` is
    informational.
    """

    scheme = LOCAL_SCHEME
    authority = ""

    def __init__(self, user: UserIdentity | None = None) -> None:
        self.user = user or current_user()

    @staticmethod
    def _os_path(path: DFSPath) -> Path:
        return Path(path.path)

    def _to_status(self, path: DFSPath, resolved: Path) -> FileStatus:
        st = resolved.stat()
        is_dir = stat.S_ISDIR(st.st_mode)
        try:
            owner, group = resolved.owner(), resolved.group()
        except (KeyError, NotImplementedError):
            owner, group = str(st.st_uid), str(st.st_gid)
        return FileStatus(
            path=path.with_location(self.scheme, self.authority),
            is_directory=is_dir,
            length=0 if is_dir else st.st_size,
            permission=FsPermission.from_octal(stat.S_IMODE(st.st_mode) & 0o1777),
            owner=owner,
            group=group,
            modification_time=datetime.fromtimestamp(st.st_mtime, tz=UTC),
            access_time=datetime.fromtimestamp(st.st_atime, tz=UTC),
            replication=1,
            block_size=st.st_blksize if hasattr(st, "st_blksize") else 0,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Nothing to release for local disk."""

    # =========================================================================
    # Read Operations
    # =========================================================================

    def open(self, path: DFSPath, buffer_size: int = 65536) -> BinaryIO:
        resolved = self._os_path(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File does not exist: {path}")
        if resolved.is_dir():
            raise StorageError(f"Cannot open directory: {path}")
        return resolved.open("rb", buffering=buffer_size)

    def get_file_status(self, path: DFSPath) -> FileStatus:
        resolved = self._os_path(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File does not exist: {path}")
        return self._to_status(path, resolved)

    def list_status(self, path: DFSPath) -> list[FileStatus]:
        resolved = self._os_path(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File does not exist: {path}")
        if not resolved.is_dir():
            return [self._to_status(path, resolved)]
        return [self._to_status(path / child.name, child) for child in resolved.iterdir()]

    def exists(self, path: DFSPath) -> bool:
        return self._os_path(path).exists()

    def is_directory(self, path: DFSPath) -> bool:
        return self._os_path(path).is_dir()

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        path: DFSPath,
        overwrite: bool = True,
        permission: FsPermission | None = None,
    ) -> BinaryIO:
        resolved = self._os_path(path)
        if resolved.is_dir():
            raise PathExistsError(f"Path is a directory: {path}")
        if resolved.exists() and not overwrite:
            raise PathExistsError(f"File already exists: {path}")
        resolved.parent.mkdir(parents=True, exist_ok=True)
        handle = resolved.open("wb")
        if permission is not None:
            os.chmod(resolved, permission.to_octal())
        return handle

    def append(self, path: DFSPath) -> BinaryIO:
        resolved = self._os_path(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File does not exist: {path}")
        return resolved.open("ab")

    def mkdir(self, path: DFSPath, permission: FsPermission) -> bool:
        resolved = self._os_path(path)
        if not resolved.parent.exists():
            raise PathNotFoundError(f"Parent directory does not exist: {path}")
        try:
            resolved.mkdir()
        except FileExistsError:
            return resolved.is_dir()
        os.chmod(resolved, permission.to_octal())
        return True

    def mkdirs(self, path: DFSPath, permission: FsPermission) -> bool:
        resolved = self._os_path(path)
        if resolved.exists():
            return resolved.is_dir()
        missing = [p for p in [resolved, *resolved.parents] if not p.exists()]
        resolved.mkdir(parents=True, exist_ok=True)
        for created in missing:
            os.chmod(created, permission.to_octal())
        return True

    def delete(self, path: DFSPath, recursive: bool) -> bool:
        resolved = self._os_path(path)
        if not resolved.exists():
            return False
        if resolved.is_dir():
            if any(resolved.iterdir()) and not recursive:
                raise DirectoryNotEmptyError(f"Directory is not empty: {path}")
            shutil.rmtree(resolved)
        else:
            resolved.unlink()
        return True

    def rename(self, src: DFSPath, dst: DFSPath) -> bool:
        src_resolved = self._os_path(src)
        dst_resolved = self._os_path(dst)
        if not src_resolved.exists() or dst_resolved.exists():
            return False
        src_resolved.rename(dst_resolved)
        return True

    def set_permission(self, path: DFSPath, permission: FsPermission) -> None:
        os.chmod(self._os_path(path), permission.to_octal())

    def set_owner(self, path: DFSPath, user: str | None, group: str | None) -> None:
        shutil.chown(self._os_path(path), user=user, group=group)


def connect(authority: str, config: DFSConfig) -> LocalFileSystem:
    """Connector for the ``file`` scheme."""
    return LocalFileSystem(current_user())
