"""DistributedFileSystemOps — session-scoped filesystem gateway."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO, TypeVar

from dfsops.fs import fileutil
from dfsops.fs.exceptions import (
    CapabilityNotSupportedError,
    InvalidArgumentError,
    InvalidPathError,
    SessionAcquisitionError,
    SessionClosedError,
    StorageError,
)
from dfsops.fs.local import LOCAL_SCHEME, LocalFileSystem
from dfsops.fs.paths import DFSPath, to_path
from dfsops.fs.permissions import AclEntry, FsPermission
from dfsops.fs.policy import MetaStatus, StoragePolicy
from dfsops.fs.protocol import (
    FileSystemClient,
    SupportsAcls,
    SupportsIdentityAdmin,
    SupportsProvenance,
    SupportsQuotas,
    SupportsStoragePolicies,
    SupportsXAttrs,
)
from dfsops.fs.registry import get_filesystem, split_uri
from dfsops.fs.types import QUOTA_RESET

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dfsops.config import DFSConfig
    from dfsops.fs.identity import UserIdentity
    from dfsops.fs.permissions import AclStatus
    from dfsops.fs.types import FileStatus, QuotaUsage

logger = logging.getLogger(__name__)

T = TypeVar("T")

PathLike = str | DFSPath


class DistributedFileSystemOps:
    """One filesystem handle bound to one effective user.

    The handle is acquired while the identity is installed as the current
    user, so every call made through this session runs as that user.  The
    identity cannot be changed after construction.

    Sessions are not safe for concurrent use; open one per unit of work.

    Usage::

        with open_session(UserIdentity.create_remote_user("alice"), config) as dfso:
            dfso.mkdirs("/Projects/demo/Resources")
            dfso.write("/Projects/demo/Resources/README.md", "# demo")
    """

    def __init__(
        self,
        identity: UserIdentity,
        config: DFSConfig,
        uri: str | None = None,
    ) -> None:
        self._closed = False
        self._identity = identity
        self._config = config
        self._uri = uri or config.default_fs

        try:
            self._scheme, self._authority = split_uri(self._uri)
            fs = identity.do_as(lambda: get_filesystem(self._uri, config))
        except Exception as e:
            raise SessionAcquisitionError(
                f"Could not acquire a filesystem handle on {self._uri} as {identity}: {e}"
            ) from e
        if not isinstance(fs, FileSystemClient):
            raise SessionAcquisitionError(
                f"Connector for {self._scheme} returned {type(fs).__name__}, "
                "which is not a FileSystemClient"
            )
        self._fs: FileSystemClient = fs
        self._local = LocalFileSystem(identity)
        logger.info("Opened filesystem session on %s as %s", self._uri, identity)

    # ------------------------------------------------------------------
    # Session properties
    # ------------------------------------------------------------------

    @property
    def effective_user(self) -> str:
        """Name of the user every operation runs as."""
        return self._identity.user_name

    @property
    def identity(self) -> UserIdentity:
        return self._identity

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def config(self) -> DFSConfig:
        return self._config

    @config.setter
    def config(self, value: DFSConfig) -> None:
        self._config = value

    @property
    def filesystem(self) -> FileSystemClient:
        """The underlying handle."""
        self._check_open()
        return self._fs

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"DistributedFileSystemOps({self._uri}, user={self._identity}, {state})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Session on {self._uri} is closed")

    def _resolve(self, path: PathLike) -> DFSPath:
        """Validate *path* and qualify it against this session's filesystem."""
        self._check_open()
        p = to_path(path)
        if p.scheme and (p.scheme != self._scheme or p.authority != self._authority):
            raise InvalidPathError(f"Wrong FS: {p}, expected: {self._scheme}://{self._authority}")
        return p.with_location(self._scheme, self._authority)

    def _resolve_local(self, path: PathLike) -> DFSPath:
        self._check_open()
        p = to_path(path)
        if p.scheme and p.scheme != LOCAL_SCHEME:
            raise InvalidPathError(f"Wrong FS: {p}, expected: file:///")
        return p.with_location(LOCAL_SCHEME, "")

    def _get_capability(self, protocol: type[T]) -> T:
        self._check_open()
        if isinstance(self._fs, protocol):
            return self._fs
        raise CapabilityNotSupportedError(
            f"{type(self._fs).__name__} does not support {protocol.__name__}"
        )

    def _default_dir_permission(self) -> FsPermission:
        return FsPermission.default().apply_umask(self._config.umask)

    # =========================================================================
    # Path Operations
    # =========================================================================

    def cat(self, path: PathLike) -> str:
        """Read the whole file at *path* as UTF-8 text.

        Malformed byte sequences decode to U+FFFD rather than raising.
        """
        p = self._resolve(path)
        chunks: list[bytes] = []
        with self._fs.open(p, self._config.buffer_size) as stream:
            while True:
                chunk = stream.read(self._config.buffer_size)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def open(self, path: PathLike) -> BinaryIO:
        """Open *path* for reading. The caller closes the stream."""
        return self._fs.open(self._resolve(path), self._config.buffer_size)

    def mkdir(self, path: PathLike, permission: FsPermission | None = None) -> bool:
        """Create one directory; the parent must already exist."""
        p = self._resolve(path)
        return self._fs.mkdir(p, permission or self._default_dir_permission())

    def mkdirs(self, path: PathLike, permission: FsPermission | None = None) -> bool:
        """Create *path* and any missing parents, all with the same permission."""
        p = self._resolve(path)
        return self._fs.mkdirs(p, permission or self._default_dir_permission())

    def touch(self, path: PathLike) -> None:
        """Create an empty file (truncating an existing one)."""
        p = self._resolve(path)
        self._fs.create(p).close()

    def list_status(self, path: PathLike) -> list[FileStatus]:
        return self._fs.list_status(self._resolve(path))

    def get_status(self, path: PathLike) -> FileStatus:
        return self._fs.get_file_status(self._resolve(path))

    def exists(self, path: PathLike) -> bool:
        return self._fs.exists(self._resolve(path))

    def is_dir(self, path: PathLike) -> bool:
        """True if *path* is a directory; storage errors are logged and read as False."""
        p = self._resolve(path)
        try:
            return self._fs.is_directory(p)
        except StorageError:
            logger.exception("Could not check whether %s is a directory", p)
            return False

    def remove(self, path: PathLike, recursive: bool) -> bool:
        """Delete *path*. A path that does not exist counts as removed."""
        p = self._resolve(path)
        logger.info("Deleting %s as %s", p, self._identity)
        if not self._fs.exists(p):
            return True
        return self._fs.delete(p, recursive)

    def rename(self, src: PathLike, dst: PathLike) -> bool:
        """Move *src* to *dst* within this filesystem."""
        return self._fs.rename(self._resolve(src), self._resolve(dst))

    def create(self, path: PathLike) -> BinaryIO:
        """Open *path* for writing, creating missing parent directories first."""
        p = self._resolve(path)
        parent = p.parent
        if parent is not None and not self._fs.exists(parent):
            self._fs.mkdirs(parent, self._default_dir_permission())
        return self._fs.create(p)

    def append(self, path: PathLike) -> BinaryIO:
        """Open *path* for appending, creating it when missing."""
        p = self._resolve(path)
        if not self._fs.exists(p):
            return self.create(p)
        return self._fs.append(p)

    def write(self, path: PathLike, content: str | bytes) -> None:
        """Replace the contents of *path* with *content* (str is UTF-8 encoded)."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        p = self._resolve(path)
        with self._fs.create(p) as out:
            out.write(data)
            out.flush()

    def append_content(self, path: PathLike, content: str | bytes) -> None:
        """Append *content* to *path*, creating it when missing."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        with self.append(path) as out:
            out.write(data)
            out.flush()

    def get_parent_permission(self, path: PathLike) -> FsPermission:
        """Permission new children of *path* should inherit.

        If *path* exists, its parent's permission.  Otherwise the
        permission of the nearest ancestor that exists.
        """
        p = self._resolve(path)
        if self._fs.exists(p):
            if p.parent is None:
                raise InvalidPathError("The root directory has no parent")
            return self._fs.get_file_status(p.parent).permission
        location: DFSPath | None = p
        while location is not None and not self._fs.exists(location):
            location = location.parent
        if location is None:
            raise InvalidPathError(f"No existing ancestor of {p}")
        return self._fs.get_file_status(location).permission

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def copy_from_local(self, delete_source: bool, src: PathLike, dst: PathLike) -> None:
        """Copy a local file or tree into this filesystem."""
        fileutil.copy(
            self._local,
            self._resolve_local(src),
            self._fs,
            self._resolve(dst),
            delete_source=delete_source,
            overwrite=True,
            buffer_size=self._config.buffer_size,
        )

    def copy_to_local(self, src: PathLike, dst: PathLike) -> None:
        """Copy a file or tree from this filesystem to local disk."""
        fileutil.copy(
            self._fs,
            self._resolve(src),
            self._local,
            self._resolve_local(dst),
            overwrite=True,
            buffer_size=self._config.buffer_size,
        )

    def copy_to_remote_from_local(self, delete_source: bool, src: PathLike, dst: PathLike) -> None:
        """Copy from local disk, first creating *dst*'s parents.

        Missing parents get the permission of the nearest existing ancestor.
        """
        target = self._resolve(dst)
        parent = target.parent
        if parent is not None:
            self._fs.mkdirs(parent, self.get_parent_permission(parent))
        self.copy_from_local(delete_source, src, target)

    def copy_within_remote(self, src: PathLike, dst: PathLike) -> None:
        """Copy every match of the glob *src* to *dst*.

        With more than one match *dst* must be an existing directory.
        Existing files are never overwritten.
        """
        pattern = self._resolve(src)
        target = self._resolve(dst)
        sources = fileutil.stat_to_paths(fileutil.glob_status(self._fs, pattern), pattern)
        if len(sources) > 1 and not self._fs.is_directory(target):
            raise InvalidArgumentError(
                "When copying multiple files, destination should be a directory."
            )
        for source in sources:
            fileutil.copy(
                self._fs,
                source,
                self._fs,
                target,
                overwrite=False,
                buffer_size=self._config.buffer_size,
            )

    # =========================================================================
    # Access Control
    # =========================================================================

    def set_permission(self, path: PathLike, permission: FsPermission) -> None:
        self._fs.set_permission(self._resolve(path), permission)

    def set_acl(self, path: PathLike, entries: Iterable[AclEntry]) -> None:
        """Replace the ACL of *path* with *entries*."""
        acls = self._get_capability(SupportsAcls)
        acls.set_acl(self._resolve(path), list(entries))

    def set_permissions(self, paths: Iterable[PathLike], permission: FsPermission) -> None:
        """Apply *permission* to each path in turn.

        Not atomic: when one path fails the error propagates and the paths
        before it keep their new permission.
        """
        for path in paths:
            self.set_permission(path, permission)

    def get_acl_status(self, path: PathLike) -> AclStatus:
        acls = self._get_capability(SupportsAcls)
        return acls.get_acl_status(self._resolve(path))

    def set_owner(self, path: PathLike, user: str | None, group: str | None) -> None:
        self._fs.set_owner(self._resolve(path), user, group)

    def add_user(self, user_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).add_user(user_name)

    def remove_user(self, user_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).remove_user(user_name)

    def add_group(self, group_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).add_group(group_name)

    def remove_group(self, group_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).remove_group(group_name)

    def add_user_to_group(self, user_name: str, group_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).add_user_to_group(user_name, group_name)

    def remove_user_from_group(self, user_name: str, group_name: str) -> None:
        self._get_capability(SupportsIdentityAdmin).remove_user_from_group(user_name, group_name)

    # =========================================================================
    # Quota & Policy
    # =========================================================================

    def set_space_quota(self, path: PathLike, space_quota: int) -> None:
        """Set the space quota and reset the namespace quota to unset."""
        self.set_quota(path, QUOTA_RESET, space_quota)

    def set_quota(self, path: PathLike, max_files: int, max_bytes: int) -> None:
        quotas = self._get_capability(SupportsQuotas)
        quotas.set_quota(self._resolve(path), max_files, max_bytes)

    def get_quota_usage(self, path: PathLike) -> QuotaUsage:
        quotas = self._get_capability(SupportsQuotas)
        return quotas.get_quota_usage(self._resolve(path))

    def set_storage_policy(self, path: PathLike, policy: StoragePolicy) -> None:
        policies = self._get_capability(SupportsStoragePolicies)
        policies.set_storage_policy(self._resolve(path), policy.policy_name)

    def get_storage_policy(self, path: PathLike) -> StoragePolicy:
        """Effective policy of *path*; names outside ``StoragePolicy`` raise."""
        policies = self._get_capability(SupportsStoragePolicies)
        return StoragePolicy.from_policy(policies.get_storage_policy(self._resolve(path)))

    # =========================================================================
    # Extended Metadata
    # =========================================================================

    def set_xattr(self, path: PathLike, name: str, value: bytes) -> None:
        self._get_capability(SupportsXAttrs).set_xattr(self._resolve(path), name, value)

    def remove_xattr(self, path: PathLike, name: str) -> None:
        self._get_capability(SupportsXAttrs).remove_xattr(self._resolve(path), name)

    def get_xattr(self, path: PathLike, name: str) -> bytes:
        return self._get_capability(SupportsXAttrs).get_xattr(self._resolve(path), name)

    def get_xattrs(self, path: PathLike) -> dict[str, bytes]:
        return self._get_capability(SupportsXAttrs).get_xattrs(self._resolve(path))

    def set_meta_status(self, path: PathLike, status: MetaStatus) -> None:
        provenance = self._get_capability(SupportsProvenance)
        provenance.set_meta_status(self._resolve(path), status.wire_name)

    def get_meta_status(self, path: PathLike) -> MetaStatus:
        provenance = self._get_capability(SupportsProvenance)
        return MetaStatus.from_wire(provenance.get_meta_status(self._resolve(path)))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release the handle. Never raises; failures are logged."""
        if self._closed:
            return
        self._closed = True
        try:
            self._fs.close()
        except Exception:
            logger.exception("Error while closing file system %s", self._uri)
        else:
            logger.info("Closed filesystem session on %s as %s", self._uri, self._identity)

    def __enter__(self) -> DistributedFileSystemOps:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


def open_session(
    identity: UserIdentity,
    config: DFSConfig,
    uri: str | None = None,
) -> DistributedFileSystemOps:
    """Open a session for *identity*; raises ``SessionAcquisitionError`` on failure."""
    return DistributedFileSystemOps(identity, config, uri)
