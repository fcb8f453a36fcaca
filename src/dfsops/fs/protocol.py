"""FileSystemClient protocol — runtime-checkable interfaces.

Split into a core protocol and opt-in capability protocols so that
backends without quotas, xattrs or an identity directory (local disk,
plain WebHDFS) implement just the core.  The gateway resolves
capabilities with ``isinstance`` and raises
``CapabilityNotSupportedError`` when one is missing.

All paths handed to a client are already validated ``DFSPath`` values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .identity import UserIdentity
    from .paths import DFSPath
    from .permissions import AclEntry, AclStatus, FsPermission
    from .types import FileStatus, QuotaUsage


@runtime_checkable
class FileSystemClient(Protocol):
    """Core interface every filesystem handle must implement.

    A handle is bound to one user for its whole life.
    """

    scheme: str
    authority: str
    user: UserIdentity

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the handle."""
        ...

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def open(self, path: DFSPath, buffer_size: int = 65536) -> BinaryIO: ...

    def get_file_status(self, path: DFSPath) -> FileStatus: ...

    def list_status(self, path: DFSPath) -> list[FileStatus]: ...

    def exists(self, path: DFSPath) -> bool: ...

    def is_directory(self, path: DFSPath) -> bool: ...

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(
        self,
        path: DFSPath,
        overwrite: bool = True,
        permission: FsPermission | None = None,
    ) -> BinaryIO: ...

    def append(self, path: DFSPath) -> BinaryIO: ...

    def mkdir(self, path: DFSPath, permission: FsPermission) -> bool: ...

    def mkdirs(self, path: DFSPath, permission: FsPermission) -> bool: ...

    def delete(self, path: DFSPath, recursive: bool) -> bool: ...

    def rename(self, src: DFSPath, dst: DFSPath) -> bool: ...

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def set_permission(self, path: DFSPath, permission: FsPermission) -> None: ...

    def set_owner(self, path: DFSPath, user: str | None, group: str | None) -> None: ...


@runtime_checkable
class SupportsAcls(Protocol):
    """Opt-in: extended ACL entries."""

    def set_acl(self, path: DFSPath, entries: list[AclEntry]) -> None: ...

    def get_acl_status(self, path: DFSPath) -> AclStatus: ...


@runtime_checkable
class SupportsQuotas(Protocol):
    """Opt-in: namespace and space quotas."""

    def set_quota(self, path: DFSPath, namespace_quota: int, space_quota: int) -> None: ...

    def get_quota_usage(self, path: DFSPath) -> QuotaUsage: ...


@runtime_checkable
class SupportsStoragePolicies(Protocol):
    """Opt-in: storage tier policies."""

    def set_storage_policy(self, path: DFSPath, policy_name: str) -> None: ...

    def get_storage_policy(self, path: DFSPath) -> str: ...


@runtime_checkable
class SupportsXAttrs(Protocol):
    """Opt-in: extended attributes."""

    def set_xattr(self, path: DFSPath, name: str, value: bytes) -> None: ...

    def get_xattr(self, path: DFSPath, name: str) -> bytes: ...

    def get_xattrs(self, path: DFSPath) -> dict[str, bytes]: ...

    def remove_xattr(self, path: DFSPath, name: str) -> None: ...


@runtime_checkable
class SupportsProvenance(Protocol):
    """Opt-in: per-subtree metadata/provenance status."""

    def set_meta_status(self, path: DFSPath, status: str) -> None: ...

    def get_meta_status(self, path: DFSPath) -> str: ...


@runtime_checkable
class SupportsIdentityAdmin(Protocol):
    """Opt-in: the filesystem's user and group directory."""

    def add_user(self, user_name: str) -> None: ...

    def remove_user(self, user_name: str) -> None: ...

    def add_group(self, group_name: str) -> None: ...

    def remove_group(self, group_name: str) -> None: ...

    def add_user_to_group(self, user_name: str, group_name: str) -> None: ...

    def remove_user_from_group(self, user_name: str, group_name: str) -> None: ...
