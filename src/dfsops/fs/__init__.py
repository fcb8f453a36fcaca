"""Filesystem layer — backends, paths, permissions, capabilities."""

from dfsops.fs.exceptions import (
    AccessDeniedError,
    CapabilityNotSupportedError,
    DFSOpsError,
    DirectoryNotEmptyError,
    InvalidArgumentError,
    InvalidPathError,
    PathExistsError,
    PathNotFoundError,
    QuotaExceededError,
    SessionAcquisitionError,
    SessionClosedError,
    StorageError,
    TransportError,
)
from dfsops.fs.identity import UserIdentity, current_user
from dfsops.fs.local import LocalFileSystem
from dfsops.fs.memory import InMemoryCluster, InMemoryFileSystem, get_cluster, reset_clusters
from dfsops.fs.paths import DFSPath, to_path
from dfsops.fs.permissions import (
    AclEntry,
    AclEntryScope,
    AclEntryType,
    AclStatus,
    FsAction,
    FsPermission,
    parse_acl_spec,
)
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
from dfsops.fs.registry import HOPSFS_SCHEME, get_filesystem, register_filesystem
from dfsops.fs.types import QUOTA_DONT_SET, QUOTA_RESET, FileStatus, QuotaUsage
from dfsops.fs.webhdfs import WebHDFSFileSystem

__all__ = [
    "HOPSFS_SCHEME",
    "QUOTA_DONT_SET",
    "QUOTA_RESET",
    "AccessDeniedError",
    "AclEntry",
    "AclEntryScope",
    "AclEntryType",
    "AclStatus",
    "CapabilityNotSupportedError",
    "DFSOpsError",
    "DFSPath",
    "DirectoryNotEmptyError",
    "FileStatus",
    "FileSystemClient",
    "FsAction",
    "FsPermission",
    "InMemoryCluster",
    "InMemoryFileSystem",
    "InvalidArgumentError",
    "InvalidPathError",
    "LocalFileSystem",
    "MetaStatus",
    "PathExistsError",
    "PathNotFoundError",
    "QuotaExceededError",
    "QuotaUsage",
    "SessionAcquisitionError",
    "SessionClosedError",
    "StorageError",
    "StoragePolicy",
    "SupportsAcls",
    "SupportsIdentityAdmin",
    "SupportsProvenance",
    "SupportsQuotas",
    "SupportsStoragePolicies",
    "SupportsXAttrs",
    "TransportError",
    "UserIdentity",
    "WebHDFSFileSystem",
    "current_user",
    "get_cluster",
    "get_filesystem",
    "parse_acl_spec",
    "register_filesystem",
    "reset_clusters",
    "to_path",
]
