"""dfsops: a session-scoped gateway to HopsFS/HDFS under an impersonated user.

Path CRUD, permissions and ACLs, quotas, storage policies and extended
attributes, all executed as one effective user per session.
"""

__version__ = "0.1.0"

from dfsops._ops import DistributedFileSystemOps, open_session
from dfsops.config import DFSConfig
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
from dfsops.fs.identity import UserIdentity
from dfsops.fs.paths import DFSPath
from dfsops.fs.permissions import AclEntry, AclStatus, FsAction, FsPermission
from dfsops.fs.policy import MetaStatus, StoragePolicy
from dfsops.fs.registry import HOPSFS_SCHEME
from dfsops.fs.types import QUOTA_DONT_SET, QUOTA_RESET, FileStatus, QuotaUsage

__all__ = [
    "HOPSFS_SCHEME",
    "QUOTA_DONT_SET",
    "QUOTA_RESET",
    "AccessDeniedError",
    "AclEntry",
    "AclStatus",
    "CapabilityNotSupportedError",
    "DFSConfig",
    "DFSOpsError",
    "DFSPath",
    "DirectoryNotEmptyError",
    "DistributedFileSystemOps",
    "FileStatus",
    "FsAction",
    "FsPermission",
    "InvalidArgumentError",
    "InvalidPathError",
    "MetaStatus",
    "PathExistsError",
    "PathNotFoundError",
    "QuotaExceededError",
    "QuotaUsage",
    "SessionAcquisitionError",
    "SessionClosedError",
    "StorageError",
    "StoragePolicy",
    "TransportError",
    "UserIdentity",
    "__version__",
    "open_session",
]
