"""InMemoryCluster / InMemoryFileSystem — a POSIX-like namespace held in memory.

``InMemoryCluster`` plays the namenode: it owns the inode tree, the user
and group directory, and the quota/policy state.  ``InMemoryFileSystem``
is a client handle bound to one user; every call is checked against that
user's permissions the way the remote filesystem would check them.

Clusters are shared by name (the ``mem://<name>`` authority), so handles
for different users opened against the same URI see the same namespace.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import (
    AccessDeniedError,
    DirectoryNotEmptyError,
    InvalidArgumentError,
    PathExistsError,
    PathNotFoundError,
    QuotaExceededError,
    StorageError,
)
from .identity import UserIdentity, current_user
from .paths import DFSPath
from .permissions import (
    AclEntry,
    AclEntryScope,
    AclEntryType,
    AclStatus,
    FsAction,
    FsPermission,
)
from .types import QUOTA_DONT_SET, QUOTA_RESET, FileStatus, QuotaUsage

if TYPE_CHECKING:
    from dfsops.config import DFSConfig

logger = logging.getLogger(__name__)

MEMORY_SCHEME = "mem"

DEFAULT_STORAGE_POLICY = "HOT"
STORAGE_POLICY_NAMES = frozenset(
    {"HOT", "WARM", "COLD", "ALL_SSD", "ONE_SSD", "LAZY_PERSIST", "DB", "CLOUD"}
)
META_STATUS_NAMES = frozenset(
    {"DISABLED", "META_ENABLED", "MIN_PROV_ENABLED", "FULL_PROV_ENABLED"}
)
XATTR_NAMESPACES = frozenset({"user", "trusted", "security", "system", "raw", "provenance"})
XATTR_MAX_SIZE = 16384


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False)
class _Node:
    """One inode."""

    name: str
    is_directory: bool
    owner: str
    group: str
    permission: FsPermission
    parent: _Node | None = None
    children: dict[str, _Node] = field(default_factory=dict)
    data: bytearray = field(default_factory=bytearray)
    modification_time: datetime = field(default_factory=_now)
    access_time: datetime = field(default_factory=_now)
    acl: list[AclEntry] = field(default_factory=list)
    default_acl: list[AclEntry] = field(default_factory=list)
    xattrs: dict[str, bytes] = field(default_factory=dict)
    storage_policy: str | None = None
    meta_status: str = "DISABLED"
    namespace_quota: int = QUOTA_RESET
    space_quota: int = QUOTA_RESET
    writer: object | None = None

    def chain(self) -> list[_Node]:
        """This node followed by its ancestors up to the root."""
        out: list[_Node] = []
        node: _Node | None = self
        while node is not None:
            out.append(node)
            node = node.parent
        return out

    def inode_count(self) -> int:
        return 1 + sum(child.inode_count() for child in self.children.values())

    def length(self) -> int:
        if self.is_directory:
            return sum(child.length() for child in self.children.values())
        return len(self.data)


# =============================================================================
# Cluster
# =============================================================================


class InMemoryCluster:
    """Shared namespace state: inode tree, user/group directory, settings."""

    def __init__(
        self,
        name: str = "default",
        *,
        superuser: str = "hdfs",
        supergroup: str = "hdfs",
        replication: int = 1,
        block_size: int = 128 * 1024 * 1024,
    ) -> None:
        self.name = name
        self.superuser = superuser
        self.supergroup = supergroup
        self.replication = replication
        self.block_size = block_size
        self.lock = threading.RLock()
        self.root = _Node(
            name="",
            is_directory=True,
            owner=superuser,
            group=supergroup,
            permission=FsPermission.from_octal(0o755),
        )
        self.users: set[str] = {superuser}
        self.groups: dict[str, set[str]] = {supergroup: {superuser}}

    def groups_of(self, user_name: str) -> set[str]:
        return {g for g, members in self.groups.items() if user_name in members}

    def connect(
        self,
        user: UserIdentity | None = None,
        *,
        umask: int = 0o022,
        authority: str | None = None,
    ) -> InMemoryFileSystem:
        """Open a handle bound to *user* (default: the current user)."""
        return InMemoryFileSystem(self, user or current_user(), umask=umask, authority=authority)


_CLUSTERS: dict[str, InMemoryCluster] = {}
_CLUSTERS_LOCK = threading.Lock()


def get_cluster(name: str = "default") -> InMemoryCluster:
    """Return the cluster registered under *name*, creating it on first use."""
    with _CLUSTERS_LOCK:
        cluster = _CLUSTERS.get(name)
        if cluster is None:
            cluster = _CLUSTERS[name] = InMemoryCluster(name)
        return cluster


def register_cluster(cluster: InMemoryCluster) -> InMemoryCluster:
    """Make *cluster* reachable as ``mem://<cluster.name>``."""
    with _CLUSTERS_LOCK:
        _CLUSTERS[cluster.name] = cluster
    return cluster


def reset_clusters() -> None:
    """Forget every registered cluster."""
    with _CLUSTERS_LOCK:
        _CLUSTERS.clear()


# =============================================================================
# Streams
# =============================================================================


class _MemoryOutputStream(io.RawIOBase):
    """Writer holding the single-writer lease on a file until closed."""

    def __init__(self, fs: InMemoryFileSystem, node: _Node, path: DFSPath) -> None:
        super().__init__()
        self._fs = fs
        self._node = node
        self._path = path
        node.writer = self

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        size = len(b)
        with self._fs._lock:
            self._fs._charge_space(self._node, size)
            self._node.data.extend(b)
            self._node.modification_time = _now()
        return size

    def close(self) -> None:
        if not self.closed:
            with self._fs._lock:
                if self._node.writer is self:
                    self._node.writer = None
        super().close()


# =============================================================================
# Client handle
# =============================================================================


class InMemoryFileSystem:
    """Client handle onto an ``InMemoryCluster`` bound to one user.

    Implements ``FileSystemClient`` and every capability protocol.
    """

    scheme = MEMORY_SCHEME

    def __init__(
        self,
        cluster: InMemoryCluster,
        user: UserIdentity,
        *,
        umask: int = 0o022,
        authority: str | None = None,
    ) -> None:
        self._cluster = cluster
        self._lock = cluster.lock
        self._umask = umask
        self._closed = False
        self.user = user
        self.authority = cluster.name if authority is None else authority

    @property
    def cluster(self) -> InMemoryCluster:
        return self._cluster

    def __repr__(self) -> str:
        return f"InMemoryFileSystem(mem://{self.authority}, user={self.user})"

    # ------------------------------------------------------------------
    # Identity & permission checks
    # ------------------------------------------------------------------

    @property
    def _user_name(self) -> str:
        return self.user.user_name

    def _groups(self) -> set[str]:
        return self._cluster.groups_of(self._user_name)

    def _is_superuser(self) -> bool:
        return (
            self._user_name == self._cluster.superuser
            or self._cluster.supergroup in self._groups()
        )

    def _deny(self, action: FsAction, path: DFSPath | str, node: _Node) -> AccessDeniedError:
        return AccessDeniedError(
            f"Permission denied: user={self._user_name}, access={action.symbol}, "
            f"inode=\"{path}\":{node.owner}:{node.group}:"
            f"{'d' if node.is_directory else '-'}{node.permission}"
        )

    def _check_access(self, node: _Node, action: FsAction, path: DFSPath | str) -> None:
        """POSIX ACL evaluation: owner, named users, groups, other."""
        if self._is_superuser():
            return
        perm = node.permission
        user = self._user_name
        if user == node.owner:
            if perm.user.implies(action):
                return
            raise self._deny(action, path, node)

        mask = next((e.permission for e in node.acl if e.type is AclEntryType.MASK), None)

        def masked(granted: FsAction) -> FsAction:
            return granted & mask if mask is not None else granted

        for entry in node.acl:
            if entry.type is AclEntryType.USER and entry.name == user:
                if masked(entry.permission).implies(action):
                    return
                raise self._deny(action, path, node)

        groups = self._groups()
        in_any_group = False
        if node.group in groups:
            in_any_group = True
            if masked(perm.group).implies(action):
                return
        for entry in node.acl:
            if entry.type is AclEntryType.GROUP and entry.name in groups:
                in_any_group = True
                if masked(entry.permission).implies(action):
                    return
        if in_any_group:
            raise self._deny(action, path, node)

        if perm.other.implies(action):
            return
        raise self._deny(action, path, node)

    def _check_owner(self, node: _Node, path: DFSPath) -> None:
        if self._is_superuser() or self._user_name == node.owner:
            return
        raise AccessDeniedError(
            f"Permission denied. user={self._user_name} is not the owner of inode={path}"
        )

    def _check_superuser(self, operation: str) -> None:
        if not self._is_superuser():
            raise AccessDeniedError(
                f"Access denied for user {self._user_name}. Superuser privilege is required "
                f"for {operation}"
            )

    def _check_sticky(self, parent: _Node, node: _Node, path: DFSPath) -> None:
        if not parent.permission.sticky or self._is_superuser():
            return
        if self._user_name in (parent.owner, node.owner):
            return
        raise AccessDeniedError(
            f"Permission denied by sticky bit: user={self._user_name}, path=\"{path}\""
        )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageError("Filesystem closed")

    def _lookup(self, path: DFSPath) -> _Node | None:
        node = self._cluster.root
        for segment in path.segments:
            if not node.is_directory:
                return None
            child = node.children.get(segment)
            if child is None:
                return None
            node = child
        return node

    def _require(self, path: DFSPath) -> _Node:
        node = self._lookup(path)
        if node is None:
            raise PathNotFoundError(f"File does not exist: {path}")
        return node

    def _require_dir(self, path: DFSPath) -> _Node:
        node = self._require(path)
        if not node.is_directory:
            raise StorageError(f"{path} is not a directory")
        return node

    def _qualify(self, path: DFSPath) -> DFSPath:
        return path.with_location(self.scheme, self.authority)

    def _status(self, path: DFSPath, node: _Node) -> FileStatus:
        return FileStatus(
            path=self._qualify(path),
            is_directory=node.is_directory,
            length=0 if node.is_directory else len(node.data),
            permission=node.permission,
            owner=node.owner,
            group=node.group,
            modification_time=node.modification_time,
            access_time=node.access_time,
            replication=0 if node.is_directory else self._cluster.replication,
            block_size=0 if node.is_directory else self._cluster.block_size,
        )

    # ------------------------------------------------------------------
    # Quota helpers
    # ------------------------------------------------------------------

    def _verify_namespace(self, directory: _Node, delta: int, stop: _Node | None = None) -> None:
        for node in directory.chain():
            if node is stop:
                break
            if node.namespace_quota == QUOTA_RESET:
                continue
            count = node.inode_count()
            if count + delta > node.namespace_quota:
                raise QuotaExceededError(
                    f"The NameSpace quota (directories and files) of directory "
                    f"{self._path_of(node)} is exceeded: quota={node.namespace_quota} "
                    f"file count={count + delta}"
                )

    def _verify_space(self, directory: _Node, delta: int, stop: _Node | None = None) -> None:
        for node in directory.chain():
            if node is stop:
                break
            if node.space_quota == QUOTA_RESET:
                continue
            consumed = node.length() * self._cluster.replication
            if consumed + delta > node.space_quota:
                raise QuotaExceededError(
                    f"The DiskSpace quota of {self._path_of(node)} is exceeded: "
                    f"quota = {node.space_quota} B but diskspace consumed = {consumed + delta} B"
                )

    def _charge_space(self, file_node: _Node, size: int) -> None:
        if file_node.parent is not None:
            self._verify_space(file_node.parent, size * self._cluster.replication)

    @staticmethod
    def _path_of(node: _Node) -> str:
        names = [n.name for n in reversed(node.chain()) if n.name]
        return "/" + "/".join(names)

    # ------------------------------------------------------------------
    # Creation helpers
    # ------------------------------------------------------------------

    def _default_dir_permission(self) -> FsPermission:
        return FsPermission.default().apply_umask(self._umask)

    def _new_child(
        self,
        parent: _Node,
        name: str,
        *,
        is_directory: bool,
        permission: FsPermission,
    ) -> _Node:
        node = _Node(
            name=name,
            is_directory=is_directory,
            owner=self._user_name,
            group=parent.group,
            permission=permission,
            parent=parent,
        )
        inherited = [
            AclEntry(e.type, e.permission, e.name, AclEntryScope.ACCESS)
            for e in parent.default_acl
            if e.is_named or e.type is AclEntryType.MASK
        ]
        if inherited:
            node.acl = inherited
            if is_directory:
                node.default_acl = list(parent.default_acl)
        parent.children[name] = node
        parent.modification_time = _now()
        return node

    def _make_dirs(self, path: DFSPath, permission: FsPermission) -> _Node:
        """Create every missing directory on *path*; return the deepest one."""
        node = self._cluster.root
        missing: list[str] = []
        for i, segment in enumerate(path.segments):
            child = node.children.get(segment)
            if child is None:
                missing = list(path.segments[i:])
                break
            if not child.is_directory:
                raise PathExistsError(f"Parent path is not a directory: {self._path_of(child)}")
            node = child
        if not missing:
            return node

        self._check_access(node, FsAction.WRITE, self._path_of(node))
        self._verify_namespace(node, len(missing))
        for name in missing:
            node = self._new_child(node, name, is_directory=True, permission=permission)
        return node

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        self._closed = True

    # =========================================================================
    # Read Operations
    # =========================================================================

    def open(self, path: DFSPath, buffer_size: int = 65536) -> BinaryIO:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            if node.is_directory:
                raise StorageError(f"Cannot open directory: {path}")
            self._check_access(node, FsAction.READ, path)
            node.access_time = _now()
            return io.BytesIO(bytes(node.data))

    def get_file_status(self, path: DFSPath) -> FileStatus:
        with self._lock:
            self._ensure_open()
            return self._status(path, self._require(path))

    def list_status(self, path: DFSPath) -> list[FileStatus]:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            if not node.is_directory:
                return [self._status(path, node)]
            self._check_access(node, FsAction.READ_EXECUTE, path)
            return [self._status(path / name, child) for name, child in node.children.items()]

    def exists(self, path: DFSPath) -> bool:
        with self._lock:
            self._ensure_open()
            return self._lookup(path) is not None

    def is_directory(self, path: DFSPath) -> bool:
        with self._lock:
            self._ensure_open()
            node = self._lookup(path)
            return node is not None and node.is_directory

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        path: DFSPath,
        overwrite: bool = True,
        permission: FsPermission | None = None,
    ) -> BinaryIO:
        with self._lock:
            self._ensure_open()
            if path.is_root:
                raise PathExistsError("Cannot create file over the root directory")
            node = self._lookup(path)
            if node is not None:
                if node.is_directory:
                    raise PathExistsError(f"{path} already exists as a directory")
                if not overwrite:
                    raise PathExistsError(f"File already exists: {path}")
                if node.writer is not None:
                    raise StorageError(f"Failed to create {path}: file is already being written")
                assert node.parent is not None
                self._check_access(node.parent, FsAction.WRITE, path.parent or path)
                node.data = bytearray()
                node.modification_time = _now()
                if permission is not None:
                    node.permission = permission
            else:
                assert path.parent is not None
                parent = self._make_dirs(path.parent, self._default_dir_permission())
                self._check_access(parent, FsAction.WRITE, path.parent)
                self._verify_namespace(parent, 1)
                node = self._new_child(
                    parent,
                    path.name,
                    is_directory=False,
                    permission=permission or FsPermission.file_default().apply_umask(self._umask),
                )
            return _MemoryOutputStream(self, node, path)

    def append(self, path: DFSPath) -> BinaryIO:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            if node.is_directory:
                raise StorageError(f"Cannot append to directory: {path}")
            if node.writer is not None:
                raise StorageError(f"Failed to append to {path}: file is already being written")
            self._check_access(node, FsAction.WRITE, path)
            return _MemoryOutputStream(self, node, path)

    def mkdir(self, path: DFSPath, permission: FsPermission) -> bool:
        with self._lock:
            self._ensure_open()
            node = self._lookup(path)
            if node is not None:
                if node.is_directory:
                    return True
                raise PathExistsError(f"Path is not a directory: {path}")
            assert path.parent is not None
            parent = self._lookup(path.parent)
            if parent is None:
                raise PathNotFoundError(f"Parent directory doesn't exist: {path.parent}")
            if not parent.is_directory:
                raise PathExistsError(f"Parent path is not a directory: {path.parent}")
            self._check_access(parent, FsAction.WRITE, path.parent)
            self._verify_namespace(parent, 1)
            self._new_child(parent, path.name, is_directory=True, permission=permission)
            return True

    def mkdirs(self, path: DFSPath, permission: FsPermission) -> bool:
        with self._lock:
            self._ensure_open()
            node = self._lookup(path)
            if node is not None:
                if node.is_directory:
                    return True
                raise PathExistsError(f"Path is not a directory: {path}")
            self._make_dirs(path, permission)
            return True

    def delete(self, path: DFSPath, recursive: bool) -> bool:
        with self._lock:
            self._ensure_open()
            node = self._lookup(path)
            if node is None or node.parent is None:
                return False
            if node.is_directory and node.children and not recursive:
                raise DirectoryNotEmptyError(f"`{path} is non empty': Directory is not empty")
            parent = node.parent
            self._check_access(parent, FsAction.WRITE, path.parent or path)
            self._check_sticky(parent, node, path)
            del parent.children[node.name]
            node.parent = None
            parent.modification_time = _now()
            return True

    def rename(self, src: DFSPath, dst: DFSPath) -> bool:
        with self._lock:
            self._ensure_open()
            node = self._lookup(src)
            if node is None or node.parent is None:
                return False
            if src.path == dst.path:
                return True
            target = self._lookup(dst)
            if target is not None:
                if not target.is_directory:
                    return False
                if node.name in target.children:
                    return False
                new_parent, new_name = target, node.name
            else:
                assert dst.parent is not None
                new_parent = self._lookup(dst.parent)
                if new_parent is None or not new_parent.is_directory:
                    return False
                new_name = dst.name
            if node.is_directory and node in new_parent.chain():
                return False

            old_parent = node.parent
            self._check_access(old_parent, FsAction.WRITE, src.parent or src)
            self._check_access(new_parent, FsAction.WRITE, self._path_of(new_parent))
            self._check_sticky(old_parent, node, src)

            common = next((n for n in new_parent.chain() if n in old_parent.chain()), None)
            self._verify_namespace(new_parent, node.inode_count(), stop=common)
            self._verify_space(new_parent, node.length() * self._cluster.replication, stop=common)

            del old_parent.children[node.name]
            node.name = new_name
            node.parent = new_parent
            new_parent.children[new_name] = node
            old_parent.modification_time = new_parent.modification_time = _now()
            return True

    # =========================================================================
    # Permissions, ownership, ACLs
    # =========================================================================

    def set_permission(self, path: DFSPath, permission: FsPermission) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_owner(node, path)
            node.permission = permission

    def set_owner(self, path: DFSPath, user: str | None, group: str | None) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            if not self._is_superuser():
                if user is not None and user != node.owner:
                    self._check_superuser("changing the owner of a file")
                self._check_owner(node, path)
                if group is not None and group not in self._groups():
                    raise AccessDeniedError(
                        f"User {self._user_name} does not belong to group {group}"
                    )
            if user:
                node.owner = user
            if group:
                node.group = group

    def set_acl(self, path: DFSPath, entries: list[AclEntry]) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_owner(node, path)

            seen: set[tuple[AclEntryScope, AclEntryType, str | None]] = set()
            for entry in entries:
                key = (entry.scope, entry.type, entry.name)
                if key in seen:
                    raise StorageError(
                        f"Invalid ACL: multiple entries with same scope, type and name: {entry}"
                    )
                seen.add(key)

            access = [e for e in entries if e.scope is AclEntryScope.ACCESS]
            default = [e for e in entries if e.scope is AclEntryScope.DEFAULT]
            if default and not node.is_directory:
                raise StorageError(f"Invalid ACL: only directories may have a default ACL: {path}")

            perm = node.permission
            user_bits, group_bits, other_bits = perm.user, perm.group, perm.other
            extended: list[AclEntry] = []
            for entry in access:
                if entry.type is AclEntryType.USER and not entry.is_named:
                    user_bits = entry.permission
                elif entry.type is AclEntryType.GROUP and not entry.is_named:
                    group_bits = entry.permission
                elif entry.type is AclEntryType.OTHER:
                    other_bits = entry.permission
                else:
                    extended.append(entry)

            if extended and not any(e.type is AclEntryType.MASK for e in extended):
                mask = group_bits
                for e in extended:
                    if e.type in (AclEntryType.USER, AclEntryType.GROUP):
                        mask |= e.permission
                extended.append(AclEntry(AclEntryType.MASK, mask))

            node.permission = FsPermission(user_bits, group_bits, other_bits, perm.sticky)
            node.acl = extended
            node.default_acl = default

    def get_acl_status(self, path: DFSPath) -> AclStatus:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            return AclStatus(
                owner=node.owner,
                group=node.group,
                permission=node.permission,
                entries=[*node.acl, *node.default_acl],
            )

    # =========================================================================
    # Quotas
    # =========================================================================

    def set_quota(self, path: DFSPath, namespace_quota: int, space_quota: int) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("setting quota")
            node = self._require_dir(path)
            if namespace_quota not in (QUOTA_RESET, QUOTA_DONT_SET) and namespace_quota <= 0:
                raise InvalidArgumentError(f"Invalid values for quota : {namespace_quota}")
            if space_quota not in (QUOTA_RESET, QUOTA_DONT_SET) and space_quota < 0:
                raise InvalidArgumentError(f"Invalid values for space quota : {space_quota}")
            if namespace_quota != QUOTA_DONT_SET:
                node.namespace_quota = namespace_quota
            if space_quota != QUOTA_DONT_SET:
                node.space_quota = space_quota

    def get_quota_usage(self, path: DFSPath) -> QuotaUsage:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            return QuotaUsage(
                file_and_directory_count=node.inode_count(),
                quota=node.namespace_quota,
                space_consumed=node.length() * self._cluster.replication,
                space_quota=node.space_quota,
            )

    # =========================================================================
    # Storage policies
    # =========================================================================

    def set_storage_policy(self, path: DFSPath, policy_name: str) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            if policy_name not in STORAGE_POLICY_NAMES:
                raise StorageError(f"Cannot find a block policy with the name {policy_name}")
            self._check_access(node, FsAction.WRITE, path)
            node.storage_policy = policy_name

    def get_storage_policy(self, path: DFSPath) -> str:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            for ancestor in node.chain():
                if ancestor.storage_policy is not None:
                    return ancestor.storage_policy
            return DEFAULT_STORAGE_POLICY

    # =========================================================================
    # Extended attributes
    # =========================================================================

    def _check_xattr(self, node: _Node, path: DFSPath, name: str, action: FsAction) -> None:
        namespace, sep, rest = name.partition(".")
        if not sep or not rest or namespace.lower() not in XATTR_NAMESPACES:
            raise InvalidArgumentError(
                f"An XAttr name must be prefixed with user/trusted/security/system/raw/"
                f"provenance, followed by a '.': {name!r}"
            )
        if namespace.lower() == "user":
            self._check_access(node, action, path)
        else:
            self._check_superuser(f"{namespace} xattrs")

    def set_xattr(self, path: DFSPath, name: str, value: bytes) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_xattr(node, path, name, FsAction.WRITE)
            if len(name) + len(value) > XATTR_MAX_SIZE:
                raise StorageError(
                    f"The XAttr is too big. The maximum combined size of the name and value "
                    f"is {XATTR_MAX_SIZE}, but the total size is {len(name) + len(value)}"
                )
            node.xattrs[name] = bytes(value)

    def get_xattr(self, path: DFSPath, name: str) -> bytes:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_xattr(node, path, name, FsAction.READ)
            if name not in node.xattrs:
                raise StorageError("At least one of the attributes provided was not found.")
            return node.xattrs[name]

    def get_xattrs(self, path: DFSPath) -> dict[str, bytes]:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_access(node, FsAction.READ, path)
            if self._is_superuser():
                return dict(node.xattrs)
            return {k: v for k, v in node.xattrs.items() if k.lower().startswith("user.")}

    def remove_xattr(self, path: DFSPath, name: str) -> None:
        with self._lock:
            self._ensure_open()
            node = self._require(path)
            self._check_xattr(node, path, name, FsAction.WRITE)
            if node.xattrs.pop(name, None) is None:
                raise StorageError(
                    "No matching attributes found for remove operation"
                )

    # =========================================================================
    # Metadata / provenance status
    # =========================================================================

    def set_meta_status(self, path: DFSPath, status: str) -> None:
        with self._lock:
            self._ensure_open()
            if status not in META_STATUS_NAMES:
                raise StorageError(f"Unknown meta status: {status}")
            node = self._require_dir(path)
            self._check_owner(node, path)
            node.meta_status = status

    def get_meta_status(self, path: DFSPath) -> str:
        with self._lock:
            self._ensure_open()
            return self._require(path).meta_status

    # =========================================================================
    # User and group directory
    # =========================================================================

    def add_user(self, user_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("adding users")
            if user_name in self._cluster.users:
                raise StorageError(f"User {user_name} already exists")
            self._cluster.users.add(user_name)

    def remove_user(self, user_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("removing users")
            if user_name not in self._cluster.users:
                raise StorageError(f"User {user_name} does not exist")
            self._cluster.users.discard(user_name)
            for members in self._cluster.groups.values():
                members.discard(user_name)

    def add_group(self, group_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("adding groups")
            if group_name in self._cluster.groups:
                raise StorageError(f"Group {group_name} already exists")
            self._cluster.groups[group_name] = set()

    def remove_group(self, group_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("removing groups")
            if group_name not in self._cluster.groups:
                raise StorageError(f"Group {group_name} does not exist")
            del self._cluster.groups[group_name]

    def add_user_to_group(self, user_name: str, group_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("changing group membership")
            if user_name not in self._cluster.users:
                raise StorageError(f"User {user_name} does not exist")
            if group_name not in self._cluster.groups:
                raise StorageError(f"Group {group_name} does not exist")
            self._cluster.groups[group_name].add(user_name)

    def remove_user_from_group(self, user_name: str, group_name: str) -> None:
        with self._lock:
            self._ensure_open()
            self._check_superuser("changing group membership")
            members = self._cluster.groups.get(group_name)
            if members is None or user_name not in members:
                raise StorageError(f"User {user_name} is not a member of group {group_name}")
            members.discard(user_name)


def connect(authority: str, config: DFSConfig) -> InMemoryFileSystem:
    """Connector for the ``mem`` scheme; the authority names the cluster."""
    cluster = get_cluster(authority or "default")
    return cluster.connect(current_user(), umask=config.umask, authority=authority)
