"""WebHDFSFileSystem — ``hopsfs://`` and ``hdfs://`` over the WebHDFS REST API.

Impersonation follows the WebHDFS convention: a plain identity is sent as
``user.name``; a proxy identity sends its real user as ``user.name`` and
the impersonated user as ``doas``.  Namenode errors arrive as a JSON
``RemoteException`` and are mapped onto the ``StorageError`` hierarchy.

The REST API has no user/group directory and no provenance status, so
this backend does not implement ``SupportsIdentityAdmin`` or
``SupportsProvenance``.
"""

from __future__ import annotations

import io
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, BinaryIO

import requests

from .exceptions import (
    AccessDeniedError,
    DirectoryNotEmptyError,
    InvalidArgumentError,
    PathExistsError,
    PathNotFoundError,
    QuotaExceededError,
    StorageError,
    TransportError,
)
from .identity import UserIdentity, current_user
from .paths import DFSPath
from .permissions import AclEntry, AclStatus, FsPermission, format_acl_spec
from .types import FileStatus, QuotaUsage

if TYPE_CHECKING:
    from dfsops.config import DFSConfig

logger = logging.getLogger(__name__)

WEBHDFS_PREFIX = "/webhdfs/v1"

# RemoteException.exception -> local error type
_REMOTE_ERRORS: dict[str, type[StorageError] | type[InvalidArgumentError]] = {
    "FileNotFoundException": PathNotFoundError,
    "FileAlreadyExistsException": PathExistsError,
    "AccessControlException": AccessDeniedError,
    "SecurityException": AccessDeniedError,
    "PathIsNotEmptyDirectoryException": DirectoryNotEmptyError,
    "NSQuotaExceededException": QuotaExceededError,
    "DSQuotaExceededException": QuotaExceededError,
    "QuotaExceededException": QuotaExceededError,
    "IllegalArgumentException": InvalidArgumentError,
    "HadoopIllegalArgumentException": InvalidArgumentError,
}


def remote_error(status_code: int, payload: Any) -> Exception:
    """Build the local exception for a failed WebHDFS response."""
    remote = payload.get("RemoteException") if isinstance(payload, dict) else None
    if not remote:
        return StorageError(f"WebHDFS request failed with HTTP {status_code}")
    name = remote.get("exception", "")
    message = remote.get("message") or name or f"HTTP {status_code}"
    return _REMOTE_ERRORS.get(name, StorageError)(message)


def _from_millis(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)


class _UploadStream(io.BytesIO):
    """Buffers written bytes and ships them to the datanode on close."""

    def __init__(self, fs: WebHDFSFileSystem, path: DFSPath, op: str, params: dict[str, Any]):
        super().__init__()
        self._fs = fs
        self._path = path
        self._op = op
        self._params = params

    def close(self) -> None:
        if self.closed:
            return
        data = self.getvalue()
        try:
            self._fs._upload(self._path, self._op, self._params, data)
        finally:
            super().close()


class WebHDFSFileSystem:
    """Client handle onto a WebHDFS endpoint bound to one user.

    Implements ``FileSystemClient`` plus ACL, quota, storage-policy and
    xattr capabilities.
    """

    def __init__(
        self,
        scheme: str,
        authority: str,
        user: UserIdentity,
        config: DFSConfig,
        http: requests.Session | None = None,
    ) -> None:
        self.scheme = scheme
        self.authority = authority
        self.user = user
        self._config = config
        self._http = http or requests.Session()
        self._http.verify = config.verify
        host = authority.rpartition(":")[0] if ":" in authority else authority
        self.base_url = (
            f"{config.webhdfs_scheme}://{host or 'localhost'}:{config.webhdfs_port}{WEBHDFS_PREFIX}"
        )

    def __repr__(self) -> str:
        return f"WebHDFSFileSystem({self.base_url}, user={self.user})"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _identity_params(self) -> dict[str, str]:
        if self.user.real_user is not None:
            return {"user.name": self.user.real_user.user_name, "doas": self.user.user_name}
        return {"user.name": self.user.user_name}

    def _url(self, path: DFSPath) -> str:
        return self.base_url + path.path

    def _request(
        self,
        method: str,
        path: DFSPath,
        op: str,
        *,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        query = {"op": op, **self._identity_params(), **(params or {})}
        try:
            response = self._http.request(
                method, self._url(path), params=query, timeout=self._config.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise TransportError(f"{op} {path} failed: {e}") from e
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise remote_error(response.status_code, payload)
        return response

    def _json(self, method: str, path: DFSPath, op: str, **kwargs: Any) -> dict[str, Any]:
        return self._request(method, path, op, **kwargs).json()

    def _upload(self, path: DFSPath, op: str, params: dict[str, Any], data: bytes) -> None:
        method = "POST" if op == "APPEND" else "PUT"
        # namenode answers with a redirect to the datanode that takes the bytes
        first = self._request(method, path, op, params=params, allow_redirects=False)
        location = first.headers.get("Location")
        if not location:
            raise StorageError(f"{op} {path}: namenode returned no datanode location")
        try:
            second = self._http.request(method, location, data=data, timeout=self._config.timeout)
        except requests.RequestException as e:
            raise TransportError(f"{op} {path} failed: {e}") from e
        if second.status_code >= 400:
            try:
                payload = second.json()
            except ValueError:
                payload = None
            raise remote_error(second.status_code, payload)
        logger.debug("%s %s: %d bytes", op, path, len(data))

    def _to_status(self, path: DFSPath, raw: dict[str, Any]) -> FileStatus:
        suffix = raw.get("pathSuffix")
        target = path / suffix if suffix else path
        is_dir = raw.get("type") == "DIRECTORY"
        return FileStatus(
            path=target.with_location(self.scheme, self.authority),
            is_directory=is_dir,
            length=int(raw.get("length", 0)),
            permission=FsPermission.from_octal(raw.get("permission", "0")),
            owner=raw.get("owner", ""),
            group=raw.get("group", ""),
            modification_time=_from_millis(raw.get("modificationTime", 0)),
            access_time=_from_millis(raw.get("accessTime")),
            replication=int(raw.get("replication", 0)),
            block_size=int(raw.get("blockSize", 0)),
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        self._http.close()

    # =========================================================================
    # Read Operations
    # =========================================================================

    def open(self, path: DFSPath, buffer_size: int = 65536) -> BinaryIO:
        response = self._request(
            "GET", path, "OPEN", params={"buffersize": buffer_size}, stream=True
        )
        response.raw.decode_content = True
        return response.raw

    def get_file_status(self, path: DFSPath) -> FileStatus:
        payload = self._json("GET", path, "GETFILESTATUS")
        return self._to_status(path, payload["FileStatus"])

    def list_status(self, path: DFSPath) -> list[FileStatus]:
        payload = self._json("GET", path, "LISTSTATUS")
        return [self._to_status(path, raw) for raw in payload["FileStatuses"]["FileStatus"]]

    def exists(self, path: DFSPath) -> bool:
        try:
            self.get_file_status(path)
        except PathNotFoundError:
            return False
        return True

    def is_directory(self, path: DFSPath) -> bool:
        try:
            return self.get_file_status(path).is_directory
        except PathNotFoundError:
            return False

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        path: DFSPath,
        overwrite: bool = True,
        permission: FsPermission | None = None,
    ) -> BinaryIO:
        if not overwrite and self.exists(path):
            raise PathExistsError(f"File already exists: {path}")
        params: dict[str, Any] = {"overwrite": "true" if overwrite else "false"}
        if permission is not None:
            params["permission"] = f"{permission.to_octal():o}"
        return _UploadStream(self, path, "CREATE", params)

    def append(self, path: DFSPath) -> BinaryIO:
        if not self.exists(path):
            raise PathNotFoundError(f"File does not exist: {path}")
        return _UploadStream(self, path, "APPEND", {})

    def mkdir(self, path: DFSPath, permission: FsPermission) -> bool:
        # WebHDFS only offers MKDIRS; check the parent to keep mkdir's contract
        if path.parent is not None and not self.exists(path.parent):
            raise PathNotFoundError(f"Parent directory doesn't exist: {path.parent}")
        return self.mkdirs(path, permission)

    def mkdirs(self, path: DFSPath, permission: FsPermission) -> bool:
        payload = self._json(
            "PUT", path, "MKDIRS", params={"permission": f"{permission.to_octal():o}"}
        )
        return bool(payload.get("boolean"))

    def delete(self, path: DFSPath, recursive: bool) -> bool:
        payload = self._json(
            "DELETE", path, "DELETE", params={"recursive": "true" if recursive else "false"}
        )
        return bool(payload.get("boolean"))

    def rename(self, src: DFSPath, dst: DFSPath) -> bool:
        payload = self._json("PUT", src, "RENAME", params={"destination": dst.path})
        return bool(payload.get("boolean"))

    def set_permission(self, path: DFSPath, permission: FsPermission) -> None:
        self._request("PUT", path, "SETPERMISSION", params={"permission": f"{permission.to_octal():o}"})

    def set_owner(self, path: DFSPath, user: str | None, group: str | None) -> None:
        params = {}
        if user:
            params["owner"] = user
        if group:
            params["group"] = group
        self._request("PUT", path, "SETOWNER", params=params)

    # =========================================================================
    # ACLs
    # =========================================================================

    def set_acl(self, path: DFSPath, entries: list[AclEntry]) -> None:
        self._request("PUT", path, "SETACL", params={"aclspec": format_acl_spec(entries)})

    def get_acl_status(self, path: DFSPath) -> AclStatus:
        raw = self._json("GET", path, "GETACLSTATUS")["AclStatus"]
        permission = FsPermission.from_octal(raw.get("permission", "0"))
        if raw.get("stickyBit"):
            permission = FsPermission(permission.user, permission.group, permission.other, True)
        return AclStatus(
            owner=raw.get("owner", ""),
            group=raw.get("group", ""),
            permission=permission,
            entries=[AclEntry.parse(e) for e in raw.get("entries", [])],
        )

    # =========================================================================
    # Quotas
    # =========================================================================

    def set_quota(self, path: DFSPath, namespace_quota: int, space_quota: int) -> None:
        self._request(
            "PUT",
            path,
            "SETQUOTA",
            params={"namespacequota": namespace_quota, "storagespacequota": space_quota},
        )

    def get_quota_usage(self, path: DFSPath) -> QuotaUsage:
        raw = self._json("GET", path, "GETQUOTAUSAGE")["QuotaUsage"]
        return QuotaUsage(
            file_and_directory_count=int(raw.get("fileAndDirectoryCount", 0)),
            quota=int(raw.get("quota", -1)),
            space_consumed=int(raw.get("spaceConsumed", 0)),
            space_quota=int(raw.get("spaceQuota", -1)),
        )

    # =========================================================================
    # Storage policies
    # =========================================================================

    def set_storage_policy(self, path: DFSPath, policy_name: str) -> None:
        self._request("PUT", path, "SETSTORAGEPOLICY", params={"storagepolicy": policy_name})

    def get_storage_policy(self, path: DFSPath) -> str:
        return self._json("GET", path, "GETSTORAGEPOLICY")["BlockStoragePolicy"]["name"]

    # =========================================================================
    # Extended attributes
    # =========================================================================

    def set_xattr(self, path: DFSPath, name: str, value: bytes) -> None:
        self._request(
            "PUT",
            path,
            "SETXATTR",
            params={"xattr.name": name, "xattr.value": "0x" + value.hex(), "flag": "CREATE,REPLACE"},
        )

    def get_xattr(self, path: DFSPath, name: str) -> bytes:
        values = self._get_xattrs(path, {"xattr.name": name})
        if name not in values:
            raise StorageError("At least one of the attributes provided was not found.")
        return values[name]

    def get_xattrs(self, path: DFSPath) -> dict[str, bytes]:
        return self._get_xattrs(path, {})

    def _get_xattrs(self, path: DFSPath, params: dict[str, str]) -> dict[str, bytes]:
        payload = self._json("GET", path, "GETXATTRS", params={**params, "encoding": "hex"})
        out: dict[str, bytes] = {}
        for item in payload.get("XAttrs", []):
            value = item.get("value") or ""
            out[item["name"]] = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        return out

    def remove_xattr(self, path: DFSPath, name: str) -> None:
        self._request("PUT", path, "REMOVEXATTR", params={"xattr.name": name})


def connect(authority: str, config: DFSConfig, scheme: str = "hopsfs") -> WebHDFSFileSystem:
    """Connector for ``hopsfs`` / ``hdfs``."""
    return WebHDFSFileSystem(scheme, authority, current_user(), config)


def connect_hdfs(authority: str, config: DFSConfig) -> WebHDFSFileSystem:
    return connect(authority, config, scheme="hdfs")
