"""Tests for the WebHDFS backend against a mocked HTTP session."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from dfsops.config import DFSConfig
from dfsops.fs.exceptions import (
    AccessDeniedError,
    DirectoryNotEmptyError,
    InvalidArgumentError,
    PathExistsError,
    PathNotFoundError,
    QuotaExceededError,
    StorageError,
    TransportError,
)
from dfsops.fs.identity import UserIdentity
from dfsops.fs.paths import DFSPath
from dfsops.fs.permissions import FsPermission, parse_acl_spec
from dfsops.fs.protocol import (
    FileSystemClient,
    SupportsAcls,
    SupportsIdentityAdmin,
    SupportsProvenance,
    SupportsQuotas,
    SupportsStoragePolicies,
    SupportsXAttrs,
)
from dfsops.fs.webhdfs import WebHDFSFileSystem, remote_error

BASE = "http://nn:9870/webhdfs/v1"


def _response(status: int = 200, payload: Any = None, headers: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    resp.headers = headers or {}
    return resp


def _not_found() -> MagicMock:
    return _response(
        404,
        {"RemoteException": {"exception": "FileNotFoundException", "message": "File does not exist: /x"}},
    )


def _file_status(**overrides: Any) -> dict[str, Any]:
    raw = {
        "pathSuffix": "",
        "type": "FILE",
        "length": 12,
        "permission": "640",
        "owner": "alice",
        "group": "demo",
        "modificationTime": 1_700_000_000_000,
        "accessTime": 1_700_000_000_000,
        "replication": 3,
        "blockSize": 134217728,
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def http() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def webhdfs(http: MagicMock) -> WebHDFSFileSystem:
    config = DFSConfig(webhdfs_port=9870, timeout=5.0)
    return WebHDFSFileSystem("hopsfs", "nn:8020", UserIdentity.create_remote_user("alice"), config, http=http)


def P(path: str) -> DFSPath:
    return DFSPath.parse(path)


class TestWebHDFSCapabilities:
    @pytest.mark.parametrize(
        ("protocol", "expected"),
        [
            pytest.param(FileSystemClient, True, id="core"),
            pytest.param(SupportsAcls, True, id="acls"),
            pytest.param(SupportsQuotas, True, id="quotas"),
            pytest.param(SupportsStoragePolicies, True, id="policies"),
            pytest.param(SupportsXAttrs, True, id="xattrs"),
            pytest.param(SupportsProvenance, False, id="provenance"),
            pytest.param(SupportsIdentityAdmin, False, id="identity-admin"),
        ],
    )
    def test_protocols(self, webhdfs: WebHDFSFileSystem, protocol: type, expected: bool):
        assert isinstance(webhdfs, protocol) is expected

    def test_base_url(self, webhdfs: WebHDFSFileSystem):
        assert webhdfs.base_url == BASE

    def test_https(self, http: MagicMock):
        config = DFSConfig(webhdfs_scheme="HTTPS_ONLY", webhdfs_port=9871)
        fs = WebHDFSFileSystem("hdfs", "nn", UserIdentity.create_remote_user("alice"), config, http=http)
        assert fs.base_url == "https://nn:9871/webhdfs/v1"


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------


class TestRequests:
    def test_get_file_status(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"FileStatus": _file_status()})
        status = webhdfs.get_file_status(P("/Projects/demo/f.csv"))

        http.request.assert_called_once_with(
            "GET",
            f"{BASE}/Projects/demo/f.csv",
            params={"op": "GETFILESTATUS", "user.name": "alice"},
            timeout=5.0,
        )
        assert str(status.path) == "hopsfs://nn:8020/Projects/demo/f.csv"
        assert status.length == 12
        assert status.permission.to_octal() == 0o640
        assert status.replication == 3
        assert status.modification_time.year == 2023

    def test_proxy_user(self, http: MagicMock):
        service = UserIdentity.create_remote_user("serving")
        proxy = UserIdentity.create_proxy_user("alice", service)
        fs = WebHDFSFileSystem("hopsfs", "nn:8020", proxy, DFSConfig(), http=http)
        http.request.return_value = _response(200, {"boolean": True})
        fs.delete(P("/x"), True)
        params = http.request.call_args.kwargs["params"]
        assert params["user.name"] == "serving"
        assert params["doas"] == "alice"
        assert params["recursive"] == "true"

    def test_list_status(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(
            200,
            {
                "FileStatuses": {
                    "FileStatus": [
                        _file_status(pathSuffix="a.csv"),
                        _file_status(pathSuffix="sub", type="DIRECTORY", length=0),
                    ]
                }
            },
        )
        statuses = webhdfs.list_status(P("/data"))
        assert [s.path.path for s in statuses] == ["/data/a.csv", "/data/sub"]
        assert statuses[1].is_directory

    def test_exists(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _not_found()
        assert not webhdfs.exists(P("/x"))
        assert not webhdfs.is_directory(P("/x"))

    def test_mkdirs(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"boolean": True})
        assert webhdfs.mkdirs(P("/a/b"), FsPermission.from_octal(0o750))
        assert http.request.call_args.args[0] == "PUT"
        assert http.request.call_args.kwargs["params"]["permission"] == "750"

    def test_mkdir_missing_parent(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _not_found()
        with pytest.raises(PathNotFoundError, match="Parent"):
            webhdfs.mkdir(P("/a/b"), FsPermission.from_octal(0o755))

    def test_rename(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"boolean": False})
        assert not webhdfs.rename(P("/a"), P("/b"))
        assert http.request.call_args.kwargs["params"]["destination"] == "/b"

    def test_set_owner_skips_missing_parts(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {})
        webhdfs.set_owner(P("/a"), None, "demo")
        params = http.request.call_args.kwargs["params"]
        assert params["group"] == "demo"
        assert "owner" not in params

    def test_open_streams(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        resp = _response(200, {})
        http.request.return_value = resp
        assert webhdfs.open(P("/f")) is resp.raw
        assert http.request.call_args.kwargs["stream"] is True


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


class TestUploads:
    def test_create_uploads_on_close(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        location = "http://dn1:9864/webhdfs/v1/f?op=CREATE"
        http.request.side_effect = [_response(307, headers={"Location": location}), _response(201)]
        with webhdfs.create(P("/f"), permission=FsPermission.from_octal(0o600)) as out:
            out.write(b"abc")
            http.request.assert_not_called()

        first, second = http.request.call_args_list
        assert first.args == ("PUT", f"{BASE}/f")
        assert first.kwargs["allow_redirects"] is False
        assert first.kwargs["params"]["op"] == "CREATE"
        assert first.kwargs["params"]["overwrite"] == "true"
        assert first.kwargs["params"]["permission"] == "600"
        assert second.args == ("PUT", location)
        assert second.kwargs["data"] == b"abc"

    def test_create_no_overwrite_checks_existence(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"FileStatus": _file_status()})
        with pytest.raises(PathExistsError):
            webhdfs.create(P("/f"), overwrite=False)

    def test_append_posts(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.side_effect = [
            _response(200, {"FileStatus": _file_status()}),
            _response(307, headers={"Location": "http://dn1/append"}),
            _response(200),
        ]
        with webhdfs.append(P("/f")) as out:
            out.write(b"more")
        _, first, second = http.request.call_args_list
        assert first.args[0] == "POST"
        assert first.kwargs["params"]["op"] == "APPEND"
        assert second.args == ("POST", "http://dn1/append")

    def test_append_missing(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _not_found()
        with pytest.raises(PathNotFoundError):
            webhdfs.append(P("/f"))

    def test_missing_location(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {})
        out = webhdfs.create(P("/f"))
        out.write(b"x")
        with pytest.raises(StorageError, match="datanode"):
            out.close()
        assert out.closed

    def test_datanode_error(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.side_effect = [
            _response(307, headers={"Location": "http://dn1/create"}),
            _response(
                403,
                {"RemoteException": {"exception": "DSQuotaExceededException", "message": "quota"}},
            ),
        ]
        out = webhdfs.create(P("/f"))
        with pytest.raises(QuotaExceededError):
            out.close()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.parametrize(
        ("exception", "expected"),
        [
            pytest.param("FileNotFoundException", PathNotFoundError, id="not-found"),
            pytest.param("FileAlreadyExistsException", PathExistsError, id="exists"),
            pytest.param("AccessControlException", AccessDeniedError, id="denied"),
            pytest.param("PathIsNotEmptyDirectoryException", DirectoryNotEmptyError, id="not-empty"),
            pytest.param("NSQuotaExceededException", QuotaExceededError, id="ns-quota"),
            pytest.param("IllegalArgumentException", InvalidArgumentError, id="illegal-arg"),
            pytest.param("SomethingElseException", StorageError, id="fallback"),
        ],
    )
    def test_remote_exception_mapping(self, exception: str, expected: type[Exception]):
        error = remote_error(400, {"RemoteException": {"exception": exception, "message": "boom"}})
        assert type(error) is expected
        assert str(error) == "boom"

    def test_non_json_error(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(502)
        with pytest.raises(StorageError, match="HTTP 502"):
            webhdfs.get_file_status(P("/f"))

    def test_transport_error(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError, match="refused") as exc_info:
            webhdfs.get_file_status(P("/f"))
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_access_denied(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(
            403,
            {
                "RemoteException": {
                    "exception": "AccessControlException",
                    "message": "Permission denied: user=alice, access=WRITE",
                }
            },
        )
        with pytest.raises(AccessDeniedError, match="user=alice"):
            webhdfs.delete(P("/x"), False)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class TestCapabilityOps:
    def test_set_acl(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {})
        webhdfs.set_acl(P("/d"), parse_acl_spec("user:bob:rwx,default:group:demo:r-x"))
        params = http.request.call_args.kwargs["params"]
        assert params["op"] == "SETACL"
        assert params["aclspec"] == "user:bob:rwx,default:group:demo:r-x"

    def test_get_acl_status(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(
            200,
            {
                "AclStatus": {
                    "owner": "alice",
                    "group": "demo",
                    "permission": "770",
                    "stickyBit": True,
                    "entries": ["user:bob:rw-", "group::r-x"],
                }
            },
        )
        status = webhdfs.get_acl_status(P("/d"))
        assert status.sticky
        assert status.permission.to_octal() == 0o1770
        assert [str(e) for e in status.entries] == ["user:bob:rw-", "group::r-x"]

    def test_quota(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(
            200,
            {"QuotaUsage": {"fileAndDirectoryCount": 7, "quota": 100, "spaceConsumed": 42, "spaceQuota": -1}},
        )
        usage = webhdfs.get_quota_usage(P("/d"))
        assert usage.file_and_directory_count == 7
        assert usage.quota == 100
        assert not usage.has_space_quota

        webhdfs.set_quota(P("/d"), 10, 2048)
        params = http.request.call_args.kwargs["params"]
        assert params["namespacequota"] == 10
        assert params["storagespacequota"] == 2048

    def test_storage_policy(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"BlockStoragePolicy": {"id": 7, "name": "HOT"}})
        assert webhdfs.get_storage_policy(P("/d")) == "HOT"
        webhdfs.set_storage_policy(P("/d"), "COLD")
        assert http.request.call_args.kwargs["params"]["storagepolicy"] == "COLD"

    def test_set_xattr_hex(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {})
        webhdfs.set_xattr(P("/d"), "user.note", b"hi")
        params = http.request.call_args.kwargs["params"]
        assert params["xattr.name"] == "user.note"
        assert params["xattr.value"] == "0x6869"

    def test_get_xattrs(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(
            200, {"XAttrs": [{"name": "user.a", "value": "0x6869"}, {"name": "user.b", "value": None}]}
        )
        assert webhdfs.get_xattrs(P("/d")) == {"user.a": b"hi", "user.b": b""}
        assert http.request.call_args.kwargs["params"]["encoding"] == "hex"

    def test_get_xattr_missing(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        http.request.return_value = _response(200, {"XAttrs": []})
        with pytest.raises(StorageError, match="not found"):
            webhdfs.get_xattr(P("/d"), "user.a")

    def test_close_closes_session(self, webhdfs: WebHDFSFileSystem, http: MagicMock):
        webhdfs.close()
        http.close.assert_called_once_with()
