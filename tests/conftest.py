"""Shared fixtures for dfsops tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlmodel import Session, SQLModel, create_engine

import dfsops.models  # noqa: F401  (registers the tables)
from dfsops import DFSConfig, DistributedFileSystemOps, FsPermission, UserIdentity, open_session
from dfsops.fs.memory import InMemoryCluster, get_cluster, reset_clusters

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine

CLUSTER = "test"
PROJECT = "/Projects/demo"


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    """SQLModel session bound to the in-memory engine, rolled back after each test."""
    with Session(engine) as s:
        s.begin()
        yield s
        s.rollback()


# ---------------------------------------------------------------------------
# In-memory cluster and sessions
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_clusters() -> Iterator[None]:
    reset_clusters()
    yield
    reset_clusters()


@pytest.fixture
def cluster() -> InMemoryCluster:
    """Cluster with users alice/bob/carol; alice and bob share the ``demo`` group."""
    c = get_cluster(CLUSTER)
    c.users.update({"alice", "bob", "carol"})
    c.groups["demo"] = {"alice", "bob"}
    c.groups["carol"] = {"carol"}
    return c


@pytest.fixture
def config() -> DFSConfig:
    return DFSConfig(default_fs=f"mem://{CLUSTER}")


def _session(name: str, config: DFSConfig) -> DistributedFileSystemOps:
    return open_session(UserIdentity.create_remote_user(name), config)


@pytest.fixture
def super_ops(cluster: InMemoryCluster, config: DFSConfig) -> Iterator[DistributedFileSystemOps]:
    """Session for the cluster superuser."""
    with _session(cluster.superuser, config) as ops:
        yield ops


@pytest.fixture
def project(super_ops: DistributedFileSystemOps) -> str:
    """``/Projects/demo`` owned by alice:demo with mode 0o770."""
    super_ops.mkdirs(PROJECT, FsPermission.from_octal(0o755))
    super_ops.set_owner(PROJECT, "alice", "demo")
    super_ops.set_permission(PROJECT, FsPermission.from_octal(0o770))
    return PROJECT


@pytest.fixture
def alice_ops(project: str, config: DFSConfig) -> Iterator[DistributedFileSystemOps]:
    with _session("alice", config) as ops:
        yield ops


@pytest.fixture
def bob_ops(project: str, config: DFSConfig) -> Iterator[DistributedFileSystemOps]:
    with _session("bob", config) as ops:
        yield ops


@pytest.fixture
def carol_ops(project: str, config: DFSConfig) -> Iterator[DistributedFileSystemOps]:
    with _session("carol", config) as ops:
        yield ops
