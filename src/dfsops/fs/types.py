"""Result types: FileStatus, QuotaUsage, quota sentinels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .paths import DFSPath
    from .permissions import FsPermission

QUOTA_RESET: int = -1
"""Quota value that clears a dimension back to "unset"."""

QUOTA_DONT_SET: int = 2**63 - 1
"""Quota value that leaves a dimension unchanged."""


@dataclass(frozen=True, slots=True)
class FileStatus:
    """Immutable snapshot of a node's attributes."""

    path: DFSPath
    is_directory: bool
    length: int
    permission: FsPermission
    owner: str
    group: str
    modification_time: datetime
    access_time: datetime | None = None
    replication: int = 0
    block_size: int = 0

    @property
    def is_file(self) -> bool:
        return not self.is_directory

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class QuotaUsage:
    """Namespace and space usage of a subtree against its quotas.

    Attributes:
        file_and_directory_count: Inodes in the subtree, the root included.
        quota: Namespace quota, or ``QUOTA_RESET`` when unset.
        space_consumed: Bytes used (length times replication).
        space_quota: Space quota in bytes, or ``QUOTA_RESET`` when unset.
    """

    file_and_directory_count: int
    quota: int
    space_consumed: int
    space_quota: int

    @property
    def has_quota(self) -> bool:
        return self.quota != QUOTA_RESET

    @property
    def has_space_quota(self) -> bool:
        return self.space_quota != QUOTA_RESET
