"""StoragePolicy and MetaStatus enums with total wire mappings.

Both enums are translated to the strings the filesystem understands
through explicit tables.  The tables are checked for totality when this
module is imported, so adding a member without a mapping fails at
startup instead of falling through to a default.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from .exceptions import InvalidArgumentError

E = TypeVar("E", bound=Enum)


def _check_total(enum_cls: type[E], table: dict[E, str]) -> dict[E, str]:
    missing = [m.name for m in enum_cls if m not in table]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} has no wire mapping for: {', '.join(missing)}")
    values = list(table.values())
    if len(set(values)) != len(values):
        raise RuntimeError(f"{enum_cls.__name__} wire mapping is not one-to-one")
    return table


def _invert(table: dict[E, str]) -> dict[str, E]:
    return {v: k for k, v in table.items()}


# =============================================================================
# Storage policy
# =============================================================================


class StoragePolicy(Enum):
    """Storage tier for a subtree."""

    CLOUD = "cloud"
    SMALL_FILES = "small_files"
    DEFAULT = "default"

    @property
    def policy_name(self) -> str:
        """Name of the policy on the filesystem side."""
        return _POLICY_NAMES[self]

    @classmethod
    def from_policy(cls, policy_name: str) -> StoragePolicy:
        """Map a filesystem policy name back to the enum.

        Raises ``InvalidArgumentError`` for names without a mapping.
        """
        try:
            return _POLICIES_BY_NAME[policy_name]
        except KeyError:
            raise InvalidArgumentError(f"unknown policy: {policy_name}") from None

    def __str__(self) -> str:
        return self.policy_name


_POLICY_NAMES: dict[StoragePolicy, str] = _check_total(
    StoragePolicy,
    {
        StoragePolicy.CLOUD: "CLOUD",
        StoragePolicy.SMALL_FILES: "DB",
        StoragePolicy.DEFAULT: "HOT",
    },
)
_POLICIES_BY_NAME = _invert(_POLICY_NAMES)


# =============================================================================
# Metadata status
# =============================================================================


class MetaStatus(Enum):
    """How much change/provenance tracking the filesystem does for a subtree."""

    DISABLED = "disabled"
    META_ENABLED = "meta_enabled"
    MIN_PROV_ENABLED = "min_prov_enabled"
    FULL_PROV_ENABLED = "full_prov_enabled"

    @property
    def wire_name(self) -> str:
        return _META_STATUS_NAMES[self]

    @classmethod
    def from_wire(cls, name: str) -> MetaStatus:
        try:
            return _META_STATUS_BY_NAME[name]
        except KeyError:
            raise InvalidArgumentError(f"unknown meta status: {name}") from None


_META_STATUS_NAMES: dict[MetaStatus, str] = _check_total(
    MetaStatus,
    {
        MetaStatus.DISABLED: "DISABLED",
        MetaStatus.META_ENABLED: "META_ENABLED",
        MetaStatus.MIN_PROV_ENABLED: "MIN_PROV_ENABLED",
        MetaStatus.FULL_PROV_ENABLED: "FULL_PROV_ENABLED",
    },
)
_META_STATUS_BY_NAME = _invert(_META_STATUS_NAMES)
