"""POSIX permission bits and ACL entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag

from .exceptions import InvalidArgumentError


class FsAction(IntFlag):
    """An rwx permission subset."""

    NONE = 0
    EXECUTE = 1
    WRITE = 2
    READ = 4
    READ_EXECUTE = READ | EXECUTE
    READ_WRITE = READ | WRITE
    ALL = READ | WRITE | EXECUTE

    @property
    def symbol(self) -> str:
        return (
            ("r" if self & FsAction.READ else "-")
            + ("w" if self & FsAction.WRITE else "-")
            + ("x" if self & FsAction.EXECUTE else "-")
        )

    @classmethod
    def from_symbol(cls, symbol: str) -> FsAction:
        """Parse ``"r-x"`` style symbols."""
        if len(symbol) != 3:
            raise InvalidArgumentError(f"Invalid permission symbol: {symbol!r}")
        action = cls.NONE
        for ch, expected, bit in zip(symbol, "rwx", (cls.READ, cls.WRITE, cls.EXECUTE)):
            if ch == expected:
                action |= bit
            elif ch != "-":
                raise InvalidArgumentError(f"Invalid permission symbol: {symbol!r}")
        return action

    def implies(self, other: FsAction) -> bool:
        return (self & other) == other


@dataclass(frozen=True, slots=True)
class FsPermission:
    """User/group/other permission triplet plus the sticky bit."""

    user: FsAction
    group: FsAction
    other: FsAction
    sticky: bool = False

    @classmethod
    def from_octal(cls, mode: int | str) -> FsPermission:
        """Build from ``0o755``, ``"755"`` or ``"1777"``."""
        if isinstance(mode, str):
            try:
                mode = int(mode, 8)
            except ValueError:
                raise InvalidArgumentError(f"Invalid octal permission: {mode!r}") from None
        if not 0 <= mode <= 0o1777:
            raise InvalidArgumentError(f"Permission out of range: {oct(mode)}")
        return cls(
            user=FsAction((mode >> 6) & 7),
            group=FsAction((mode >> 3) & 7),
            other=FsAction(mode & 7),
            sticky=bool(mode & 0o1000),
        )

    @classmethod
    def from_symbolic(cls, text: str) -> FsPermission:
        """Build from ``"rwxr-x---"`` (optionally prefixed by a type char)."""
        if len(text) == 10:
            text = text[1:]
        if len(text) != 9:
            raise InvalidArgumentError(f"Invalid symbolic permission: {text!r}")
        sticky = text[8] in ("t", "T")
        other = text[6:8] + ("x" if text[8] == "t" else "-" if sticky else text[8])
        return cls(
            user=FsAction.from_symbol(text[0:3]),
            group=FsAction.from_symbol(text[3:6]),
            other=FsAction.from_symbol(other),
            sticky=sticky,
        )

    @classmethod
    def default(cls) -> FsPermission:
        """``0o777``, the unmasked default for directories."""
        return cls.from_octal(0o777)

    @classmethod
    def file_default(cls) -> FsPermission:
        """``0o666``, the unmasked default for files."""
        return cls.from_octal(0o666)

    def to_octal(self) -> int:
        return (
            (0o1000 if self.sticky else 0)
            | (int(self.user) << 6)
            | (int(self.group) << 3)
            | int(self.other)
        )

    def apply_umask(self, umask: int) -> FsPermission:
        return FsPermission.from_octal(self.to_octal() & ~umask & 0o1777)

    def __str__(self) -> str:
        other = self.other.symbol
        if self.sticky:
            other = other[:2] + ("t" if self.other & FsAction.EXECUTE else "T")
        return self.user.symbol + self.group.symbol + other


# =============================================================================
# ACLs
# =============================================================================


class AclEntryScope(str, Enum):
    ACCESS = "access"
    DEFAULT = "default"


class AclEntryType(str, Enum):
    USER = "user"
    GROUP = "group"
    MASK = "mask"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class AclEntry:
    """One ACL rule: scope, type, optional principal name, permission."""

    type: AclEntryType
    permission: FsAction
    name: str | None = None
    scope: AclEntryScope = AclEntryScope.ACCESS

    @classmethod
    def parse(cls, spec: str) -> AclEntry:
        """Parse ``[default:]type:[name]:perm`` (e.g. ``"user:bob:rwx"``)."""
        parts = spec.strip().split(":")
        scope = AclEntryScope.ACCESS
        if parts and parts[0] == AclEntryScope.DEFAULT.value:
            scope = AclEntryScope.DEFAULT
            parts = parts[1:]
        if len(parts) != 3:
            raise InvalidArgumentError(f"Invalid ACL entry: {spec!r}")
        type_, name, perm = parts
        try:
            entry_type = AclEntryType(type_)
        except ValueError:
            raise InvalidArgumentError(f"Invalid ACL entry type: {type_!r}") from None
        if name and entry_type in (AclEntryType.MASK, AclEntryType.OTHER):
            raise InvalidArgumentError(f"ACL entry type {type_!r} cannot name a principal")
        return cls(
            type=entry_type,
            permission=FsAction.from_symbol(perm),
            name=name or None,
            scope=scope,
        )

    @property
    def is_named(self) -> bool:
        return self.name is not None

    def __str__(self) -> str:
        prefix = "default:" if self.scope is AclEntryScope.DEFAULT else ""
        return f"{prefix}{self.type.value}:{self.name or ''}:{self.permission.symbol}"


def parse_acl_spec(spec: str) -> list[AclEntry]:
    """Parse a comma-separated ACL spec."""
    return [AclEntry.parse(part) for part in spec.split(",") if part.strip()]


def format_acl_spec(entries: list[AclEntry]) -> str:
    return ",".join(str(e) for e in entries)


@dataclass(frozen=True)
class AclStatus:
    """ACL view of a node: owner, group, permission bits and extended entries."""

    owner: str
    group: str
    permission: FsPermission
    entries: list[AclEntry] = field(default_factory=list)

    @property
    def sticky(self) -> bool:
        return self.permission.sticky
