"""DFSPath value type, path validation, and glob helpers."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase

from .exceptions import InvalidPathError

MAX_PATH_LENGTH = 8000
MAX_NAME_LENGTH = 255

_GLOB_CHARS = re.compile(r"[*?\[{]")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize an absolute slash-separated path.

    Examples:
        normalize_path("/foo//bar") -> "/foo/bar"
        normalize_path("/foo/../bar") -> "/bar"
        normalize_path("/foo/") -> "/foo"
    """
    path = posixpath.normpath(path)
    # normpath keeps a leading "//" per POSIX
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    return path


def validate_path(path: str) -> tuple[bool, str]:
    """Validate the path component of a location.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if not path:
        return False, "Path is empty"

    if not path.startswith("/"):
        return False, f"Path is not absolute: {path!r}"

    if "\x00" in path:
        return False, "Path contains null bytes"

    for ch in path:
        code = ord(ch)
        if 0x01 <= code <= 0x1F or code == 0x7F:
            return False, f"Path contains control character: 0x{code:02x}"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long (max {MAX_PATH_LENGTH} characters)"

    for segment in path.split("/"):
        if len(segment) > MAX_NAME_LENGTH:
            return False, f"Name too long (max {MAX_NAME_LENGTH} characters): {segment[:32]}..."
        if ":" in segment:
            return False, f"Name contains ':': {segment!r}"

    return True, ""


def has_glob(pattern: str) -> bool:
    """True if *pattern* contains glob metacharacters."""
    return bool(_GLOB_CHARS.search(pattern))


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns.

    Examples:
        expand_braces("/d/{a,b}.csv") -> ["/d/a.csv", "/d/b.csv"]
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    for i in range(start, len(pattern)):
        if pattern[i] == "{":
            depth += 1
        elif pattern[i] == "}":
            depth -= 1
            if depth == 0:
                body = pattern[start + 1 : i]
                head, tail = pattern[:start], pattern[i + 1 :]
                out: list[str] = []
                for alt in _split_top_level(body):
                    out.extend(expand_braces(head + alt + tail))
                return out
    raise InvalidPathError(f"Unbalanced '{{' in glob pattern: {pattern}")


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in body:
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    parts.append(current)
    return parts


def match_segment(name: str, pattern: str) -> bool:
    """Match one path segment against one glob segment."""
    return fnmatchcase(name, pattern)


# =============================================================================
# DFSPath
# =============================================================================


@dataclass(frozen=True, slots=True)
class DFSPath:
    """A hierarchical node locator: optional scheme/authority plus an absolute path.

    Instances are always normalized and validated; build them with
    :func:`to_path` or :meth:`DFSPath.parse`.
    """

    path: str
    scheme: str = ""
    authority: str = ""

    def __post_init__(self) -> None:
        valid, error = validate_path(self.path)
        if not valid:
            raise InvalidPathError(error)
        object.__setattr__(self, "path", normalize_path(self.path))

    @classmethod
    def parse(cls, value: str) -> DFSPath:
        """Parse ``scheme://authority/abs/path`` or ``/abs/path``."""
        if not isinstance(value, str):
            raise InvalidPathError(f"Path must be a string, got {type(value).__name__}")
        value = value.strip()
        if not value:
            raise InvalidPathError("Path is empty")

        scheme = authority = ""
        path = value
        if _SCHEME_RE.match(value):
            scheme, _, rest = value.partition("://")
            scheme = scheme.lower()
            authority, slash, tail = rest.partition("/")
            path = (slash + tail) or "/"
        elif value.startswith("file:"):
            scheme = "file"
            path = value[len("file:") :]

        return cls(path=path, scheme=scheme, authority=authority)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        """Final path segment; empty for the root."""
        return posixpath.basename(self.path)

    @property
    def is_root(self) -> bool:
        return self.path == "/"

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(s for s in self.path.split("/") if s)

    @property
    def parent(self) -> DFSPath | None:
        """Parent path, or ``None`` for the root."""
        if self.is_root:
            return None
        return DFSPath(posixpath.dirname(self.path), self.scheme, self.authority)

    @property
    def is_qualified(self) -> bool:
        return bool(self.scheme)

    def ancestors(self) -> list[DFSPath]:
        """Parent, grandparent, ..., root."""
        out: list[DFSPath] = []
        current = self.parent
        while current is not None:
            out.append(current)
            current = current.parent
        return out

    def child(self, name: str) -> DFSPath:
        """Return the path of direct child *name*."""
        if not name or "/" in name:
            raise InvalidPathError(f"Invalid child name: {name!r}")
        return DFSPath.parse(self._prefix() + posixpath.join(self.path, name))

    def __truediv__(self, name: str) -> DFSPath:
        return self.child(name)

    def is_under(self, other: DFSPath) -> bool:
        """True if this path equals *other* or lies beneath it."""
        if self.path == other.path:
            return True
        base = other.path.rstrip("/") + "/"
        return self.path.startswith(base)

    def with_location(self, scheme: str, authority: str) -> DFSPath:
        return DFSPath(self.path, scheme, authority)

    def _prefix(self) -> str:
        if not self.scheme:
            return ""
        if self.scheme == "file" and not self.authority:
            return "file://"
        return f"{self.scheme}://{self.authority}"

    def __str__(self) -> str:
        return self._prefix() + self.path


def to_path(value: str | DFSPath | None) -> DFSPath:
    """Coerce *value* to a :class:`DFSPath`, failing fast on bad input."""
    if value is None:
        raise InvalidPathError("Path must not be None")
    if isinstance(value, DFSPath):
        return value
    return DFSPath.parse(value)
