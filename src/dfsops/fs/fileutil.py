"""Cross-filesystem copy and glob expansion over ``FileSystemClient`` handles."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import InvalidArgumentError, PathExistsError, PathNotFoundError
from .paths import DFSPath, expand_braces, has_glob, match_segment

if TYPE_CHECKING:
    from .protocol import FileSystemClient
    from .types import FileStatus

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64 * 1024


def copy_bytes(src: BinaryIO, dst: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
    """Pump *src* into *dst* in ``buffer_size`` chunks. Returns bytes copied."""
    total = 0
    while True:
        chunk = src.read(buffer_size)
        if not chunk:
            break
        dst.write(chunk)
        total += len(chunk)
    dst.flush()
    return total


def _same_filesystem(a: FileSystemClient, b: FileSystemClient) -> bool:
    return a is b or (a.scheme == b.scheme and a.authority == b.authority)


def _check_dest(
    src_name: str | None,
    dst_fs: FileSystemClient,
    dst: DFSPath,
    overwrite: bool,
) -> DFSPath:
    """Resolve the real target path, descending into an existing directory."""
    if dst_fs.exists(dst):
        if dst_fs.is_directory(dst):
            if src_name:
                return _check_dest(None, dst_fs, dst / src_name, overwrite)
            return dst
        if not overwrite:
            raise PathExistsError(f"Target {dst} already exists")
    return dst


def copy(
    src_fs: FileSystemClient,
    src: DFSPath,
    dst_fs: FileSystemClient,
    dst: DFSPath,
    *,
    delete_source: bool = False,
    overwrite: bool = False,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> bool:
    """Copy *src* (file or directory tree) from one handle to another.

    If *dst* is an existing directory the source is copied into it under
    its own name.  Returns the result of deleting the source when
    *delete_source* is set, else True.
    """
    src_status = src_fs.get_file_status(src)
    dst = _check_dest(src.name, dst_fs, dst, overwrite)

    if src_status.is_directory:
        if _same_filesystem(src_fs, dst_fs) and dst.is_under(src):
            raise InvalidArgumentError(f"Cannot copy {src} to its subdirectory {dst}")
        if not dst_fs.mkdirs(dst, src_status.permission):
            return False
        for child in src_fs.list_status(src):
            copy(
                src_fs,
                child.path,
                dst_fs,
                dst / child.path.name,
                delete_source=False,
                overwrite=overwrite,
                buffer_size=buffer_size,
            )
    else:
        with src_fs.open(src, buffer_size) as inp, dst_fs.create(dst, overwrite=overwrite) as out:
            copied = copy_bytes(inp, out, buffer_size)
        logger.debug("Copied %d bytes from %s to %s", copied, src, dst)

    if delete_source:
        return src_fs.delete(src, True)
    return True


# =============================================================================
# Glob expansion
# =============================================================================


def glob_status(fs: FileSystemClient, pattern: DFSPath) -> list[FileStatus]:
    """Expand *pattern* against *fs*.

    Supports ``*``, ``?``, ``[...]`` and ``{a,b}`` per segment.  A pattern
    without glob characters yields its own status, or nothing when the
    path does not exist.
    """
    results: dict[str, FileStatus] = {}
    for expanded in expand_braces(pattern.path):
        base = DFSPath.parse(expanded).with_location(pattern.scheme, pattern.authority)
        for status in _glob_one(fs, base):
            results.setdefault(status.path.path, status)
    return sorted(results.values(), key=lambda s: s.path.path)


def _glob_one(fs: FileSystemClient, pattern: DFSPath) -> list[FileStatus]:
    if not has_glob(pattern.path):
        try:
            return [fs.get_file_status(pattern)]
        except PathNotFoundError:
            return []

    candidates = [DFSPath("/", pattern.scheme, pattern.authority)]
    for segment in pattern.segments:
        matched: list[DFSPath] = []
        for parent in candidates:
            if not has_glob(segment):
                child = parent / segment
                if fs.exists(child):
                    matched.append(child)
                continue
            if not fs.is_directory(parent):
                continue
            matched.extend(
                status.path
                for status in fs.list_status(parent)
                if match_segment(status.path.name, segment)
            )
        candidates = matched
        if not candidates:
            return []

    return [fs.get_file_status(p) for p in candidates]


def stat_to_paths(statuses: list[FileStatus], pattern: DFSPath) -> list[DFSPath]:
    """Paths of *statuses*, or ``[pattern]`` when a literal path matched nothing."""
    if statuses:
        return [s.path for s in statuses]
    if has_glob(pattern.path):
        return []
    return [pattern]
