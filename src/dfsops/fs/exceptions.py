"""Custom exception hierarchy for the dfsops filesystem gateway."""


class DFSOpsError(Exception):
    """Base exception for all dfsops errors."""


class InvalidPathError(DFSOpsError, ValueError):
    """Raised when a path is malformed or names a different filesystem."""


class InvalidArgumentError(DFSOpsError, ValueError):
    """Raised when an argument is rejected before any remote call is made."""


class SessionAcquisitionError(DFSOpsError):
    """Raised when a filesystem handle cannot be obtained for an identity."""


class SessionClosedError(DFSOpsError):
    """Raised when an operation is attempted on a closed session."""


class CapabilityNotSupportedError(DFSOpsError):
    """Raised when a backend doesn't support a requested capability."""


class StorageError(DFSOpsError, OSError):
    """Raised on remote filesystem failures."""


class TransportError(StorageError):
    """Raised when the transport to the filesystem fails (network, HTTP)."""


class PathNotFoundError(StorageError, FileNotFoundError):
    """Raised when a file or directory path does not exist."""


class PathExistsError(StorageError, FileExistsError):
    """Raised when a target path already exists."""


class DirectoryNotEmptyError(StorageError):
    """Raised on a non-recursive delete of a non-empty directory."""


class AccessDeniedError(StorageError, PermissionError):
    """Raised when the effective user lacks permission for an operation."""


class QuotaExceededError(StorageError):
    """Raised when a namespace or space quota would be exceeded."""
