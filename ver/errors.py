"""Typed errors for ver."""

from __future__ import annotations

from pathlib import Path


class VerError(Exception):
    """Base exception for all ver errors."""


class ConfigError(VerError):
    """Raised when settings (file, environment, or overrides) are invalid."""


class InvalidPositionError(VerError):
    """Raised when a 1-based registry position is non-numeric or out of range."""

    def __init__(self, position: object, count: int) -> None:
        """Initialize with the rejected position and the current record count."""
        self.position = position
        self.count = count
        if count == 0:
            detail = "the registry is empty"
        else:
            detail = f"expected a number from 1 to {count}"
        super().__init__(f"Invalid position {position!r}: {detail}")


class CorruptIndexError(VerError):
    """Raised when the index file cannot be read back as a list of patch records."""

    def __init__(self, path: str | Path, reason: str) -> None:
        """Initialize with the index path and what was wrong with it."""
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Corrupt index {self.path}: {reason}")


class PersistenceError(VerError):
    """Raised when the index or a blob cannot be written to (or read from) disk."""

    def __init__(self, path: str | Path, reason: str) -> None:
        """Initialize with the path being written and the underlying failure."""
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not persist {self.path}: {reason}")


class InvalidDigestError(VerError):
    """Raised when a string is not a well-formed blob digest."""

    def __init__(self, digest: str) -> None:
        """Initialize with the rejected digest."""
        self.digest = digest
        super().__init__(f"Not a valid blob digest: {digest!r}")


class BlobNotFoundError(VerError):
    """Raised when no blob is stored under a digest."""

    def __init__(self, digest: str) -> None:
        """Initialize with the missing blob's digest."""
        self.digest = digest
        super().__init__(f"Blob not found: {digest}")


class BlobIntegrityError(VerError):
    """Raised when stored blob bytes do not hash to the digest they are filed under."""

    def __init__(self, digest: str, actual: str) -> None:
        """Initialize with the expected and computed digests."""
        self.digest = digest
        self.actual = actual
        super().__init__(f"Blob integrity check failed for {digest}: content hashes to {actual}")
