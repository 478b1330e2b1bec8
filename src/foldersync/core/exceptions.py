"""
FolderSync exceptions.

Structural failures abort a cycle; per-file failures are caught close to
where they happen and turned into outcomes.
"""

from __future__ import annotations

from pathlib import Path


class FolderSyncError(Exception):
    """Base exception for FolderSync."""


class ConfigValidationError(FolderSyncError):
    """Startup parameters are invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class ScanFailure(FolderSyncError):
    """A directory tree could not be enumerated completely."""

    def __init__(self, root: Path, cause: OSError) -> None:
        self.root = root
        self.cause = cause
        location = cause.filename or root
        super().__init__(f"Failed to scan {location}: {cause.strerror or cause}")


class DigestFailure(FolderSyncError):
    """A file could not be read for hashing."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Error computing hash for file {path}: {cause.strerror or cause}")


class CopyFailure(FolderSyncError):
    """Copying a file into the replica failed."""


class DeleteFailure(FolderSyncError):
    """Removing a file from the replica failed."""


class CycleCancelled(FolderSyncError):
    """Raised when cancellation is observed between file operations."""
