"""
Custom exception hierarchy for the photo spooler.

Every error carries a closed ``kind`` plus the path it concerns and the
underlying cause, so callers can branch on the kind instead of parsing
messages.
"""
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence


class ErrorKind(Enum):
    IO = "io"
    METADATA = "metadata"
    DUPLICATE = "duplicate"
    COLLISION = "collision"
    STORE = "store"
    CLOSED = "closed"


class PhotoSpoolError(Exception):
    """Base exception for all photo spooler errors."""
    kind: ErrorKind = ErrorKind.IO
    # Fatal errors abort the whole run instead of being recorded per file.
    fatal: bool = False

    def __init__(self, message: str, path: Optional[Path] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.cause = cause
        # Set when the offending file was moved into the error directory.
        self.quarantined_to: Optional[Path] = None

    def __str__(self) -> str:
        text = self.message
        if self.path is not None:
            text = f"{text} [{self.path}]"
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        return text


class FileHashError(PhotoSpoolError):
    """Raised when a file cannot be read for fingerprinting."""
    kind = ErrorKind.IO


class FileOperationError(PhotoSpoolError):
    """Raised when file copy/move operations fail."""
    kind = ErrorKind.IO


class QuarantineError(FileOperationError):
    """Raised when a file cannot even be moved into the error directory."""
    fatal = True


class MetadataExtractionError(PhotoSpoolError):
    """Raised when the capture time cannot be extracted from a file."""
    kind = ErrorKind.METADATA


class DuplicateError(PhotoSpoolError):
    """Raised when a file's fingerprint is already in the index."""
    kind = ErrorKind.DUPLICATE

    def __init__(self, message: str, path: Optional[Path] = None, fingerprint: str = "",
                 existing: Sequence[str] = ()):
        super().__init__(message, path)
        self.fingerprint = fingerprint
        self.existing = list(existing)


class CollisionError(PhotoSpoolError):
    """Raised when the archive destination is occupied by another file."""
    kind = ErrorKind.COLLISION

    def __init__(self, message: str, path: Optional[Path] = None, destination: Optional[Path] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message, path, cause)
        self.destination = destination


class StoreError(PhotoSpoolError):
    """Raised when the fingerprint index cannot be loaded or persisted."""
    kind = ErrorKind.STORE


class ClosedError(PhotoSpoolError):
    """Raised when a closed spooler or index store is used."""
    kind = ErrorKind.CLOSED
    fatal = True
