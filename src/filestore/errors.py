"""Filestore error types.

Provides typed exceptions for store operations. Single-object operations
raise these to the caller; batch operations (delete, walk) collect or log
them and keep going.
"""

from __future__ import annotations

import errno


class FileStoreError(Exception):
    """Base exception for file store operations.

    Attributes:
        message: Human-readable error message.
        path: Store path associated with the operation (if applicable).
        cause: Underlying exception (if any).
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"path={self.path}")
        if self.cause is not None:
            parts.append(f"cause={self.cause}")
        return " ".join(parts)


class ConfigurationError(FileStoreError):
    """Raised for an unrecognised backend kind, unsupported credentials or missing fields."""

    def __init__(
        self,
        message: str = "Invalid file store configuration",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class InvalidSourceError(FileStoreError):
    """Raised when an ObjectSource has none of its inputs populated."""

    def __init__(
        self,
        message: str = "Invalid ObjectSource configuration",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class ObjectNotFoundError(FileStoreError):
    """Raised when a stat or get targets a missing key or path."""

    def __init__(
        self,
        message: str = "Object not found",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class PermissionDeniedError(FileStoreError):
    """Raised on authorization failures from the SDK or the filesystem."""

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class TransportError(FileStoreError):
    """Raised for network, SDK-level or local I/O failures."""

    def __init__(
        self,
        message: str = "Transport error",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class ServerError(FileStoreError):
    """Raised when the server rejects a request or answers out of protocol.

    Examples: a malformed range, or a multipart init without an upload id.

    Attributes:
        code: Server error code (e.g., "InvalidRange"), when one was returned.
    """

    def __init__(
        self,
        message: str = "Server error",
        *,
        code: str | None = None,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)
        self.code = code


class UploadPartError(ServerError):
    """Raised when one part of a multi-part copy fails.

    The multipart upload has already been aborted when this is raised.
    """

    def __init__(
        self,
        part_number: int,
        *,
        upload_id: str | None = None,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"Error uploading part {part_number}", path=path, cause=cause)
        self.part_number = part_number
        self.upload_id = upload_id


class VisitorError(FileStoreError):
    """Raised when a caller-supplied walk visitor fails and the walk is aborted."""

    def __init__(
        self,
        message: str = "Walk visitor failed",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class PresignError(FileStoreError):
    """Raised when a URL cannot be presigned (bad URI or expiration out of range)."""

    def __init__(
        self,
        message: str = "Unable to presign URL",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


class OperationCancelledError(FileStoreError):
    """Raised when a cancellation token fires between backend calls."""

    def __init__(
        self,
        message: str = "Operation cancelled",
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)


def translate_os_error(exc: OSError, path: str | None = None) -> FileStoreError:
    """Map a local OSError onto the filestore error taxonomy."""
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return ObjectNotFoundError(path=path, cause=exc)
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(path=path, cause=exc)
    return TransportError(
        f"Filesystem operation failed: {exc.strerror or exc}",
        path=path,
        cause=exc,
    )
