"""Filestore interface definition.

Provides the FileStore abstract base class that every backend implements.

Implementations:
- LocalFileStore: local hierarchical filesystem
- S3FileStore: S3-compatible blob store (AWS S3, MinIO, ...)

Where the backends diverge:
- get_dir: local listings are the direct children of one directory; remote
  listings synthesize directory rows from common prefixes.
- get_object: ranges are honoured remotely only.
- put_object: local ETag-equivalent is the MD5 hex of the written bytes;
  remote is the server ETag (not an MD5 for multipart uploads).
- walk: local visitor errors abort the walk; remote visitor errors are
  logged and the walk continues.
- resource_name: the bucket for remote stores, empty for local.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO

from filestore.models import (
    CompletedObjectUploadConfig,
    CopyObjectInput,
    DeleteObjectInput,
    DirEntry,
    FileInfo,
    FileOperationOutput,
    FileVisitFunction,
    GetObjectInput,
    PathConfig,
    PutObjectInput,
    UploadConfig,
    UploadResult,
    WalkInput,
)


class FileStore(ABC):
    """Abstract base class for file store backends.

    Instances are long-lived, one per configured store, and blocking: each
    operation returns when the underlying I/O has completed.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability ("local", "s3")."""
        ...

    @abstractmethod
    def get_dir(self, path: PathConfig) -> list[DirEntry]:
        """List the resources in a store directory.

        Raises:
            ObjectNotFoundError: If the directory does not exist (local).
            FileStoreError: If the listing fails.
        """
        ...

    @abstractmethod
    def get_object_info(self, path: PathConfig) -> FileInfo:
        """Get a stat-style view of a resource.

        Raises:
            ObjectNotFoundError: If the resource does not exist.
            PermissionDeniedError: On authorization failures.
            TransportError: On network or I/O failures.
        """
        ...

    @abstractmethod
    def get_object(self, input: GetObjectInput) -> BinaryIO:
        """Open a resource for reading.

        The caller is responsible for closing the returned stream.

        Raises:
            ObjectNotFoundError: If the resource does not exist.
            ServerError: If the range is malformed (remote).
        """
        ...

    @abstractmethod
    def resource_name(self) -> str:
        """Return a backend-specific resource name."""
        ...

    @abstractmethod
    def put_object(self, input: PutObjectInput) -> FileOperationOutput:
        """Write (upload) an object.

        Returns:
            FileOperationOutput carrying the ETag-equivalent of the write.

        Raises:
            InvalidSourceError: If the source has no populated input.
            FileStoreError: If the write fails.
        """
        ...

    @abstractmethod
    def copy_object(self, input: CopyObjectInput) -> None:
        """Copy an object within the store.

        Raises:
            ObjectNotFoundError: If the source does not exist.
            UploadPartError: If a part of a multi-part copy fails (remote).
        """
        ...

    @abstractmethod
    def initialize_object_upload(self, config: UploadConfig) -> UploadResult:
        """Start a resumable upload session; the result id is the session id."""
        ...

    @abstractmethod
    def write_chunk(self, config: UploadConfig) -> UploadResult:
        """Write one chunk of a resumable upload.

        Returns:
            UploadResult with the per-chunk id (remote ETag) and bytes written.
        """
        ...

    @abstractmethod
    def complete_object_upload(self, config: CompletedObjectUploadConfig) -> None:
        """Complete a resumable upload session."""
        ...

    @abstractmethod
    def delete_objects(self, input: DeleteObjectInput) -> list[Exception]:
        """Recursively delete the resources at each input path.

        Best-effort: per-item failures are collected and returned rather than
        raised. An empty list means every target was removed.
        """
        ...

    @abstractmethod
    def walk(self, input: WalkInput, visitor: FileVisitFunction) -> None:
        """Walk the store from a starting path, calling visitor for each object.

        Raises:
            FileStoreError: If a listing fails.
            VisitorError: If the visitor fails (local only).
        """
        ...
