"""Filestore data models.

Provides typed dataclasses for the inputs and results of store operations.
Paths are absolute within the backend's namespace.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from filestore.cancellation import CancellationToken
    from filestore.source import ObjectSource


@dataclass
class PathConfig:
    """A single path or an ordered list of paths representing one resource.

    Lists are used by multi-target operations (batch delete) and multi-file
    resources such as shapefiles. Populate exactly one of the two fields.
    """

    path: str = ""
    paths: list[str] = field(default_factory=list)

    def all_paths(self) -> list[str]:
        """Return paths if populated, otherwise [path] (or [] when both are empty)."""
        if self.paths:
            return list(self.paths)
        return [self.path] if self.path else []


@dataclass(frozen=True)
class FileInfo:
    """Stat-style view of a store object.

    Attributes:
        name: Base name (local) or full key (remote).
        size: Size in bytes.
        is_dir: True for directories.
        modified: Modification time. Remote attribute lookups report the
            current instant since the attributes call carries no mtime.
        irregular: True for synthetic remote views without real file modes.
        etag: Server ETag when known (remote only).
    """

    name: str
    size: int
    is_dir: bool
    modified: datetime
    irregular: bool = False
    etag: str | None = None


@dataclass
class DirEntry:
    """One row of a directory listing.

    Attributes:
        id: Stable index within the listing.
        name: Base name.
        size: Size as a decimal string; empty for pseudo-directories.
        path: Parent path (files) or the prefix itself (remote directories).
        type: File extension including the dot, or empty.
        is_dir: Directory flag.
        modified: Modification time, None for remote pseudo-directories.
        modified_by: Optional modifier.
    """

    id: int
    name: str
    size: str
    path: str
    type: str
    is_dir: bool
    modified: datetime | None = None
    modified_by: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Render the listing row with its JSON field names."""
        return {
            "id": self.id,
            "fileName": self.name,
            "size": self.size,
            "filePath": self.path,
            "type": self.type,
            "isdir": self.is_dir,
            "modified": self.modified.isoformat() if self.modified else None,
            "modifiedBy": self.modified_by,
        }


FileStoreResultObject = DirEntry


@dataclass
class FileOperationOutput:
    """Result of a write.

    etag is the server ETag for remote uploads (surrounding quotes stripped)
    and the MD5 hex digest of the written bytes for local writes.
    """

    etag: str = ""


@dataclass
class UploadConfig:
    """Input for initializing a resumable upload or writing one chunk.

    Attributes:
        object_path: Path of the object being uploaded into.
        chunk_id: Zero-based chunk number.
        upload_id: Session id returned by initialize_object_upload().
        data: Chunk bytes.
    """

    object_path: str
    chunk_id: int = 0
    upload_id: str = ""
    data: bytes = b""


@dataclass
class CompletedObjectUploadConfig:
    """Input for completing a resumable upload.

    Attributes:
        upload_id: Session id.
        object_path: Path of the object being uploaded into.
        chunk_upload_ids: Per-chunk ids (ETags on remote), in chunk order.
    """

    upload_id: str
    object_path: str
    chunk_upload_ids: list[str] = field(default_factory=list)


@dataclass
class UploadResult:
    """Result of a resumable upload step."""

    id: str = ""
    write_size: int = 0
    is_complete: bool = False


@dataclass(frozen=True)
class ProgressData:
    """A progress event.

    Attributes:
        index: Ordered index of the event.
        max: Total number of events, or -1 when unknown.
        value: Opaque payload (path, FileInfo or byte count).
    """

    index: int
    max: int = -1
    value: Any = None


ProgressFunction = Callable[[ProgressData], None]
FileVisitFunction = Callable[[str, FileInfo], None]


@dataclass
class GetObjectInput:
    """Input for get_object().

    range uses RFC 9110 byte-range syntax (e.g., "bytes=0-99"); a single
    range only. Empty means the whole object.
    """

    path: PathConfig
    range: str = ""


@dataclass
class PutObjectInput:
    """Input for put_object().

    Attributes:
        source: Where the bytes come from.
        dest: Destination path.
        multipart: Use the SDK's stream uploader (remote only).
        part_size: Part size in bytes for multipart uploads; 0 lets the SDK choose.
        cancel: Optional cancellation token.
    """

    source: ObjectSource
    dest: PathConfig
    multipart: bool = False
    part_size: int = 0
    cancel: CancellationToken | None = None


@dataclass
class CopyObjectInput:
    """Input for copy_object()."""

    src: PathConfig
    dest: PathConfig
    progress: ProgressFunction | None = None
    cancel: CancellationToken | None = None


@dataclass
class DeleteObjectInput:
    """Input for delete_objects()."""

    path: PathConfig
    progress: ProgressFunction | None = None
    cancel: CancellationToken | None = None


@dataclass(frozen=True)
class WalkOptions:
    """Call-site options for walk().

    Attributes:
        honour_continuation: Follow the server's continuation token between
            pages. When False every page restarts from the beginning of the
            prefix, which only terminates if the visitor removes what it sees.
    """

    honour_continuation: bool = True


@dataclass
class WalkInput:
    """Input for walk()."""

    path: PathConfig
    progress: ProgressFunction | None = None
    options: WalkOptions = field(default_factory=WalkOptions)
    cancel: CancellationToken | None = None
