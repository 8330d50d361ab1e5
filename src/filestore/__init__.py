"""Filestore: one API over local filesystems and S3-compatible object stores.

Backends:
- LocalFileStore: local hierarchical filesystem
- S3FileStore: S3-compatible blob store

Alongside the stores: path building helpers, a generic retry harness,
HMAC presigning of URLs, and new_file_store() to pick a backend from a
configuration.

Environment Variables:
    FILESTORE_BACKEND: "local" or "s3" (default: "local"), read by
        load_config_from_env() together with the FILESTORE_LOCAL_* and
        FILESTORE_S3_* variables
    FILESTORE_OTEL_ENABLED: Emit OpenTelemetry spans for store operations
"""

from filestore.cancellation import CancellationToken
from filestore.config import (
    FileStoreConfig,
    LocalConfig,
    ProfileCredentials,
    RoleCredentials,
    S3Config,
    StaticCredentials,
    load_config_from_env,
)
from filestore.counting import count_objects
from filestore.errors import (
    ConfigurationError,
    FileStoreError,
    InvalidSourceError,
    ObjectNotFoundError,
    OperationCancelledError,
    PermissionDeniedError,
    PresignError,
    ServerError,
    TransportError,
    UploadPartError,
    VisitorError,
)
from filestore.factory import new_file_store
from filestore.file_store import FileStore
from filestore.filesystem_store import LocalFileStore
from filestore.models import (
    CompletedObjectUploadConfig,
    CopyObjectInput,
    DeleteObjectInput,
    DirEntry,
    FileInfo,
    FileOperationOutput,
    FileStoreResultObject,
    GetObjectInput,
    PathConfig,
    ProgressData,
    PutObjectInput,
    UploadConfig,
    UploadResult,
    WalkInput,
    WalkOptions,
)
from filestore.paths import PathParts, PathType, build_path, sanitize_path
from filestore.retry import Retryer
from filestore.s3_store import S3FileStore
from filestore.signing import presign_object, verify_signed_object
from filestore.source import ObjectSource

__all__ = [
    "CancellationToken",
    "CompletedObjectUploadConfig",
    "ConfigurationError",
    "CopyObjectInput",
    "DeleteObjectInput",
    "DirEntry",
    "FileInfo",
    "FileOperationOutput",
    "FileStore",
    "FileStoreConfig",
    "FileStoreError",
    "FileStoreResultObject",
    "GetObjectInput",
    "InvalidSourceError",
    "LocalConfig",
    "LocalFileStore",
    "ObjectNotFoundError",
    "ObjectSource",
    "OperationCancelledError",
    "PathConfig",
    "PathParts",
    "PathType",
    "PermissionDeniedError",
    "PresignError",
    "ProfileCredentials",
    "ProgressData",
    "PutObjectInput",
    "Retryer",
    "RoleCredentials",
    "S3Config",
    "S3FileStore",
    "ServerError",
    "StaticCredentials",
    "TransportError",
    "UploadConfig",
    "UploadPartError",
    "UploadResult",
    "VisitorError",
    "WalkInput",
    "WalkOptions",
    "build_path",
    "count_objects",
    "load_config_from_env",
    "new_file_store",
    "presign_object",
    "sanitize_path",
    "verify_signed_object",
]
