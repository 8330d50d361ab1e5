"""S3-compatible file store backend.

Maps the FileStore contract onto the boto3 S3 client:
- get_dir: paginated ListObjectsV2 with the configured delimiter; common
  prefixes become directory rows
- walk: paginated flat ListObjectsV2 (empty delimiter)
- copy_object: CopyObject below the 5000 MiB single-request ceiling,
  otherwise a server-side multi-part copy in 5 MiB ranges
- delete_objects: deep walk of each target, batched DeleteObjects calls of
  at most 1000 keys
- resumable uploads map onto CreateMultipartUpload / UploadPart /
  CompleteMultipartUpload with 1-based part numbers

Keys are store paths with the leading "/" stripped. The backend does not
retry; wrap calls in filestore.retry.Retryer to opt in.
"""

from __future__ import annotations

import logging
import math
import posixpath
from datetime import UTC, datetime
from typing import Any, BinaryIO, Final

from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from filestore.cancellation import check_cancelled
from filestore.config import S3Config
from filestore.errors import (
    FileStoreError,
    ObjectNotFoundError,
    OperationCancelledError,
    PermissionDeniedError,
    ServerError,
    TransportError,
    UploadPartError,
)
from filestore.file_store import FileStore
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
    ProgressData,
    PutObjectInput,
    UploadConfig,
    UploadResult,
    WalkInput,
    WalkOptions,
)
from filestore.tracing import traced_operation

logger = logging.getLogger(__name__)

MAX_COPY_CHUNK_SIZE: Final[int] = 5 * 1024 * 1024
MAX_PUT_OBJECT_COPY_SIZE: Final[int] = 5000 * 1024 * 1024
MAX_DELETE_BATCH_SIZE: Final[int] = 1000
PROGRESS_LOG_INTERVAL: Final[int] = 50

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404", "NoSuchBucket", "NoSuchUpload"})
_PERMISSION_CODES = frozenset(
    {
        "AccessDenied",
        "403",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "ExpiredToken",
        "AllAccessDisabled",
    }
)


def to_key(path: str) -> str:
    """Convert a store path to an S3 key by stripping one leading "/"."""
    return path[1:] if path.startswith("/") else path


def strip_etag(etag: str | None) -> str:
    """Strip the surrounding double quotes S3 puts on ETags."""
    return (etag or "").strip('"')


def build_copy_source_range(start: int, object_size: int) -> str:
    """Build the inclusive byte range for the copy part starting at start.

    Example:
        >>> build_copy_source_range(0, 10 * 1024 * 1024 + 1)
        'bytes=0-5242879'
        >>> build_copy_source_range(10485760, 10485761)
        'bytes=10485760-10485760'
    """
    end = min(start + MAX_COPY_CHUNK_SIZE - 1, object_size - 1)
    return f"bytes={start}-{end}"


def translate_client_error(exc: Exception, path: str | None = None) -> FileStoreError:
    """Map a boto3/botocore exception onto the filestore error taxonomy."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        message = str(error.get("Message", "")) or str(exc)
        if code in _NOT_FOUND_CODES:
            return ObjectNotFoundError(path=path, cause=exc)
        if code in _PERMISSION_CODES:
            return PermissionDeniedError(path=path, cause=exc)
        return ServerError(message, code=code or None, path=path, cause=exc)
    if isinstance(exc, NoCredentialsError):
        return PermissionDeniedError("No credentials available", path=path, cause=exc)
    return TransportError(f"S3 request failed: {exc}", path=path, cause=exc)


class S3FileStore(FileStore):
    """S3-compatible file store implementation.

    The client is shared read-only after construction, so one instance can
    serve concurrent callers.
    """

    def __init__(self, client: Any, config: S3Config) -> None:
        """Initialize the store.

        Args:
            client: A boto3 S3 client (or an object with the same methods).
            config: Backend configuration.
        """
        self._client = client
        self._config = config
        self._bucket = config.bucket
        self._delimiter = config.delimiter
        self._max_keys = config.max_keys

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    @property
    def client(self) -> Any:
        """Return the underlying SDK client."""
        return self._client

    def get_config(self) -> S3Config:
        """Return the backend configuration."""
        return self._config

    def resource_name(self) -> str:
        """Return the bucket name."""
        return self._bucket

    def _call(self, operation: str, path: str | None = None, **params: Any) -> Any:
        """Invoke one SDK operation, translating its failures."""
        try:
            return getattr(self._client, operation)(**params)
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, path) from e

    @traced_operation("get_object_info")
    def get_object_info(self, path: PathConfig) -> FileInfo:
        """Fetch ETag and size via GetObjectAttributes."""
        key = to_key(path.path)
        resp = self._call(
            "get_object_attributes",
            path.path,
            Bucket=self._bucket,
            Key=key,
            ObjectAttributes=["ETag", "ObjectSize"],
        )
        return FileInfo(
            name=key,
            size=int(resp.get("ObjectSize") or 0),
            is_dir=False,
            modified=datetime.now(UTC),
            irregular=True,
            etag=strip_etag(resp.get("ETag")),
        )

    @traced_operation("get_dir")
    def get_dir(self, path: PathConfig) -> list[DirEntry]:
        """List one level under a prefix, following continuation tokens."""
        key = to_key(path.path)
        prefixes: list[dict[str, Any]] = []
        objects: list[dict[str, Any]] = []
        continuation_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "Bucket": self._bucket,
                "Prefix": key,
                "Delimiter": self._delimiter,
                "MaxKeys": self._max_keys,
            }
            if continuation_token:
                params["ContinuationToken"] = continuation_token
            try:
                resp = self._call("list_objects_v2", path.path, **params)
            except FileStoreError as e:
                logger.error("Failed to list objects in the bucket: %s", e)
                raise
            prefixes.extend(resp.get("CommonPrefixes", []))
            objects.extend(resp.get("Contents", []))
            continuation_token = resp.get("NextContinuationToken")
            if not continuation_token:
                break

        result: list[DirEntry] = []
        for cp in prefixes:
            prefix = cp["Prefix"]
            result.append(
                DirEntry(
                    id=len(result),
                    name=posixpath.basename(prefix.rstrip("/")),
                    size="",
                    path=prefix,
                    type="",
                    is_dir=True,
                )
            )
        for obj in objects:
            obj_key = obj["Key"]
            result.append(
                DirEntry(
                    id=len(result),
                    name=posixpath.basename(obj_key),
                    size=str(obj.get("Size", 0)),
                    path=posixpath.dirname(obj_key) or ".",
                    type=posixpath.splitext(obj_key)[1],
                    is_dir=False,
                    modified=obj.get("LastModified"),
                )
            )
        return result

    @traced_operation("get_object")
    def get_object(self, input: GetObjectInput) -> BinaryIO:
        """Open an object body; a non-empty range is passed through unchanged."""
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": to_key(input.path.path)}
        if input.range:
            params["Range"] = input.range
        resp = self._call("get_object", input.path.path, **params)
        body: BinaryIO = resp["Body"]
        return body

    @traced_operation("put_object")
    def put_object(self, input: PutObjectInput) -> FileOperationOutput:
        """Upload a source, either in one PutObject or via the stream uploader."""
        key = to_key(input.dest.path)
        check_cancelled(input.cancel, input.dest.path)

        with input.source.open() as reader:
            if input.multipart:
                transfer_config = (
                    TransferConfig(multipart_chunksize=input.part_size)
                    if input.part_size > 0
                    else TransferConfig()
                )
                self._call(
                    "upload_fileobj",
                    input.dest.path,
                    Fileobj=reader,
                    Bucket=self._bucket,
                    Key=key,
                    Config=transfer_config,
                )
                resp = self._call("head_object", input.dest.path, Bucket=self._bucket, Key=key)
            else:
                params: dict[str, Any] = {"Bucket": self._bucket, "Key": key, "Body": reader}
                if input.source.content_length > 0:
                    params["ContentLength"] = input.source.content_length
                resp = self._call("put_object", input.dest.path, **params)

        return FileOperationOutput(etag=strip_etag(resp.get("ETag")))

    @traced_operation("copy_object")
    def copy_object(self, input: CopyObjectInput) -> None:
        """Copy an object inside the bucket.

        Objects under the 5000 MiB ceiling use a single CopyObject; larger
        ones are copied part by part.
        """
        info = self.get_object_info(input.src)
        if info.size < MAX_PUT_OBJECT_COPY_SIZE:
            self._call(
                "copy_object",
                input.src.path,
                Bucket=self._bucket,
                CopySource={"Bucket": self._bucket, "Key": to_key(input.src.path)},
                Key=to_key(input.dest.path),
            )
            return
        self._copy_parts_to(input, info.size)

    def _copy_parts_to(self, input: CopyObjectInput, file_size: int) -> None:
        source = {"Bucket": self._bucket, "Key": to_key(input.src.path)}
        dest = to_key(input.dest.path)

        create = self._call("create_multipart_upload", input.dest.path, Bucket=self._bucket, Key=dest)
        upload_id = (create or {}).get("UploadId")
        if not upload_id:
            raise ServerError("No upload id found in start upload request", path=input.dest.path)

        num_parts = math.ceil(file_size / MAX_COPY_CHUNK_SIZE)
        logger.info("Will attempt copy in %d parts to %s", num_parts, dest)

        parts: list[dict[str, Any]] = []
        part_number = 1
        for start in range(0, file_size, MAX_COPY_CHUNK_SIZE):
            try:
                check_cancelled(input.cancel, input.dest.path)
                part_resp = self._call(
                    "upload_part_copy",
                    input.dest.path,
                    Bucket=self._bucket,
                    CopySource=source,
                    CopySourceRange=build_copy_source_range(start, file_size),
                    Key=dest,
                    PartNumber=part_number,
                    UploadId=upload_id,
                )
            except FileStoreError as e:
                self._abort_upload(dest, upload_id)
                if isinstance(e, OperationCancelledError):
                    raise
                raise UploadPartError(
                    part_number,
                    upload_id=upload_id,
                    path=input.dest.path,
                    cause=e,
                ) from e

            etag = strip_etag(part_resp.get("CopyPartResult", {}).get("ETag"))
            parts.append({"ETag": etag, "PartNumber": part_number})
            logger.debug("Copied part %d of upload %s", part_number, upload_id)
            if input.progress is not None:
                input.progress(ProgressData(index=part_number, max=num_parts, value=start))
            if part_number % PROGRESS_LOG_INTERVAL == 0:
                logger.info("Completed part %d of %d to %s", part_number, num_parts, dest)
            part_number += 1

        self._call(
            "complete_multipart_upload",
            input.dest.path,
            Bucket=self._bucket,
            Key=dest,
            UploadId=upload_id,
            MultipartUpload={"Parts": parts},
        )
        logger.info("Finished multi-part copy to %s", dest)

    def _abort_upload(self, key: str, upload_id: str) -> None:
        """Abort a multipart upload; failures of the abort itself are only logged."""
        logger.warning("Attempting to abort upload %s", upload_id)
        try:
            self._call("abort_multipart_upload", key, Bucket=self._bucket, Key=key, UploadId=upload_id)
        except FileStoreError as e:
            logger.warning("Failed to abort upload %s: %s", upload_id, e)

    @traced_operation("initialize_object_upload")
    def initialize_object_upload(self, config: UploadConfig) -> UploadResult:
        """Start a multipart upload; the session id is the server upload id."""
        resp = self._call(
            "create_multipart_upload",
            config.object_path,
            Bucket=self._bucket,
            Key=to_key(config.object_path),
        )
        upload_id = (resp or {}).get("UploadId")
        if not upload_id:
            raise ServerError("No upload id found in start upload request", path=config.object_path)
        return UploadResult(id=upload_id)

    @traced_operation("write_chunk")
    def write_chunk(self, config: UploadConfig) -> UploadResult:
        """Upload one part. Chunk ids are 0-based, part numbers 1-based."""
        resp = self._call(
            "upload_part",
            config.object_path,
            Body=config.data,
            Bucket=self._bucket,
            Key=to_key(config.object_path),
            PartNumber=config.chunk_id + 1,
            UploadId=config.upload_id,
            ContentLength=len(config.data),
        )
        return UploadResult(id=resp["ETag"], write_size=len(config.data))

    @traced_operation("complete_object_upload")
    def complete_object_upload(self, config: CompletedObjectUploadConfig) -> None:
        """Complete a multipart upload from the ordered per-chunk ETags."""
        parts = [
            {"ETag": etag, "PartNumber": i + 1} for i, etag in enumerate(config.chunk_upload_ids)
        ]
        self._call(
            "complete_multipart_upload",
            config.object_path,
            Bucket=self._bucket,
            Key=to_key(config.object_path),
            UploadId=config.upload_id,
            MultipartUpload={"Parts": parts},
        )
        logger.debug("Completed upload %s with %d parts", config.upload_id, len(parts))

    @traced_operation("delete_objects")
    def delete_objects(self, input: DeleteObjectInput) -> list[Exception]:
        """Delete every key under each input path.

        Keys are buffered up to 1000 and flushed with DeleteObjects. Failed
        flushes are logged and collected; the batch keeps going.
        """
        errors: list[Exception] = []
        buffer: list[dict[str, str]] = []

        def visit(path: str, info: FileInfo) -> None:
            buffer.append({"Key": info.name})
            if len(buffer) >= MAX_DELETE_BATCH_SIZE:
                errors.extend(self._flush_deletes(buffer))
                buffer.clear()

        for p in input.path.all_paths():
            walk_input = WalkInput(
                path=PathConfig(path=p),
                progress=input.progress,
                options=WalkOptions(honour_continuation=True),
                cancel=input.cancel,
            )
            try:
                self.walk(walk_input, visit)
            except OperationCancelledError:
                raise
            except FileStoreError as e:
                logger.error("Error listing %s for batch delete: %s", p, e)
                errors.append(e)

            errors.extend(self._flush_deletes(buffer))
            buffer.clear()

        return errors

    def _flush_deletes(self, buffer: list[dict[str, str]]) -> list[Exception]:
        if not buffer:
            return []
        try:
            resp = self._call(
                "delete_objects",
                Bucket=self._bucket,
                Delete={"Objects": list(buffer), "Quiet": False},
            )
        except FileStoreError as e:
            logger.error("Error in batch delete operation: %s", e)
            return [e]

        errors: list[Exception] = []
        for err in resp.get("Errors", []):
            key = err.get("Key")
            code = err.get("Code")
            message = err.get("Message")
            if key and code and message:
                error = ServerError(f"{key}: {code}: {message}", code=code, path=key)
            else:
                error = ServerError("Unknown delete error", code=code, path=key)
            logger.error("Error in batch delete operation: %s", error)
            errors.append(error)
        logger.debug("Flushed %d deletes (%d errors)", len(buffer), len(errors))
        return errors

    @traced_operation("walk")
    def walk(self, input: WalkInput, visitor: FileVisitFunction) -> None:
        """Flat walk of every key under a prefix.

        The visitor receives "/" + key. Visitor errors are logged and the walk
        continues. Progress is reported once per page with index = page count.
        """
        query: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": to_key(input.path.path),
            "Delimiter": "",
            "MaxKeys": self._max_keys,
        }
        page = 0
        while True:
            check_cancelled(input.cancel, input.path.path)
            resp = self._call("list_objects_v2", input.path.path, **query)
            contents = resp.get("Contents", [])
            for content in contents:
                key = content["Key"]
                info = FileInfo(
                    name=key,
                    size=int(content.get("Size", 0)),
                    is_dir=False,
                    modified=content.get("LastModified") or datetime.now(UTC),
                    irregular=True,
                    etag=strip_etag(content.get("ETag")),
                )
                try:
                    visitor("/" + key, info)
                except Exception as e:
                    logger.warning("Visitor function error on %s: %s", key, e)
            if input.progress is not None:
                input.progress(ProgressData(index=page, max=-1, value=len(contents)))
            page += 1

            if not resp.get("IsTruncated"):
                break
            if input.options.honour_continuation:
                token = resp.get("NextContinuationToken")
                if not token:
                    break
                query["ContinuationToken"] = token

    def get_presigned_url(self, path: PathConfig, days: int) -> str:
        """Presign a GET URL for an object, valid for days * 24 hours."""
        key = to_key(path.path)
        return str(
            self._call(
                "generate_presigned_url",
                path.path,
                ClientMethod="get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=days * 24 * 3600,
            )
        )

    def set_object_public(self, path: PathConfig) -> str:
        """Apply the public-read ACL and return the object's public URL."""
        key = to_key(path.path)
        try:
            self._call("put_object_acl", path.path, Bucket=self._bucket, Key=key, ACL="public-read")
        except FileStoreError:
            logger.error("Failed to add public-read ACL on %s", key)
            raise
        url = f"https://{self._bucket}.s3.amazonaws.com/{key}"
        logger.debug("Object made public: %s", url)
        return url


