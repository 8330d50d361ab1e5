"""Local filesystem file store backend.

Maps the FileStore contract onto filesystem calls:
- get_object_info / get_object / put_object map to stat / open / write
- get_dir lists the direct children of one directory
- delete_objects removes files, and directories recursively
- resumable uploads write each chunk at offset chunk_id * chunk_size

Range reads are not implemented locally; a range on get_object is ignored
and the whole file is returned.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import stat
import threading
import uuid
from datetime import UTC, datetime
from typing import BinaryIO

from filestore.cancellation import check_cancelled
from filestore.config import DEFAULT_CHUNK_SIZE, LocalConfig
from filestore.errors import ObjectNotFoundError, VisitorError, translate_os_error
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
)
from filestore.tracing import traced_operation

logger = logging.getLogger(__name__)

_COPY_BUFFER_SIZE = 1024 * 1024


def _file_info(path: str, st: os.stat_result) -> FileInfo:
    return FileInfo(
        name=os.path.basename(path.rstrip(os.sep)) or path,
        size=st.st_size,
        is_dir=stat.S_ISDIR(st.st_mode),
        modified=datetime.fromtimestamp(st.st_mtime, UTC),
    )


def _ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise translate_os_error(e, parent) from e


class LocalFileStore(FileStore):
    """Filesystem-based file store implementation.

    Paths are used as given (absolute paths on the local machine).
    Resumable upload sessions are serialised per session id: concurrent
    write_chunk() calls for one session take the same lock.
    """

    def __init__(self, config: LocalConfig | None = None) -> None:
        self._config = config or LocalConfig()
        self._sessions_lock = threading.Lock()
        self._session_locks: dict[str, threading.Lock] = {}

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "local"

    @property
    def chunk_size(self) -> int:
        """Offset multiplier for resumable upload chunks."""
        return self._config.chunk_size or DEFAULT_CHUNK_SIZE

    def resource_name(self) -> str:
        return ""

    @traced_operation("get_object_info")
    def get_object_info(self, path: PathConfig) -> FileInfo:
        """Stat a local path."""
        try:
            st = os.stat(path.path)
        except OSError as e:
            raise translate_os_error(e, path.path) from e
        return _file_info(path.path, st)

    @traced_operation("get_dir")
    def get_dir(self, path: PathConfig) -> list[DirEntry]:
        """List the direct children of a directory, sorted by name."""
        try:
            with os.scandir(path.path) as it:
                entries = sorted(it, key=lambda e: e.name)
                rows: list[DirEntry] = []
                for i, entry in enumerate(entries):
                    st = entry.stat()
                    rows.append(
                        DirEntry(
                            id=i,
                            name=entry.name,
                            size=str(st.st_size),
                            path=path.path,
                            type=os.path.splitext(entry.name)[1],
                            is_dir=entry.is_dir(),
                            modified=datetime.fromtimestamp(st.st_mtime, UTC),
                        )
                    )
        except OSError as e:
            raise translate_os_error(e, path.path) from e
        return rows

    @traced_operation("get_object")
    def get_object(self, input: GetObjectInput) -> BinaryIO:
        """Open a local file for reading; the caller closes it."""
        if input.range:
            logger.debug("Range requests are not supported locally; ignoring %s", input.range)
        try:
            return open(input.path.path, "rb")  # noqa: SIM115
        except OSError as e:
            raise translate_os_error(e, input.path.path) from e

    @traced_operation("put_object")
    def put_object(self, input: PutObjectInput) -> FileOperationOutput:
        """Write a source to a local file.

        An empty byte buffer only creates the parent directories of the
        destination and returns an empty ETag.
        """
        dest = input.dest.path
        if input.source.is_empty_buffer:
            _ensure_parent_dir(dest)
            return FileOperationOutput()

        _ensure_parent_dir(dest)
        md5 = hashlib.md5()  # noqa: S324 - integrity digest, not security
        written = 0
        with input.source.open() as reader:
            try:
                with open(dest, "wb") as f:
                    while True:
                        check_cancelled(input.cancel, dest)
                        block = reader.read(_COPY_BUFFER_SIZE)
                        if not block:
                            break
                        f.write(block)
                        md5.update(block)
                        written += len(block)
            except OSError as e:
                raise translate_os_error(e, dest) from e

        logger.debug("Wrote %d bytes to %s", written, dest)
        return FileOperationOutput(etag=md5.hexdigest())

    @traced_operation("copy_object")
    def copy_object(self, input: CopyObjectInput) -> None:
        """Stream bytes from the source file into the destination file."""
        src_path = input.src.path
        dest_path = input.dest.path
        try:
            src = open(src_path, "rb")  # noqa: SIM115
        except OSError as e:
            raise translate_os_error(e, src_path) from e

        with src:
            _ensure_parent_dir(dest_path)
            try:
                with open(dest_path, "wb") as dest:
                    copied = 0
                    index = 0
                    while True:
                        check_cancelled(input.cancel, dest_path)
                        block = src.read(_COPY_BUFFER_SIZE)
                        if not block:
                            break
                        dest.write(block)
                        copied += len(block)
                        if input.progress is not None:
                            input.progress(ProgressData(index=index, max=-1, value=copied))
                        index += 1
            except OSError as e:
                raise translate_os_error(e, dest_path) from e

        logger.debug("Copied %s to %s", src_path, dest_path)

    @traced_operation("delete_objects")
    def delete_objects(self, input: DeleteObjectInput) -> list[Exception]:
        """Remove each target; directories are removed recursively.

        A symbolic link is removed itself, never the tree it points to.
        One error is collected per failed target.
        """
        errors: list[Exception] = []
        paths = input.path.all_paths()
        for i, p in enumerate(paths):
            check_cancelled(input.cancel, p)
            try:
                if os.path.isdir(p) and not os.path.islink(p):
                    shutil.rmtree(p)
                else:
                    os.remove(p)
            except OSError as e:
                logger.warning("Failed to delete %s: %s", p, e)
                errors.append(translate_os_error(e, p))
            if input.progress is not None:
                input.progress(ProgressData(index=i, max=len(paths), value=p))
        return errors

    def _session_lock(self, upload_id: str, object_path: str) -> threading.Lock:
        with self._sessions_lock:
            lock = self._session_locks.get(upload_id)
        if lock is None:
            raise ObjectNotFoundError(f"Unknown upload session: {upload_id}", path=object_path)
        return lock

    @traced_operation("initialize_object_upload")
    def initialize_object_upload(self, config: UploadConfig) -> UploadResult:
        """Create (or truncate) the destination file and issue a session id."""
        _ensure_parent_dir(config.object_path)
        try:
            with open(config.object_path, "wb"):
                pass
        except OSError as e:
            raise translate_os_error(e, config.object_path) from e

        upload_id = str(uuid.uuid4())
        with self._sessions_lock:
            self._session_locks[upload_id] = threading.Lock()
        logger.debug("Initialized upload %s for %s", upload_id, config.object_path)
        return UploadResult(id=upload_id)

    @traced_operation("write_chunk")
    def write_chunk(self, config: UploadConfig) -> UploadResult:
        """Write chunk bytes at offset chunk_id * chunk_size.

        Raises:
            ObjectNotFoundError: If upload_id was not issued by this store or
                its session is already complete.
        """
        offset = config.chunk_id * self.chunk_size
        with self._session_lock(config.upload_id, config.object_path):
            try:
                fd = os.open(config.object_path, os.O_WRONLY | os.O_CREAT, 0o644)
                with os.fdopen(fd, "wb") as f:
                    f.seek(offset)
                    f.write(config.data)
            except OSError as e:
                raise translate_os_error(e, config.object_path) from e
        return UploadResult(id=config.upload_id, write_size=len(config.data))

    @traced_operation("complete_object_upload")
    def complete_object_upload(self, config: CompletedObjectUploadConfig) -> None:
        """Close the session; chunks are already in place."""
        with self._sessions_lock:
            self._session_locks.pop(config.upload_id, None)
        logger.debug("Completed upload %s for %s", config.upload_id, config.object_path)

    @traced_operation("walk")
    def walk(self, input: WalkInput, visitor: FileVisitFunction) -> None:
        """Preorder walk calling visitor for every file and directory.

        Entries are visited in lexical order, starting with the root itself.
        Symbolic links are visited but never followed.
        A visitor failure aborts the walk.
        """
        counter = [0]
        self._walk(input.path.path, input, visitor, counter)

    def _walk(
        self,
        path: str,
        input: WalkInput,
        visitor: FileVisitFunction,
        counter: list[int],
    ) -> None:
        check_cancelled(input.cancel, path)
        try:
            st = os.lstat(path)
        except OSError as e:
            raise translate_os_error(e, path) from e
        info = _file_info(path, st)

        try:
            visitor(path, info)
        except Exception as e:
            raise VisitorError(path=path, cause=e) from e

        if input.progress is not None:
            input.progress(ProgressData(index=counter[0], max=-1, value=path))
        counter[0] += 1

        if not info.is_dir:
            return
        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            raise translate_os_error(e, path) from e
        for name in names:
            self._walk(os.path.join(path, name), input, visitor, counter)
