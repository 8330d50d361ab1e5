"""Object source descriptor.

An ObjectSource is exactly one of: a caller-supplied readable stream, an
in-memory byte buffer, or a file path to open lazily. open() normalizes
all three to a single readable binary stream.

Ownership: the caller owns a stream it passed in (open() never closes
it); streams open() opens itself are closed on exit.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import BinaryIO

from filestore.errors import InvalidSourceError, translate_os_error
from filestore.models import PathConfig


@dataclass
class ObjectSource:
    """Input for a put operation.

    Attributes:
        content_length: Caller-declared length in bytes. Filled in by open()
            for buffer and file sources when not declared.
        reader: An already-open readable byte stream.
        data: A byte buffer.
        filepath: A path to a local file.
    """

    content_length: int = 0
    reader: BinaryIO | None = None
    data: bytes | None = None
    filepath: PathConfig = field(default_factory=PathConfig)

    @property
    def is_empty_buffer(self) -> bool:
        """True when the source is a byte buffer with no bytes."""
        if self.reader is not None or self.filepath.path:
            return False
        return self.data is not None and len(self.data) == 0

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Resolve the source to a readable stream.

        Checks, in order: caller reader, file path, byte buffer.

        Raises:
            InvalidSourceError: If no input is populated.
            ObjectNotFoundError: If the file path does not exist.
        """
        if self.reader is not None:
            yield self.reader
            return

        if self.filepath.path:
            try:
                stream = open(self.filepath.path, "rb")  # noqa: SIM115
            except OSError as e:
                raise translate_os_error(e, self.filepath.path) from e
            try:
                if self.content_length <= 0:
                    self.content_length = os.fstat(stream.fileno()).st_size
                yield stream
            finally:
                stream.close()
            return

        if self.data is not None:
            self.content_length = len(self.data)
            with io.BytesIO(self.data) as buffer:
                yield buffer
            return

        raise InvalidSourceError()
