"""Tests for OpenTelemetry spans around store operations.

- With tracing enabled each operation emits a filestore.<operation> span
- Spans carry a SHA256 of the primary path, never the raw path
- Failures mark the span with the error type
- With tracing disabled nothing is captured
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

import pytest

from filestore.errors import ObjectNotFoundError
from filestore.filesystem_store import LocalFileStore
from filestore.models import (
    DeleteObjectInput,
    FileInfo,
    GetObjectInput,
    PathConfig,
    PutObjectInput,
    WalkInput,
)
from filestore.observability.tracing import (
    OTEL_ENABLED_ENV,
    OTEL_TEST_CAPTURE_ENV,
    clear_test_spans,
    configure_tracing,
    get_current_trace_id,
    get_test_spans,
    reset_tracing,
)
from filestore.s3_store import S3FileStore
from filestore.source import ObjectSource
from filestore.tracing import primary_path
from tests.fakes import FakeS3Client


@pytest.fixture
def tracing_enabled(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Enable in-memory span capture for one test."""
    reset_tracing()
    monkeypatch.setenv(OTEL_ENABLED_ENV, "1")
    monkeypatch.setenv(OTEL_TEST_CAPTURE_ENV, "1")
    configure_tracing()
    clear_test_spans()
    yield
    reset_tracing()


def _spans(name: str) -> list[Any]:
    return [s for s in get_test_spans() if s.name == name]


class TestPrimaryPath:
    """Tests for primary_path()."""

    def test_plain_path(self) -> None:
        """A PathConfig resolves to its path."""
        assert primary_path(PathConfig(path="/a/b")) == "/a/b"

    def test_path_list(self) -> None:
        """A multi-path config resolves to its first path."""
        assert primary_path(PathConfig(paths=["/x", "/y"])) == "/x"

    def test_operation_input(self) -> None:
        """Operation inputs resolve through their path attributes."""
        put = PutObjectInput(source=ObjectSource(data=b"x"), dest=PathConfig(path="/dest"))
        assert primary_path(put) == "/dest"

    def test_unknown(self) -> None:
        """Objects without a path resolve to None."""
        assert primary_path(object()) is None


@pytest.mark.usefixtures("tracing_enabled")
class TestOtelSpans:
    """Tests for OpenTelemetry span emission."""

    def test_put_emits_span_with_path_hash(self, local_store: LocalFileStore, root: Path) -> None:
        """Put emits a span with the backend and a path hash, not the path."""
        dest = str(root / "otel.txt")
        local_store.put_object(
            PutObjectInput(source=ObjectSource(data=b"data"), dest=PathConfig(path=dest))
        )

        spans = _spans("filestore.put_object")
        assert len(spans) == 1
        attrs = dict(spans[0].attributes or {})
        assert attrs["storage.backend"] == "local"
        assert attrs["filestore.path_sha256"] == hashlib.sha256(dest.encode("utf-8")).hexdigest()
        assert attrs["filestore.has_etag"] is True
        for value in attrs.values():
            assert str(root) not in str(value)

    def test_failure_marks_span(self, local_store: LocalFileStore, root: Path) -> None:
        """A failing operation records the error type on its span."""
        with pytest.raises(ObjectNotFoundError):
            local_store.get_object_info(PathConfig(path=str(root / "missing")))

        attrs = dict(_spans("filestore.get_object_info")[0].attributes or {})
        assert attrs["error"] is True
        assert attrs["error.type"] == "ObjectNotFoundError"

    def test_failure_log_carries_trace_id(
        self, local_store: LocalFileStore, root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """The failure log line names the trace id of the failed span."""
        with caplog.at_level(logging.INFO, logger="filestore.tracing"):
            with pytest.raises(ObjectNotFoundError):
                local_store.get_object(GetObjectInput(path=PathConfig(path=str(root / "missing"))))

        span = _spans("filestore.get_object")[0]
        trace_id = format(span.context.trace_id, "032x")
        assert any(
            "filestore.get_object failed" in r.getMessage() and trace_id in r.getMessage()
            for r in caplog.records
        )

    def test_delete_span_counts_errors(self, local_store: LocalFileStore, root: Path) -> None:
        """Delete spans carry the number of collected errors."""
        local_store.delete_objects(
            DeleteObjectInput(path=PathConfig(paths=[str(root / "a"), str(root / "b")]))
        )

        attrs = dict(_spans("filestore.delete_objects")[0].attributes or {})
        assert attrs["filestore.error_count"] == 2

    def test_remote_backend_name(self, s3_client: FakeS3Client, s3_store: S3FileStore) -> None:
        """Remote spans are tagged with the s3 backend."""
        s3_client.add_object("k", b"x")

        s3_store.get_object_info(PathConfig(path="/k"))

        attrs = dict(_spans("filestore.get_object_info")[0].attributes or {})
        assert attrs["storage.backend"] == "s3"

    def test_trace_id_available_inside_operation(self, local_store: LocalFileStore, root: Path) -> None:
        """Visitors run inside the walk span and can read its trace id."""
        trace_ids: list[str | None] = []

        def visitor(path: str, info: FileInfo) -> None:
            trace_ids.append(get_current_trace_id())

        local_store.walk(WalkInput(path=PathConfig(path=str(root))), visitor)

        assert trace_ids
        assert trace_ids[0] is not None
        assert len(trace_ids[0]) == 32


class TestTracingDisabled:
    """Tests with tracing off."""

    def test_no_spans_when_disabled(self, local_store: LocalFileStore, root: Path) -> None:
        """Nothing is captured while tracing is disabled."""
        reset_tracing()
        configure_tracing()

        local_store.get_dir(PathConfig(path=str(root)))

        assert _spans("filestore.get_dir") == []
        assert get_current_trace_id() is None
