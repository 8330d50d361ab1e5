"""Pytest configuration and fixtures for filestore tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from filestore.config import LocalConfig, S3Config
from filestore.filesystem_store import LocalFileStore
from filestore.s3_store import S3FileStore
from tests.fakes import TEST_BUCKET, TEST_REGION, FakeS3Client

_FILESTORE_ENV_PREFIX = "FILESTORE_"


@pytest.fixture(autouse=True)
def clear_filestore_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without FILESTORE_* variables from the host."""
    for key in list(os.environ):
        if key.startswith(_FILESTORE_ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def s3_client() -> FakeS3Client:
    """Return an empty fake S3 client."""
    return FakeS3Client()


@pytest.fixture
def s3_config() -> S3Config:
    """Return a default S3 configuration for the test bucket."""
    return S3Config(region=TEST_REGION, bucket=TEST_BUCKET)


@pytest.fixture
def s3_store(s3_client: FakeS3Client, s3_config: S3Config) -> S3FileStore:
    """Return an S3FileStore backed by the fake client."""
    return S3FileStore(s3_client, s3_config)


@pytest.fixture
def local_store() -> LocalFileStore:
    """Return a LocalFileStore with a small chunk size."""
    return LocalFileStore(LocalConfig(chunk_size=4))


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Return a fresh directory for local store tests."""
    base = tmp_path / "store"
    base.mkdir()
    return base
