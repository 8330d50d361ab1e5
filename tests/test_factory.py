"""Tests for new_file_store().

- Local configs build a LocalFileStore
- S3 configs build a boto3 session and client from the credentials variant
- Unsupported credentials and unknown configs raise ConfigurationError
"""

from __future__ import annotations

from typing import Any

import boto3
import pytest

from filestore.config import (
    LocalConfig,
    ProfileCredentials,
    RoleCredentials,
    S3Config,
    StaticCredentials,
)
from filestore.errors import ConfigurationError
from filestore.factory import new_file_store
from filestore.filesystem_store import LocalFileStore
from filestore.s3_store import S3FileStore


class RecordingSession:
    """Stand-in for boto3.session.Session that records its arguments."""

    instances: list[RecordingSession] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.client_calls: list[tuple[str, dict[str, Any]]] = []
        RecordingSession.instances.append(self)

    def client(self, service_name: str, **kwargs: Any) -> object:
        self.client_calls.append((service_name, kwargs))
        return object()


@pytest.fixture
def recording_session(monkeypatch: pytest.MonkeyPatch) -> type[RecordingSession]:
    """Replace boto3 sessions with RecordingSession for one test."""
    RecordingSession.instances = []
    monkeypatch.setattr(boto3.session, "Session", RecordingSession)
    return RecordingSession


class TestLocal:
    """Tests for local store creation."""

    def test_local_config(self) -> None:
        """A LocalConfig yields a LocalFileStore with its chunk size."""
        store = new_file_store(LocalConfig(chunk_size=1024))

        assert isinstance(store, LocalFileStore)
        assert store.chunk_size == 1024


class TestS3:
    """Tests for S3 store creation."""

    def test_static_credentials(self, recording_session: type[RecordingSession]) -> None:
        """Static keys are passed to the session together with the region."""
        config = S3Config(
            region="eu-west-1",
            bucket="bucket",
            credentials=StaticCredentials(access_key_id="AKIA", secret_access_key="secret"),
        )

        store = new_file_store(config)

        assert isinstance(store, S3FileStore)
        assert store.resource_name() == "bucket"
        session = recording_session.instances[0]
        assert session.kwargs == {
            "region_name": "eu-west-1",
            "aws_access_key_id": "AKIA",
            "aws_secret_access_key": "secret",
        }
        assert session.client_calls == [("s3", {})]

    def test_profile_credentials(self, recording_session: type[RecordingSession]) -> None:
        """A named profile is passed to the session."""
        config = S3Config(
            region="us-west-2",
            bucket="bucket",
            credentials=ProfileCredentials(profile="analytics"),
        )

        new_file_store(config)

        assert recording_session.instances[0].kwargs == {
            "region_name": "us-west-2",
            "profile_name": "analytics",
        }

    def test_default_chain(self, recording_session: type[RecordingSession]) -> None:
        """Without credentials the default chain is used."""
        new_file_store(S3Config(region="us-east-1", bucket="bucket"))

        assert recording_session.instances[0].kwargs["profile_name"] is None

    def test_endpoint_and_aws_options(self, recording_session: type[RecordingSession]) -> None:
        """The endpoint is set and AWS options are applied in order."""

        def add_verify(kwargs: dict[str, Any]) -> None:
            kwargs["verify"] = False

        def override_endpoint(kwargs: dict[str, Any]) -> None:
            kwargs["endpoint_url"] = kwargs["endpoint_url"] + "/minio"

        config = S3Config(
            region="us-east-1",
            bucket="bucket",
            endpoint_url="http://localhost:9000",
            aws_options=[add_verify, override_endpoint],
        )

        new_file_store(config)

        assert recording_session.instances[0].client_calls == [
            ("s3", {"endpoint_url": "http://localhost:9000/minio", "verify": False})
        ]

    def test_role_credentials_rejected(self) -> None:
        """Assumed roles are not supported."""
        config = S3Config(
            region="us-east-1",
            bucket="bucket",
            credentials=RoleCredentials(arn="arn:aws:iam::123456789012:role/reader"),
        )

        with pytest.raises(ConfigurationError, match="Assumed roles are not supported"):
            new_file_store(config)

    def test_real_client_built_offline(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A real boto3 client is created without contacting the service."""
        monkeypatch.delenv("AWS_PROFILE", raising=False)
        config = S3Config(
            region="us-east-1",
            bucket="bucket",
            endpoint_url="http://localhost:9000",
            credentials=StaticCredentials(access_key_id="AKIA", secret_access_key="secret"),
        )

        store = new_file_store(config)

        assert isinstance(store, S3FileStore)
        assert store.client.meta.endpoint_url == "http://localhost:9000"
        assert store.client.meta.region_name == "us-east-1"


class TestUnknown:
    """Tests for unsupported configurations."""

    def test_unknown_config_type(self) -> None:
        """Anything other than a known config raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid file store type"):
            new_file_store({"bucket": "x"})  # type: ignore[arg-type]
