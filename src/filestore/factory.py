"""Build a FileStore from a backend configuration."""

from __future__ import annotations

import logging
from typing import Any

import boto3

from filestore.config import (
    FileStoreConfig,
    LocalConfig,
    ProfileCredentials,
    RoleCredentials,
    S3Config,
    StaticCredentials,
)
from filestore.errors import ConfigurationError
from filestore.file_store import FileStore
from filestore.filesystem_store import LocalFileStore
from filestore.s3_store import S3FileStore

logger = logging.getLogger(__name__)


def _s3_session(config: S3Config) -> boto3.session.Session:
    credentials = config.credentials
    if isinstance(credentials, StaticCredentials):
        return boto3.session.Session(
            region_name=config.region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
        )
    if isinstance(credentials, ProfileCredentials):
        return boto3.session.Session(region_name=config.region, profile_name=credentials.profile)
    if isinstance(credentials, RoleCredentials):
        raise ConfigurationError("Assumed roles are not supported")
    raise ConfigurationError("Invalid credentials configuration")


def new_s3_file_store(config: S3Config) -> S3FileStore:
    """Create an S3 store, building the boto3 client from the configuration.

    Each AwsOption in config.aws_options is applied, in order, to the client
    keyword arguments before the client is created.
    """
    session = _s3_session(config)
    client_kwargs: dict[str, Any] = {}
    if config.endpoint_url:
        client_kwargs["endpoint_url"] = config.endpoint_url
    for option in config.aws_options:
        option(client_kwargs)

    client = session.client("s3", **client_kwargs)
    logger.info("Created S3 file store for bucket %s in %s", config.bucket, config.region)
    return S3FileStore(client, config)


def new_file_store(config: FileStoreConfig) -> FileStore:
    """Create the backend matching a configuration variant.

    Args:
        config: LocalConfig or S3Config.

    Returns:
        A ready FileStore.

    Raises:
        ConfigurationError: If the configuration type is unknown or the
            credentials variant is unsupported.
    """
    if isinstance(config, LocalConfig):
        return LocalFileStore(config)
    if isinstance(config, S3Config):
        return new_s3_file_store(config)
    raise ConfigurationError(f"Invalid file store type: {type(config).__name__}")
