"""Filestore backend configuration.

Backend configurations are immutable pydantic models. new_file_store()
dispatches on the model type to build the matching backend.

Environment Variables (load_config_from_env):
    FILESTORE_BACKEND: "local" or "s3" (default: "local")
    FILESTORE_LOCAL_CHUNK_SIZE: Resumable upload chunk size in bytes
    FILESTORE_S3_REGION: Bucket region (required for s3)
    FILESTORE_S3_BUCKET: Bucket name (required for s3)
    FILESTORE_S3_DELIMITER: Listing delimiter (default: "/")
    FILESTORE_S3_MAX_KEYS: Listing page size (default: 1000)
    FILESTORE_S3_ENDPOINT_URL: Endpoint for S3-compatible services (optional)
    FILESTORE_S3_ACCESS_KEY_ID / FILESTORE_S3_SECRET_ACCESS_KEY: Static credentials
    FILESTORE_S3_PROFILE: Named profile (default credential chain when unset)
    FILESTORE_S3_ROLE_ARN: Assumed role (rejected by the factory)

SECURITY: Never log secret access keys.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from filestore.errors import ConfigurationError

DEFAULT_MAX_KEYS: Final[int] = 1000
DEFAULT_DELIMITER: Final[str] = "/"
DEFAULT_CHUNK_SIZE: Final[int] = 10 * 1024 * 1024

FILESTORE_BACKEND_ENV: Final[str] = "FILESTORE_BACKEND"
FILESTORE_LOCAL_CHUNK_SIZE_ENV: Final[str] = "FILESTORE_LOCAL_CHUNK_SIZE"
FILESTORE_S3_REGION_ENV: Final[str] = "FILESTORE_S3_REGION"
FILESTORE_S3_BUCKET_ENV: Final[str] = "FILESTORE_S3_BUCKET"
FILESTORE_S3_DELIMITER_ENV: Final[str] = "FILESTORE_S3_DELIMITER"
FILESTORE_S3_MAX_KEYS_ENV: Final[str] = "FILESTORE_S3_MAX_KEYS"
FILESTORE_S3_ENDPOINT_URL_ENV: Final[str] = "FILESTORE_S3_ENDPOINT_URL"
FILESTORE_S3_ACCESS_KEY_ID_ENV: Final[str] = "FILESTORE_S3_ACCESS_KEY_ID"
FILESTORE_S3_SECRET_ACCESS_KEY_ENV: Final[str] = "FILESTORE_S3_SECRET_ACCESS_KEY"
FILESTORE_S3_PROFILE_ENV: Final[str] = "FILESTORE_S3_PROFILE"
FILESTORE_S3_ROLE_ARN_ENV: Final[str] = "FILESTORE_S3_ROLE_ARN"

# Receives the keyword arguments for boto3's client("s3", ...) and may edit them.
AwsOption = Callable[[dict[str, Any]], None]


class LocalConfig(BaseModel):
    """Configuration for the local filesystem backend.

    Attributes:
        chunk_size: Offset multiplier for resumable upload chunks.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)


class StaticCredentials(BaseModel):
    """Static access key id and secret."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    access_key_id: str = Field(min_length=1)
    secret_access_key: str = Field(min_length=1, repr=False)


class ProfileCredentials(BaseModel):
    """Named shared-config profile; None uses the default credential chain."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    profile: str | None = None


class RoleCredentials(BaseModel):
    """Assumed role. Not supported: the factory rejects it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    arn: str = Field(min_length=1)


Credentials = StaticCredentials | ProfileCredentials | RoleCredentials


class S3Config(BaseModel):
    """Configuration for the S3-compatible backend.

    Attributes:
        region: Bucket region.
        bucket: Bucket name.
        delimiter: Delimiter for directory listings.
        max_keys: Page size for listings (the server caps it at 1000).
        credentials: Credentials variant.
        endpoint_url: Endpoint override for S3-compatible services.
        aws_options: Callables applied, in order, to the client keyword
            arguments before the boto3 client is created.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    region: str = Field(min_length=1)
    bucket: str = Field(min_length=1)
    delimiter: str = DEFAULT_DELIMITER
    max_keys: int = Field(default=DEFAULT_MAX_KEYS, ge=1, le=DEFAULT_MAX_KEYS)
    credentials: Credentials = Field(default_factory=ProfileCredentials)
    endpoint_url: str | None = None
    aws_options: list[AwsOption] = Field(default_factory=list)

    @field_validator("delimiter")
    @classmethod
    def _default_delimiter(cls, value: str) -> str:
        return value or DEFAULT_DELIMITER


FileStoreConfig = LocalConfig | S3Config


def _env(key: str) -> str | None:
    value = os.environ.get(key, "").strip()
    return value or None


def _credentials_from_env() -> Credentials:
    role_arn = _env(FILESTORE_S3_ROLE_ARN_ENV)
    if role_arn:
        return RoleCredentials(arn=role_arn)
    access_key_id = _env(FILESTORE_S3_ACCESS_KEY_ID_ENV)
    secret_access_key = _env(FILESTORE_S3_SECRET_ACCESS_KEY_ENV)
    if access_key_id or secret_access_key:
        return StaticCredentials(
            access_key_id=access_key_id or "",
            secret_access_key=secret_access_key or "",
        )
    return ProfileCredentials(profile=_env(FILESTORE_S3_PROFILE_ENV))


def load_config_from_env() -> FileStoreConfig:
    """Build a backend configuration from FILESTORE_* environment variables.

    Returns:
        LocalConfig or S3Config.

    Raises:
        ConfigurationError: If the backend is unknown or a value is invalid.
    """
    backend = (_env(FILESTORE_BACKEND_ENV) or "local").lower()
    try:
        if backend == "local":
            kwargs: dict[str, Any] = {}
            chunk_size = _env(FILESTORE_LOCAL_CHUNK_SIZE_ENV)
            if chunk_size is not None:
                kwargs["chunk_size"] = chunk_size
            return LocalConfig(**kwargs)

        if backend == "s3":
            s3_kwargs: dict[str, Any] = {
                "region": _env(FILESTORE_S3_REGION_ENV) or "",
                "bucket": _env(FILESTORE_S3_BUCKET_ENV) or "",
                "credentials": _credentials_from_env(),
                "endpoint_url": _env(FILESTORE_S3_ENDPOINT_URL_ENV),
            }
            delimiter = _env(FILESTORE_S3_DELIMITER_ENV)
            if delimiter is not None:
                s3_kwargs["delimiter"] = delimiter
            max_keys = _env(FILESTORE_S3_MAX_KEYS_ENV)
            if max_keys is not None:
                s3_kwargs["max_keys"] = max_keys
            return S3Config(**s3_kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {backend} configuration: {e}", cause=e) from e

    raise ConfigurationError(f"Invalid file store backend: {backend}")
