"""Checkpoint storage in S3 or an S3-compatible store (MinIO, LocalStack)."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from firestore_export.lib.resilience import RetryPolicy, with_retry
from firestore_export.lib.storage.base import StorageBackend, WriteResult

logger = logging.getLogger(__name__)

__all__ = ["S3Storage", "is_transient_s3_error", "S3_RETRY_POLICY"]

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_THROTTLE_CODES = frozenset({"SlowDown", "RequestLimitExceeded", "Throttling"})


def is_transient_s3_error(exc: BaseException) -> bool:
    """True for throttling, 5xx responses and transport-level failures."""
    if isinstance(exc, ClientError):
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        code = exc.response.get("Error", {}).get("Code")
        return int(status) == 429 or int(status) >= 500 or code in _THROTTLE_CODES
    return isinstance(exc, BotoCoreError)


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


S3_RETRY_POLICY = RetryPolicy(
    max_attempts=5,
    base_delay=0.5,
    retry_on=(BotoCoreError, ClientError),
    retry_if=is_transient_s3_error,
)
_retry = with_retry(S3_RETRY_POLICY)


class S3Storage(StorageBackend):
    """Objects live under ``s3://<bucket>/<prefix>/``.

    Options (each falls back to the matching environment variable):
        client: Ready-made boto3 S3 client; skips all of the below
        key, secret: AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY
        region: AWS_REGION
        endpoint_url: AWS_ENDPOINT_URL, for MinIO or LocalStack

    Example:
        >>> storage = S3Storage("s3://ops-bucket/firestore-export/state/")
        >>> storage.get_full_path("from-users-to-demo_firestore_export_users_raw_changelog")
        's3://ops-bucket/firestore-export/state/from-users-to-demo_firestore_export_users_raw_changelog'
    """

    def __init__(self, base_path: str, **options: Any) -> None:
        super().__init__(base_path, **options)
        bucket, _, prefix = base_path.removeprefix("s3://").partition("/")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._client = options.get("client")

    @property
    def scheme(self) -> str:
        return "s3"

    def _option(self, name: str, env_var: str) -> Any:
        return self.options.get(name) or os.environ.get(env_var)

    @property
    def client(self) -> Any:
        if self._client is None:
            kwargs: Dict[str, Any] = {}
            key = self._option("key", "AWS_ACCESS_KEY_ID")
            secret = self._option("secret", "AWS_SECRET_ACCESS_KEY")
            if key and secret:
                kwargs.update(aws_access_key_id=key, aws_secret_access_key=secret)
            region = self._option("region", "AWS_REGION")
            if region:
                kwargs["region_name"] = region
            endpoint_url = self._option("endpoint_url", "AWS_ENDPOINT_URL")
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url

            self._client = boto3.client("s3", **kwargs)
            logger.debug(
                "Created S3 client for bucket %s (endpoint %s)",
                self.bucket,
                endpoint_url or "default",
            )
        return self._client

    def _key(self, name: str) -> str:
        if name.startswith("s3://"):
            return name[5:].partition("/")[2]
        name = name.lstrip("/")
        return f"{self.prefix}/{name}" if self.prefix else name

    def get_full_path(self, name: str) -> str:
        return f"s3://{self.bucket}/{self._key(name)}"

    @_retry
    def exists(self, name: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(name))
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise
        return True

    @_retry
    def read_bytes(self, name: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(name))
        except ClientError as exc:
            if _is_not_found(exc):
                raise FileNotFoundError(self.get_full_path(name)) from exc
            raise
        return response["Body"].read()

    @_retry
    def write_bytes(self, name: str, data: bytes) -> WriteResult:
        key = self._key(name)
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        return WriteResult(path=f"s3://{self.bucket}/{key}", bytes_written=len(data))

    def delete(self, name: str) -> bool:
        if not self.exists(name):
            return False
        self._delete_object(self._key(name))
        return True

    @_retry
    def _delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
