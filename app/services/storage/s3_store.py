"""S3-compatible blob store (GCS interoperability endpoint by default)."""

from typing import Callable, Optional
from urllib.parse import quote, urlparse

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from app.errors import ExternalServiceError, is_transient_status
from app.logging_config import get_logger
from app.services.deadline import Deadline
from app.services.retry import call_with_retry
from app.services.storage.base import BlobStore

logger = get_logger("storage.s3")

TRANSIENT_ERROR_CODES = {"SlowDown", "RequestTimeout", "InternalError", "ServiceUnavailable", "Throttling"}
MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}
EXISTING_BUCKET_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
TRANSIENT_BOTO_ERRORS = (EndpointConnectionError, ConnectionClosedError, ConnectTimeoutError, ReadTimeoutError)


def _is_gcs_compat_endpoint(endpoint_url: Optional[str]) -> bool:
    if not endpoint_url:
        return False
    hostname = (urlparse(endpoint_url).hostname or "").lower()
    return hostname == "storage.googleapis.com" or hostname.endswith(".storage.googleapis.com")


def _resolve_region(region: Optional[str], endpoint_url: Optional[str]) -> Optional[str]:
    if _is_gcs_compat_endpoint(endpoint_url) and (region is None or region == "us-east-1"):
        # GCS XML API signs SigV4 requests with region "auto".
        return "auto"
    return region


def get_s3_client(
    endpoint_url: Optional[str],
    region: Optional[str],
    access_key_id: Optional[str],
    secret_access_key: Optional[str],
    timeout_seconds: float = 30.0,
) -> BaseClient:
    endpoint = endpoint_url.rstrip("/") if endpoint_url else None
    return boto3.client(
        "s3",
        region_name=_resolve_region(region, endpoint),
        aws_access_key_id=access_key_id or None,
        aws_secret_access_key=secret_access_key or None,
        endpoint_url=endpoint,
        config=Config(
            s3={"addressing_style": "path"},
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"max_attempts": 1},
        ),
    )


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _error_status(error: ClientError) -> Optional[int]:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def _wrap(hop: str, error: Exception) -> ExternalServiceError:
    if isinstance(error, ClientError):
        status = _error_status(error)
        transient = _error_code(error) in TRANSIENT_ERROR_CODES or (status is not None and is_transient_status(status))
        return ExternalServiceError(hop, str(error), upstream_status=status, body=_error_code(error), transient=transient)
    return ExternalServiceError(hop, str(error), transient=isinstance(error, TRANSIENT_BOTO_ERRORS))


class S3BlobStore(BlobStore):
    def __init__(self, client: BaseClient, public_base_url: str = "https://storage.googleapis.com"):
        self.client = client
        self.public_base_url = public_base_url.rstrip("/")

    def _call(self, hop: str, operation: Callable, deadline: Optional[Deadline], **params):
        def attempt():
            if deadline is not None:
                deadline.check(hop)
            try:
                return operation(**params)
            except (ClientError, BotoCoreError) as e:
                raise _wrap(hop, e) from e

        return call_with_retry(attempt, deadline=deadline)

    def ensure_bucket(self, bucket: str, deadline: Optional[Deadline] = None) -> None:
        try:
            self._call("storage.head_bucket", self.client.head_bucket, deadline, Bucket=bucket)
            return
        except ExternalServiceError as e:
            if e.body not in MISSING_BUCKET_CODES and e.upstream_status != 404:
                raise

        try:
            self._call("storage.create_bucket", self.client.create_bucket, deadline, Bucket=bucket)
        except ExternalServiceError as e:
            # Lost a create race with another upload; the bucket is there.
            if e.body not in EXISTING_BUCKET_CODES:
                raise
        logger.info("Bucket created", extra={"context": {"bucket": bucket}})

    def put_object(
        self, bucket: str, key: str, data: bytes, content_type: str, deadline: Optional[Deadline] = None
    ) -> None:
        self._call(
            "storage.put_object",
            self.client.put_object,
            deadline,
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )

    def make_public(self, bucket: str, key: str, deadline: Optional[Deadline] = None) -> None:
        self._call(
            "storage.put_object_acl", self.client.put_object_acl, deadline, Bucket=bucket, Key=key, ACL="public-read"
        )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{quote(key)}"
