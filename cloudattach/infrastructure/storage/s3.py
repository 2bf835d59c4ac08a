"""
S3-compatible object store adapter.

Uses boto3, so the same code works against AWS S3, Cloudflare R2, MinIO
or any other store speaking the S3 API. Containers map to buckets:

- username / api_key  -> access key id / secret access key
- auth_url            -> endpoint URL (None means AWS)
- servicenet          -> ignored, S3 has no service network

Public buckets are served straight from the endpoint, so the "CDN" URL of
a bucket is `<endpoint>/<bucket>` with path-style addressing.
"""

import json
import logging
from contextlib import contextmanager
from os import PathLike, fspath
from typing import Any, Callable, Iterator, Optional, Union

from ...core.attachments.models import ContainerHandle, ObjectHandle
from ...core.errors import DependencyUnavailableError, RemoteServiceError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_ALREADY_OWNED_CODES = {"BucketAlreadyOwnedByYou"}


class S3StoreClient:
    """
    Builds boto3 clients for S3-compatible accounts.

    boto3 is imported in the constructor so a missing install is reported
    when the backend is activated, with a hint on how to fix it.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        client_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        try:
            import boto3
            from botocore.config import Config
            from botocore.exceptions import BotoCoreError, ClientError
        except ImportError as e:
            raise DependencyUnavailableError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            ) from e

        self._region = region
        self._client_factory = client_factory or boto3.client
        self._boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 1},
        )
        self._errors = (BotoCoreError, ClientError)

    def authenticate(
        self,
        username: str,
        api_key: str,
        use_servicenet: bool = False,
        auth_url: Optional[str] = None,
    ) -> "S3StoreSession":
        if use_servicenet:
            logger.debug("servicenet has no effect for S3 stores")

        client = self._client_factory(
            "s3",
            endpoint_url=auth_url,
            aws_access_key_id=username,
            aws_secret_access_key=api_key,
            region_name=self._region,
            config=self._boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={"endpoint": auth_url, "region": self._region}
        )

        return S3StoreSession(client, self._errors, endpoint_url=auth_url, region=self._region)


class S3StoreSession:
    """Bucket and object operations over one boto3 S3 client."""

    def __init__(
        self,
        client: Any,
        errors: tuple,
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
    ) -> None:
        self._s3_client = client
        self._errors = errors
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._region = region

    def create_container(self, name: str) -> ContainerHandle:
        params = {"Bucket": name}
        # AWS rejects an explicit us-east-1 constraint and requires one elsewhere
        if self._endpoint_url is None and self._region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}

        try:
            self._s3_client.create_bucket(**params)
        except self._errors as e:
            if _error_code(e) not in _ALREADY_OWNED_CODES:
                raise self._wrap(e, "create_container", name) from e

        base = self._bucket_url(name)
        return ContainerHandle(
            name=name,
            cdn_url=base,
            cdn_ssl_url=base.replace("http://", "https://", 1),
        )

    def make_public(self, container: ContainerHandle) -> None:
        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "PublicRead",
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{container.name}/*"],
                }
            ],
        }
        with self._remote("make_public", container.name):
            self._s3_client.put_bucket_policy(
                Bucket=container.name,
                Policy=json.dumps(policy),
            )

    def object_exists(self, container: ContainerHandle, path: str) -> bool:
        try:
            self._s3_client.head_object(Bucket=container.name, Key=path)
        except self._errors as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise self._wrap(e, "object_exists", container.name, path) from e
        return True

    def read_object(self, container: ContainerHandle, path: str) -> bytes:
        with self._remote("read_object", container.name, path):
            response = self._s3_client.get_object(Bucket=container.name, Key=path)
            return response["Body"].read()

    def create_object(self, container: ContainerHandle, path: str) -> ObjectHandle:
        return ObjectHandle(container=container, path=path)

    def load_from_file(
        self,
        obj: ObjectHandle,
        local_path: Union[str, PathLike],
    ) -> None:
        with self._remote("load_from_file", obj.container.name, obj.path):
            self._s3_client.upload_file(fspath(local_path), obj.container.name, obj.path)

    def delete_object(self, container: ContainerHandle, path: str) -> None:
        # S3 deletes are already idempotent; a 404 from a strict
        # compatible store is treated the same way
        try:
            self._s3_client.delete_object(Bucket=container.name, Key=path)
        except self._errors as e:
            if _error_code(e) in _MISSING_CODES:
                logger.debug(
                    "Delete of missing object ignored",
                    extra={"container": container.name, "path": path}
                )
                return
            raise self._wrap(e, "delete_object", container.name, path) from e

    # ------------------------------------------------------------------

    def _bucket_url(self, name: str) -> str:
        if self._endpoint_url:
            return f"{self._endpoint_url}/{name}"
        return f"https://s3.{self._region}.amazonaws.com/{name}"

    @contextmanager
    def _remote(
        self,
        operation: str,
        container: str,
        path: Optional[str] = None,
    ) -> Iterator[None]:
        try:
            yield
        except self._errors as e:
            raise self._wrap(e, operation, container, path) from e

    def _wrap(
        self,
        error: Exception,
        operation: str,
        container: str,
        path: Optional[str] = None,
    ) -> RemoteServiceError:
        logger.error(
            "S3 request failed",
            extra={
                "operation": operation,
                "container": container,
                "path": path,
                "error": str(error),
            }
        )
        return RemoteServiceError(
            f"{operation} failed: {error}",
            operation=operation,
            cause=error,
        )


def _error_code(error: Exception) -> Optional[str]:
    response = getattr(error, "response", None) or {}
    return response.get("Error", {}).get("Code")
