"""
Rackspace Cloud Files / OpenStack Swift adapter.

Uses python-swiftclient. Authentication is v1 (`X-Auth-User` /
`X-Auth-Key`), which both Cloud Files and plain Swift installs accept.
The v1 response carries the storage URL, the token and, on Cloud Files,
the CDN management URL used to CDN-enable containers.

ServiceNet: Rackspace serves the same storage API on an internal,
unbilled network at `snet-<storage host>`. When requested, the storage
URL from the auth response is rewritten to that host.

swiftclient retries failed requests by default. Retries are disabled
here: a failed round trip surfaces immediately as RemoteServiceError and
any retry policy belongs to the host.
"""

import logging
import mimetypes
from contextlib import contextmanager
from os import PathLike
from typing import Any, Callable, Iterator, Optional, Union
from urllib.parse import quote, urlsplit, urlunsplit

from ...core.attachments.models import ContainerHandle, ObjectHandle
from ...core.errors import DependencyUnavailableError, RemoteServiceError

logger = logging.getLogger(__name__)

PUBLIC_READ_ACL = ".r:*,.rlistings"


class SwiftStoreClient:
    """
    Authenticates against Cloud Files / Swift and hands out sessions.

    The client library is imported in the constructor so a missing
    install fails at backend activation, not on the first upload.
    """

    def __init__(
        self,
        connection_factory: Optional[Callable[..., Any]] = None,
        http_connection: Optional[Callable[..., Any]] = None,
    ) -> None:
        try:
            import requests
            from swiftclient import client as swift
            from swiftclient.exceptions import ClientException
        except ImportError as e:
            raise DependencyUnavailableError(
                "python-swiftclient is required for Cloud Files storage. "
                "Install with: pip install python-swiftclient"
            ) from e

        self.connection_factory = connection_factory or swift.Connection
        self.http_connection = http_connection or swift.http_connection
        self.client_exception = ClientException
        # requests exceptions are IOErrors too; both are listed for clarity
        self.errors = (ClientException, requests.exceptions.RequestException, OSError)

    def authenticate(
        self,
        username: str,
        api_key: str,
        use_servicenet: bool = False,
        auth_url: Optional[str] = None,
    ) -> "SwiftStoreSession":
        try:
            storage_url, token, cdn_management_url = self._auth_v1(auth_url, username, api_key)
        except self.errors as e:
            logger.error(
                "Cloud Files authentication failed",
                extra={"username": username, "auth_url": auth_url, "error": str(e)}
            )
            raise RemoteServiceError(
                f"Authentication failed: {e}",
                operation="authenticate",
                cause=e,
            ) from e

        if use_servicenet:
            storage_url = servicenet_url(storage_url)

        connection = self.connection_factory(
            authurl=auth_url,
            user=username,
            key=api_key,
            preauthurl=storage_url,
            preauthtoken=token,
            auth_version="1",
            retries=0,
        )

        logger.debug(
            "Cloud Files session ready",
            extra={"storage_url": storage_url, "cdn_enabled": bool(cdn_management_url)}
        )

        return SwiftStoreSession(
            connection,
            client=self,
            token=token,
            cdn_management_url=cdn_management_url,
        )

    def _auth_v1(self, auth_url: Optional[str], username: str, api_key: str) -> tuple:
        """Return (storage_url, token, cdn_management_url) from a v1 auth GET."""
        if not auth_url:
            raise self.client_exception("No auth_url configured")

        parsed, conn = self.http_connection(auth_url)
        conn.request(
            "GET",
            parsed.path or "/",
            "",
            {"X-Auth-User": username, "X-Auth-Key": api_key},
        )
        resp = conn.getresponse()
        resp.read()

        if resp.status < 200 or resp.status >= 300:
            raise self.client_exception(
                f"Auth GET failed with status {resp.status}",
                http_status=resp.status,
            )

        storage_url = resp.getheader("x-storage-url")
        token = resp.getheader("x-auth-token") or resp.getheader("x-storage-token")
        if not storage_url or not token:
            raise self.client_exception("Auth response has no storage URL or token")

        return storage_url, token, resp.getheader("x-cdn-management-url")


class SwiftStoreSession:
    """Container and object operations over one swiftclient Connection."""

    def __init__(
        self,
        connection: Any,
        client: SwiftStoreClient,
        token: Optional[str] = None,
        cdn_management_url: Optional[str] = None,
    ) -> None:
        self._connection = connection
        self._client = client
        self._token = token
        self._cdn_management_url = cdn_management_url.rstrip("/") if cdn_management_url else None

    def create_container(self, name: str) -> ContainerHandle:
        with self._remote("create_container", container=name):
            self._connection.put_container(name)

        base = f"{self._connection.url.rstrip('/')}/{quote(name, safe='')}"
        return ContainerHandle(name=name, cdn_url=base, cdn_ssl_url=_https(base))

    def make_public(self, container: ContainerHandle) -> None:
        """
        Publish a container and record its public endpoints.

        On Cloud Files the container is CDN-enabled through the CDN
        management endpoint, which also reports the CDN URIs. Plain Swift
        has no CDN: the container gets a public read ACL and keeps the
        storage URL already stored on the handle.
        """
        if self._cdn_management_url is None:
            with self._remote("make_public", container=container.name):
                self._connection.post_container(
                    container.name,
                    headers={"X-Container-Read": PUBLIC_READ_ACL},
                )
            return

        url = f"{self._cdn_management_url}/{quote(container.name, safe='')}"
        with self._remote("make_public", container=container.name):
            self._cdn_request("PUT", url, {"X-CDN-Enabled": "True"})
            headers = self._cdn_request("HEAD", url)

        cdn_uri = headers.get("x-cdn-uri")
        if not cdn_uri:
            raise RemoteServiceError(
                f"CDN-enabled container {container.name} reported no X-Cdn-Uri",
                operation="make_public",
            )
        container.cdn_url = cdn_uri
        container.cdn_ssl_url = headers.get("x-cdn-ssl-uri") or _https(cdn_uri)

    def object_exists(self, container: ContainerHandle, path: str) -> bool:
        try:
            self._connection.head_object(container.name, path)
        except self._client.errors as e:
            if _is_not_found(e):
                return False
            raise self._wrap(e, "object_exists", container.name, path) from e
        return True

    def read_object(self, container: ContainerHandle, path: str) -> bytes:
        with self._remote("read_object", container=container.name, path=path):
            _headers, body = self._connection.get_object(container.name, path)
        return body

    def create_object(self, container: ContainerHandle, path: str) -> ObjectHandle:
        # Swift creates objects on upload; nothing to do remotely yet
        return ObjectHandle(container=container, path=path)

    def load_from_file(
        self,
        obj: ObjectHandle,
        local_path: Union[str, PathLike],
    ) -> None:
        content_type, _encoding = mimetypes.guess_type(str(local_path))
        if content_type is None:
            content_type, _encoding = mimetypes.guess_type(obj.path)

        with self._remote("load_from_file", container=obj.container.name, path=obj.path):
            with open(local_path, "rb") as contents:
                self._connection.put_object(
                    obj.container.name,
                    obj.path,
                    contents=contents,
                    content_type=content_type,
                )

    def delete_object(self, container: ContainerHandle, path: str) -> None:
        try:
            self._connection.delete_object(container.name, path)
        except self._client.errors as e:
            if _is_not_found(e):
                logger.debug(
                    "Delete of missing object ignored",
                    extra={"container": container.name, "path": path}
                )
                return
            raise self._wrap(e, "delete_object", container.name, path) from e

    # ------------------------------------------------------------------

    def _cdn_request(self, method: str, url: str, headers: Optional[dict] = None) -> dict:
        """Send one request to the CDN management API; return lowercased headers."""
        parsed, conn = self._client.http_connection(url)
        request_headers = {"X-Auth-Token": self._token}
        request_headers.update(headers or {})
        conn.request(method, parsed.path, "", request_headers)
        resp = conn.getresponse()
        resp.read()

        if resp.status < 200 or resp.status >= 300:
            raise self._client.client_exception(
                f"CDN {method} {parsed.path} failed with status {resp.status}",
                http_status=resp.status,
            )

        return {key.lower(): value for key, value in resp.getheaders()}

    @contextmanager
    def _remote(
        self,
        operation: str,
        container: str,
        path: Optional[str] = None,
    ) -> Iterator[None]:
        """Translate client, transport and local I/O errors raised inside the block."""
        try:
            yield
        except self._client.errors as e:
            raise self._wrap(e, operation, container, path) from e

    def _wrap(
        self,
        error: Exception,
        operation: str,
        container: str,
        path: Optional[str] = None,
    ) -> RemoteServiceError:
        logger.error(
            "Cloud Files request failed",
            extra={
                "operation": operation,
                "container": container,
                "path": path,
                "status": getattr(error, "http_status", None),
                "error": str(error),
            }
        )
        return RemoteServiceError(
            f"{operation} failed: {error}",
            operation=operation,
            cause=error,
        )


def servicenet_url(storage_url: str) -> str:
    """Rewrite a storage URL to its ServiceNet host (`snet-<host>`)."""
    parts = urlsplit(storage_url)
    if parts.netloc.startswith("snet-"):
        return storage_url
    return urlunsplit((parts.scheme, f"snet-{parts.netloc}") + tuple(parts[2:]))


def _is_not_found(error: Exception) -> bool:
    return getattr(error, "http_status", None) == 404


def _https(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit(("https",) + tuple(parts[1:]))
