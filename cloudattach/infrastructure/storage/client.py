"""
Remote store clients for attachment storage.

The remote store contract lives in cloudattach.core.attachments.store.
Real adapters are in swift.py (Cloud Files) and s3.py; this module holds
the in-memory store and the factory that picks one from settings.

The memory store keeps containers in a dict, enabling the whole backend
to run without provisioning a storage account.
"""

import logging
import threading
from collections import Counter
from os import PathLike
from typing import Mapping, Optional, Union

from ...config.settings import Settings
from ...core.attachments.models import ContainerHandle, ObjectHandle
from ...core.attachments.store import RemoteStoreClient
from ...core.errors import ConfigurationError, RemoteServiceError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# In-memory store for local development and tests
# ---------------------------------------------------------------------------

class MemoryStoreClient:
    """
    In-memory remote store.

    Containers and objects live in dictionaries shared by every session
    the client hands out. Call counters let tests assert how many round
    trips a flow would have made.

    Not suitable for production.
    """

    def __init__(
        self,
        accounts: Optional[Mapping[str, str]] = None,
        cdn_host: str = "cdn.memory.invalid",
    ) -> None:
        # accounts: username -> api_key; None accepts any credentials
        self.accounts = dict(accounts) if accounts is not None else None
        self.cdn_host = cdn_host
        self.containers: dict[str, dict[str, bytes]] = {}
        self.public: set[str] = set()
        self.calls: Counter = Counter()
        self.lock = threading.Lock()
        logger.info("Initialized memory store client (in-memory)")

    def authenticate(
        self,
        username: str,
        api_key: str,
        use_servicenet: bool = False,
        auth_url: Optional[str] = None,
    ) -> "MemoryStoreSession":
        self.calls["authenticate"] += 1
        if self.accounts is not None and self.accounts.get(username) != api_key:
            raise RemoteServiceError(
                f"Authentication failed for {username}",
                operation="authenticate",
            )
        return MemoryStoreSession(self)


class MemoryStoreSession:
    """Session over a MemoryStoreClient's shared dictionaries."""

    def __init__(self, client: MemoryStoreClient) -> None:
        self._client = client

    def create_container(self, name: str) -> ContainerHandle:
        with self._client.lock:
            self._client.calls["create_container"] += 1
            self._client.containers.setdefault(name, {})
        return ContainerHandle(
            name=name,
            cdn_url=f"http://{self._client.cdn_host}/{name}",
            cdn_ssl_url=f"https://{self._client.cdn_host}/{name}",
        )

    def make_public(self, container: ContainerHandle) -> None:
        with self._client.lock:
            self._client.calls["make_public"] += 1
            self._client.public.add(container.name)

    def object_exists(self, container: ContainerHandle, path: str) -> bool:
        self._client.calls["object_exists"] += 1
        return path in self._objects(container, "object_exists")

    def read_object(self, container: ContainerHandle, path: str) -> bytes:
        self._client.calls["read_object"] += 1
        objects = self._objects(container, "read_object")
        if path not in objects:
            raise RemoteServiceError(
                f"Object not found: {container.name}/{path}",
                operation="read_object",
            )
        return objects[path]

    def create_object(self, container: ContainerHandle, path: str) -> ObjectHandle:
        self._client.calls["create_object"] += 1
        return ObjectHandle(container=container, path=path)

    def load_from_file(
        self,
        obj: ObjectHandle,
        local_path: Union[str, PathLike],
    ) -> None:
        self._client.calls["load_from_file"] += 1
        try:
            with open(local_path, "rb") as handle:
                data = handle.read()
        except OSError as e:
            raise RemoteServiceError(
                f"Cannot read {local_path} for upload: {e}",
                operation="load_from_file",
                cause=e,
            ) from e

        objects = self._objects(obj.container, "load_from_file")
        with self._client.lock:
            objects[obj.path] = data

        logger.debug(
            "Stored object in memory store",
            extra={"container": obj.container.name, "path": obj.path, "size_bytes": len(data)}
        )

    def delete_object(self, container: ContainerHandle, path: str) -> None:
        self._client.calls["delete_object"] += 1
        objects = self._objects(container, "delete_object")
        with self._client.lock:
            removed = objects.pop(path, None)
        if removed is None:
            logger.debug(
                "Delete of missing object ignored",
                extra={"container": container.name, "path": path}
            )

    def _objects(self, container: ContainerHandle, operation: str) -> dict[str, bytes]:
        objects = self._client.containers.get(container.name)
        if objects is None:
            raise RemoteServiceError(
                f"Container not found: {container.name}",
                operation=operation,
            )
        return objects


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_store_client(settings: Settings) -> RemoteStoreClient:
    """
    Create the remote store client named by settings.store_backend.

    Real adapters are imported here, not at module level, so the memory
    backend needs neither python-swiftclient nor boto3.
    """
    backend = settings.store_backend

    if backend == "memory":
        return MemoryStoreClient()

    if backend == "swift":
        from .swift import SwiftStoreClient
        return SwiftStoreClient()

    if backend == "s3":
        from .s3 import S3StoreClient
        return S3StoreClient(region=settings.s3_region)

    raise ConfigurationError(f"Unknown store backend: {backend}")
