"""
Remote store contract.

Every call here is a blocking network round trip with no built-in
timeout or retry. Implementations raise RemoteServiceError for any
transport, auth or server failure.
"""

from os import PathLike
from typing import Optional, Protocol, Union

from .models import ContainerHandle, ObjectHandle


class RemoteStoreSession(Protocol):
    """
    An authenticated session against one storage account.

    Using a Protocol here means the registry and backend don't care
    whether they talk to Cloud Files, an S3-compatible store, or memory.
    """

    def create_container(self, name: str) -> ContainerHandle:
        """Create (or open) a container and return its handle."""
        ...

    def make_public(self, container: ContainerHandle) -> None:
        """Allow anonymous reads and fill in the container's CDN URLs."""
        ...

    def object_exists(self, container: ContainerHandle, path: str) -> bool:
        ...

    def read_object(self, container: ContainerHandle, path: str) -> bytes:
        """Return object bytes. A missing object is a RemoteServiceError."""
        ...

    def create_object(self, container: ContainerHandle, path: str) -> ObjectHandle:
        """Address a new or existing object without transferring data."""
        ...

    def load_from_file(
        self,
        obj: ObjectHandle,
        local_path: Union[str, PathLike],
    ) -> None:
        """Upload a local file's bytes as the object's content."""
        ...

    def delete_object(self, container: ContainerHandle, path: str) -> None:
        """Delete an object. Deleting a missing object succeeds."""
        ...


class RemoteStoreClient(Protocol):
    """Entry point that turns account credentials into a session."""

    def authenticate(
        self,
        username: str,
        api_key: str,
        use_servicenet: bool = False,
        auth_url: Optional[str] = None,
    ) -> RemoteStoreSession:
        ...
