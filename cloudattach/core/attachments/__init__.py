"""
Attachment storage against a remote object store.

Contains the per-attachment backend, the deferred write/delete queue,
credential resolution, the container registry and URL building.
"""

from .backend import PATH_FILENAME_TOKEN, AttachmentHost, CloudFilesStorage
from .credentials import CredentialResolver
from .models import (
    ContainerHandle,
    CredentialSource,
    Credentials,
    InlineSource,
    ObjectHandle,
    PathSource,
    StreamSource,
    credential_source,
)
from .queue import WriteDeleteQueue
from .registry import ContainerRegistry
from .runtime import StorageRuntime, get_runtime
from .store import RemoteStoreClient, RemoteStoreSession
from .urls import UrlBuilder, encode_object_path

__all__ = [
    "PATH_FILENAME_TOKEN",
    "AttachmentHost",
    "CloudFilesStorage",
    "CredentialResolver",
    "ContainerHandle",
    "CredentialSource",
    "Credentials",
    "InlineSource",
    "ObjectHandle",
    "PathSource",
    "StreamSource",
    "credential_source",
    "WriteDeleteQueue",
    "ContainerRegistry",
    "StorageRuntime",
    "get_runtime",
    "RemoteStoreClient",
    "RemoteStoreSession",
    "UrlBuilder",
    "encode_object_path",
]
