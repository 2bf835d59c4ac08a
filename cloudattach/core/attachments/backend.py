"""
Cloud Files storage backend for attachments.

Stores attachment files in a remote container instead of on the local
filesystem. Files are served from the container's CDN.

Options understood by the backend (passed by the host per attachment):

* ``cloudfiles_credentials``: a path, an open file, or a mapping holding
  ``username`` and ``api_key``. Optional keys: ``servicenet`` (send traffic
  over the unbilled internal service network), ``auth_url`` (e.g. the UK
  endpoint or a non-Rackspace Swift install), ``container`` and ``cname``.
  May be environment-scoped, see cloudattach.core.attachments.credentials.
* ``container``: name of the container holding the files. Created and
  marked public if it does not exist. May be a callable taking the
  backend.
* ``path``: object path under the container. Keys should be unique, like
  filenames; ``/`` separators show up in the URL structure.
* ``ssl``: serve URLs over https. Either a bool or a callable taking the
  attachment's owning record.

Writes and deletes are queued and only reach the remote store on
flush_writes/flush_deletes. ``read`` and ``exists`` always go to the
remote store, so they do not see queued writes before a flush.
``to_file`` does return a queued write.
"""

import logging
import os
import tempfile
from os import PathLike
from typing import IO, Any, Callable, Mapping, Optional, Protocol, Union

from ..errors import ConfigurationError, RemoteServiceError
from .credentials import CredentialResolver
from .models import ContainerHandle, Credentials, credential_source
from .queue import LocalFile, WriteDeleteQueue
from .runtime import StorageRuntime, get_runtime
from .urls import UrlBuilder

logger = logging.getLogger(__name__)

PATH_FILENAME_TOKEN = ":cf_path_filename"


class AttachmentHost(Protocol):
    """
    What the backend needs from the host attachment object.

    `path(style)` is the host's interpolated object path for a style;
    `instance` is the record owning the attachment.
    """

    instance: Any
    default_style: str

    def path(self, style: str) -> str:
        ...


SslOption = Union[bool, Callable[[Any], bool]]


class CloudFilesStorage:
    """
    Per-attachment storage backend.

    Everything derived from configuration (credentials, container handle,
    CDN base URLs) is resolved once in the constructor; afterwards those
    are plain attribute reads.
    """

    interpolations: Mapping[str, Callable[[Any, str], str]] = {
        PATH_FILENAME_TOKEN.lstrip(":"): lambda attachment, style: attachment.path(style),
    }

    def __init__(
        self,
        host: AttachmentHost,
        options: Optional[Mapping[str, Any]] = None,
        runtime: Optional[StorageRuntime] = None,
    ) -> None:
        self.host = host
        self.options = dict(options or {})
        self.runtime = runtime or get_runtime()
        settings = self.runtime.settings

        self.credentials = self._resolve_credentials()
        self.container_name = self._resolve_container_name()

        self.registry = self.runtime.registry(self.credentials)
        self.container: ContainerHandle = self.registry.get_or_create(self.container_name)

        urls = UrlBuilder(self.credentials.cname)
        self.cdn_url = urls.build_base_url(self.container, use_ssl=False)
        self.ssl_url = urls.build_base_url(self.container, use_ssl=True)

        self._ssl: SslOption = self.options.get("ssl") or False
        self.path_template = self.options.get("path") or settings.default_path_template
        self.queue = WriteDeleteQueue()

        logger.debug(
            "Activated Cloud Files storage",
            extra={"container": self.container_name, "cdn_url": self.cdn_url}
        )

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def _resolve_credentials(self) -> Credentials:
        settings = self.runtime.settings
        raw = self.options.get("cloudfiles_credentials") or settings.cloudfiles_credentials
        if raw is None:
            raise ConfigurationError(
                "No cloudfiles_credentials option given and CLOUDFILES_CREDENTIALS is not set"
            )
        resolver = CredentialResolver(environment=settings.environment)
        return resolver.resolve(credential_source(raw))

    def _resolve_container_name(self) -> str:
        name = (
            self.options.get("container")
            or self.options.get("container_name")
            or self.credentials.container_name
            or self.runtime.settings.default_container
        )
        if callable(name):
            name = name(self)
        if not name:
            raise ConfigurationError("No container name configured")
        return str(name)

    # ------------------------------------------------------------------
    # Paths and URLs
    # ------------------------------------------------------------------

    def _style(self, style: Optional[str]) -> str:
        return style or self.host.default_style

    def path(self, style: Optional[str] = None) -> str:
        return self.host.path(self._style(style))

    def use_ssl(self) -> bool:
        """Evaluate the ssl option; predicates see the owning record."""
        if callable(self._ssl):
            return bool(self._ssl(self.host.instance))
        return bool(self._ssl)

    @property
    def url_template(self) -> str:
        base = self.ssl_url if self.use_ssl() else self.cdn_url
        return f"{base}/{PATH_FILENAME_TOKEN}"

    def url(self, style: Optional[str] = None) -> str:
        base = self.ssl_url if self.use_ssl() else self.cdn_url
        return UrlBuilder.object_url(base, self.path(style))

    # ------------------------------------------------------------------
    # Reads (always remote)
    # ------------------------------------------------------------------

    def exists(self, style: Optional[str] = None) -> bool:
        return self.registry.session.object_exists(self.container, self.path(style))

    def read(self, style: Optional[str] = None) -> bytes:
        return self.registry.session.read_object(self.container, self.path(style))

    def to_file(self, style: Optional[str] = None) -> Union[IO[bytes], LocalFile]:
        """
        Local file for a style.

        Returns the queued file itself when a write is pending. Otherwise
        downloads into a new temporary file, rewound to the start; the
        caller owns it and should close it, which also removes it.
        """
        style = self._style(style)
        pending = self.queue.pending_write(style)
        if pending is not None:
            return pending

        path = self.path(style)
        data = self.registry.session.read_object(self.container, path)

        basename, extension = os.path.splitext(os.path.basename(path))
        local = tempfile.NamedTemporaryFile(prefix=f"{basename}-", suffix=extension)
        try:
            local.write(data)
            local.seek(0)
        except OSError:
            local.close()
            raise
        return local

    to_io = to_file

    # ------------------------------------------------------------------
    # Deferred writes and deletes
    # ------------------------------------------------------------------

    def queue_write(self, style: str, local_file: LocalFile) -> None:
        self.queue.queue_write(style, local_file)

    def queue_delete(self, path: str) -> None:
        self.queue.queue_delete(path)

    def flush_writes(self) -> None:
        session = self.registry.session

        def upload(style: str, local_file: LocalFile) -> None:
            if hasattr(local_file, "flush"):
                local_file.flush()
            path = self.path(style)
            obj = session.create_object(self.container, path)
            session.load_from_file(obj, _local_path(local_file))
            logger.debug(
                "Uploaded attachment style",
                extra={"container": self.container_name, "style": style, "path": path}
            )

        try:
            self.queue.flush_writes(upload)
        except RemoteServiceError as e:
            logger.error(
                "Flushing writes failed",
                extra={
                    "container": self.container_name,
                    "operation": e.operation,
                    "pending": list(self.queue.pending_writes),
                }
            )
            raise

    def flush_deletes(self) -> None:
        session = self.registry.session

        def delete(path: str) -> None:
            session.delete_object(self.container, path)
            logger.debug(
                "Deleted attachment object",
                extra={"container": self.container_name, "path": path}
            )

        try:
            self.queue.flush_deletes(delete)
        except RemoteServiceError as e:
            logger.error(
                "Flushing deletes failed",
                extra={
                    "container": self.container_name,
                    "operation": e.operation,
                    "pending": self.queue.pending_deletes,
                }
            )
            raise


def _local_path(local_file: LocalFile) -> Union[str, PathLike]:
    """Filesystem path of a queued file or path."""
    if isinstance(local_file, (str, PathLike)):
        return local_file
    name = getattr(local_file, "name", None)
    if isinstance(name, (str, PathLike)):
        return name
    raise TypeError(
        f"Queued file for upload has no filesystem path: {local_file!r}"
    )
