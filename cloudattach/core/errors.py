"""
Error taxonomy for attachment storage.

Configuration and dependency errors surface at activation time and are
fatal to backend setup. Remote errors surface from whichever operation
touched the remote store.
"""

from typing import Optional


class CloudAttachError(Exception):
    """Base class for all cloudattach errors."""
    pass


class ConfigurationError(CloudAttachError):
    """Raised when credentials or backend options are missing or malformed."""
    pass


class RemoteServiceError(CloudAttachError):
    """
    Raised when a remote store operation fails.

    Covers authentication, quota, network and not-found-on-read failures.
    The failing operation name and the underlying exception are kept so
    callers can report which round trip failed.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class DependencyUnavailableError(CloudAttachError, ImportError):
    """Raised when a remote store client library is not installed."""
    pass
