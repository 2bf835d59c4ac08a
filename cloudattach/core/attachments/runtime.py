"""
Process-wide storage runtime.

Owns the shared mutable state: one authenticated session per account and
one container registry per session. Built once at process start (or once
per test) and handed to every backend, instead of living in globals.
"""

import logging
import threading
from functools import lru_cache
from typing import Optional

from ...config.settings import Settings, get_settings
from ..errors import ConfigurationError
from .models import Credentials
from .registry import ContainerRegistry
from .store import RemoteStoreClient, RemoteStoreSession

logger = logging.getLogger(__name__)


class StorageRuntime:
    """Shared sessions and container registries, keyed by account."""

    def __init__(
        self,
        client: RemoteStoreClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.client = client
        self.settings = settings or get_settings()
        self._registries: dict[tuple, ContainerRegistry] = {}
        self._lock = threading.Lock()

    def session(self, credentials: Credentials) -> RemoteStoreSession:
        return self.registry(credentials).session

    def registry(self, credentials: Credentials) -> ContainerRegistry:
        """
        Registry for the account behind `credentials`.

        Authenticates on first use of an account. Held under the runtime
        lock so concurrent first requests share one session.
        """
        key = credentials.account_key
        registry = self._registries.get(key)
        if registry is not None:
            return registry

        with self._lock:
            registry = self._registries.get(key)
            if registry is None:
                auth_url = credentials.auth_url or self.settings.default_auth_url
                session = self.client.authenticate(
                    credentials.username,
                    credentials.api_key,
                    use_servicenet=credentials.servicenet,
                    auth_url=auth_url,
                )
                registry = ContainerRegistry(session)
                self._registries[key] = registry

                logger.info(
                    "Authenticated storage session",
                    extra={
                        "username": credentials.username,
                        "auth_url": auth_url,
                        "servicenet": credentials.servicenet,
                    }
                )

        return registry


@lru_cache()
def get_runtime() -> StorageRuntime:
    """
    Get the process-wide runtime built from settings.

    Fails fast with ConfigurationError when settings are incomplete for
    the chosen backend. For tests, construct a StorageRuntime directly
    around a MemoryStoreClient, or call get_runtime.cache_clear().
    """
    from ...infrastructure.storage.client import create_store_client

    settings = get_settings()

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing_fields)}"
        )

    return StorageRuntime(create_store_client(settings), settings)
