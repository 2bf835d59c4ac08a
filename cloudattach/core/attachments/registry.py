"""
Container registry.

One registry per authenticated account, shared by every backend that uses
that account. A container is created and published at most once per name;
later lookups return the cached handle without a round trip.
"""

import logging
import threading
from typing import Optional

from .models import ContainerHandle
from .store import RemoteStoreSession

logger = logging.getLogger(__name__)


class ContainerRegistry:
    """
    Cache of container name -> handle with per-name creation locks.

    Cache hits take no lock. On a miss, only callers asking for the same
    name wait on each other; unrelated names are created concurrently.
    Visibility is not re-checked on a hit: a cached container was made
    public before it was cached.
    """

    def __init__(self, session: RemoteStoreSession) -> None:
        self._session = session
        self._containers: dict[str, ContainerHandle] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def session(self) -> RemoteStoreSession:
        return self._session

    def get_or_create(self, name: str) -> ContainerHandle:
        container = self._containers.get(name)
        if container is not None:
            logger.debug("Container cache hit", extra={"container": name})
            return container

        with self._lock_for(name):
            # Another caller may have finished creating it while we waited
            container = self._containers.get(name)
            if container is not None:
                return container

            container = self._session.create_container(name)
            self._session.make_public(container)
            container.public = True
            self._containers[name] = container

            logger.info(
                "Created public container",
                extra={"container": name, "cdn_url": container.cdn_url}
            )

            return container

    def get(self, name: str) -> Optional[ContainerHandle]:
        """Return the cached handle for `name`, or None."""
        return self._containers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._containers

    def __len__(self) -> int:
        return len(self._containers)

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock
