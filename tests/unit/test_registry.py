"""
Unit tests for the container registry.

The registry must create and publish each container at most once, even
when many callers miss the cache at the same moment.
"""

import threading
import time

import pytest

from cloudattach.core.attachments.models import ContainerHandle
from cloudattach.core.attachments.registry import ContainerRegistry
from cloudattach.core.errors import RemoteServiceError


class SlowSession:
    """Session whose container creation takes long enough to race."""

    def __init__(self, delay: float = 0.05) -> None:
        self.delay = delay
        self.created: list[str] = []
        self.published: list[str] = []
        self._lock = threading.Lock()

    def create_container(self, name: str) -> ContainerHandle:
        with self._lock:
            self.created.append(name)
        time.sleep(self.delay)
        return ContainerHandle(
            name=name,
            cdn_url=f"http://cdn.example/{name}",
            cdn_ssl_url=f"https://cdn.example/{name}",
        )

    def make_public(self, container: ContainerHandle) -> None:
        self.published.append(container.name)


class FailingSession(SlowSession):

    def create_container(self, name: str) -> ContainerHandle:
        self.created.append(name)
        raise RemoteServiceError("quota exceeded", operation="create_container")


class TestGetOrCreate:

    def test_second_lookup_returns_cached_handle(self, memory_client):
        """Two lookups, one create call, same handle."""
        registry = ContainerRegistry(memory_client.authenticate("u", "k"))

        first = registry.get_or_create("uploads")
        second = registry.get_or_create("uploads")

        assert first is second
        assert memory_client.calls["create_container"] == 1

    def test_container_is_public_once_cached(self, memory_client):
        registry = ContainerRegistry(memory_client.authenticate("u", "k"))

        container = registry.get_or_create("uploads")

        assert container.public
        assert "uploads" in memory_client.public
        assert memory_client.calls["make_public"] == 1

    def test_distinct_names_get_distinct_containers(self):
        session = SlowSession(delay=0)
        registry = ContainerRegistry(session)

        registry.get_or_create("a")
        registry.get_or_create("b")

        assert session.created == ["a", "b"]
        assert len(registry) == 2
        assert "a" in registry

    def test_failed_create_propagates_and_is_not_cached(self):
        """The registry does not retry or cache a failed creation."""
        session = FailingSession()
        registry = ContainerRegistry(session)

        with pytest.raises(RemoteServiceError, match="quota"):
            registry.get_or_create("uploads")

        assert registry.get("uploads") is None
        assert session.published == []

    def test_concurrent_misses_create_once(self):
        """Callers racing on an uncached name trigger one creation."""
        session = SlowSession()
        registry = ContainerRegistry(session)
        workers = 8
        barrier = threading.Barrier(workers)
        results: list[ContainerHandle] = []
        results_lock = threading.Lock()

        def lookup():
            barrier.wait()
            container = registry.get_or_create("x")
            with results_lock:
                results.append(container)

        threads = [threading.Thread(target=lookup) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert session.created == ["x"]
        assert session.published == ["x"]
        assert len(results) == workers
        assert all(container is results[0] for container in results)
