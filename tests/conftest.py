"""
Shared fixtures.

Every test gets a fresh in-memory store and runtime, so container caches
and sessions never leak between tests.
"""

from dataclasses import dataclass
from typing import Any

import pytest

from cloudattach.config.settings import Settings
from cloudattach.core.attachments.runtime import StorageRuntime
from cloudattach.infrastructure.storage.client import MemoryStoreClient


@dataclass
class StubAttachment:
    """Minimal host attachment: paths are prefix/style/filename."""
    instance: Any = None
    default_style: str = "original"
    prefix: str = "avatars/1"
    filename: str = "photo.jpg"

    def path(self, style: str) -> str:
        return f"{self.prefix}/{style}/{self.filename}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        store_backend="memory",
        cloudfiles_credentials=None,
        default_container=None,
    )


@pytest.fixture
def memory_client() -> MemoryStoreClient:
    return MemoryStoreClient()


@pytest.fixture
def runtime(memory_client, settings) -> StorageRuntime:
    return StorageRuntime(memory_client, settings)


@pytest.fixture
def credentials() -> dict:
    return {"username": "hayley", "api_key": "a7f"}


@pytest.fixture
def host() -> StubAttachment:
    return StubAttachment()


@pytest.fixture
def local_file(tmp_path):
    """Factory writing bytes to a local file and returning its path."""
    def _make(content: bytes, name: str = "upload.jpg"):
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return _make


@pytest.fixture
def make_host():
    """Build stub attachments with custom prefixes or owning records."""
    return StubAttachment
