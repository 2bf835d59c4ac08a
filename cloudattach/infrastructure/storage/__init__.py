"""
Remote object store adapters for attachment storage.

Supports Rackspace Cloud Files / OpenStack Swift and S3-compatible stores.
Includes an in-memory store for local development without credentials.
"""

from .client import MemoryStoreClient, MemoryStoreSession, create_store_client

__all__ = ["MemoryStoreClient", "MemoryStoreSession", "create_store_client"]
