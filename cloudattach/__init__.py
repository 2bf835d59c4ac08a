"""
cloudattach - remote object storage for file attachments.

This package contains:
- core: Framework-agnostic attachment storage logic (credentials,
  container registry, URL building, deferred write/delete queue)
- infrastructure: Remote object store adapters (Swift/Cloud Files, S3, memory)
- config: Application configuration
"""

__version__ = "0.1.0"
