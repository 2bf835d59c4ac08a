"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Remote object stores (Cloud Files/Swift, S3-compatible, memory)

These wrappers translate between client library types and our domain models.
"""
