"""
Domain models for remote attachment storage.

These models describe credentials, containers and stored objects without
depending on any storage client library. Adapters translate their own
handles into these types.
"""

import hashlib
from dataclasses import dataclass
from os import PathLike
from typing import IO, Any, Mapping, Optional, Union

from ..errors import ConfigurationError


@dataclass(frozen=True)
class Credentials:
    """
    Account credentials for the remote store.

    Frozen because a resolved credential set never changes during an
    activation.
    """
    username: str
    api_key: str
    servicenet: bool = False
    auth_url: Optional[str] = None
    container_name: Optional[str] = None
    cname: Optional[str] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Credentials":
        """Build credentials from a mapping with normalized keys."""
        missing = [key for key in ("username", "api_key") if not values.get(key)]
        if missing:
            raise ConfigurationError(
                f"Credentials are missing required keys: {', '.join(missing)}"
            )

        return cls(
            username=str(values["username"]),
            api_key=str(values["api_key"]),
            servicenet=_as_bool(values.get("servicenet", False)),
            auth_url=values.get("auth_url") or None,
            container_name=values.get("container") or values.get("container_name") or None,
            cname=values.get("cname") or None,
        )

    @property
    def account_key(self) -> tuple[str, str, Optional[str], bool]:
        """
        Identity of the account session these credentials open.

        Includes a digest of the API key, so a rotated key opens a new
        session instead of reusing one authenticated with the old key.
        """
        key_digest = hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()
        return (self.username, key_digest, self.auth_url, self.servicenet)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ---------------------------------------------------------------------------
# Credential Sources
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PathSource:
    """Credentials stored in a YAML file on disk."""
    path: Union[str, PathLike]


@dataclass(frozen=True)
class StreamSource:
    """Credentials readable from an open text or binary stream."""
    stream: IO


@dataclass(frozen=True)
class InlineSource:
    """Credentials already parsed into a mapping."""
    values: Mapping[str, Any]


CredentialSource = Union[PathSource, StreamSource, InlineSource]


def credential_source(raw: Any) -> CredentialSource:
    """
    Wrap a raw host option value in its credential source variant.

    Hosts pass paths, open files or dicts as the credentials option.
    This is the only place that inspects the raw type; everything past
    this point dispatches on the variant.
    """
    if isinstance(raw, (PathSource, StreamSource, InlineSource)):
        return raw
    if isinstance(raw, (str, PathLike)):
        return PathSource(raw)
    if isinstance(raw, Mapping):
        return InlineSource(raw)
    if hasattr(raw, "read"):
        return StreamSource(raw)
    raise ConfigurationError("Credentials are not a path, file, or mapping.")


# ---------------------------------------------------------------------------
# Remote Handles
# ---------------------------------------------------------------------------

@dataclass
class ContainerHandle:
    """
    A remote container (bucket) and its CDN endpoints.

    `native` carries whatever the adapter needs to address the container
    again; core code never looks inside it.
    """
    name: str
    cdn_url: str
    cdn_ssl_url: str
    public: bool = False
    native: Any = None


@dataclass(frozen=True)
class ObjectHandle:
    """A stored object addressed by container and path."""
    container: ContainerHandle
    path: str
