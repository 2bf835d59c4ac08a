"""
Credential resolution.

Credentials come from a YAML file, an open stream, or an inline mapping.
Any of them may be environment-keyed, like a database.yml:

    development:
      username: hayley
      api_key: a7f...
    production:
      username: minter
      api_key: 87k...
      servicenet: true
      auth_url: https://lon.auth.api.rackspacecloud.com/v1.0
      cname: http://cdn.myapp.com

or flat, in which case the same account is used in every environment.
"""

import logging
from typing import Any, Mapping

import yaml

from ..errors import ConfigurationError
from .models import (
    CredentialSource,
    Credentials,
    InlineSource,
    PathSource,
    StreamSource,
)

logger = logging.getLogger(__name__)


def normalize_key(key: Any) -> str:
    """Canonical form of a credential key: `API-Key` and `api_key` match."""
    return str(key).strip().lower().replace("-", "_")


class CredentialResolver:
    """
    Resolve a credential source into a Credentials record.

    Nothing is cached here; each backend activation resolves once and
    keeps the result.
    """

    def __init__(self, environment: str) -> None:
        self._environment = environment

    def resolve(self, source: CredentialSource) -> Credentials:
        """Load, pick the environment block, normalize keys, validate."""
        parsed = self.load(source)
        values = self.select_environment(parsed)
        return Credentials.from_mapping(values)

    def load(self, source: CredentialSource) -> Mapping[str, Any]:
        """Parse the raw structure behind a credential source."""
        match source:
            case PathSource(path=path):
                try:
                    with open(path, "r", encoding="utf-8") as handle:
                        parsed = yaml.safe_load(handle)
                except OSError as e:
                    raise ConfigurationError(
                        f"Cannot read credentials file {path}: {e}"
                    ) from e
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Credentials file {path} is not valid YAML: {e}"
                    ) from e
            case StreamSource(stream=stream):
                try:
                    parsed = yaml.safe_load(stream)
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Credentials stream is not valid YAML: {e}"
                    ) from e
            case InlineSource(values=values):
                parsed = values
            case _:
                raise ConfigurationError("Credentials are not a path, file, or mapping.")

        if not isinstance(parsed, Mapping):
            raise ConfigurationError("Credentials must be a key/value mapping.")

        return parsed

    def select_environment(self, parsed: Mapping[str, Any]) -> dict[str, Any]:
        """
        Use the block keyed by the current environment if there is one.

        Falls back to the whole mapping, treated as flat credentials.
        """
        normalized = {normalize_key(key): value for key, value in parsed.items()}
        scoped = normalized.get(normalize_key(self._environment))

        if isinstance(scoped, Mapping):
            logger.debug(
                "Using environment-scoped credentials",
                extra={"environment": self._environment}
            )
            return {normalize_key(key): value for key, value in scoped.items()}

        return normalized
