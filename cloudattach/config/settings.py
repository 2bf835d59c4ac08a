"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Pydantic's BaseSettings validates types at startup, so a bad store backend
or malformed flag fails before any attachment is activated.

The memory backend enables local development without a storage account.
"""

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_AUTH_URL = "https://auth.api.rackspacecloud.com/v1.0"
DEFAULT_PATH_TEMPLATE = ":attachment/:id/:style/:basename.:extension"


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Per-attachment options (credentials, container, path, ssl) override
    the defaults defined here.
    """

    environment: str = Field(
        default="development",
        description="Deployment environment. Selects the matching block of environment-keyed credentials."
    )

    # Remote store
    store_backend: Literal["swift", "s3", "memory"] = Field(
        default="swift",
        description="Remote store adapter: swift (Cloud Files), s3 (S3-compatible) or memory."
    )
    default_auth_url: str = Field(
        default=DEFAULT_AUTH_URL,
        description="Authentication endpoint used when credentials carry no auth_url."
    )
    s3_region: str = Field(
        default="us-east-1",
        description="Region passed to the S3 client"
    )

    # Attachment defaults
    cloudfiles_credentials: Optional[str] = Field(
        default=None,
        description="Path to a YAML credentials file used when an attachment passes none."
    )
    default_container: Optional[str] = Field(
        default=None,
        description="Container name used when neither options nor credentials name one."
    )
    default_path_template: str = Field(
        default=DEFAULT_PATH_TEMPLATE,
        description="Object path template used when an attachment passes no path option."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_required_fields(self) -> list[str]:
        """
        List settings that are missing or unusable for the chosen backend.

        Credentials may also arrive per attachment, so an unset credentials
        file is not an error; a configured path that does not exist is.
        """
        missing = []

        if self.store_backend == "memory":
            return missing

        if self.store_backend == "swift" and not self.default_auth_url:
            missing.append("DEFAULT_AUTH_URL")
        if self.store_backend == "s3" and not self.s3_region:
            missing.append("S3_REGION")
        if self.cloudfiles_credentials and not os.path.isfile(self.cloudfiles_credentials):
            missing.append("CLOUDFILES_CREDENTIALS (file not found)")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
