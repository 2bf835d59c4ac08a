"""Unit tests for settings, the store factory and the shared runtime."""

import logging

import pytest

from cloudattach.config.logging_setup import configure_logging
from cloudattach.config.settings import DEFAULT_AUTH_URL, Settings, get_settings
from cloudattach.core.attachments.models import Credentials
from cloudattach.core.attachments import runtime as runtime_module
from cloudattach.core.attachments.runtime import StorageRuntime, get_runtime
from cloudattach.core.errors import ConfigurationError
from cloudattach.infrastructure.storage.client import MemoryStoreClient, create_store_client


class RecordingClient(MemoryStoreClient):
    """Memory client that remembers authentication arguments."""

    def __init__(self):
        super().__init__()
        self.auth_args = []

    def authenticate(self, username, api_key, use_servicenet=False, auth_url=None):
        self.auth_args.append((username, api_key, use_servicenet, auth_url))
        return super().authenticate(username, api_key, use_servicenet, auth_url)


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("ENVIRONMENT", "STORE_BACKEND", "DEFAULT_AUTH_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.store_backend == "swift"
        assert settings.default_auth_url == DEFAULT_AUTH_URL

    def test_environment_variables_override(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("STORE_BACKEND", "memory")

        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.store_backend == "memory"

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()

    def test_memory_backend_needs_nothing(self, settings):
        assert settings.validate_required_fields() == []

    def test_per_attachment_credentials_need_no_file(self):
        settings = Settings(_env_file=None, store_backend="swift", cloudfiles_credentials=None)

        assert settings.validate_required_fields() == []

    def test_missing_credentials_file_is_reported(self, tmp_path):
        settings = Settings(
            _env_file=None,
            store_backend="swift",
            cloudfiles_credentials=str(tmp_path / "missing.yml"),
        )

        assert settings.validate_required_fields() == ["CLOUDFILES_CREDENTIALS (file not found)"]

    def test_swift_needs_auth_url(self):
        settings = Settings(_env_file=None, store_backend="swift", default_auth_url="")

        assert "DEFAULT_AUTH_URL" in settings.validate_required_fields()

    def test_configure_logging_applies_level(self, settings, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        settings.log_level = "debug"

        configure_logging(settings)

        assert calls[0]["level"] == logging.DEBUG


class TestCreateStoreClient:

    def test_memory_backend(self, settings):
        assert isinstance(create_store_client(settings), MemoryStoreClient)

    def test_s3_backend(self, settings):
        from cloudattach.infrastructure.storage.s3 import S3StoreClient

        settings.store_backend = "s3"

        assert isinstance(create_store_client(settings), S3StoreClient)

    def test_swift_backend(self, settings):
        from cloudattach.infrastructure.storage.swift import SwiftStoreClient

        settings.store_backend = "swift"

        assert isinstance(create_store_client(settings), SwiftStoreClient)

    def test_unknown_backend_is_config_error(self):
        settings = Settings.model_construct(store_backend="ftp")

        with pytest.raises(ConfigurationError, match="ftp"):
            create_store_client(settings)


class TestStorageRuntime:

    def test_one_session_per_account(self, settings):
        client = RecordingClient()
        runtime = StorageRuntime(client, settings)
        creds = Credentials(username="u", api_key="k")

        first = runtime.registry(creds)
        second = runtime.registry(Credentials(username="u", api_key="k", cname="http://x"))

        assert first is second
        assert runtime.session(creds) is first.session
        assert len(client.auth_args) == 1

    def test_distinct_accounts_get_distinct_registries(self, settings):
        runtime = StorageRuntime(RecordingClient(), settings)

        a = runtime.registry(Credentials(username="a", api_key="k"))
        b = runtime.registry(Credentials(username="b", api_key="k"))

        assert a is not b

    def test_default_auth_url_fills_in(self, settings):
        client = RecordingClient()
        runtime = StorageRuntime(client, settings)

        runtime.registry(Credentials(username="u", api_key="k", servicenet=True))

        assert client.auth_args == [("u", "k", True, DEFAULT_AUTH_URL)]

    def test_credentials_auth_url_wins(self, settings):
        client = RecordingClient()
        runtime = StorageRuntime(client, settings)

        runtime.registry(Credentials(
            username="u", api_key="k", auth_url="https://lon.auth.api.rackspacecloud.com/v1.0",
        ))

        assert client.auth_args[0][3] == "https://lon.auth.api.rackspacecloud.com/v1.0"

    def test_rotated_api_key_opens_new_session(self, settings):
        """A different key for the same user re-authenticates."""
        client = RecordingClient()
        runtime = StorageRuntime(client, settings)

        old = runtime.registry(Credentials(username="u", api_key="old-key"))
        new = runtime.registry(Credentials(username="u", api_key="new-key"))

        assert old is not new
        assert [args[1] for args in client.auth_args] == ["old-key", "new-key"]


class TestGetRuntime:
    """The process-wide runtime validates settings before it is built."""

    @pytest.fixture(autouse=True)
    def fresh_runtime(self):
        get_runtime.cache_clear()
        yield
        get_runtime.cache_clear()

    def test_incomplete_settings_fail_fast(self, monkeypatch):
        broken = Settings(_env_file=None, store_backend="swift", default_auth_url="")
        monkeypatch.setattr(runtime_module, "get_settings", lambda: broken)

        with pytest.raises(ConfigurationError, match="DEFAULT_AUTH_URL"):
            get_runtime()

    def test_valid_settings_build_cached_runtime(self, monkeypatch, settings):
        monkeypatch.setattr(runtime_module, "get_settings", lambda: settings)

        runtime = get_runtime()

        assert runtime is get_runtime()
        assert isinstance(runtime.client, MemoryStoreClient)
        assert runtime.settings is settings
