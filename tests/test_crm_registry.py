"""Tests for the CRM backend registry and factory.

Tests cover:
- BackendRegistry registration/lookup
- BackendFactory environment-based creation
- Remote configuration errors
"""

import os
from unittest.mock import patch

import pytest

from crmdesk.config import Config
from crmdesk.connectors.record_service import RecordServiceClient
from crmdesk.crm.backends.memory import InMemoryEntityStore
from crmdesk.crm.backends.remote import RemoteRecordBackend
from crmdesk.crm.models import EntityKind
from crmdesk.crm.registry import (
    BackendFactory,
    BackendRegistry,
    UnknownBackendError,
    make_record_client,
)

REMOTE_ENV = {
    "CRM_BACKEND": "remote",
    "CRM_RECORD_SERVICE_URL": "https://records.test/api",
    "CRM_PROJECT_ID": "proj-1",
    "CRM_PUBLIC_KEY": "pk-test",
}


class TestBackendRegistry:
    """Tests for BackendRegistry."""

    def test_builtin_backends_registered(self):
        """mock and remote are registered by default."""
        assert BackendRegistry.is_registered("mock")
        assert BackendRegistry.is_registered("remote")

    def test_get_case_insensitive(self):
        """get() is case-insensitive."""
        assert BackendRegistry.get("MOCK") is InMemoryEntityStore
        assert BackendRegistry.get("Remote") is RemoteRecordBackend

    def test_get_unknown_returns_none(self):
        """get() returns None for unknown backends."""
        assert BackendRegistry.get("nonexistent") is None

    def test_register_and_unregister(self):
        """Can register and unregister backends."""

        class TestBackend:
            pass

        BackendRegistry.register("test_temp", TestBackend)
        assert "test_temp" in BackendRegistry.list_backends()
        assert BackendRegistry.get("test_temp") is TestBackend

        BackendRegistry.unregister("test_temp")
        assert not BackendRegistry.is_registered("test_temp")


class TestBackendFactory:
    """Tests for BackendFactory."""

    def test_create_mock(self):
        """create() builds an in-memory store for the kind."""
        backend = BackendFactory.create("mock", EntityKind.DEAL, latency=(0, 0))
        assert isinstance(backend, InMemoryEntityStore)
        assert backend.kind == EntityKind.DEAL

    def test_create_unknown(self):
        """Unknown backend names raise UnknownBackendError."""
        with pytest.raises(UnknownBackendError) as exc_info:
            BackendFactory.create("sqlite", EntityKind.CONTACT)
        assert "sqlite" in str(exc_info.value)

    def test_unknown_backend_is_value_error(self):
        """UnknownBackendError can be caught as ValueError."""
        with pytest.raises(ValueError):
            BackendFactory.create("sqlite", EntityKind.CONTACT)

    def test_create_remote_requires_client(self):
        """create('remote') without a client is a TypeError."""
        with pytest.raises(TypeError):
            BackendFactory.create("remote", EntityKind.CONTACT)

    def test_from_config_default_is_mock(self, clean_env):
        """With no CRM_BACKEND the mock store is used."""
        backend = BackendFactory.from_config(EntityKind.CONTACT)
        assert isinstance(backend, InMemoryEntityStore)
        assert backend.latency == (0.15, 0.4)

    def test_from_config_latency(self, clean_env):
        """Mock latency comes from the environment in milliseconds."""
        with patch.dict(os.environ, {"CRM_MOCK_LATENCY_MIN_MS": "0", "CRM_MOCK_LATENCY_MAX_MS": "5"}):
            backend = BackendFactory.from_config(EntityKind.TASK)
        assert backend.latency == (0.0, 0.005)

    def test_from_config_remote(self, clean_env):
        """CRM_BACKEND=remote builds a configured RemoteRecordBackend."""
        with patch.dict(os.environ, {**REMOTE_ENV, "CRM_PAGE_SIZE": "25"}):
            backend = BackendFactory.from_config(EntityKind.CONTACT)

        assert isinstance(backend, RemoteRecordBackend)
        assert backend.page_size == 25
        assert backend.client.project_id == "proj-1"

    def test_from_config_remote_missing_settings(self, clean_env):
        """Remote without credentials fails with a clear ValueError."""
        with patch.dict(os.environ, {"CRM_BACKEND": "remote"}):
            with pytest.raises(ValueError) as exc_info:
                BackendFactory.from_config(EntityKind.CONTACT)
        message = str(exc_info.value)
        assert "CRM_RECORD_SERVICE_URL" in message
        assert "CRM_PUBLIC_KEY" in message

    def test_from_config_shared_client(self, clean_env):
        """A supplied client is used instead of building one."""
        client = RecordServiceClient("https://records.test", "p", "k")
        with patch.dict(os.environ, {"CRM_BACKEND": "remote"}):
            backend = BackendFactory.from_config(EntityKind.DEAL, client=client)
        assert backend.client is client

    def test_from_config_unknown(self, clean_env):
        """An unknown CRM_BACKEND raises UnknownBackendError."""
        with patch.dict(os.environ, {"CRM_BACKEND": "postgres"}):
            with pytest.raises(UnknownBackendError):
                BackendFactory.from_config(EntityKind.CONTACT)


class TestMakeRecordClient:
    """Tests for make_record_client."""

    def test_policy_from_config(self, clean_env):
        """Retries and timeout come from configuration."""
        with patch.dict(os.environ, {**REMOTE_ENV, "CRM_MAX_RETRIES": "1", "CRM_TIMEOUT_S": "5"}):
            client = make_record_client(Config())
        assert client.policy.max_retries == 1
        assert client.policy.read_timeout == 5.0
        assert client.auth.api_key == "pk-test"
