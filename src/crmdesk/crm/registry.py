"""Backend Registry and Factory.

Provides a config-driven registry for entity backends.

Usage:
    # Backend from environment (CRM_BACKEND=mock|remote)
    backend = BackendFactory.from_config(EntityKind.CONTACT)

    # Or explicit name
    backend = BackendFactory.create("mock", EntityKind.DEAL, latency=(0, 0))

Environment:
    CRM_BACKEND=mock (default)
    CRM_RECORD_SERVICE_URL, CRM_PROJECT_ID, CRM_PUBLIC_KEY (remote only)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from crmdesk.config import BACKEND_MOCK, BACKEND_REMOTE, Config
from crmdesk.connectors.base import RequestPolicy
from crmdesk.connectors.record_service import RecordServiceClient
from crmdesk.crm.backends.base import CRMError
from crmdesk.crm.models import EntityKind

if TYPE_CHECKING:
    from crmdesk.crm.backends.base import BaseEntityBackend, EntityBackend

logger = logging.getLogger(__name__)


class UnknownBackendError(CRMError, ValueError):
    """Raised when a backend name is not registered."""

    pass


class BackendRegistry:
    """Registry of available backend classes.

    Backends register themselves at import time. A new storage option is
    added by implementing BaseEntityBackend and calling
    ``BackendRegistry.register("name", BackendClass)``.
    """

    _backends: Dict[str, Type[BaseEntityBackend]] = {}

    @classmethod
    def register(cls, name: str, backend_class: Type[BaseEntityBackend]) -> None:
        """Register a backend class under ``name`` (case-insensitive)."""
        cls._backends[name.lower()] = backend_class

    @classmethod
    def unregister(cls, name: str) -> None:
        """Unregister a backend (mainly for testing)."""
        cls._backends.pop(name.lower(), None)

    @classmethod
    def get(cls, name: str) -> Optional[Type[BaseEntityBackend]]:
        """Get a backend class by name, or None."""
        return cls._backends.get(name.lower())

    @classmethod
    def list_backends(cls) -> list[str]:
        """List all registered backend names."""
        return list(cls._backends.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if a backend is registered."""
        return name.lower() in cls._backends


def make_record_client(config: Config) -> RecordServiceClient:
    """Build a record-service client from configuration.

    Raises:
        ValueError: If URL, project id or public key is missing
    """
    settings = config.record_service
    missing = settings.missing()
    if missing:
        raise ValueError(
            f"Remote backend requires {', '.join(missing)}. "
            "Set them in the environment or .env, or use CRM_BACKEND=mock."
        )
    policy = RequestPolicy(max_retries=settings.max_retries, read_timeout=settings.timeout_s)
    return RecordServiceClient(
        base_url=settings.base_url,
        project_id=settings.project_id,
        api_key=settings.public_key,
        policy=policy,
    )


class BackendFactory:
    """Factory for creating backend instances from configuration."""

    DEFAULT_BACKEND = BACKEND_MOCK

    @classmethod
    def from_config(
        cls, kind: EntityKind, config: Optional[Config] = None, **kwargs: Any
    ) -> "EntityBackend":
        """Create the configured backend for one entity kind.

        Args:
            kind: Entity kind the backend will hold
            config: Configuration (read from environment if omitted)
            **kwargs: Overrides passed to the backend constructor. Pass
                ``client=`` to share one record-service client across kinds.

        Raises:
            UnknownBackendError: If CRM_BACKEND names no registered backend
            ValueError: If the remote backend is selected but not configured
        """
        config = config or Config()
        name = config.backend or cls.DEFAULT_BACKEND

        if name == BACKEND_MOCK:
            kwargs.setdefault("latency", config.mock_latency)
        elif name == BACKEND_REMOTE:
            if "client" not in kwargs:
                kwargs["client"] = make_record_client(config)
            kwargs.setdefault("page_size", config.record_service.page_size)

        logger.debug(f"Creating '{name}' backend for {EntityKind(kind).value}")
        return cls.create(name, kind, **kwargs)

    @classmethod
    def create(cls, name: str, kind: EntityKind, **kwargs: Any) -> "EntityBackend":
        """Create a backend instance by name.

        Raises:
            UnknownBackendError: If no backend is registered under ``name``
            TypeError: If "remote" is requested without a client
        """
        backend_class = BackendRegistry.get(name)
        if backend_class is None:
            available = BackendRegistry.list_backends()
            raise UnknownBackendError(f"Unknown CRM backend: '{name}'. Available: {available}")

        if name.lower() == BACKEND_REMOTE and "client" not in kwargs:
            raise TypeError(
                "BackendFactory.create('remote') requires client=RecordServiceClient(...). "
                "Use BackendFactory.from_config() to build one from the environment."
            )

        return backend_class(kind, **kwargs)


# =============================================================================
# Auto-register built-in backends on import
# =============================================================================


def _register_builtin_backends() -> None:
    from crmdesk.crm.backends.memory import InMemoryEntityStore
    from crmdesk.crm.backends.remote import RemoteRecordBackend

    BackendRegistry.register(BACKEND_MOCK, InMemoryEntityStore)
    BackendRegistry.register(BACKEND_REMOTE, RemoteRecordBackend)


_register_builtin_backends()
