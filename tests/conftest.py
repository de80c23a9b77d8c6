"""Test configuration and fixtures."""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from crmdesk.connectors.base import NO_RETRY_POLICY, RequestPolicy
from crmdesk.connectors.record_service import RecordServiceClient
from crmdesk.crm.backends.memory import InMemoryEntityStore
from crmdesk.crm.models import EntityKind

# Variables read by Config; cleared so a developer's .env or shell does not leak in.
CRM_ENV_VARS = [
    "CRM_BACKEND",
    "CRM_MOCK_LATENCY_MIN_MS",
    "CRM_MOCK_LATENCY_MAX_MS",
    "CRM_RECORD_SERVICE_URL",
    "CRM_PROJECT_ID",
    "CRM_PUBLIC_KEY",
    "CRM_PAGE_SIZE",
    "CRM_MAX_RETRIES",
    "CRM_TIMEOUT_S",
    "CRM_LOG_LEVEL",
]

BASE_URL = "https://records.test/api"


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """Run with no CRM_* variables set and no .env in the working directory."""
    for name in CRM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def make_store() -> Callable[..., InMemoryEntityStore]:
    """Factory for zero-latency in-memory stores."""

    def _make(kind: EntityKind = EntityKind.CONTACT, records=None) -> InMemoryEntityStore:
        return InMemoryEntityStore(kind, records=records, latency=(0, 0))

    return _make


@pytest.fixture
def contact_store(make_store) -> InMemoryEntityStore:
    """Empty zero-latency contact store."""
    return make_store(EntityKind.CONTACT)


class RecordServiceStub:
    """Scripted record service for httpx.MockTransport.

    Responses are queued per (method, path suffix); every request is kept in
    ``requests`` with its decoded JSON body.
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._responses: Dict[tuple, List[httpx.Response]] = {}

    def add(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """Queue a response for ``method`` on a path ending with ``path``."""
        if payload is not None:
            response = httpx.Response(status_code, json=payload, headers=headers)
        else:
            response = httpx.Response(status_code, headers=headers)
        self._responses.setdefault((method, path), []).append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            {
                "method": request.method,
                "path": request.url.path,
                "headers": request.headers,
                "json": body,
            }
        )
        for (method, path), queue in self._responses.items():
            if method == request.method and request.url.path.endswith(path) and queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(500, json={"success": False, "message": "no stub"})

    @property
    def last(self) -> Dict[str, Any]:
        return self.requests[-1]


@pytest.fixture
def service_stub() -> RecordServiceStub:
    """Scripted record service."""
    return RecordServiceStub()


@pytest.fixture
def record_client(service_stub) -> RecordServiceClient:
    """RecordServiceClient wired to the scripted service, without retries."""
    return RecordServiceClient(
        base_url=BASE_URL,
        project_id="proj-1",
        api_key="pk-test",
        policy=NO_RETRY_POLICY,
        transport=httpx.MockTransport(service_stub.handler),
    )


@pytest.fixture
def retrying_client(service_stub) -> RecordServiceClient:
    """RecordServiceClient wired to the scripted service, one immediate retry."""
    return RecordServiceClient(
        base_url=BASE_URL,
        project_id="proj-1",
        api_key="pk-test",
        policy=RequestPolicy(max_retries=1, retry_delay=0.0),
        transport=httpx.MockTransport(service_stub.handler),
    )
