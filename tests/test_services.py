"""Tests for the entity service facades and the service container."""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest

from crmdesk.config import Config
from crmdesk.connectors.base import NO_RETRY_POLICY
from crmdesk.connectors.record_service import RecordServiceClient
from crmdesk.crm.backends.base import RecordNotFoundError, RecordValidationError
from crmdesk.crm.backends.memory import InMemoryEntityStore
from crmdesk.crm.backends.remote import RemoteRecordBackend
from crmdesk.crm.models import ActivityType, DealStage, EntityKind
from crmdesk.crm.services import (
    ActivityService,
    CommentService,
    ContactService,
    DealService,
    TaskService,
    build_services,
)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def services(clean_env):
    """Seeded services on zero-latency mock stores."""
    return build_services(Config(), seed=True, latency=(0, 0))


class TestEntityService:
    """Tests for the shared facade behavior."""

    def test_kind_mismatch_rejected(self, make_store):
        """A service refuses a backend for another kind."""
        with pytest.raises(ValueError):
            DealService(make_store(EntityKind.CONTACT))

    def test_crud_delegates(self, make_store):
        """CRUD calls pass straight through to the backend."""
        service = ContactService(make_store(EntityKind.CONTACT))

        async def scenario():
            created = await service.create({"name": "A"})
            await service.update(created.id, {"company": "X"})
            fetched = await service.get_by_id(created.id)
            assert fetched.company == "X"
            assert await service.delete(created.id) is True
            return await service.get_all()

        assert run(scenario()) == []

    def test_not_found_propagates(self, make_store):
        """Backend errors reach the caller unchanged."""
        service = ContactService(make_store(EntityKind.CONTACT))
        with pytest.raises(RecordNotFoundError):
            run(service.get_by_id(1))

    def test_get_by_contact_id(self, services):
        """Child services filter by contact."""
        deals = run(services.deals.get_by_contact_id(1))
        assert sorted(d.id for d in deals) == [1, 4]
        assert run(services.tasks.get_by_contact_id(42)) == []


class TestContactService:
    """Tests for ContactService."""

    def test_search_by_company(self, services):
        """Search matches company case-insensitively."""
        results = run(services.contacts.search("TECHCORP"))
        assert [c.name for c in results] == ["Sarah Johnson"]

    def test_search_by_email(self, services):
        """Search matches email."""
        assert [c.id for c in run(services.contacts.search("innovate.io"))] == [2]

    def test_search_empty_term(self, services):
        """An empty term returns everyone."""
        assert len(run(services.contacts.search("  "))) == 3

    def test_search_handles_missing_fields(self, make_store):
        """Contacts without email or company still match by name."""
        service = ContactService(make_store(EntityKind.CONTACT))
        run(service.create({"name": "Solo"}))
        assert len(run(service.search("solo"))) == 1


class TestDealService:
    """Tests for DealService."""

    def test_get_by_stage(self, services):
        """Deals are filtered by stage."""
        assert [d.id for d in run(services.deals.get_by_stage("lead"))] == [3]
        assert run(services.deals.get_by_stage(DealStage.CLOSED_LOST)) == []

    def test_move_to_stage(self, services):
        """move_to_stage updates only the stage."""
        before = run(services.deals.get_by_id(3))
        moved = run(services.deals.move_to_stage(3, DealStage.QUALIFIED))
        assert moved.stage == DealStage.QUALIFIED
        assert moved.value == before.value

    def test_move_to_unknown_stage(self, services):
        """Unknown stage names raise ValueError."""
        with pytest.raises(ValueError):
            run(services.deals.move_to_stage(3, "won"))


class TestTaskService:
    """Tests for TaskService."""

    def test_completed_defaults_false(self, make_store):
        """create injects completed=False when omitted."""
        service = TaskService(make_store(EntityKind.TASK))
        assert run(service.create({"title": "Call"})).completed is False

    def test_completed_none_becomes_false(self, make_store):
        """An explicit None is treated as omitted."""
        service = TaskService(make_store(EntityKind.TASK))
        assert run(service.create({"title": "Call", "completed": None})).completed is False

    def test_completed_respected(self, make_store):
        """An explicit completed=True is kept."""
        service = TaskService(make_store(EntityKind.TASK))
        assert run(service.create({"title": "Done", "completed": True})).completed is True

    def test_toggle_complete(self, services):
        """toggle_complete flips the flag each time."""
        assert run(services.tasks.toggle_complete(1)).completed is True
        assert run(services.tasks.toggle_complete(1)).completed is False

    def test_get_open(self, services):
        """get_open excludes completed tasks."""
        assert [t.id for t in run(services.tasks.get_open())] == [1, 2]


class TestActivityService:
    """Tests for ActivityService."""

    def test_get_by_deal_id(self, services):
        """Activities are filtered by deal."""
        assert [a.id for a in run(services.activities.get_by_deal_id(2))] == [2]

    def test_timeline_newest_first(self, services):
        """timeline sorts by timestamp descending."""
        assert [a.id for a in run(services.activities.timeline())] == [3, 2, 1]

    def test_timeline_filters(self, services):
        """Contact, term and type filters combine."""
        assert [a.id for a in run(services.activities.timeline(contact_id=1))] == [1]
        assert [a.id for a in run(services.activities.timeline(term="PILOT"))] == [2]
        assert [a.id for a in run(services.activities.timeline(activity_type=ActivityType.MEETING))] == [3]
        assert run(services.activities.timeline(contact_id=1, activity_type="email")) == []

    def test_timeline_searches_description(self, services):
        """The term also matches descriptions."""
        assert [a.id for a in run(services.activities.timeline(term="pain points"))] == [1]


class TestCommentService:
    """Tests for CommentService."""

    def test_create_stamps_timestamp(self, make_store):
        """create sets timestamp to now and edited to False."""
        service = CommentService(make_store(EntityKind.COMMENT))
        before = datetime.now(timezone.utc)
        comment = run(
            service.create(
                {
                    "contact_id": 1,
                    "author": "A",
                    "content": "Hi",
                    "edited": True,
                    "timestamp": "2000-01-01T00:00:00Z",
                }
            )
        )
        assert comment.edited is False
        assert comment.timestamp >= before - timedelta(seconds=1)

    def test_update_marks_edited(self, make_store):
        """update sets edited=True."""
        service = CommentService(make_store(EntityKind.COMMENT))
        run(service.create({"contact_id": 1, "author": "A", "content": "Hi"}))
        updated = run(service.update(1, {"content": "Hello"}))
        assert updated.edited is True
        assert updated.content == "Hello"

    def test_update_rejects_other_fields(self, make_store):
        """Only content and author can be edited; the comment is left as it was."""
        service = CommentService(make_store(EntityKind.COMMENT))
        run(service.create({"contact_id": 1, "author": "A", "content": "Hi"}))

        with pytest.raises(RecordValidationError) as exc_info:
            run(service.update(1, {"content": "Moved", "contact_id": 2}))

        assert exc_info.value.field_errors == {"contact_id": "not editable"}
        comment = run(service.get_by_id(1))
        assert comment.contact_id == 1
        assert comment.content == "Hi"
        assert comment.edited is False

    def test_count_for_contact(self, services):
        """count_for_contact counts a contact's comments."""
        assert run(services.comments.count_for_contact(1)) == 1
        assert run(services.comments.count_for_contact(3)) == 0


class TestBuildServices:
    """Tests for build_services."""

    def test_unseeded_is_empty(self, clean_env):
        """Without seed the mock stores start empty."""
        services = build_services(Config(), latency=(0, 0))
        assert run(services.contacts.get_all()) == []
        assert services.backend_name == "mock"

    def test_independent_containers(self, clean_env):
        """Two containers never share state."""
        first = build_services(Config(), latency=(0, 0))
        second = build_services(Config(), latency=(0, 0))
        run(first.contacts.create({"name": "A"}))
        assert run(second.contacts.get_all()) == []

    def test_service_types(self, services):
        """Each attribute holds the matching service."""
        assert isinstance(services.contacts, ContactService)
        assert isinstance(services.deals, DealService)
        assert isinstance(services.tasks, TaskService)
        assert isinstance(services.activities, ActivityService)
        assert isinstance(services.comments, CommentService)
        assert services.for_kind("task") is services.tasks
        assert isinstance(services.contacts.backend, InMemoryEntityStore)

    def test_remote_shares_client(self, clean_env):
        """With CRM_BACKEND=remote every service shares one client."""
        client = RecordServiceClient(
            "https://records.test",
            "p",
            "k",
            policy=NO_RETRY_POLICY,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"success": True})),
        )
        with patch.dict(os.environ, {"CRM_BACKEND": "remote"}):
            services = build_services(Config(), client=client)

        assert services.backend_name == "remote"
        for kind in EntityKind:
            backend = services.for_kind(kind).backend
            assert isinstance(backend, RemoteRecordBackend)
            assert backend.client is client

    def test_remote_not_seeded(self, clean_env):
        """seed has no effect on the remote backend."""
        client = RecordServiceClient("https://records.test", "p", "k")
        with patch.dict(os.environ, {"CRM_BACKEND": "remote"}):
            services = build_services(Config(), client=client, seed=True)
        assert isinstance(services.deals.backend, RemoteRecordBackend)
