"""Tests for CRM domain models."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from crmdesk.crm.models import (
    MODEL_BY_KIND,
    Activity,
    ActivityType,
    Comment,
    Contact,
    Deal,
    DealStage,
    EntityKind,
    Task,
    TaskPriority,
    as_utc,
    model_for,
)


class TestContact:
    """Tests for Contact."""

    def test_minimal(self):
        """Only id and name are required."""
        contact = Contact(id=1, name="Ada")
        assert contact.tags == []
        assert contact.email is None

    def test_empty_name_rejected(self):
        """An empty name fails validation."""
        with pytest.raises(ValidationError):
            Contact(id=1, name="")

    def test_id_must_be_positive(self):
        """Ids start at 1."""
        with pytest.raises(ValidationError):
            Contact(id=0, name="Ada")

    def test_extra_field_forbidden(self):
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            Contact(id=1, name="Ada", nickname="A")

    def test_naive_timestamps_become_utc(self):
        """Naive created_at values are interpreted as UTC."""
        contact = Contact(id=1, name="Ada", created_at=datetime(2024, 1, 1, 12, 0))
        assert contact.created_at.tzinfo == timezone.utc


class TestDeal:
    """Tests for Deal."""

    def test_defaults(self):
        """New deals start as leads with zero value and probability."""
        deal = Deal(id=1, title="Deal")
        assert deal.stage == DealStage.LEAD
        assert deal.value == 0.0
        assert deal.probability == 0

    def test_probability_bounds(self):
        """Probability must be within 0..100."""
        with pytest.raises(ValidationError):
            Deal(id=1, title="Deal", probability=101)
        with pytest.raises(ValidationError):
            Deal(id=1, title="Deal", probability=-1)

    def test_negative_value_rejected(self):
        """Deal value cannot be negative."""
        with pytest.raises(ValidationError):
            Deal(id=1, title="Deal", value=-5)

    def test_stage_from_string(self):
        """Stage accepts its wire value."""
        deal = Deal(id=1, title="Deal", stage="closed-won", expected_close_date="2024-03-01")
        assert deal.stage == DealStage.CLOSED_WON
        assert deal.expected_close_date == date(2024, 3, 1)

    def test_unknown_stage_rejected(self):
        """Stages outside the vocabulary are rejected."""
        with pytest.raises(ValidationError):
            Deal(id=1, title="Deal", stage="negotiation")


class TestDealStage:
    """Tests for DealStage."""

    def test_board_order(self):
        """Stages iterate in board order."""
        assert [s.value for s in DealStage] == [
            "lead",
            "qualified",
            "proposal",
            "closed-won",
            "closed-lost",
        ]

    def test_label(self):
        """Labels are human readable."""
        assert DealStage.CLOSED_WON.label == "Closed Won"
        assert DealStage.LEAD.label == "Lead"


class TestTaskActivityComment:
    """Tests for Task, Activity and Comment."""

    def test_task_defaults(self):
        """Tasks default to open, medium priority."""
        task = Task(id=1, title="Call back")
        assert task.completed is False
        assert task.priority == TaskPriority.MEDIUM
        assert task.description == ""

    def test_activity_requires_type(self):
        """Activities need a type."""
        with pytest.raises(ValidationError):
            Activity(id=1, subject="Call")

    def test_activity_type_vocabulary(self):
        """Activity types parse from strings."""
        activity = Activity(id=1, type="meeting", subject="Kickoff", duration=30)
        assert activity.type == ActivityType.MEETING
        assert activity.timestamp.tzinfo is not None

    def test_activity_negative_duration(self):
        """Durations cannot be negative."""
        with pytest.raises(ValidationError):
            Activity(id=1, type="call", subject="Call", duration=-1)

    def test_comment_requires_contact(self):
        """Comments always belong to a contact."""
        with pytest.raises(ValidationError):
            Comment(id=1, author="A", content="Hi")

    def test_comment_defaults(self):
        """Comments start unedited."""
        comment = Comment(id=1, contact_id=2, author="A", content="Hi")
        assert comment.edited is False


class TestModelLookup:
    """Tests for kind-to-model lookup."""

    def test_every_kind_has_model(self):
        """Each EntityKind maps to a model."""
        assert set(MODEL_BY_KIND) == set(EntityKind)

    def test_model_for_string(self):
        """model_for accepts the kind's string value."""
        assert model_for("deal") is Deal

    def test_as_utc_keeps_aware(self):
        """Aware datetimes pass through unchanged."""
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert as_utc(value) is value
