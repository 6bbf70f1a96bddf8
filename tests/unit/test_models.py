"""Unit tests for request and record models."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from flowdesk.models.automation import AutomateTaskRequest
from flowdesk.models.planner import AssignSlotRequest
from flowdesk.models.task import (
    AutomationRule,
    ReminderResponseRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
    format_duration,
)


class TestTaskCreateRequest:
    def test_defaults(self):
        request = TaskCreateRequest(title="Plan sprint")
        assert request.status.value == "todo"
        assert request.reminder_time is None
        assert request.recurrence_duration() is None

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="   ")

    @pytest.mark.parametrize("value", ["9:00", "24:00", "12:75", "noon"])
    def test_reminder_time_must_be_hh_mm(self, value):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="x", reminder_time=value)

    def test_empty_reminder_time_is_none(self):
        assert TaskCreateRequest(title="x", reminder_time="").reminder_time is None

    def test_recurrence_from_hours_and_minutes(self):
        request = TaskCreateRequest(title="x", frequency_hours=0, frequency_minutes=45)
        assert request.recurrence_duration() == "00:45"

    @pytest.mark.parametrize("field,value", [("frequency_hours", 24), ("frequency_minutes", 60)])
    def test_recurrence_bounds(self, field, value):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="x", **{field: value})

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="x", status="blocked")


class TestTaskUpdateRequest:
    def test_unsent_fields_are_left_alone(self):
        assert TaskUpdateRequest(title="New").to_updates() == {"title": "New"}

    def test_explicit_null_clears(self):
        updates = TaskUpdateRequest(reminder_time=None, description=None).to_updates()
        assert updates == {"reminder_time_of_day": None, "description": None}

    def test_frequency_maps_to_duration(self):
        updates = TaskUpdateRequest(frequency_hours=2).to_updates()
        assert updates == {"recurrence_duration": "02:00"}

    def test_zero_frequency_clears_duration(self):
        updates = TaskUpdateRequest(frequency_hours=0, frequency_minutes=0).to_updates()
        assert updates == {"recurrence_duration": None}


def test_format_duration():
    assert format_duration(1, 5) == "01:05"
    assert format_duration(None, None) is None


class TestAutomationRule:
    def test_ignores_unknown_fields(self):
        rule = AutomationRule.model_validate(
            {"frequency": " Weekly ", "description": "Report", "cron": "* * * * *"}
        )
        assert rule.frequency == "Weekly"
        assert not hasattr(rule, "cron")

    @pytest.mark.parametrize(
        "data",
        [{"frequency": "daily"}, {"frequency": "", "description": "x"}, {"frequency": 3, "description": "x"}],
    )
    def test_required_fields(self, data):
        with pytest.raises(ValidationError):
            AutomationRule.model_validate(data)

    def test_sends_email_needs_subject_and_body(self):
        assert AutomationRule(frequency="daily", description="x", email_subject="S").sends_email is False
        assert (
            AutomationRule(
                frequency="daily", description="x", email_subject="S", email_body="B"
            ).sends_email
            is True
        )


class TestReminderResponseRequest:
    def test_completed_must_be_boolean(self):
        with pytest.raises(ValidationError):
            ReminderResponseRequest(task_id=uuid4(), completed="yes")

    def test_task_id_must_be_uuid(self):
        with pytest.raises(ValidationError):
            ReminderResponseRequest(task_id="123", completed=True)


class TestAssignSlotRequest:
    def test_requires_exactly_one_address(self):
        with pytest.raises(ValidationError):
            AssignSlotRequest(task_id=uuid4())
        with pytest.raises(ValidationError):
            AssignSlotRequest(task_id=uuid4(), period_key="2024", start="2024-01-01T10:00:00")

    def test_defaults_to_hour_scale(self):
        request = AssignSlotRequest(task_id=uuid4(), period_key="2024-05-20T10:00:00")
        assert request.time_scale.value == "hour"


def test_automate_request_strips_description():
    assert AutomateTaskRequest(description="  weekly report ").description == "weekly report"
    with pytest.raises(ValidationError):
        AutomateTaskRequest(description="   ")
