"""
Tests for calendar event validation and the create/update/delete service.
"""

from datetime import datetime

import pytest

from conftest import run
from core.validation import validate_event_payload
from services.events import (
    EventNotFoundError,
    create_event,
    delete_event,
    normalize_event_fields,
    update_event,
)


@pytest.fixture
def new_event():
    return {
        "user_id": "u1",
        "title": "Planning",
        "description": "Quarterly planning",
        "start_time": "2025-11-04T10:00:00",
        "end_time": "2025-11-04T11:00:00",
        "all_day": False,
        "type": "meeting",
    }


class TestValidation:
    def test_valid_payload(self, new_event):
        assert validate_event_payload(new_event) == []

    def test_missing_required_fields(self):
        errors = validate_event_payload({"title": "  "})
        assert errors == [
            "Missing user_id",
            "Missing title",
            "Missing start_time",
            "Missing end_time",
        ]

    def test_partial_update_skips_required_checks(self):
        assert validate_event_payload({"description": "x"}, partial=True) == []

    def test_partial_update_rejects_empty_title(self):
        assert validate_event_payload({"title": ""}, partial=True) == ["Title cannot be empty"]

    def test_unparseable_timestamp(self, new_event):
        new_event["start_time"] = "tomorrow"
        errors = validate_event_payload(new_event)
        assert errors == ["Invalid start_time 'tomorrow', expected ISO-8601"]

    def test_end_before_start(self, new_event):
        new_event["end_time"] = "2025-11-04T09:00:00"
        assert validate_event_payload(new_event) == ["End time cannot be before start time"]

    def test_end_before_existing_start(self):
        existing = {"start": "2025-11-04T10:00:00", "end": "2025-11-04T11:00:00"}
        errors = validate_event_payload(
            {"end_time": "2025-11-04T09:30:00"}, partial=True, existing=existing
        )
        assert errors == ["End time cannot be before start time"]

    def test_mixed_timezone_awareness(self, new_event):
        new_event["end_time"] = "2025-11-04T11:00:00Z"
        errors = validate_event_payload(new_event)
        assert errors == ["Start and end times must both include or both omit a timezone"]

    def test_unknown_type(self, new_event):
        new_event["type"] = "party"
        errors = validate_event_payload(new_event)
        assert len(errors) == 1
        assert errors[0].startswith("Invalid event type 'party'")

    def test_all_day_must_be_bool(self, new_event):
        new_event["all_day"] = "yes"
        assert validate_event_payload(new_event) == ["all_day must be true or false"]


class TestNormalizeFields:
    def test_start_end_aliases(self):
        fields = normalize_event_fields({"start": "2025-11-04", "end": "2025-11-05", "extra": 1})
        assert fields == {"start_time": "2025-11-04", "end_time": "2025-11-05"}

    def test_explicit_columns_win_over_aliases(self):
        fields = normalize_event_fields({"start": "a", "start_time": "b"})
        assert fields == {"start_time": "b"}

    def test_datetimes_serialized(self):
        fields = normalize_event_fields({"start_time": datetime(2025, 11, 4, 10, 0)})
        assert fields == {"start_time": "2025-11-04T10:00:00"}


class TestEventService:
    def test_create(self, fake_store, new_event):
        event = run(create_event(fake_store, new_event))

        assert event["title"] == "Planning"
        assert event["start"] == "2025-11-04T10:00:00"
        assert fake_store.events[-1]["id"] == event["id"]

    def test_create_invalid_raises_with_all_messages(self, fake_store):
        with pytest.raises(ValueError) as exc_info:
            run(create_event(fake_store, {"title": "x", "type": "party"}))

        lines = str(exc_info.value).split("\n")
        assert "Missing user_id" in lines
        assert any(line.startswith("Invalid event type") for line in lines)
        assert fake_store.called("create_calendar_event") == []

    def test_update(self, fake_store):
        event = run(update_event(fake_store, "42", {"title": "Renamed", "user_id": "u2"}))

        assert event["title"] == "Renamed"
        assert event["user_id"] == "u1"

    def test_update_with_alias_checks_existing_times(self, fake_store):
        with pytest.raises(ValueError):
            run(update_event(fake_store, "42", {"end": "2025-11-03T08:00:00Z"}))

    def test_update_missing(self, fake_store):
        with pytest.raises(EventNotFoundError):
            run(update_event(fake_store, "missing", {"title": "x"}))

    def test_delete(self, fake_store):
        run(delete_event(fake_store, "42"))
        assert fake_store.events == []

    def test_delete_missing(self, fake_store):
        with pytest.raises(EventNotFoundError):
            run(delete_event(fake_store, "missing"))
