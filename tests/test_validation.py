"""Tests for futureself.core.validation — payload schemas."""

from datetime import datetime, timezone

import pytest

from futureself.core.errors import ValidationError
from futureself.core.validation import (
    DeliveryDate,
    GoalReflection,
    GoalStatusUpdate,
    LetterCreate,
    ReflectionCreate,
    validate_payload,
)
from futureself.data.models import GoalStatus


class TestLetterCreate:
    def test_minimal_letter(self):
        data = validate_payload(LetterCreate, {"content": "Dear future me"})
        assert data.title == "Untitled"
        assert data.mood is None
        assert data.goals == []
        assert data.delivery_interval is None

    def test_fields_are_trimmed(self):
        data = validate_payload(LetterCreate, {
            "title": "  Hello  ",
            "content": "  Dear future me  ",
            "location": "  Tel Aviv ",
        })
        assert data.title == "Hello"
        assert data.content == "Dear future me"
        assert data.location == "Tel Aviv"

    def test_blank_title_becomes_untitled(self):
        data = validate_payload(LetterCreate, {"title": "   ", "content": "x"})
        assert data.title == "Untitled"

    def test_every_invalid_field_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(LetterCreate, {
                "title": "t" * 101,
                "content": "c" * 5001,
                "mood": "🙂",
                "delivery_interval": "2weeks",
            })
        fields = exc_info.value.fields
        assert set(fields) == {"title", "content", "mood", "delivery_interval"}
        assert fields["title"] == "Title cannot exceed 100 characters"
        assert fields["content"] == "Letter is too long (max 5000 chars)"
        assert fields["mood"] == "🙂 is not a valid mood"

    def test_missing_content(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(LetterCreate, {"title": "No body"})
        assert "content" in exc_info.value.fields

    def test_blank_content(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(LetterCreate, {"content": "    "})
        assert exc_info.value.fields["content"] == "Letter content is required"

    def test_valid_mood(self):
        data = validate_payload(LetterCreate, {"content": "x", "mood": "🤩"})
        assert data.mood == "🤩"

    def test_goals_blank_entries_dropped(self):
        data = validate_payload(LetterCreate, {
            "content": "x", "goals": ["  Run a marathon ", "", "   "],
        })
        assert data.goals == ["Run a marathon"]

    def test_goal_too_long_reported_on_goals(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(LetterCreate, {"content": "x", "goals": ["g" * 151]})
        assert "goals" in exc_info.value.fields

    def test_delivered_at_parsed_and_normalized(self):
        data = validate_payload(LetterCreate, {
            "content": "x", "delivered_at": "2027-01-01T10:00:00+02:00",
        })
        assert data.delivered_at == datetime(2027, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert data.delivered_at.utcoffset().total_seconds() == 0

    def test_naive_delivered_at_taken_as_utc(self):
        data = validate_payload(DeliveryDate, {"delivered_at": "2027-01-01T10:00:00"})
        assert data.delivered_at == datetime(2027, 1, 1, 10, 0, tzinfo=timezone.utc)


class TestReflectionCreate:
    def test_fifty_characters_is_enough(self):
        data = validate_payload(ReflectionCreate, {"text": "r" * 50})
        assert len(data.text) == 50

    def test_too_short(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(ReflectionCreate, {"text": "r" * 49})
        assert exc_info.value.fields["text"] == (
            "Reflection must be at least 50 characters long"
        )

    def test_length_checked_after_trimming(self):
        with pytest.raises(ValidationError):
            validate_payload(ReflectionCreate, {"text": "  " + "r" * 49 + "   "})

    def test_no_upper_limit(self):
        data = validate_payload(ReflectionCreate, {"text": "r" * 20000})
        assert len(data.text) == 20000


class TestGoalStatusUpdate:
    def test_valid_status(self):
        data = validate_payload(GoalStatusUpdate, {"status": "inProgress"})
        assert data.status is GoalStatus.IN_PROGRESS
        assert data.reflection is None

    def test_carried_forward_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(GoalStatusUpdate, {"status": "carriedForward"})
        assert "status" in exc_info.value.fields

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(GoalStatusUpdate, {"status": "accomplished"})
        assert "status" in exc_info.value.fields

    def test_reflection_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(GoalStatusUpdate, {
                "status": "abandoned", "reflection": "x" * 501,
            })
        assert "reflection" in exc_info.value.fields


class TestGoalReflection:
    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            validate_payload(GoalReflection, {"text": "  "})

    def test_valid(self):
        data = validate_payload(GoalReflection, {"text": " Too ambitious "})
        assert data.text == "Too ambitious"


def test_error_message_is_first_field_message():
    with pytest.raises(ValidationError) as exc_info:
        validate_payload(ReflectionCreate, {"text": "short"})
    assert exc_info.value.message == exc_info.value.fields["text"]
    assert exc_info.value.code == "VALIDATION_ERROR"
