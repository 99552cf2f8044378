"""
Future Self Letters — Input schemas.

Pydantic models for every payload the lifecycle engine accepts. Parsing a
payload collects every violated field at once; ``validate_payload`` turns
pydantic's error list into a ValidationError with a field -> message map.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from futureself.core.delivery_calculator import VALID_INTERVALS, as_utc
from futureself.core.errors import ValidationError
from futureself.data.models import MOODS, GoalStatus

TITLE_MAX = 100
CONTENT_MAX = 5000
CONTEXT_MAX = 200
GOAL_TEXT_MAX = 150
GOAL_REFLECTION_MAX = 500
REFLECTION_MIN = 50

_Model = TypeVar("_Model", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class LetterCreate(_Payload):
    """A new letter as written by the user.

    Either ``delivered_at`` or a non-custom ``delivery_interval`` must be
    given; the engine resolves the other one.
    """

    title: str | None = "Untitled"
    content: str
    mood: str | None = None
    weather: str | None = None
    temperature: float | None = None
    current_song: str | None = None
    top_headline: str | None = None
    location: str | None = None
    delivery_interval: str | None = None
    delivered_at: datetime | None = None
    goals: list[str] = []

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str:
        if not v:
            return "Untitled"
        if len(v) > TITLE_MAX:
            raise ValueError(f"Title cannot exceed {TITLE_MAX} characters")
        return v

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        if not v:
            raise ValueError("Letter content is required")
        if len(v) > CONTENT_MAX:
            raise ValueError(f"Letter is too long (max {CONTENT_MAX} chars)")
        return v

    @field_validator("mood")
    @classmethod
    def check_mood(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        if v not in MOODS:
            raise ValueError(f"{v} is not a valid mood")
        return v

    @field_validator("weather", "current_song", "top_headline", "location")
    @classmethod
    def check_context(cls, v: str | None) -> str | None:
        if not v:
            return None
        if len(v) > CONTEXT_MAX:
            raise ValueError(f"Cannot exceed {CONTEXT_MAX} characters")
        return v

    @field_validator("delivery_interval")
    @classmethod
    def check_interval(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if v not in VALID_INTERVALS:
            raise ValueError(
                f"{v} is not a valid delivery interval. "
                f"Choose from: {', '.join(VALID_INTERVALS)}"
            )
        return v

    @field_validator("delivered_at")
    @classmethod
    def normalize_date(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @field_validator("goals")
    @classmethod
    def check_goals(cls, v: list[str]) -> list[str]:
        goals = [g.strip() for g in v if g and g.strip()]
        for g in goals:
            if len(g) > GOAL_TEXT_MAX:
                raise ValueError(f"Goal cannot exceed {GOAL_TEXT_MAX} characters")
        return goals


class DeliveryDate(_Payload):
    delivered_at: datetime

    @field_validator("delivered_at")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return as_utc(v)


class ReflectionCreate(_Payload):
    text: str

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        if not v:
            raise ValueError("Reflection content is required")
        if len(v) < REFLECTION_MIN:
            raise ValueError(
                f"Reflection must be at least {REFLECTION_MIN} characters long"
            )
        return v


def _check_goal_reflection(v: str | None) -> str | None:
    if v is not None and len(v) > GOAL_REFLECTION_MAX:
        raise ValueError(
            f"Goal reflection cannot exceed {GOAL_REFLECTION_MAX} characters"
        )
    return v


class GoalStatusUpdate(_Payload):
    """A status change requested by the user.

    ``carriedForward`` is rejected here: only the carry-forward operation
    may set it, because it also creates the successor goal.
    """

    status: GoalStatus
    reflection: str | None = None

    @field_validator("status")
    @classmethod
    def reject_carried_forward(cls, v: GoalStatus) -> GoalStatus:
        if v is GoalStatus.CARRIED_FORWARD:
            raise ValueError("Use carry forward to move a goal to another letter")
        return v

    @field_validator("reflection")
    @classmethod
    def check_reflection(cls, v: str | None) -> str | None:
        return _check_goal_reflection(v or None)


class GoalReflection(_Payload):
    text: str

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        if not v:
            raise ValueError("Goal reflection is required")
        return _check_goal_reflection(v)


def _field_name(loc: tuple) -> str:
    """Name a field by the last named part of its path ("goals.0" -> "goals")."""
    for part in reversed(loc):
        if isinstance(part, str):
            return part
    return "__root__"


def _message(error: dict) -> str:
    msg = error.get("msg", "Invalid value")
    return msg.removeprefix("Value error, ")


def validate_payload(model: type[_Model], data: Any) -> _Model:
    """Parse ``data`` into ``model`` or raise ValidationError listing every field."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        fields: dict[str, str] = {}
        for error in exc.errors():
            fields.setdefault(_field_name(error.get("loc", ())), _message(error))
        first = next(iter(fields.values()), "Validation failed")
        raise ValidationError(first, fields) from None
