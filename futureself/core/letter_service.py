"""
Future Self Letters — Letter Lifecycle Service.

Stateless service that runs the complete lifecycle of a letter:
1. A user writes a letter and chooses when to receive it
2. The letter waits until the delivery date arrives
3. Once delivered, the user reflects on it and tracks the goals inside it

Every operation loads the letter, checks that the caller owns it, applies
the delivery rules, writes, and then reports activity to the stats port.
Delivery is detected lazily: viewing a letter whose delivery date has passed
marks it delivered. Nothing runs in the background.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from futureself.core.delivery_calculator import (
    DeliveryInterval,
    as_utc,
    resolve_delivery_date,
    utc_now,
    validate_lead_time,
)
from futureself.core.errors import (
    AlreadyDeliveredError,
    ForbiddenError,
    GoalCarriedForwardError,
    GoalNotFoundError,
    LeadTimeError,
    MissingCustomDateError,
    NotFoundError,
    NotYetDeliveredError,
    ValidationError,
)
from futureself.core.validation import (
    DeliveryDate,
    GoalReflection,
    GoalStatusUpdate,
    LetterCreate,
    ReflectionCreate,
    validate_payload,
)
from futureself.data.models import GoalStatus
from futureself.ports.stats_port import StatEvent

if TYPE_CHECKING:
    from futureself.data.models import Goal, Letter, UserStats
    from futureself.ports.letter_port import LetterStore
    from futureself.ports.stats_port import StatsPort

logger = logging.getLogger(__name__)


class LetterService:
    """Lifecycle engine for letters, reflections and goals.

    Raises typed LetterError subclasses; never swallows ownership or
    delivery-state violations. Stats failures are logged and dropped.
    """

    def __init__(
        self,
        letters: LetterStore,
        stats: StatsPort | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._letters = letters
        self._stats = stats
        self._now = now or utc_now

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def list_letters(self, user_id: str) -> list[Letter]:
        """All of the user's letters, newest first. Read-only: only view delivers."""
        return self._letters.find_by_user(user_id)

    def view(self, letter_id: str, user_id: str) -> Letter:
        """Read one letter, marking it delivered if its date has come."""
        letter = self._load_owned(letter_id, user_id)
        return self._deliver_if_due(letter)

    def get_stats(self, user_id: str) -> UserStats:
        """The user's activity stats."""
        if self._stats is None:
            raise NotFoundError("Stats are not enabled")
        return self._stats.get_stats(user_id)

    # ------------------------------------------------------------------
    # Writing letters
    # ------------------------------------------------------------------

    def create(self, user_id: str, payload: dict) -> Letter:
        """Create a letter scheduled for future delivery.

        The payload may carry ``delivered_at``, a ``delivery_interval``, or
        both; a bare date is stored with the "custom" interval.
        """
        data = validate_payload(LetterCreate, payload)
        now = self._now()

        interval = data.delivery_interval or DeliveryInterval.CUSTOM.value
        if data.delivered_at is not None:
            delivered_at = data.delivered_at
        else:
            try:
                delivered_at = resolve_delivery_date(interval, now=now)
            except MissingCustomDateError:
                raise MissingCustomDateError(
                    "Please tell us when you want to receive your letter"
                ) from None

        if not validate_lead_time(delivered_at, now=now):
            raise LeadTimeError()

        letter = self._letters.create({
            "user_id": user_id,
            "title": data.title,
            "content": data.content,
            "mood": data.mood,
            "weather": data.weather,
            "temperature": data.temperature,
            "current_song": data.current_song,
            "top_headline": data.top_headline,
            "location": data.location,
            "delivery_interval": interval,
            "delivered_at": as_utc(delivered_at),
            "goals": data.goals,
        })
        self._emit(user_id, StatEvent.LETTER_CREATED)
        return letter

    def reschedule(self, letter_id: str, user_id: str, new_date: datetime | str) -> Letter:
        """Move an undelivered letter's delivery date."""
        letter = self._load_owned(letter_id, user_id)
        if letter.is_delivered:
            raise AlreadyDeliveredError()

        data = validate_payload(DeliveryDate, {"delivered_at": new_date})
        if not validate_lead_time(data.delivered_at, now=self._now()):
            raise LeadTimeError()

        updated = self._letters.update(letter_id, {"delivered_at": data.delivered_at})
        if updated is None:
            raise NotFoundError()
        logger.info(
            "Letter %s rescheduled to %s", letter_id, data.delivered_at.isoformat(),
        )
        return updated

    def delete(self, letter_id: str, user_id: str) -> None:
        """Permanently remove a letter with its goals and reflections."""
        self._load_owned(letter_id, user_id)
        self._letters.delete(letter_id)

    # ------------------------------------------------------------------
    # Reflections
    # ------------------------------------------------------------------

    def add_reflection(self, letter_id: str, user_id: str, text: str) -> Letter:
        """Append a reflection to a delivered letter."""
        letter = self._load_owned(letter_id, user_id)
        self._ensure_delivered(letter)
        data = validate_payload(ReflectionCreate, {"text": text})

        updated = self._letters.add_reflection(letter_id, data.text, date=self._now())
        if updated is None:
            raise NotFoundError()
        self._emit(user_id, StatEvent.REFLECTION_ADDED)
        return updated

    def remove_reflection(
        self, letter_id: str, user_id: str, reflection_id: str,
    ) -> Letter:
        """Remove a reflection. Removing an unknown reflection changes nothing."""
        self._load_owned(letter_id, user_id)
        updated = self._letters.remove_reflection(letter_id, reflection_id)
        if updated is None:
            raise NotFoundError()
        return updated

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def update_goal_status(
        self,
        letter_id: str,
        user_id: str,
        goal_id: str,
        new_status: GoalStatus | str,
        reflection: str | None = None,
    ) -> Letter:
        """Set a goal's status on a delivered letter.

        ``carriedForward`` is refused; use carry_goal_forward instead. A goal
        that was already carried forward keeps that status.
        """
        letter = self._load_owned(letter_id, user_id)
        self._ensure_delivered(letter)
        self._ensure_not_carried(self._require_goal(letter, goal_id))

        try:
            data = validate_payload(
                GoalStatusUpdate, {"status": new_status, "reflection": reflection},
            )
        except ValidationError:
            logger.warning(
                "Rejected status %r for goal %s on letter %s",
                new_status, goal_id, letter_id,
            )
            raise

        patch: dict = {"status": data.status, "status_updated_at": self._now()}
        if data.reflection:
            patch["reflection"] = data.reflection

        updated = self._letters.update_goal(letter_id, goal_id, patch)
        if updated is None:
            raise GoalNotFoundError()
        logger.info(
            "Goal %s on letter %s is now %s", goal_id, letter_id, data.status.value,
        )

        if data.status is GoalStatus.COMPLETED:
            self._emit(user_id, StatEvent.GOAL_ACCOMPLISHED)
        return updated

    def carry_goal_forward(
        self,
        old_letter_id: str,
        goal_id: str,
        new_letter_id: str,
        user_id: str,
    ) -> tuple[Letter, Letter]:
        """Move a goal to another letter, keeping links in both directions.

        The new pending goal is written first, then the source goal is
        marked carriedForward. If the second write fails the error is
        raised and the new goal stays in place.

        Returns (old_letter, new_letter) as persisted.
        """
        if old_letter_id == new_letter_id:
            message = "A goal can only be carried forward to a different letter"
            raise ValidationError(message, {"new_letter_id": message})

        old_letter = self._load_owned(old_letter_id, user_id)
        self._load_owned(new_letter_id, user_id)
        goal = self._require_goal(old_letter, goal_id)
        self._ensure_not_carried(goal)

        new_letter = self._letters.add_goal(
            new_letter_id, goal.text, carried_forward_from=old_letter_id,
        )
        if new_letter is None:
            raise NotFoundError()

        old_letter = self._letters.update_goal(old_letter_id, goal_id, {
            "status": GoalStatus.CARRIED_FORWARD,
            "carried_forward_to": new_letter_id,
            "status_updated_at": self._now(),
        })
        if old_letter is None:
            raise GoalNotFoundError()

        logger.info(
            "Goal %s carried forward from letter %s to %s",
            goal_id, old_letter_id, new_letter_id,
        )
        return old_letter, new_letter

    def add_goal_reflection(
        self, letter_id: str, user_id: str, goal_id: str, text: str,
    ) -> Letter:
        """Overwrite a goal's reflection on a delivered letter."""
        letter = self._load_owned(letter_id, user_id)
        self._ensure_delivered(letter)
        self._require_goal(letter, goal_id)
        data = validate_payload(GoalReflection, {"text": text})

        updated = self._letters.update_goal(letter_id, goal_id, {"reflection": data.text})
        if updated is None:
            raise GoalNotFoundError()
        return updated

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_owned(self, letter_id: str, user_id: str) -> Letter:
        """Find a letter the caller owns, or raise NotFound / Forbidden."""
        letter = self._letters.find_by_id(letter_id)
        if letter is None:
            raise NotFoundError()
        if letter.user_id != user_id:
            logger.warning(
                "User %s denied access to letter %s", user_id, letter_id,
            )
            raise ForbiddenError()
        return letter

    def _deliver_if_due(self, letter: Letter) -> Letter:
        """Flip is_delivered once the delivery date has passed. Writes at most once."""
        if letter.is_delivered or self._now() < as_utc(letter.delivered_at):
            return letter
        updated = self._letters.update(letter.id, {"is_delivered": True})
        if updated is None:
            raise NotFoundError()
        logger.info("Letter %s delivered to user %s", letter.id, letter.user_id)
        return updated

    @staticmethod
    def _ensure_delivered(letter: Letter) -> None:
        if not letter.is_delivered:
            raise NotYetDeliveredError()

    @staticmethod
    def _require_goal(letter: Letter, goal_id: str) -> Goal:
        goal = letter.goal(goal_id)
        if goal is None:
            raise GoalNotFoundError()
        return goal

    @staticmethod
    def _ensure_not_carried(goal: Goal) -> None:
        if goal.status is GoalStatus.CARRIED_FORWARD:
            raise GoalCarriedForwardError()

    def _emit(self, user_id: str, event: StatEvent) -> None:
        """Report activity to the stats port. Failures are logged, never raised."""
        if self._stats is None:
            return
        try:
            self._stats.apply_stat_event(user_id, event)
        except Exception as exc:
            logger.error(
                "Failed to update stats for user %s after %s: %s",
                user_id, event.value, exc,
            )
