"""Error taxonomy for the letter core.

Every error is user-facing and recoverable. The outer HTTP layer maps
``code`` to a status; the core never decides status codes itself.
"""

from __future__ import annotations


class LetterError(Exception):
    """Base class for all operational errors raised by the core."""

    code = "ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LetterError):
    """A letter (or a child record of one) does not exist."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "Letter not found") -> None:
        super().__init__(message)


class GoalNotFoundError(NotFoundError):
    def __init__(self, message: str = "Goal not found") -> None:
        super().__init__(message)


class ForbiddenError(LetterError):
    """The caller does not own the letter."""

    code = "FORBIDDEN"

    def __init__(
        self, message: str = "You do not have permission to access this letter",
    ) -> None:
        super().__init__(message)


class ValidationError(LetterError):
    """Invalid input. ``fields`` maps each violated field to its message."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})


class InvalidIntervalError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, {"delivery_interval": message})


class MissingCustomDateError(ValidationError):
    def __init__(
        self,
        message: str = "Custom date is required when choosing a specific delivery date",
    ) -> None:
        super().__init__(message, {"delivered_at": message})


class LeadTimeError(ValidationError):
    def __init__(
        self, message: str = "Delivery date must be at least 24 hours in the future.",
    ) -> None:
        super().__init__(message, {"delivered_at": message})


class InvalidStateError(LetterError):
    """The letter or goal state does not allow the operation."""

    code = "INVALID_STATE"


class NotYetDeliveredError(InvalidStateError):
    def __init__(
        self, message: str = "Can only reflect on delivered letters",
    ) -> None:
        super().__init__(message)


class AlreadyDeliveredError(InvalidStateError):
    def __init__(self, message: str = "Cannot edit a delivered letter") -> None:
        super().__init__(message)


class GoalCarriedForwardError(InvalidStateError):
    def __init__(
        self, message: str = "This goal has already been carried forward",
    ) -> None:
        super().__init__(message)
