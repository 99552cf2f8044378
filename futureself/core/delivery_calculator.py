"""Letter delivery date calculator — pure business logic.

Translates the interval a user picks after writing a letter ("in a week",
"one year", ...) into a concrete delivery timestamp, and checks the minimum
lead time between now and delivery.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType

from dateutil.relativedelta import relativedelta

from futureself.core.errors import InvalidIntervalError, MissingCustomDateError

logger = logging.getLogger(__name__)


class DeliveryInterval(str, Enum):
    IN_A_WEEK = "1week"
    ONE_MONTH = "1month"
    SIX_MONTHS = "6months"
    ONE_YEAR = "1year"
    FIVE_YEARS = "5years"
    CUSTOM = "custom"


INTERVAL_LABELS = MappingProxyType({
    DeliveryInterval.IN_A_WEEK: "In a week",
    DeliveryInterval.ONE_MONTH: "One month",
    DeliveryInterval.SIX_MONTHS: "6 months",
    DeliveryInterval.ONE_YEAR: "1 year",
    DeliveryInterval.FIVE_YEARS: "5 years",
    DeliveryInterval.CUSTOM: "Custom date",
})

VALID_INTERVALS: tuple[str, ...] = tuple(i.value for i in DeliveryInterval)

# relativedelta clamps the day, so Jan 31 + 1 month lands on Feb 28/29
_OFFSETS = MappingProxyType({
    DeliveryInterval.IN_A_WEEK: relativedelta(days=7),
    DeliveryInterval.ONE_MONTH: relativedelta(months=1),
    DeliveryInterval.SIX_MONTHS: relativedelta(months=6),
    DeliveryInterval.ONE_YEAR: relativedelta(years=1),
    DeliveryInterval.FIVE_YEARS: relativedelta(years=5),
})

LEAD_TIME = timedelta(hours=24)

DELIVERY_QUESTION = "When do you want to get your letter?"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_interval(interval: str | DeliveryInterval) -> DeliveryInterval:
    """Return the DeliveryInterval for a symbol, or raise InvalidIntervalError."""
    try:
        return DeliveryInterval(interval)
    except ValueError:
        raise InvalidIntervalError(
            f'Invalid delivery interval: "{interval}". '
            f"Valid options are: {', '.join(VALID_INTERVALS)}"
        ) from None


def resolve_delivery_date(
    interval: str | DeliveryInterval,
    custom_date: datetime | None = None,
    now: datetime | None = None,
) -> datetime:
    """Calculate the delivery timestamp for the chosen interval.

    Args:
        interval: One of VALID_INTERVALS.
        custom_date: Required when interval is "custom"; returned verbatim.
        now: Reference instant (defaults to the current UTC time).

    Raises:
        InvalidIntervalError: the symbol is not a known interval.
        MissingCustomDateError: "custom" was chosen without a date.
    """
    choice = parse_interval(interval)

    if choice is DeliveryInterval.CUSTOM:
        if custom_date is None:
            raise MissingCustomDateError()
        return custom_date

    reference = now if now is not None else utc_now()
    delivery = reference + _OFFSETS[choice]
    logger.debug("Resolved interval %s to %s", choice.value, delivery.isoformat())
    return delivery


def validate_lead_time(date: datetime, now: datetime | None = None) -> bool:
    """True iff ``date`` is at least 24 hours after ``now`` (boundary inclusive)."""
    reference = as_utc(now) if now is not None else utc_now()
    return as_utc(date) >= reference + LEAD_TIME


def delivery_options() -> dict:
    """Describe the available intervals so a client can offer the choice."""
    options = [
        {
            "id": interval.value,
            "label": INTERVAL_LABELS[interval],
            "requires_custom_date": interval is DeliveryInterval.CUSTOM,
        }
        for interval in DeliveryInterval
    ]
    return {"question": DELIVERY_QUESTION, "options": options}
