"""Billing period utilities.

Maps a subscription kind and a reference instant to the calendar window the
subscription covers. Monthly subscriptions cover the calendar month that
contains the reference instant, annual subscriptions the calendar year.
Windows are closed intervals ending on the last microsecond of the period.
"""

import calendar
from datetime import datetime
from typing import NamedTuple

from provider_subscriptions.models.subscription import SubscriptionKind


class BillingWindow(NamedTuple):
    """Closed calendar window [start, end] covered by a subscription."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def window_for(kind: SubscriptionKind, reference: datetime) -> BillingWindow:
    """Compute the calendar window containing the reference instant.

    The timezone (or lack of one) of the reference is preserved.

    Args:
        kind: Subscription kind (MONTHLY or ANNUAL)
        reference: Instant the window must contain

    Returns:
        BillingWindow with the first and last instant of the period

    Raises:
        ValueError: If kind is not a known subscription kind

    Examples:
        >>> window_for(SubscriptionKind.MONTHLY, datetime(2024, 2, 15))
        BillingWindow(start=datetime(2024, 2, 1, 0, 0), end=datetime(2024, 2, 29, 23, 59, 59, 999999))

        >>> window_for(SubscriptionKind.ANNUAL, datetime(2024, 6, 1))
        BillingWindow(start=datetime(2024, 1, 1, 0, 0), end=datetime(2024, 12, 31, 23, 59, 59, 999999))
    """
    midnight = reference.replace(hour=0, minute=0, second=0, microsecond=0)

    if kind == SubscriptionKind.MONTHLY:
        last_day = calendar.monthrange(reference.year, reference.month)[1]
        start = midnight.replace(day=1)
        end = midnight.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
    elif kind == SubscriptionKind.ANNUAL:
        start = midnight.replace(month=1, day=1)
        end = midnight.replace(month=12, day=31, hour=23, minute=59, second=59, microsecond=999999)
    else:
        raise ValueError(f"Unsupported subscription kind: {kind!r}")

    return BillingWindow(start=start, end=end)


def windows_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    """Check whether two closed intervals intersect.

    Touching endpoints count as an overlap.
    """
    return first_start <= second_end and first_end >= second_start


def period_label(kind: SubscriptionKind) -> str:
    """Human-readable name of the period a kind covers ("period" or "year")."""
    if kind == SubscriptionKind.ANNUAL:
        return "year"
    return "period"
