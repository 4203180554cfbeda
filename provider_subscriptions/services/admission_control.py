"""Admission control for new subscriptions.

A provider may hold at most one PENDING or ACTIVE subscription of a kind
whose window overlaps the calendar window of a new request. The check is
only race-free when run in the same database transaction as the insert
that follows it.
"""

from datetime import datetime
from typing import NamedTuple, Optional

from provider_subscriptions.errors import DuplicateSubscriptionError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.subscription import SubscriptionKind
from provider_subscriptions.repositories.subscription_store import (
    SubscriptionStore,
    get_subscription_store,
)
from provider_subscriptions.utils.billing_period import window_for

logger = get_logger(__name__)


class AdmissionDecision(NamedTuple):
    """Outcome of an admission check."""

    allowed: bool
    reason: Optional[str] = None
    conflicting_subscription_id: Optional[str] = None


class AdmissionControl:
    def __init__(self, subscription_store: Optional[SubscriptionStore] = None):
        self.store = subscription_store if subscription_store is not None else get_subscription_store()

    def can_create(
        self, provider_id: str, kind: SubscriptionKind, reference: datetime
    ) -> AdmissionDecision:
        """Check whether a subscription of kind may be created at reference.

        Args:
            provider_id: Requesting provider
            kind: Requested subscription kind
            reference: Instant the request is made at

        Returns:
            AdmissionDecision; when rejected it carries the message shown to
            the provider and the id of the subscription in the way
        """
        window = window_for(kind, reference)
        overlapping = self.store.find_overlapping(provider_id, kind, window.start, window.end)
        if not overlapping:
            return AdmissionDecision(allowed=True)

        conflict = DuplicateSubscriptionError(kind, overlapping[0].subscription_id)
        logger.info(
            "admission_rejected",
            provider_id=provider_id,
            kind=kind.value,
            conflicting_subscription_id=conflict.existing_subscription_id,
        )
        return AdmissionDecision(
            allowed=False,
            reason=conflict.message,
            conflicting_subscription_id=conflict.existing_subscription_id,
        )

    def ensure_can_create(
        self, provider_id: str, kind: SubscriptionKind, reference: datetime
    ) -> None:
        """Raise DuplicateSubscriptionError unless admission is allowed."""
        decision = self.can_create(provider_id, kind, reference)
        if not decision.allowed:
            raise DuplicateSubscriptionError(kind, decision.conflicting_subscription_id)
