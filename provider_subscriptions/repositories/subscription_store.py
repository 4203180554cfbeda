"""Subscription store - transactional storage for subscription records.

Enforces the storage-level backstop of admission control: at most one live
(PENDING or ACTIVE) subscription per provider, kind and calendar window.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional

from provider_subscriptions.errors import DuplicateSubscriptionError, NotFoundError
from provider_subscriptions.models.subscription import (
    SubscriptionKind,
    SubscriptionRecord,
    SubscriptionStatus,
)
from provider_subscriptions.repositories.database import Database, Table, get_database
from provider_subscriptions.utils.billing_period import windows_overlap


class SubscriptionNotFoundError(NotFoundError):
    """Raised when a subscription is not found in the store."""

    error_code = "subscription_not_found"


class SubscriptionStore:
    """Storage for subscription records.

    Lookup by id, provider, status and time. Every read returns a copy.
    """

    def __init__(self, database: Optional[Database] = None):
        self._db = database if database is not None else get_database()
        self._table: Table[SubscriptionRecord] = Table(self._db, "subscription_id")

    def add(self, subscription: SubscriptionRecord) -> None:
        """Add a subscription to the store.

        Args:
            subscription: SubscriptionRecord to store

        Raises:
            DuplicateSubscriptionError: If a live subscription already holds
                the same provider, kind and calendar window
            ValueError: If the subscription id already exists
        """
        with self._db.lock:
            if subscription.is_live():
                clash = self._find_live_in_window(subscription)
                if clash is not None:
                    raise DuplicateSubscriptionError(subscription.kind, clash.subscription_id)
            self._table.insert(subscription)

    def _find_live_in_window(self, subscription: SubscriptionRecord) -> Optional[SubscriptionRecord]:
        for existing in self._table.select(
            lambda s: s.provider_id == subscription.provider_id
            and s.kind == subscription.kind
            and s.period_start == subscription.period_start
            and s.is_live()
            and s.subscription_id != subscription.subscription_id
        ):
            return existing
        return None

    def get_by_id(self, subscription_id: str) -> SubscriptionRecord:
        """Get subscription by id.

        Raises:
            SubscriptionNotFoundError: If id not found
        """
        subscription = self._table.get(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")
        return subscription

    def find_by_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        return self._table.get(subscription_id)

    def get_by_provider(self, provider_id: str) -> List[SubscriptionRecord]:
        """Get all subscriptions of a provider, oldest first."""
        subscriptions = self._table.select(lambda s: s.provider_id == provider_id)
        return sorted(subscriptions, key=lambda s: s.created_at)

    def find_overlapping(
        self,
        provider_id: str,
        kind: SubscriptionKind,
        window_start: datetime,
        window_end: datetime,
    ) -> List[SubscriptionRecord]:
        """Find live subscriptions of the given kind whose window overlaps [start, end].

        Args:
            provider_id: Provider identifier
            kind: Subscription kind to match
            window_start: First instant of the candidate window
            window_end: Last instant of the candidate window

        Returns:
            PENDING or ACTIVE subscriptions overlapping the window
        """
        return self._table.select(
            lambda s: s.provider_id == provider_id
            and s.kind == kind
            and s.is_live()
            and windows_overlap(s.start_date, s.end_date, window_start, window_end)
        )

    def get_by_status(self, status: SubscriptionStatus) -> List[SubscriptionRecord]:
        return self._table.select(lambda s: s.status == status)

    def get_active_ending_before(self, now: datetime) -> List[SubscriptionRecord]:
        """Get ACTIVE subscriptions whose end date is strictly before now.

        Args:
            now: Reference instant

        Returns:
            Subscriptions due for expiration, earliest end first
        """
        due = self._table.select(
            lambda s: s.status == SubscriptionStatus.ACTIVE and s.end_date < now
        )
        return sorted(due, key=lambda s: s.end_date)

    def get_pending_created_before(self, cutoff: datetime) -> List[SubscriptionRecord]:
        """Get PENDING subscriptions created strictly before cutoff."""
        stale = self._table.select(
            lambda s: s.status == SubscriptionStatus.PENDING and s.created_at < cutoff
        )
        return sorted(stale, key=lambda s: s.created_at)

    def has_active(self, provider_id: str, exclude_id: Optional[str] = None) -> bool:
        """Check whether a provider holds an ACTIVE subscription.

        Args:
            provider_id: Provider identifier
            exclude_id: Subscription id to ignore

        Returns:
            True if at least one other ACTIVE subscription exists
        """
        return (
            self._table.count(
                lambda s: s.provider_id == provider_id
                and s.status == SubscriptionStatus.ACTIVE
                and s.subscription_id != exclude_id
            )
            > 0
        )

    def update(self, subscription: SubscriptionRecord) -> None:
        """Update an existing subscription.

        Raises:
            SubscriptionNotFoundError: If subscription id not found
            DuplicateSubscriptionError: If the update revives a clashing subscription
        """
        with self._db.lock:
            current = self._table.get(subscription.subscription_id)
            if current is None:
                raise SubscriptionNotFoundError(
                    f"Subscription not found: {subscription.subscription_id}"
                )
            if subscription.is_live() and not current.is_live():
                clash = self._find_live_in_window(subscription)
                if clash is not None:
                    raise DuplicateSubscriptionError(subscription.kind, clash.subscription_id)
            self._table.replace(subscription)

    def exists(self, subscription_id: str) -> bool:
        return self._table.exists(subscription_id)

    def get_all(self) -> List[SubscriptionRecord]:
        return self._table.select()

    def count(self) -> int:
        return self._table.count()

    def count_by_status(self, status: SubscriptionStatus) -> int:
        return self._table.count(lambda s: s.status == status)

    def clear(self) -> int:
        """Clear all subscriptions from the store.

        Warning: This removes all data. Use with caution.

        Returns:
            Number of subscriptions removed
        """
        return self._table.clear()

    def get_statistics(self) -> Dict[str, int]:
        """Get subscription store statistics.

        Returns:
            Dictionary with total, per-status and per-kind counts and the
            number of distinct providers
        """
        subscriptions = self._table.select()
        return {
            "total_subscriptions": len(subscriptions),
            "unique_providers": len(set(s.provider_id for s in subscriptions)),
            "pending": sum(1 for s in subscriptions if s.status == SubscriptionStatus.PENDING),
            "active": sum(1 for s in subscriptions if s.status == SubscriptionStatus.ACTIVE),
            "expired": sum(1 for s in subscriptions if s.status == SubscriptionStatus.EXPIRED),
            "monthly": sum(1 for s in subscriptions if s.kind == SubscriptionKind.MONTHLY),
            "annual": sum(1 for s in subscriptions if s.kind == SubscriptionKind.ANNUAL),
        }

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, subscription_id: str) -> bool:
        return self.exists(subscription_id)

    def __repr__(self) -> str:
        return f"SubscriptionStore(subscriptions={self.count()})"


# Global store instance
_store_instance: Optional[SubscriptionStore] = None
_store_lock = threading.Lock()


def get_subscription_store() -> SubscriptionStore:
    """Get global subscription store instance (singleton)."""
    global _store_instance
    if _store_instance is None:
        with _store_lock:
            if _store_instance is None:
                _store_instance = SubscriptionStore()
    return _store_instance


def reset_subscription_store() -> int:
    """Reset global subscription store (clears all data).

    Warning: This removes all subscription data. Use with caution.
    """
    return get_subscription_store().clear()
