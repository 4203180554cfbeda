"""Expiration sweep - demotes lapsed subscriptions and revokes visibility.

Each subscription is expired in its own transaction; a failing row is
logged and skipped so the rest of the batch still makes progress. Running
the sweep twice is harmless because expire() ignores subscriptions that are
no longer ACTIVE. When a lease store is configured, overlapping runs across
processes are coalesced: a run that cannot take the lease does nothing.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field

from provider_subscriptions.logging_config import bound_context, get_logger
from provider_subscriptions.models.subscription import SubscriptionStatus
from provider_subscriptions.repositories.key_value_store import KeyValueStore, create_lease_store
from provider_subscriptions.services.subscription_lifecycle import (
    SubscriptionLifecycle,
    get_subscription_lifecycle,
)

logger = get_logger(__name__)

LEASE_KEY = "sweep:expiration"


class SweepReport(BaseModel):
    """Outcome of one sweep run."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    expired_ids: List[str] = Field(default_factory=list)
    lapsed_ids: List[str] = Field(default_factory=list)
    failed_ids: List[str] = Field(default_factory=list)
    skipped: bool = False

    @property
    def expired_count(self) -> int:
        return len(self.expired_ids)


class ExpirationSweep:
    """Batch expiration of ACTIVE subscriptions whose window has elapsed.

    Args:
        lifecycle: Subscription lifecycle (defaults to global instance)
        lease_store: Optional store used to coalesce concurrent runs
        lease_ttl_seconds: Lease lifetime; defaults to the scheduler setting
        pending_timeout_days: Lapse PENDING subscriptions older than this;
            defaults to the subscription setting (None disables lapsing)
    """

    def __init__(
        self,
        lifecycle: Optional[SubscriptionLifecycle] = None,
        lease_store: Optional[KeyValueStore] = None,
        lease_ttl_seconds: Optional[int] = None,
        pending_timeout_days: Optional[int] = None,
    ):
        self.lifecycle = lifecycle if lifecycle is not None else get_subscription_lifecycle()
        self.store = self.lifecycle.store
        self.lease_store = lease_store
        config = self.lifecycle.config
        self.lease_ttl_seconds = lease_ttl_seconds or config.scheduler_settings.lease_ttl_seconds
        self.pending_timeout_days = (
            pending_timeout_days
            if pending_timeout_days is not None
            else config.subscription_settings.pending_timeout_days
        )
        self._last_report: Optional[SweepReport] = None

    @property
    def last_report(self) -> Optional[SweepReport]:
        return self._last_report

    def _acquire_lease(self) -> Optional[str]:
        if self.lease_store is None:
            return ""
        token = uuid.uuid4().hex
        if self.lease_store.set(LEASE_KEY, token, ttl_seconds=self.lease_ttl_seconds, only_if_absent=True):
            return token
        return None

    def _release_lease(self, token: str) -> None:
        if self.lease_store is None:
            return
        # Another run may have taken over after our lease expired.
        if self.lease_store.get(LEASE_KEY) == token:
            self.lease_store.delete(LEASE_KEY)

    def run(self, now: Optional[datetime] = None) -> int:
        """Expire every ACTIVE subscription whose end date is before now.

        Args:
            now: Reference instant (defaults to the clock)

        Returns:
            Number of subscriptions expired by this run
        """
        now = now or self.lifecycle.clock.now()
        with bound_context(sweep_run_id=uuid.uuid4().hex[:12]):
            return self._run(now)

    def _run(self, now: datetime) -> int:
        report = SweepReport(started_at=now)

        token = self._acquire_lease()
        if token is None:
            report.skipped = True
            report.finished_at = self.lifecycle.clock.now()
            self._last_report = report
            logger.info("expiration_sweep_skipped", reason="lease held by another run")
            return 0

        try:
            self._expire_due(now, report)
            if self.pending_timeout_days:
                self._lapse_pending(now, report)
        finally:
            self._release_lease(token)

        report.finished_at = self.lifecycle.clock.now()
        self._last_report = report

        logger.info(
            "expiration_sweep_completed",
            expired=len(report.expired_ids),
            lapsed=len(report.lapsed_ids),
            failed=len(report.failed_ids),
        )
        return report.expired_count

    def _expire_due(self, now: datetime, report: SweepReport) -> None:
        due = self.store.get_active_ending_before(now)
        logger.info("expiration_sweep_started", now=now.isoformat(), subscriptions_due=len(due))

        for subscription in due:
            try:
                expired = self.lifecycle.expire(subscription.subscription_id)
                if expired.status == SubscriptionStatus.EXPIRED:
                    report.expired_ids.append(expired.subscription_id)
            except Exception as e:
                report.failed_ids.append(subscription.subscription_id)
                logger.error(
                    "subscription_expiration_failed",
                    subscription_id=subscription.subscription_id,
                    provider_id=subscription.provider_id,
                    error=str(e),
                    exc_info=True,
                )

    def _lapse_pending(self, now: datetime, report: SweepReport) -> None:
        cutoff = now - timedelta(days=self.pending_timeout_days)
        for subscription in self.store.get_pending_created_before(cutoff):
            try:
                lapsed = self.lifecycle.expire_abandoned(subscription.subscription_id)
                if lapsed.status == SubscriptionStatus.EXPIRED:
                    report.lapsed_ids.append(lapsed.subscription_id)
            except Exception as e:
                report.failed_ids.append(subscription.subscription_id)
                logger.error(
                    "pending_subscription_lapse_failed",
                    subscription_id=subscription.subscription_id,
                    error=str(e),
                    exc_info=True,
                )


_sweep_instance: Optional[ExpirationSweep] = None
_sweep_lock = threading.Lock()


def get_expiration_sweep() -> ExpirationSweep:
    """Get global sweep instance (singleton), wired to the configured lease store."""
    global _sweep_instance
    if _sweep_instance is None:
        with _sweep_lock:
            if _sweep_instance is None:
                _sweep_instance = ExpirationSweep(lease_store=create_lease_store())
    return _sweep_instance
