"""Subscription lifecycle state machine.

Responsibilities:
- Create subscriptions (admission control + insert in one transaction)
- Activate, expire and lapse subscriptions
- Keep the provider's cached subscription_active flag consistent with the
  provider's subscriptions inside every transition's transaction
"""

import threading
from typing import List, Optional, Tuple

from provider_subscriptions.config import Config, get_config
from provider_subscriptions.errors import InvalidRequestError, InvalidTransitionError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.plan import SubscriptionPlan
from provider_subscriptions.models.subscription import (
    SubscriptionKind,
    SubscriptionRecord,
    SubscriptionStatus,
)
from provider_subscriptions.repositories.database import Database, get_database
from provider_subscriptions.repositories.plan_repository import PlanRepository
from provider_subscriptions.repositories.provider_store import ProviderStore, get_provider_store
from provider_subscriptions.repositories.subscription_store import (
    SubscriptionStore,
    get_subscription_store,
)
from provider_subscriptions.services.admission_control import AdmissionControl
from provider_subscriptions.services.clock import Clock, get_clock
from provider_subscriptions.utils.billing_period import window_for
from provider_subscriptions.utils.token_generator import generate_subscription_id

logger = get_logger(__name__)


class SubscriptionLifecycle:
    """Subscription lifecycle management.

    Handles creation and the PENDING -> ACTIVE -> EXPIRED transitions.
    Collaborators default to the global instances; tests inject their own.
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        subscription_store: Optional[SubscriptionStore] = None,
        provider_store: Optional[ProviderStore] = None,
        plan_repository: Optional[PlanRepository] = None,
        clock: Optional[Clock] = None,
        config: Optional[Config] = None,
    ):
        self.db = database if database is not None else get_database()
        self.store = subscription_store if subscription_store is not None else get_subscription_store()
        self.provider_store = provider_store if provider_store is not None else get_provider_store()
        self.config = config if config is not None else get_config()
        self.plan_repo = plan_repository if plan_repository is not None else PlanRepository(self.config)
        self.clock = clock if clock is not None else get_clock()
        self.admission = AdmissionControl(self.store)

        logger.info("subscription_lifecycle_initialized")

    def _resolve_price(
        self,
        kind: SubscriptionKind,
        plan_id: Optional[str],
        price: Optional[int],
    ) -> Tuple[int, str, Optional[SubscriptionPlan]]:
        """Resolve (price, currency, plan) for a new subscription.

        Order: the plan if one is named, then the explicit price, then the
        configured default price for the kind.
        """
        if plan_id is not None:
            plan = self.plan_repo.get_by_id(plan_id)
            if not plan.active:
                raise InvalidRequestError(f"Plan {plan_id} is not open for subscription")
            if plan.kind != kind:
                raise InvalidRequestError(
                    f"Plan {plan_id} is a {plan.kind.value.lower()} plan, "
                    f"not {kind.value.lower()}"
                )
            return plan.price, plan.currency, plan

        if price is not None:
            if price < 0:
                raise InvalidRequestError("Price must not be negative")
            return price, self.config.currency, None

        default_price = self.config.default_prices.for_kind(kind)
        if default_price is None:
            raise InvalidRequestError(
                f"No price for a {kind.value.lower()} subscription: name a plan or a price"
            )
        return default_price, self.config.currency, None

    def create(
        self,
        provider_id: str,
        kind: SubscriptionKind,
        plan_id: Optional[str] = None,
        price: Optional[int] = None,
    ) -> SubscriptionRecord:
        """Create a PENDING subscription covering the current calendar window.

        Args:
            provider_id: Requesting provider
            kind: MONTHLY or ANNUAL
            plan_id: Plan to take the price from
            price: Ad-hoc price used when no plan is named

        Returns:
            Created SubscriptionRecord

        Raises:
            ProviderNotFoundError: If the provider does not exist
            PlanNotFoundError: If plan_id is unknown
            InvalidRequestError: If no usable price can be resolved
            DuplicateSubscriptionError: If admission control rejects the request
        """
        with self.db.transaction():
            self.provider_store.get_by_id(provider_id)
            resolved_price, currency, plan = self._resolve_price(kind, plan_id, price)

            now = self.clock.now()
            self.admission.ensure_can_create(provider_id, kind, now)

            window = window_for(kind, now)
            subscription = SubscriptionRecord(
                subscription_id=generate_subscription_id(),
                provider_id=provider_id,
                plan_id=plan.plan_id if plan else None,
                kind=kind,
                start_date=now,
                end_date=window.end,
                period_start=window.start,
                status=SubscriptionStatus.PENDING,
                price=resolved_price,
                currency=currency,
                created_at=now,
            )
            self.store.add(subscription)

        logger.info(
            "subscription_created",
            subscription_id=subscription.subscription_id,
            provider_id=provider_id,
            kind=kind.value,
            plan_id=subscription.plan_id,
            price=resolved_price,
            end_date=subscription.end_date.isoformat(),
        )
        return subscription

    def activate(self, subscription_id: str, reason: Optional[str] = None) -> SubscriptionRecord:
        """Move a subscription to ACTIVE.

        Activating an ACTIVE subscription returns it unchanged.

        Raises:
            SubscriptionNotFoundError: If subscription id not found
            InvalidTransitionError: If the subscription is EXPIRED or its
                window has already ended
        """
        with self.db.transaction():
            subscription = self.store.get_by_id(subscription_id)
            if subscription.status == SubscriptionStatus.ACTIVE:
                logger.debug("subscription_already_active", subscription_id=subscription_id)
                return subscription

            now = self.clock.now()
            if subscription.status == SubscriptionStatus.PENDING and subscription.end_date < now:
                raise InvalidTransitionError(
                    f"Subscription {subscription_id} covered a window that ended on "
                    f"{subscription.end_date.date().isoformat()}"
                )

            subscription.set_status(SubscriptionStatus.ACTIVE, now, reason=reason)
            self.store.update(subscription)
            self.sync_subscription_flag(subscription.provider_id, reason=reason or "Subscription activated")

        logger.info(
            "subscription_activated",
            subscription_id=subscription_id,
            provider_id=subscription.provider_id,
        )
        return subscription

    def expire(self, subscription_id: str, reason: Optional[str] = None) -> SubscriptionRecord:
        """Move an ACTIVE subscription to EXPIRED.

        PENDING and EXPIRED subscriptions are returned unchanged.

        Raises:
            SubscriptionNotFoundError: If subscription id not found
        """
        reason = reason or "Validity window elapsed"
        with self.db.transaction():
            subscription = self.store.get_by_id(subscription_id)
            if subscription.status != SubscriptionStatus.ACTIVE:
                logger.debug(
                    "subscription_expire_skipped",
                    subscription_id=subscription_id,
                    status=subscription.status.value,
                )
                return subscription

            subscription.set_status(SubscriptionStatus.EXPIRED, self.clock.now(), reason=reason)
            self.store.update(subscription)
            self.sync_subscription_flag(subscription.provider_id, reason=reason)

        logger.info(
            "subscription_expired",
            subscription_id=subscription_id,
            provider_id=subscription.provider_id,
            end_date=subscription.end_date.isoformat(),
        )
        return subscription

    def expire_abandoned(self, subscription_id: str) -> SubscriptionRecord:
        """Lapse a PENDING subscription that was never paid.

        Subscriptions in any other status are returned unchanged.
        """
        with self.db.transaction():
            subscription = self.store.get_by_id(subscription_id)
            if subscription.status != SubscriptionStatus.PENDING:
                return subscription

            subscription.set_status(
                SubscriptionStatus.EXPIRED, self.clock.now(), reason="Abandoned while pending"
            )
            self.store.update(subscription)

        logger.info(
            "pending_subscription_lapsed",
            subscription_id=subscription_id,
            provider_id=subscription.provider_id,
            created_at=subscription.created_at.isoformat(),
        )
        return subscription

    def sync_subscription_flag(self, provider_id: str, reason: Optional[str] = None) -> bool:
        """Recompute the provider's subscription_active flag.

        Returns:
            The flag's new value (False if the provider no longer exists)
        """
        with self.db.transaction():
            provider = self.provider_store.find_by_id(provider_id)
            if provider is None:
                logger.warning("subscription_flag_sync_skipped", provider_id=provider_id)
                return False

            active = self.store.has_active(provider_id)
            if provider.subscription_active != active:
                provider.set_subscription_active(active, reason=reason)
                self.provider_store.update(provider)
            return active

    def get_subscription(self, subscription_id: str) -> SubscriptionRecord:
        return self.store.get_by_id(subscription_id)

    def get_current(self, provider_id: str) -> Optional[SubscriptionRecord]:
        """Most recently created PENDING or ACTIVE subscription, if any."""
        live = [s for s in self.store.get_by_provider(provider_id) if s.is_live()]
        return live[-1] if live else None

    def list_for_provider(self, provider_id: str) -> List[SubscriptionRecord]:
        return self.store.get_by_provider(provider_id)

    def list_plans(self) -> List[SubscriptionPlan]:
        """Active plans, cheapest first."""
        return self.plan_repo.get_active_plans()


_lifecycle_instance: Optional[SubscriptionLifecycle] = None
_lifecycle_lock = threading.Lock()


def get_subscription_lifecycle() -> SubscriptionLifecycle:
    """Get global lifecycle instance (singleton)."""
    global _lifecycle_instance
    if _lifecycle_instance is None:
        with _lifecycle_lock:
            if _lifecycle_instance is None:
                _lifecycle_instance = SubscriptionLifecycle()
    return _lifecycle_instance
