"""Payment ledger - records payment declarations against subscriptions.

Declaring a payment never touches the subscription; only the validation
workflow resolves payments.
"""

import threading
from typing import List, Optional

from provider_subscriptions.errors import ConflictError, ForbiddenError, InvalidRequestError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.payment import (
    REFERENCED_METHODS,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
)
from provider_subscriptions.models.subscription import SubscriptionStatus
from provider_subscriptions.repositories.database import Database, get_database
from provider_subscriptions.repositories.payment_store import PaymentStore, get_payment_store
from provider_subscriptions.repositories.subscription_store import (
    SubscriptionStore,
    get_subscription_store,
)
from provider_subscriptions.services.clock import Clock, get_clock
from provider_subscriptions.utils.token_generator import (
    generate_payment_id,
    generate_transfer_reference,
)

logger = get_logger(__name__)


class PaymentLedger:
    """Payment declaration and lookup."""

    def __init__(
        self,
        database: Optional[Database] = None,
        payment_store: Optional[PaymentStore] = None,
        subscription_store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = database if database is not None else get_database()
        self.store = payment_store if payment_store is not None else get_payment_store()
        self.subscription_store = subscription_store if subscription_store is not None else get_subscription_store()
        self.clock = clock if clock is not None else get_clock()

    def declare(
        self,
        subscription_id: str,
        method: PaymentMethod,
        amount: int,
        proof_reference: Optional[str] = None,
        external_reference: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> PaymentRecord:
        """Declare a payment against a subscription.

        Args:
            subscription_id: Subscription being paid for
            method: Payment channel
            amount: Amount in the smallest currency unit
            proof_reference: Proof-of-payment reference, required for CASH
            external_reference: Transfer reference; generated for referenced
                methods when omitted
            provider_id: Acting provider; must own the subscription when given

        Returns:
            PENDING PaymentRecord

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist
            ForbiddenError: If the acting provider does not own the subscription
            InvalidRequestError: If the amount or proof reference is invalid
            ConflictError: If the subscription is no longer payable or already
                has a pending payment through the same method
        """
        with self.db.transaction():
            subscription = self.subscription_store.get_by_id(subscription_id)

            if provider_id is not None and subscription.provider_id != provider_id:
                raise ForbiddenError(
                    f"Subscription {subscription_id} does not belong to provider {provider_id}"
                )
            if amount <= 0:
                raise InvalidRequestError("Payment amount must be positive")
            if method == PaymentMethod.CASH and not proof_reference:
                raise InvalidRequestError("A proof-of-payment reference is required for cash payments")

            if subscription.status == SubscriptionStatus.ACTIVE:
                raise ConflictError(f"Subscription {subscription_id} is already active")
            if subscription.status == SubscriptionStatus.EXPIRED:
                raise ConflictError(f"Subscription {subscription_id} has expired")

            existing = self.store.find_pending_for_subscription(subscription_id, method)
            if existing is not None:
                raise ConflictError(
                    f"A {method.value.lower()} payment is already awaiting validation "
                    f"for subscription {subscription_id}"
                )

            now = self.clock.now()
            if external_reference is None and method in REFERENCED_METHODS:
                external_reference = generate_transfer_reference(
                    timestamp_millis=int(now.timestamp() * 1000)
                )

            payment = PaymentRecord(
                payment_id=generate_payment_id(),
                subscription_id=subscription_id,
                provider_id=subscription.provider_id,
                method=method,
                amount=amount,
                status=PaymentStatus.PENDING,
                external_reference=external_reference,
                proof_reference=proof_reference,
                declared_at=now,
            )
            self.store.add(payment)

        if amount != subscription.price:
            logger.warning(
                "payment_amount_differs_from_price",
                payment_id=payment.payment_id,
                amount=amount,
                price=subscription.price,
            )
        logger.info(
            "payment_declared",
            payment_id=payment.payment_id,
            subscription_id=subscription_id,
            provider_id=subscription.provider_id,
            method=method.value,
            amount=amount,
        )
        return payment

    def get_payment(self, payment_id: str) -> PaymentRecord:
        return self.store.get_by_id(payment_id)

    def list_for_subscription(self, subscription_id: str) -> List[PaymentRecord]:
        """Payments of a subscription, newest first."""
        return self.store.get_by_subscription(subscription_id)

    def history_for_provider(self, provider_id: str) -> List[PaymentRecord]:
        """Payments declared by a provider, newest first."""
        return self.store.get_by_provider(provider_id)

    def list_pending(self, method: Optional[PaymentMethod] = None) -> List[PaymentRecord]:
        """Payments awaiting an administrator decision, oldest first."""
        return self.store.get_pending(method)


_ledger_instance: Optional[PaymentLedger] = None
_ledger_lock = threading.Lock()


def get_payment_ledger() -> PaymentLedger:
    global _ledger_instance
    if _ledger_instance is None:
        with _ledger_lock:
            if _ledger_instance is None:
                _ledger_instance = PaymentLedger()
    return _ledger_instance
