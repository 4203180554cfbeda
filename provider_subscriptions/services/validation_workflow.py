"""Administrator validation workflow.

Resolves pending payments and identity verification requests. Each decision
runs in a single transaction covering the payment, the subscription, the
provider's visibility flags and the audit entry, so either all of them
change or none do.
"""

import threading
from typing import Optional

from provider_subscriptions.errors import InvalidTransitionError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.payment import PaymentRecord, ValidationDecision
from provider_subscriptions.models.provider import ProviderRecord, VerificationStatus
from provider_subscriptions.models.subscription import SubscriptionRecord, SubscriptionStatus
from provider_subscriptions.repositories.payment_store import PaymentStore, get_payment_store
from provider_subscriptions.services.audit_trail import AuditTrail, get_audit_trail
from provider_subscriptions.services.subscription_lifecycle import (
    SubscriptionLifecycle,
    get_subscription_lifecycle,
)

logger = get_logger(__name__)

DEFAULT_PAYMENT_REASONS = {
    ValidationDecision.APPROVE: "Payment approved",
    ValidationDecision.REJECT: "Payment rejected",
}

DEFAULT_IDENTITY_REASONS = {
    ValidationDecision.APPROVE: "Identity verified",
    ValidationDecision.REJECT: "Identity rejected",
}

DEFAULT_ACTIVATION_REASON = "Subscription activated by administrator"


class ValidationWorkflow:
    """Administrator decisions on payments, identities and subscriptions."""

    def __init__(
        self,
        lifecycle: Optional[SubscriptionLifecycle] = None,
        payment_store: Optional[PaymentStore] = None,
        audit_trail: Optional[AuditTrail] = None,
    ):
        self.lifecycle = lifecycle if lifecycle is not None else get_subscription_lifecycle()
        self.db = self.lifecycle.db
        self.provider_store = self.lifecycle.provider_store
        self.payment_store = payment_store if payment_store is not None else get_payment_store()
        self.audit = audit_trail if audit_trail is not None else get_audit_trail()

    def _grant_visibility(self, subscription_id: str, reason: str) -> SubscriptionRecord:
        """Activate a subscription and switch its provider's visibility flags on."""
        subscription = self.lifecycle.activate(subscription_id, reason=reason)
        provider = self.provider_store.get_by_id(subscription.provider_id)
        provider.set_subscription_active(True, reason=reason)
        provider.set_self_declared_available(True, reason=reason)
        self.provider_store.update(provider)
        return subscription

    def validate_payment(
        self,
        payment_id: str,
        decision: ValidationDecision,
        admin_id: str,
        reason: Optional[str] = None,
    ) -> PaymentRecord:
        """Approve or reject a pending payment.

        Approval activates the subscription and makes the provider visible.
        Repeating the decision already taken returns the payment unchanged
        and records nothing.

        Args:
            payment_id: Payment to resolve
            decision: APPROVE or REJECT
            admin_id: Acting administrator
            reason: Free-text reason for the audit trail

        Returns:
            The resolved PaymentRecord

        Raises:
            PaymentNotFoundError: If the payment does not exist
            InvalidTransitionError: If the payment was resolved the other way,
                or the subscription can no longer be activated
        """
        requested = decision.payment_status
        reason = reason or DEFAULT_PAYMENT_REASONS[decision]

        with self.db.transaction():
            payment = self.payment_store.get_by_id(payment_id)

            if not payment.is_pending():
                if payment.status == requested:
                    logger.info(
                        "payment_validation_repeated",
                        payment_id=payment_id,
                        status=payment.status.value,
                        admin_id=admin_id,
                    )
                    return payment
                raise InvalidTransitionError(
                    f"Payment {payment_id} is already {payment.status.value}"
                )

            if decision == ValidationDecision.APPROVE:
                subscription = self.lifecycle.get_subscription(payment.subscription_id)
                if subscription.status != SubscriptionStatus.PENDING:
                    raise InvalidTransitionError(
                        f"Subscription {subscription.subscription_id} is already "
                        f"{subscription.status.value}; reject payment {payment_id} instead"
                    )

            payment.set_status(requested, self.lifecycle.clock.now(), reason=reason)
            self.payment_store.update(payment)

            if decision == ValidationDecision.APPROVE:
                self._grant_visibility(payment.subscription_id, reason)

            self.audit.record_payment_decision(admin_id, payment, decision, reason)

        logger.info(
            "payment_validated",
            payment_id=payment_id,
            subscription_id=payment.subscription_id,
            decision=decision.value,
            admin_id=admin_id,
        )
        return payment

    def validate_identity(
        self,
        provider_id: str,
        decision: ValidationDecision,
        admin_id: str,
        reason: Optional[str] = None,
    ) -> ProviderRecord:
        """Resolve a provider's identity verification.

        Repeating the current outcome is a no-op.

        Raises:
            ProviderNotFoundError: If the provider does not exist
        """
        target = (
            VerificationStatus.VERIFIED
            if decision == ValidationDecision.APPROVE
            else VerificationStatus.REJECTED
        )
        reason = reason or DEFAULT_IDENTITY_REASONS[decision]

        with self.db.transaction():
            provider = self.provider_store.get_by_id(provider_id)
            if provider.verification_status == target:
                logger.info(
                    "identity_validation_repeated",
                    provider_id=provider_id,
                    status=target.value,
                    admin_id=admin_id,
                )
                return provider

            previous = provider.verification_status
            provider.set_verification_status(target, reason=reason)
            self.provider_store.update(provider)
            self.audit.record_identity_decision(admin_id, provider_id, decision, previous, reason)

        logger.info(
            "identity_validated",
            provider_id=provider_id,
            decision=decision.value,
            admin_id=admin_id,
        )
        return provider

    def activate_subscription(
        self, subscription_id: str, admin_id: str, reason: Optional[str] = None
    ) -> SubscriptionRecord:
        """Activate a subscription without a payment.

        Has the same effect as an approved payment and is audited as
        subscription_activated. Activating an ACTIVE subscription records
        nothing.

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist
            InvalidTransitionError: If the subscription is EXPIRED
        """
        reason = reason or DEFAULT_ACTIVATION_REASON

        with self.db.transaction():
            subscription = self.lifecycle.get_subscription(subscription_id)
            already_active = subscription.status == SubscriptionStatus.ACTIVE
            if not already_active:
                subscription = self._grant_visibility(subscription_id, reason)
                self.audit.record_direct_activation(admin_id, subscription, reason)

        logger.info(
            "subscription_activated_directly",
            subscription_id=subscription_id,
            provider_id=subscription.provider_id,
            admin_id=admin_id,
            already_active=already_active,
        )
        return subscription


_workflow_instance: Optional[ValidationWorkflow] = None
_workflow_lock = threading.Lock()


def get_validation_workflow() -> ValidationWorkflow:
    global _workflow_instance
    if _workflow_instance is None:
        with _workflow_lock:
            if _workflow_instance is None:
                _workflow_instance = ValidationWorkflow()
    return _workflow_instance
