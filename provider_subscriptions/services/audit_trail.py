"""Audit trail of administrator decisions.

Builds typed audit entries and appends them to the audit log. Called from
inside the transaction of the decision being recorded, so an entry exists
if and only if the decision was committed.
"""

import threading
from typing import List, Optional

from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.audit import (
    AuditAction,
    AuditEntry,
    DirectActivationDetails,
    IdentityDecisionDetails,
    PaymentDecisionDetails,
)
from provider_subscriptions.models.payment import PaymentRecord, ValidationDecision
from provider_subscriptions.models.provider import VerificationStatus
from provider_subscriptions.models.subscription import SubscriptionRecord
from provider_subscriptions.repositories.audit_log import AuditLog, get_audit_log
from provider_subscriptions.services.clock import Clock, get_clock
from provider_subscriptions.utils.token_generator import generate_audit_id

logger = get_logger(__name__)


class AuditTrail:
    def __init__(self, audit_log: Optional[AuditLog] = None, clock: Optional[Clock] = None):
        self.log = audit_log if audit_log is not None else get_audit_log()
        self.clock = clock if clock is not None else get_clock()

    def _append(self, actor_id: str, action: AuditAction, target_id: str, details) -> AuditEntry:
        entry = AuditEntry(
            entry_id=generate_audit_id(),
            actor_id=actor_id,
            action=action,
            target_id=target_id,
            details=details,
            created_at=self.clock.now(),
        )
        self.log.append(entry)
        self.log.after_commit(
            lambda: logger.info(
                "audit_entry_recorded",
                entry_id=entry.entry_id,
                actor_id=actor_id,
                action=action.value,
                target_id=target_id,
            )
        )
        return entry

    def record_payment_decision(
        self,
        actor_id: str,
        payment: PaymentRecord,
        decision: ValidationDecision,
        reason: str,
    ) -> AuditEntry:
        action = (
            AuditAction.PAYMENT_APPROVED
            if decision == ValidationDecision.APPROVE
            else AuditAction.PAYMENT_REJECTED
        )
        details = PaymentDecisionDetails(
            payment_id=payment.payment_id,
            subscription_id=payment.subscription_id,
            provider_id=payment.provider_id,
            method=payment.method.value,
            amount=payment.amount,
            reason=reason,
        )
        return self._append(actor_id, action, payment.payment_id, details)

    def record_identity_decision(
        self,
        actor_id: str,
        provider_id: str,
        decision: ValidationDecision,
        previous_status: VerificationStatus,
        reason: str,
    ) -> AuditEntry:
        action = (
            AuditAction.IDENTITY_VERIFIED
            if decision == ValidationDecision.APPROVE
            else AuditAction.IDENTITY_REJECTED
        )
        details = IdentityDecisionDetails(
            provider_id=provider_id,
            previous_status=previous_status.value,
            reason=reason,
        )
        return self._append(actor_id, action, provider_id, details)

    def record_direct_activation(
        self, actor_id: str, subscription: SubscriptionRecord, reason: str
    ) -> AuditEntry:
        details = DirectActivationDetails(
            subscription_id=subscription.subscription_id,
            provider_id=subscription.provider_id,
            reason=reason,
        )
        return self._append(
            actor_id, AuditAction.SUBSCRIPTION_ACTIVATED, subscription.subscription_id, details
        )

    def recent(self, limit: int = 20) -> List[AuditEntry]:
        """Most recent entries first."""
        return self.log.get_recent(limit)

    def for_target(self, target_id: str) -> List[AuditEntry]:
        return self.log.get_by_target(target_id)


_trail_instance: Optional[AuditTrail] = None
_trail_lock = threading.Lock()


def get_audit_trail() -> AuditTrail:
    global _trail_instance
    if _trail_instance is None:
        with _trail_lock:
            if _trail_instance is None:
                _trail_instance = AuditTrail()
    return _trail_instance
