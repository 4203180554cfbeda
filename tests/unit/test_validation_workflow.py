"""Tests for administrator validation decisions."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from provider_subscriptions.config import Config
from provider_subscriptions.errors import InvalidTransitionError
from provider_subscriptions.models import (
    AuditAction,
    PaymentMethod,
    PaymentStatus,
    SubscriptionKind,
    SubscriptionStatus,
    ValidationDecision,
    VerificationStatus,
)
from provider_subscriptions.repositories.audit_log import AuditLog
from provider_subscriptions.repositories.database import Database
from provider_subscriptions.repositories.payment_store import PaymentNotFoundError, PaymentStore
from provider_subscriptions.repositories.provider_store import ProviderStore
from provider_subscriptions.repositories.subscription_store import SubscriptionStore
from provider_subscriptions.services.audit_trail import AuditTrail
from provider_subscriptions.services.clock import Clock
from provider_subscriptions.services.payment_ledger import PaymentLedger
from provider_subscriptions.services.provider_directory import ProviderDirectory
from provider_subscriptions.services.subscription_lifecycle import SubscriptionLifecycle
from provider_subscriptions.services.validation_workflow import ValidationWorkflow

START = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
ADMIN_ID = "admin-1"


@pytest.fixture
def clock():
    return Clock(start=START)


@pytest.fixture
def database():
    return Database()


@pytest.fixture
def provider_store(database):
    return ProviderStore(database)


@pytest.fixture
def subscription_store(database):
    return SubscriptionStore(database)


@pytest.fixture
def payment_store(database):
    return PaymentStore(database)


@pytest.fixture
def audit_log(database):
    return AuditLog(database)


@pytest.fixture
def lifecycle(database, subscription_store, provider_store, clock):
    return SubscriptionLifecycle(
        database=database,
        subscription_store=subscription_store,
        provider_store=provider_store,
        clock=clock,
        config=Config("config/marketplace.yaml"),
    )


@pytest.fixture
def workflow(lifecycle, payment_store, audit_log, clock):
    """Create a validation workflow wired to the shared database."""
    return ValidationWorkflow(lifecycle, payment_store, AuditTrail(audit_log, clock))


@pytest.fixture
def provider(database, provider_store, clock):
    """Register a provider that has submitted its identity for verification."""
    directory = ProviderDirectory(database, provider_store, clock)
    registered = directory.register("acc-1", "Froid Service Kane")
    return directory.submit_for_verification(registered.provider_id)


@pytest.fixture
def subscription(lifecycle, provider):
    return lifecycle.create(provider.provider_id, SubscriptionKind.MONTHLY)


@pytest.fixture
def payment(database, payment_store, subscription_store, clock, subscription):
    """Declare a pending transfer against the subscription."""
    ledger = PaymentLedger(database, payment_store, subscription_store, clock)
    return ledger.declare(subscription.subscription_id, PaymentMethod.INSTANT_TRANSFER, 5000)


class TestValidatePayment:
    """Test payment approval and rejection."""

    def test_approve_activates_everything(
        self, workflow, payment, subscription_store, provider_store, audit_log
    ):
        """Test approval updates payment, subscription, flags and audit together."""
        validated = workflow.validate_payment(
            payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID, reason="confirmed via transfer log"
        )

        assert validated.status == PaymentStatus.VALID
        assert validated.validated_at == START

        subscription = subscription_store.get_by_id(payment.subscription_id)
        assert subscription.status == SubscriptionStatus.ACTIVE

        provider = provider_store.get_by_id(payment.provider_id)
        assert provider.subscription_active is True
        assert provider.self_declared_available is True

        entries = audit_log.get_recent()
        assert len(entries) == 1
        assert entries[0].action == AuditAction.PAYMENT_APPROVED
        assert entries[0].actor_id == ADMIN_ID
        assert entries[0].target_id == payment.payment_id
        assert entries[0].reason == "confirmed via transfer log"

    def test_reject_leaves_subscription_pending(
        self, workflow, payment, subscription_store, provider_store, audit_log
    ):
        rejected = workflow.validate_payment(payment.payment_id, ValidationDecision.REJECT, ADMIN_ID)

        assert rejected.status == PaymentStatus.REJECTED
        assert subscription_store.get_by_id(payment.subscription_id).status == SubscriptionStatus.PENDING
        assert provider_store.get_by_id(payment.provider_id).subscription_active is False
        entry = audit_log.get_recent()[0]
        assert entry.action == AuditAction.PAYMENT_REJECTED
        assert entry.reason == "Payment rejected"

    def test_repeated_decision_is_noop(self, workflow, payment, audit_log):
        workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)
        again = workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, "admin-2")

        assert again.status == PaymentStatus.VALID
        assert audit_log.count() == 1

    def test_contradicting_decision_rejected(self, workflow, payment):
        workflow.validate_payment(payment.payment_id, ValidationDecision.REJECT, ADMIN_ID)

        with pytest.raises(InvalidTransitionError, match="already REJECTED"):
            workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

    def test_unknown_payment(self, workflow):
        with pytest.raises(PaymentNotFoundError):
            workflow.validate_payment("pay_ffffffffffffffff", ValidationDecision.APPROVE, ADMIN_ID)

    def test_audit_failure_rolls_back_everything(
        self, workflow, payment, payment_store, subscription_store, provider_store, audit_log
    ):
        """Test no partial effect survives a failure at the last step."""
        with patch.object(
            workflow.audit, "record_payment_decision", side_effect=RuntimeError("audit unavailable")
        ):
            with pytest.raises(RuntimeError):
                workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert payment_store.get_by_id(payment.payment_id).status == PaymentStatus.PENDING
        assert subscription_store.get_by_id(payment.subscription_id).status == SubscriptionStatus.PENDING
        provider = provider_store.get_by_id(payment.provider_id)
        assert provider.subscription_active is False
        assert provider.self_declared_available is False
        assert audit_log.count() == 0

    def test_approval_for_expired_subscription_rolls_back(
        self, workflow, lifecycle, payment, payment_store
    ):
        lifecycle.expire_abandoned(payment.subscription_id)

        with pytest.raises(InvalidTransitionError):
            workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert payment_store.get_by_id(payment.payment_id).status == PaymentStatus.PENDING


    def test_second_method_cannot_be_approved_after_activation(
        self, workflow, payment, database, payment_store, subscription_store, clock, audit_log
    ):
        """Test one subscription is never paid for twice."""
        ledger = PaymentLedger(database, payment_store, subscription_store, clock)
        cash = ledger.declare(
            payment.subscription_id, PaymentMethod.CASH, 5000, proof_reference="receipt-118"
        )
        workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

        with pytest.raises(InvalidTransitionError, match="already ACTIVE"):
            workflow.validate_payment(cash.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert payment_store.get_by_id(cash.payment_id).status == PaymentStatus.PENDING
        assert len(audit_log.get_by_action(AuditAction.PAYMENT_APPROVED)) == 1

        rejected = workflow.validate_payment(
            cash.payment_id, ValidationDecision.REJECT, ADMIN_ID, reason="duplicate payment"
        )
        assert rejected.status == PaymentStatus.REJECTED

    def test_approval_after_window_ended_rolls_back(
        self, workflow, payment, payment_store, subscription_store, provider_store, clock
    ):
        """Test a late approval does not make the provider visible."""
        clock.advance(days=60)

        with pytest.raises(InvalidTransitionError, match="ended on 2024-03-31"):
            workflow.validate_payment(payment.payment_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert payment_store.get_by_id(payment.payment_id).status == PaymentStatus.PENDING
        assert subscription_store.get_by_id(payment.subscription_id).status == SubscriptionStatus.PENDING
        assert provider_store.get_by_id(payment.provider_id).subscription_active is False


class TestValidateIdentity:
    """Test identity decisions."""

    def test_verify(self, workflow, provider, audit_log):
        verified = workflow.validate_identity(provider.provider_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert verified.verification_status == VerificationStatus.VERIFIED
        entry = audit_log.get_recent()[0]
        assert entry.action == AuditAction.IDENTITY_VERIFIED
        assert entry.details.previous_status == "PENDING"

    def test_reject_then_verify(self, workflow, provider, audit_log):
        workflow.validate_identity(provider.provider_id, ValidationDecision.REJECT, ADMIN_ID, reason="blurry scan")
        verified = workflow.validate_identity(provider.provider_id, ValidationDecision.APPROVE, ADMIN_ID)

        assert verified.verification_status == VerificationStatus.VERIFIED
        actions = [e.action for e in audit_log.get_by_target(provider.provider_id)]
        assert actions == [AuditAction.IDENTITY_REJECTED, AuditAction.IDENTITY_VERIFIED]

    def test_repeated_outcome_is_noop(self, workflow, provider, audit_log):
        workflow.validate_identity(provider.provider_id, ValidationDecision.APPROVE, ADMIN_ID)
        workflow.validate_identity(provider.provider_id, ValidationDecision.APPROVE, ADMIN_ID)
        assert audit_log.count() == 1


class TestActivateSubscription:
    """Test direct administrator activation."""

    def test_direct_activation(self, workflow, subscription, provider_store, audit_log):
        activated = workflow.activate_subscription(subscription.subscription_id, ADMIN_ID)

        assert activated.status == SubscriptionStatus.ACTIVE
        provider = provider_store.get_by_id(subscription.provider_id)
        assert provider.subscription_active is True
        assert provider.self_declared_available is True

        entry = audit_log.get_recent()[0]
        assert entry.action == AuditAction.SUBSCRIPTION_ACTIVATED
        assert entry.target_id == subscription.subscription_id
        assert entry.reason == "Subscription activated by administrator"

    def test_already_active_records_nothing(self, workflow, subscription, audit_log):
        workflow.activate_subscription(subscription.subscription_id, ADMIN_ID)
        workflow.activate_subscription(subscription.subscription_id, ADMIN_ID)
        assert audit_log.count() == 1

    def test_expired_cannot_be_activated(self, workflow, lifecycle, subscription, audit_log):
        lifecycle.expire_abandoned(subscription.subscription_id)

        with pytest.raises(InvalidTransitionError):
            workflow.activate_subscription(subscription.subscription_id, ADMIN_ID)
        assert audit_log.count() == 0
