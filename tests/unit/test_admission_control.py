"""Tests for subscription admission control."""

from datetime import datetime, timezone

import pytest

from provider_subscriptions.errors import DuplicateSubscriptionError
from provider_subscriptions.models import SubscriptionKind, SubscriptionRecord, SubscriptionStatus
from provider_subscriptions.repositories.database import Database
from provider_subscriptions.repositories.subscription_store import SubscriptionStore
from provider_subscriptions.services.admission_control import AdmissionControl
from provider_subscriptions.utils.billing_period import window_for

NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
PROVIDER_ID = "prv_0000000000000001"


@pytest.fixture
def store():
    """Create a subscription store on a fresh database."""
    return SubscriptionStore(Database())


@pytest.fixture
def admission(store):
    return AdmissionControl(store)


def add_subscription(store, subscription_id, kind, reference, status):
    window = window_for(kind, reference)
    store.add(
        SubscriptionRecord(
            subscription_id=subscription_id,
            provider_id=PROVIDER_ID,
            kind=kind,
            start_date=reference,
            end_date=window.end,
            period_start=window.start,
            status=status,
            price=5000,
            created_at=reference,
        )
    )


class TestAdmissionControl:
    """Test the overlap rule."""

    def test_first_subscription_allowed(self, admission):
        decision = admission.can_create(PROVIDER_ID, SubscriptionKind.MONTHLY, NOW)
        assert decision.allowed
        assert decision.reason is None

    @pytest.mark.parametrize("status", [SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE])
    def test_live_subscription_blocks_same_window(self, store, admission, status):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, status)

        decision = admission.can_create(PROVIDER_ID, SubscriptionKind.MONTHLY, NOW)

        assert not decision.allowed
        assert decision.conflicting_subscription_id == "sub_0000000000000001"
        assert decision.reason == (
            "You already have a pending or active monthly subscription for the current period"
        )

    def test_annual_message_mentions_year(self, store, admission):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.ANNUAL, NOW, SubscriptionStatus.PENDING)

        decision = admission.can_create(PROVIDER_ID, SubscriptionKind.ANNUAL, NOW)
        assert decision.reason.endswith("annual subscription for the current year")

    def test_expired_subscription_does_not_block(self, store, admission):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, SubscriptionStatus.EXPIRED)
        assert admission.can_create(PROVIDER_ID, SubscriptionKind.MONTHLY, NOW).allowed

    def test_kinds_are_independent(self, store, admission):
        """Test a live monthly does not block an annual and vice versa."""
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, SubscriptionStatus.ACTIVE)
        assert admission.can_create(PROVIDER_ID, SubscriptionKind.ANNUAL, NOW).allowed

    def test_next_month_allowed(self, store, admission):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, SubscriptionStatus.ACTIVE)
        april = datetime(2024, 4, 1, 0, 0, 1, tzinfo=timezone.utc)
        assert admission.can_create(PROVIDER_ID, SubscriptionKind.MONTHLY, april).allowed

    def test_other_provider_allowed(self, store, admission):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, SubscriptionStatus.ACTIVE)
        assert admission.can_create("prv_0000000000000002", SubscriptionKind.MONTHLY, NOW).allowed

    def test_ensure_can_create_raises(self, store, admission):
        add_subscription(store, "sub_0000000000000001", SubscriptionKind.MONTHLY, NOW, SubscriptionStatus.PENDING)

        with pytest.raises(DuplicateSubscriptionError) as exc_info:
            admission.ensure_can_create(PROVIDER_ID, SubscriptionKind.MONTHLY, NOW)

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "duplicate_subscription"
        assert exc_info.value.existing_subscription_id == "sub_0000000000000001"
