"""Tests that services keep the collaborators they are given.

Empty stores define __len__ and are falsy; they must still be used instead
of the global instances.
"""

from datetime import datetime, timezone

import pytest

from provider_subscriptions.config import Config
from provider_subscriptions.models import SubscriptionKind
from provider_subscriptions.repositories.audit_log import AuditLog, get_audit_log
from provider_subscriptions.repositories.database import Database, get_database
from provider_subscriptions.repositories.payment_store import PaymentStore
from provider_subscriptions.repositories.provider_store import ProviderStore, get_provider_store
from provider_subscriptions.repositories.subscription_store import (
    SubscriptionStore,
    get_subscription_store,
)
from provider_subscriptions.services.admission_control import AdmissionControl
from provider_subscriptions.services.audit_trail import AuditTrail
from provider_subscriptions.services.clock import Clock
from provider_subscriptions.services.payment_ledger import PaymentLedger
from provider_subscriptions.services.provider_directory import ProviderDirectory
from provider_subscriptions.services.subscription_lifecycle import SubscriptionLifecycle
from provider_subscriptions.services.validation_workflow import ValidationWorkflow

START = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def database():
    return Database()


@pytest.fixture
def stores(database):
    """Fresh, empty stores on one database."""
    return {
        "providers": ProviderStore(database),
        "subscriptions": SubscriptionStore(database),
        "payments": PaymentStore(database),
        "audit": AuditLog(database),
    }


@pytest.fixture
def clock():
    return Clock(start=START)


class TestInjectedCollaborators:
    """Test empty injected stores are not swapped for the global ones."""

    def test_empty_stores_are_falsy(self, stores):
        assert not stores["providers"]
        assert not stores["subscriptions"]
        assert not stores["audit"]

    def test_lifecycle(self, database, stores, clock):
        lifecycle = SubscriptionLifecycle(
            database=database,
            subscription_store=stores["subscriptions"],
            provider_store=stores["providers"],
            clock=clock,
            config=Config("config/marketplace.yaml"),
        )

        assert lifecycle.db is database
        assert lifecycle.store is stores["subscriptions"]
        assert lifecycle.provider_store is stores["providers"]
        assert lifecycle.admission.store is stores["subscriptions"]
        assert lifecycle.store is not get_subscription_store()

    def test_directory_and_ledger(self, database, stores, clock):
        directory = ProviderDirectory(database, stores["providers"], clock)
        ledger = PaymentLedger(database, stores["payments"], stores["subscriptions"], clock)

        assert directory.db is database
        assert directory.store is stores["providers"]
        assert directory.store is not get_provider_store()
        assert ledger.db is database
        assert ledger.subscription_store is stores["subscriptions"]

    def test_workflow_and_trail(self, database, stores, clock):
        lifecycle = SubscriptionLifecycle(
            database=database,
            subscription_store=stores["subscriptions"],
            provider_store=stores["providers"],
            clock=clock,
            config=Config("config/marketplace.yaml"),
        )
        trail = AuditTrail(stores["audit"], clock)
        workflow = ValidationWorkflow(lifecycle, stores["payments"], trail)

        assert trail.log is stores["audit"]
        assert trail.log is not get_audit_log()
        assert workflow.audit is trail
        assert workflow.payment_store is stores["payments"]
        assert workflow.db is database

    def test_admission_control(self, stores):
        assert AdmissionControl(stores["subscriptions"]).store is stores["subscriptions"]

    def test_records_land_in_injected_stores(self, database, stores, clock):
        """Test writes go to the injected database, not the global one."""
        directory = ProviderDirectory(database, stores["providers"], clock)
        lifecycle = SubscriptionLifecycle(
            database=database,
            subscription_store=stores["subscriptions"],
            provider_store=stores["providers"],
            clock=clock,
            config=Config("config/marketplace.yaml"),
        )

        provider = directory.register("acc-wiring", "Menuiserie Sow")
        lifecycle.create(provider.provider_id, SubscriptionKind.MONTHLY)

        assert stores["providers"].count() == 1
        assert stores["subscriptions"].count() == 1
        assert database is not get_database()
