"""Tests for provider storage."""

from datetime import datetime, timedelta, timezone

import pytest

from provider_subscriptions.errors import ConflictError
from provider_subscriptions.models import ProviderRecord, VerificationStatus
from provider_subscriptions.repositories.database import Database
from provider_subscriptions.repositories.provider_store import ProviderNotFoundError, ProviderStore

NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def store():
    """Create a provider store on a fresh database."""
    return ProviderStore(Database())


def make_provider(
    provider_id: str,
    account_id: str,
    status: VerificationStatus = VerificationStatus.UNVERIFIED,
    created_at: datetime = NOW,
) -> ProviderRecord:
    return ProviderRecord(
        provider_id=provider_id,
        account_id=account_id,
        business_name="Couture Sow",
        verification_status=status,
        created_at=created_at,
    )


class TestProviderStore:
    """Test provider storage and lookups."""

    def test_add_and_lookup_by_account(self, store):
        store.add(make_provider("prv_0000000000000001", "acc-1"))

        assert store.get_by_account("acc-1").provider_id == "prv_0000000000000001"
        assert store.find_by_account("acc-2") is None

    def test_one_provider_per_account(self, store):
        store.add(make_provider("prv_0000000000000001", "acc-1"))

        with pytest.raises(ConflictError, match="already registered"):
            store.add(make_provider("prv_0000000000000002", "acc-1"))

    def test_unknown_account_raises(self, store):
        with pytest.raises(ProviderNotFoundError, match="acc-404"):
            store.get_by_account("acc-404")

    def test_unknown_id_raises(self, store):
        with pytest.raises(ProviderNotFoundError):
            store.get_by_id("prv_missing")

    def test_update(self, store):
        store.add(make_provider("prv_0000000000000001", "acc-1"))
        provider = store.get_by_id("prv_0000000000000001")
        provider.subscription_active = True
        store.update(provider)

        assert store.get_by_id("prv_0000000000000001").subscription_active is True

    def test_by_verification_status_oldest_first(self, store):
        store.add(make_provider("prv_0000000000000002", "acc-2", VerificationStatus.PENDING, NOW + timedelta(days=1)))
        store.add(make_provider("prv_0000000000000001", "acc-1", VerificationStatus.PENDING, NOW))
        store.add(make_provider("prv_0000000000000003", "acc-3", VerificationStatus.VERIFIED))

        pending = store.get_by_verification_status(VerificationStatus.PENDING)
        assert [p.provider_id for p in pending] == ["prv_0000000000000001", "prv_0000000000000002"]
        assert store.count_by_verification_status(VerificationStatus.VERIFIED) == 1

    def test_statistics(self, store):
        store.add(make_provider("prv_0000000000000001", "acc-1", VerificationStatus.VERIFIED))
        store.add(make_provider("prv_0000000000000002", "acc-2", VerificationStatus.PENDING))

        assert store.get_statistics() == {
            "total_providers": 2,
            "verified": 1,
            "pending_verification": 1,
            "subscription_active": 0,
        }
