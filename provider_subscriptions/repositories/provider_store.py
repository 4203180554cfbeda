"""Provider store - transactional storage for provider profiles."""

import threading
from typing import Dict, List, Optional

from provider_subscriptions.errors import ConflictError, NotFoundError
from provider_subscriptions.models.provider import ProviderRecord, VerificationStatus
from provider_subscriptions.repositories.database import Database, Table, get_database


class ProviderNotFoundError(NotFoundError):
    """Raised when a provider is not found in the store."""

    error_code = "provider_not_found"


class ProviderStore:
    """Storage for provider records.

    One provider per account: the account id is unique across the store.
    """

    def __init__(self, database: Optional[Database] = None):
        self._db = database if database is not None else get_database()
        self._table: Table[ProviderRecord] = Table(self._db, "provider_id")

    def add(self, provider: ProviderRecord) -> None:
        """Add a provider to the store.

        Raises:
            ConflictError: If the account already owns a provider
            ValueError: If provider id already exists
        """
        with self._db.lock:
            if self.find_by_account(provider.account_id) is not None:
                raise ConflictError(
                    f"Account {provider.account_id} is already registered as a provider"
                )
            self._table.insert(provider)

    def get_by_id(self, provider_id: str) -> ProviderRecord:
        """Get provider by id.

        Raises:
            ProviderNotFoundError: If id not found
        """
        provider = self._table.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider not found: {provider_id}")
        return provider

    def find_by_id(self, provider_id: str) -> Optional[ProviderRecord]:
        return self._table.get(provider_id)

    def find_by_account(self, account_id: str) -> Optional[ProviderRecord]:
        for provider in self._table.select(lambda p: p.account_id == account_id):
            return provider
        return None

    def get_by_account(self, account_id: str) -> ProviderRecord:
        """Get the provider owned by an account.

        Raises:
            ProviderNotFoundError: If the account has no provider profile
        """
        provider = self.find_by_account(account_id)
        if provider is None:
            raise ProviderNotFoundError(f"No provider profile for account: {account_id}")
        return provider

    def get_by_verification_status(self, status: VerificationStatus) -> List[ProviderRecord]:
        """Providers in a verification status, oldest registration first."""
        providers = self._table.select(lambda p: p.verification_status == status)
        return sorted(providers, key=lambda p: p.created_at)

    def get_all(self) -> List[ProviderRecord]:
        return self._table.select()

    def update(self, provider: ProviderRecord) -> None:
        """Update an existing provider.

        Raises:
            ProviderNotFoundError: If provider id not found
        """
        if not self._table.replace(provider):
            raise ProviderNotFoundError(f"Provider not found: {provider.provider_id}")

    def exists(self, provider_id: str) -> bool:
        return self._table.exists(provider_id)

    def count(self) -> int:
        return self._table.count()

    def count_by_verification_status(self, status: VerificationStatus) -> int:
        return self._table.count(lambda p: p.verification_status == status)

    def clear(self) -> int:
        """Clear all providers from the store.

        Warning: This removes all data. Use with caution.
        """
        return self._table.clear()

    def get_statistics(self) -> Dict[str, int]:
        providers = self._table.select()
        return {
            "total_providers": len(providers),
            "verified": sum(
                1 for p in providers if p.verification_status == VerificationStatus.VERIFIED
            ),
            "pending_verification": sum(
                1 for p in providers if p.verification_status == VerificationStatus.PENDING
            ),
            "subscription_active": sum(1 for p in providers if p.subscription_active),
        }

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, provider_id: str) -> bool:
        return self.exists(provider_id)

    def __repr__(self) -> str:
        return f"ProviderStore(providers={self.count()})"


# Global store instance
_store_instance: Optional[ProviderStore] = None
_store_lock = threading.Lock()


def get_provider_store() -> ProviderStore:
    """Get global provider store instance (singleton)."""
    global _store_instance
    if _store_instance is None:
        with _store_lock:
            if _store_instance is None:
                _store_instance = ProviderStore()
    return _store_instance


def reset_provider_store() -> int:
    """Reset global provider store (clears all data)."""
    return get_provider_store().clear()
