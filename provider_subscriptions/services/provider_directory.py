"""Provider directory - registration, profile and identity submission.

Profile updates only ever touch descriptive fields. The visibility flags
belong to the validation workflow and the expiration sweep, except for the
provider's own availability toggle.
"""

import threading
from typing import List, Optional

from provider_subscriptions.errors import ConflictError, InvalidRequestError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.provider import ProviderRecord, VerificationStatus
from provider_subscriptions.repositories.database import Database, get_database
from provider_subscriptions.repositories.provider_store import ProviderStore, get_provider_store
from provider_subscriptions.services.clock import Clock, get_clock
from provider_subscriptions.utils.token_generator import generate_provider_id

logger = get_logger(__name__)

PROFILE_FIELDS = ("business_name", "description")


class ProviderDirectory:
    def __init__(
        self,
        database: Optional[Database] = None,
        provider_store: Optional[ProviderStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = database if database is not None else get_database()
        self.store = provider_store if provider_store is not None else get_provider_store()
        self.clock = clock if clock is not None else get_clock()

    def register(
        self, account_id: str, business_name: str, description: Optional[str] = None
    ) -> ProviderRecord:
        """Register an account as a provider.

        Raises:
            ConflictError: If the account already has a provider profile
        """
        with self.db.transaction():
            provider = ProviderRecord(
                provider_id=generate_provider_id(),
                account_id=account_id,
                business_name=business_name,
                description=description,
                created_at=self.clock.now(),
            )
            self.store.add(provider)

        logger.info(
            "provider_registered",
            provider_id=provider.provider_id,
            account_id=account_id,
        )
        return provider

    def get_provider(self, provider_id: str) -> ProviderRecord:
        return self.store.get_by_id(provider_id)

    def get_by_account(self, account_id: str) -> ProviderRecord:
        return self.store.get_by_account(account_id)

    def update_profile(self, provider_id: str, **changes) -> ProviderRecord:
        """Update descriptive profile fields.

        Raises:
            InvalidRequestError: If a change names anything but a profile field
        """
        unknown = sorted(set(changes) - set(PROFILE_FIELDS))
        if unknown:
            raise InvalidRequestError(f"Fields cannot be updated: {', '.join(unknown)}")

        with self.db.transaction():
            provider = self.store.get_by_id(provider_id)
            for field, value in changes.items():
                if value is not None:
                    setattr(provider, field, value)
            self.store.update(provider)

        logger.info("provider_profile_updated", provider_id=provider_id, fields=sorted(changes))
        return provider

    def set_availability(self, provider_id: str, available: bool) -> ProviderRecord:
        """Provider-controlled availability toggle."""
        with self.db.transaction():
            provider = self.store.get_by_id(provider_id)
            provider.set_self_declared_available(available, reason="Set by provider")
            self.store.update(provider)
        return provider

    def submit_for_verification(self, provider_id: str) -> ProviderRecord:
        """Ask administrators to verify the provider's identity.

        Submitting while already PENDING is a no-op. A REJECTED provider may
        submit again.

        Raises:
            ConflictError: If the provider is already VERIFIED
        """
        with self.db.transaction():
            provider = self.store.get_by_id(provider_id)
            if provider.verification_status == VerificationStatus.VERIFIED:
                raise ConflictError(f"Provider {provider_id} is already verified")
            if provider.verification_status != VerificationStatus.PENDING:
                provider.set_verification_status(
                    VerificationStatus.PENDING, reason="Submitted for verification"
                )
                self.store.update(provider)
        return provider

    def list_pending_verification(self) -> List[ProviderRecord]:
        """Providers waiting for identity verification, oldest first."""
        return self.store.get_by_verification_status(VerificationStatus.PENDING)

    def list_all(self) -> List[ProviderRecord]:
        return self.store.get_all()


_directory_instance: Optional[ProviderDirectory] = None
_directory_lock = threading.Lock()


def get_provider_directory() -> ProviderDirectory:
    global _directory_instance
    if _directory_instance is None:
        with _directory_lock:
            if _directory_instance is None:
                _directory_instance = ProviderDirectory()
    return _directory_instance
