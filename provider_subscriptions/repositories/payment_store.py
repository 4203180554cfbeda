"""Payment store - transactional storage for declared payments."""

import threading
from typing import Dict, List, Optional

from provider_subscriptions.errors import NotFoundError
from provider_subscriptions.models.payment import PaymentMethod, PaymentRecord, PaymentStatus
from provider_subscriptions.repositories.database import Database, Table, get_database


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment is not found in the store."""

    error_code = "payment_not_found"


class PaymentStore:
    """Storage for payment records, keyed by payment id."""

    def __init__(self, database: Optional[Database] = None):
        self._db = database if database is not None else get_database()
        self._table: Table[PaymentRecord] = Table(self._db, "payment_id")

    def add(self, payment: PaymentRecord) -> None:
        """Add a payment to the store.

        Raises:
            ValueError: If payment id already exists
        """
        self._table.insert(payment)

    def get_by_id(self, payment_id: str) -> PaymentRecord:
        """Get payment by id.

        Raises:
            PaymentNotFoundError: If id not found
        """
        payment = self._table.get(payment_id)
        if payment is None:
            raise PaymentNotFoundError(f"Payment not found: {payment_id}")
        return payment

    def find_by_id(self, payment_id: str) -> Optional[PaymentRecord]:
        return self._table.get(payment_id)

    def get_by_subscription(self, subscription_id: str) -> List[PaymentRecord]:
        """Payments declared against a subscription, newest first."""
        payments = self._table.select(lambda p: p.subscription_id == subscription_id)
        return sorted(payments, key=lambda p: p.declared_at, reverse=True)

    def get_by_provider(self, provider_id: str) -> List[PaymentRecord]:
        """Payments declared by a provider, newest first."""
        payments = self._table.select(lambda p: p.provider_id == provider_id)
        return sorted(payments, key=lambda p: p.declared_at, reverse=True)

    def get_pending(self, method: Optional[PaymentMethod] = None) -> List[PaymentRecord]:
        """Get payments waiting for validation, oldest first.

        Args:
            method: Only return payments declared through this channel

        Returns:
            PENDING payments
        """
        payments = self._table.select(
            lambda p: p.status == PaymentStatus.PENDING and (method is None or p.method == method)
        )
        return sorted(payments, key=lambda p: p.declared_at)

    def find_pending_for_subscription(
        self, subscription_id: str, method: PaymentMethod
    ) -> Optional[PaymentRecord]:
        """Find a PENDING payment for a subscription declared through a method."""
        for payment in self._table.select(
            lambda p: p.subscription_id == subscription_id
            and p.method == method
            and p.status == PaymentStatus.PENDING
        ):
            return payment
        return None

    def update(self, payment: PaymentRecord) -> None:
        """Update an existing payment.

        Raises:
            PaymentNotFoundError: If payment id not found
        """
        if not self._table.replace(payment):
            raise PaymentNotFoundError(f"Payment not found: {payment.payment_id}")

    def exists(self, payment_id: str) -> bool:
        return self._table.exists(payment_id)

    def count(self) -> int:
        return self._table.count()

    def count_by_status(self, status: PaymentStatus) -> int:
        return self._table.count(lambda p: p.status == status)

    def clear(self) -> int:
        """Clear all payments from the store.

        Warning: This removes all data. Use with caution.
        """
        return self._table.clear()

    def get_statistics(self) -> Dict[str, int]:
        payments = self._table.select()
        return {
            "total_payments": len(payments),
            "pending": sum(1 for p in payments if p.status == PaymentStatus.PENDING),
            "valid": sum(1 for p in payments if p.status == PaymentStatus.VALID),
            "rejected": sum(1 for p in payments if p.status == PaymentStatus.REJECTED),
        }

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, payment_id: str) -> bool:
        return self.exists(payment_id)

    def __repr__(self) -> str:
        return f"PaymentStore(payments={self.count()})"


# Global store instance
_store_instance: Optional[PaymentStore] = None
_store_lock = threading.Lock()


def get_payment_store() -> PaymentStore:
    """Get global payment store instance (singleton)."""
    global _store_instance
    if _store_instance is None:
        with _store_lock:
            if _store_instance is None:
                _store_instance = PaymentStore()
    return _store_instance


def reset_payment_store() -> int:
    """Reset global payment store (clears all data)."""
    return get_payment_store().clear()
