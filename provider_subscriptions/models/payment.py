"""Payment declaration and validation models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PaymentMethod(str, Enum):
    """Channel through which a provider declares having paid."""

    INSTANT_TRANSFER = "INSTANT_TRANSFER"  # Wallet transfer, carries an external reference
    CASH = "CASH"  # Cash handed over, requires a proof-of-payment reference
    MOBILE_MONEY = "MOBILE_MONEY"  # Operator mobile money


# Methods that get a generated external reference when none is supplied
REFERENCED_METHODS = frozenset({PaymentMethod.INSTANT_TRANSFER, PaymentMethod.MOBILE_MONEY})


class PaymentStatus(str, Enum):
    """Payment validation status."""

    PENDING = "PENDING"
    VALID = "VALID"
    REJECTED = "REJECTED"


class ValidationDecision(str, Enum):
    """Administrator decision on a pending payment or identity request."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"

    @property
    def payment_status(self) -> PaymentStatus:
        if self == ValidationDecision.APPROVE:
            return PaymentStatus.VALID
        return PaymentStatus.REJECTED


class PaymentRecord(BaseModel):
    """A payment declared against a subscription."""

    payment_id: str = Field(..., description="Unique payment identifier")
    subscription_id: str = Field(..., description="Subscription the payment is for")
    provider_id: str = Field(..., description="Owning provider (denormalized)")
    method: PaymentMethod = Field(..., description="Declared payment channel")
    amount: int = Field(..., gt=0, description="Amount in the smallest currency unit")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING, description="Validation status")
    external_reference: Optional[str] = Field(None, description="Transfer reference")
    proof_reference: Optional[str] = Field(None, description="Proof-of-payment reference (e.g. receipt URL)")
    declared_at: datetime = Field(..., description="Declaration time")
    validated_at: Optional[datetime] = Field(None, description="Time of the administrator decision")

    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    def set_status(
        self,
        new_status: PaymentStatus,
        changed_at: datetime,
        reason: Optional[str] = None,
    ) -> None:
        """Resolve the payment and log the transition.

        Only PENDING payments can be resolved.

        Raises:
            InvalidTransitionError: If the payment is already resolved
        """
        from provider_subscriptions.errors import InvalidTransitionError
        from provider_subscriptions.state_logger import log_payment_status_change

        old_status = self.status
        if old_status == new_status:
            return

        if old_status != PaymentStatus.PENDING:
            raise InvalidTransitionError(
                f"Payment {self.payment_id} is already {old_status.value}"
            )

        self.status = new_status
        self.validated_at = changed_at

        log_payment_status_change(
            payment_id=self.payment_id,
            subscription_id=self.subscription_id,
            old_status=old_status.value,
            new_status=new_status.value,
            reason=reason,
            provider_id=self.provider_id,
            amount=self.amount,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "payment_id": "pay_5e6f7a8b9c0d1e2f",
                "subscription_id": "sub_a1b2c3d4e5f6a7b8",
                "provider_id": "prv_0f1e2d3c4b5a6978",
                "method": "INSTANT_TRANSFER",
                "amount": 5000,
                "status": "PENDING",
                "external_reference": "TRF_1710063000000_9F86D081",
                "declared_at": "2024-03-10T09:45:00Z",
            }
        }
