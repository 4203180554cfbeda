"""Subscription kind, status and lifecycle models.

A subscription is one paid visibility window for one provider. It starts
PENDING, becomes ACTIVE once a payment is approved (or an administrator
activates it directly) and ends EXPIRED. EXPIRED is terminal.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SubscriptionKind(str, Enum):
    """Billing cadence of a subscription."""

    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""

    PENDING = "PENDING"  # Requested, waiting for a validated payment
    ACTIVE = "ACTIVE"  # Paid, provider is discoverable
    EXPIRED = "EXPIRED"  # Window elapsed (or abandoned while pending)


# PENDING -> EXPIRED is only taken when abandoned pending subscriptions are
# configured to lapse.
ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED}),
    SubscriptionStatus.ACTIVE: frozenset({SubscriptionStatus.EXPIRED}),
    SubscriptionStatus.EXPIRED: frozenset(),
}

LIVE_STATUSES = frozenset({SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE})


class SubscriptionRecord(BaseModel):
    """Internal subscription record tracking status and validity window."""

    subscription_id: str = Field(..., description="Unique subscription identifier")
    provider_id: str = Field(..., description="Owning provider")
    plan_id: Optional[str] = Field(None, description="Plan the price was taken from, if any")
    kind: SubscriptionKind = Field(..., description="MONTHLY or ANNUAL")

    # Window
    start_date: datetime = Field(..., description="When the subscription was requested")
    end_date: datetime = Field(..., description="Last second of the calendar window")
    period_start: datetime = Field(..., description="First second of the calendar window (uniqueness key)")

    # State
    status: SubscriptionStatus = Field(default=SubscriptionStatus.PENDING, description="Current status")
    price: int = Field(..., ge=0, description="Price in the smallest currency unit")
    currency: str = Field(default="XOF", description="ISO 4217 currency code")

    # Timestamps
    created_at: datetime = Field(..., description="Creation time")
    activated_at: Optional[datetime] = Field(None, description="When the subscription became ACTIVE")
    expired_at: Optional[datetime] = Field(None, description="When the subscription became EXPIRED")

    def is_live(self) -> bool:
        """Whether the subscription still counts against admission control."""
        return self.status in LIVE_STATUSES

    def can_transition_to(self, new_status: SubscriptionStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def set_status(
        self,
        new_status: SubscriptionStatus,
        changed_at: datetime,
        reason: Optional[str] = None,
    ) -> None:
        """Change subscription status and log the transition.

        Setting the current status again is a no-op.

        Args:
            new_status: New status to transition to
            changed_at: Time of the transition
            reason: Reason for status change

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        from provider_subscriptions.errors import InvalidTransitionError
        from provider_subscriptions.state_logger import log_subscription_status_change

        old_status = self.status
        if old_status == new_status:
            return

        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Cannot move subscription {self.subscription_id} "
                f"from {old_status.value} to {new_status.value}"
            )

        self.status = new_status
        if new_status == SubscriptionStatus.ACTIVE:
            self.activated_at = changed_at
        elif new_status == SubscriptionStatus.EXPIRED:
            self.expired_at = changed_at

        log_subscription_status_change(
            subscription_id=self.subscription_id,
            provider_id=self.provider_id,
            old_status=old_status.value,
            new_status=new_status.value,
            reason=reason,
            kind=self.kind.value,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "subscription_id": "sub_a1b2c3d4e5f6a7b8",
                "provider_id": "prv_0f1e2d3c4b5a6978",
                "plan_id": "monthly-standard",
                "kind": "MONTHLY",
                "start_date": "2024-03-10T09:30:00Z",
                "end_date": "2024-03-31T23:59:59.999999Z",
                "period_start": "2024-03-01T00:00:00Z",
                "status": "PENDING",
                "price": 5000,
                "currency": "XOF",
                "created_at": "2024-03-10T09:30:00Z",
            }
        }
