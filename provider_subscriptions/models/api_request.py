"""API request and response models for the HTTP surface."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from provider_subscriptions.models.audit import AuditEntry
from provider_subscriptions.models.payment import PaymentMethod, PaymentRecord, ValidationDecision
from provider_subscriptions.models.plan import SubscriptionPlan
from provider_subscriptions.models.provider import ProviderRecord
from provider_subscriptions.models.subscription import SubscriptionKind, SubscriptionRecord


class CreateSubscriptionRequest(BaseModel):
    """Request to create a subscription for the acting provider."""

    kind: SubscriptionKind = Field(..., description="MONTHLY or ANNUAL")
    plan_id: Optional[str] = Field(None, description="Plan to take the price from")
    price: Optional[int] = Field(None, ge=0, description="Ad-hoc price when no plan is given")

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "MONTHLY",
                "plan_id": "monthly-standard",
            }
        }


class PlanListResponse(BaseModel):
    """Active plans, cheapest first."""

    plans: list[SubscriptionPlan]
    currency: str


class CurrentSubscriptionResponse(BaseModel):
    """The provider's current subscription with its payments."""

    subscription: Optional[SubscriptionRecord] = Field(None, description="Most recent PENDING or ACTIVE subscription")
    payments: list[PaymentRecord] = Field(default_factory=list, description="Payments, newest first")


class ActivateSubscriptionRequest(BaseModel):
    """Administrator request to activate a subscription without a payment."""

    reason: Optional[str] = Field(None, description="Why the payment step is bypassed")


class DeclarePaymentRequest(BaseModel):
    """Request to declare a payment against a subscription."""

    subscription_id: str = Field(..., description="Subscription being paid for")
    method: PaymentMethod = Field(..., description="Payment channel")
    amount: int = Field(..., description="Amount in the smallest currency unit")
    proof_reference: Optional[str] = Field(None, description="Proof-of-payment reference (required for CASH)")
    external_reference: Optional[str] = Field(None, description="Transfer reference, generated if omitted")

    class Config:
        json_schema_extra = {
            "example": {
                "subscription_id": "sub_a1b2c3d4e5f6a7b8",
                "method": "CASH",
                "amount": 5000,
                "proof_reference": "receipts/2024/03/ndiaye.jpg",
            }
        }


class PaymentHistoryResponse(BaseModel):
    """Payments declared by a provider, newest first."""

    payments: list[PaymentRecord]


class PendingPaymentsResponse(BaseModel):
    """Payments waiting for an administrator decision."""

    payments: list[PaymentRecord]
    count: int


class ValidationRequest(BaseModel):
    """Administrator decision on a payment or identity request."""

    decision: ValidationDecision = Field(..., description="APPROVE or REJECT")
    reason: Optional[str] = Field(None, description="Free-text reason, recorded in the audit trail")

    class Config:
        json_schema_extra = {
            "example": {
                "decision": "APPROVE",
                "reason": "confirmed via transfer log",
            }
        }


class RegisterProviderRequest(BaseModel):
    """Request to register the acting account as a provider."""

    business_name: str = Field(..., min_length=1)
    description: Optional[str] = None


class UpdateProviderRequest(BaseModel):
    """Profile update; visibility flags are not part of the profile."""

    business_name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

    class Config:
        extra = "forbid"


class AvailabilityRequest(BaseModel):
    """Provider-controlled availability toggle."""

    available: bool


class ProviderResponse(BaseModel):
    """Provider profile with its current visibility."""

    provider: ProviderRecord
    visible: bool
    blocking_reasons: list[str]


class PendingVerificationResponse(BaseModel):
    """Providers waiting for identity verification."""

    providers: list[ProviderRecord]
    count: int


class SweepResponse(BaseModel):
    """Result of an expiration sweep run."""

    expired_count: int
    lapsed_pending_count: int
    failed_count: int
    skipped: bool = Field(default=False, description="True if another run held the lease")
    started_at: datetime
    finished_at: datetime
    message: str


class AuditListResponse(BaseModel):
    """Audit entries, newest first."""

    entries: list[AuditEntry]


class StatsResponse(BaseModel):
    """Administrator dashboard counters."""

    total_providers: int
    providers_pending_verification: int
    payments_pending_validation: int
    active_subscriptions: int
    pending_subscriptions: int
    visible_providers: int


class AdvanceTimeRequest(BaseModel):
    """Request to advance the virtual clock."""

    days: Optional[int] = Field(None, ge=0, description="Days to advance")
    hours: Optional[int] = Field(None, ge=0, description="Hours to advance")
    minutes: Optional[int] = Field(None, ge=0, description="Minutes to advance")

    class Config:
        json_schema_extra = {
            "example": {
                "days": 31,
                "hours": 0,
                "minutes": 0,
            }
        }


class AdvanceTimeResponse(BaseModel):
    """Response after advancing time."""

    previous_time: datetime
    current_time: datetime
    expirations_processed: int
    message: str


class SetTimeRequest(BaseModel):
    """Request to move the virtual clock to a specific instant."""

    time: datetime = Field(..., description="Target instant (must not be in the virtual past)")


class SetTimeResponse(BaseModel):
    """Response after setting time."""

    previous_time: datetime
    current_time: datetime
    expirations_processed: int
    message: str


class ResetTimeResponse(BaseModel):
    """Response after resetting time."""

    previous_time: datetime
    current_time: datetime
    offset_cleared: bool
    message: str


class ResetResponse(BaseModel):
    """Response after clearing all state."""

    providers_deleted: int
    subscriptions_deleted: int
    payments_deleted: int
    audit_entries_deleted: int
    time_reset: bool
    message: str


class StatusResponse(BaseModel):
    """Service status and statistics."""

    status: str
    current_time: datetime
    time_offset_seconds: float
    statistics: dict[str, int]
    last_sweep: Optional[SweepResponse] = None


class ErrorResponse(BaseModel):
    """Error body returned inside HTTPException detail."""

    error: str
    message: str
