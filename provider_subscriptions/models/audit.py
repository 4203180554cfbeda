"""Audit trail models.

Each administrator action has its own details payload carrying exactly the
fields that action needs. Entries are immutable.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Administrator action recorded in the audit trail."""

    PAYMENT_APPROVED = "payment_approved"
    PAYMENT_REJECTED = "payment_rejected"
    IDENTITY_VERIFIED = "identity_verified"
    IDENTITY_REJECTED = "identity_rejected"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"


class PaymentDecisionDetails(BaseModel):
    """Details of a payment approval or rejection."""

    kind: Literal["payment_decision"] = "payment_decision"
    payment_id: str
    subscription_id: str
    provider_id: str
    method: str
    amount: int
    reason: str


class IdentityDecisionDetails(BaseModel):
    """Details of an identity verification decision."""

    kind: Literal["identity_decision"] = "identity_decision"
    provider_id: str
    previous_status: str
    reason: str


class DirectActivationDetails(BaseModel):
    """Details of an administrator activating a subscription without a payment."""

    kind: Literal["direct_activation"] = "direct_activation"
    subscription_id: str
    provider_id: str
    reason: str


AuditDetails = Annotated[
    Union[PaymentDecisionDetails, IdentityDecisionDetails, DirectActivationDetails],
    Field(discriminator="kind"),
]


class AuditEntry(BaseModel):
    """Immutable record of an administrator decision."""

    entry_id: str = Field(..., description="Unique audit entry identifier")
    actor_id: str = Field(..., description="Administrator who acted")
    action: AuditAction = Field(..., description="What was done")
    target_id: str = Field(..., description="Identifier of the entity acted upon")
    details: AuditDetails
    created_at: datetime = Field(..., description="When the action was recorded")

    @property
    def reason(self) -> Optional[str]:
        return self.details.reason

    class Config:
        frozen = True
