"""Provider profile and identity verification models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class VerificationStatus(str, Enum):
    """Identity (KYC) verification status."""

    UNVERIFIED = "UNVERIFIED"  # Nothing submitted yet
    PENDING = "PENDING"  # Submitted, waiting for an administrator
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ProviderRecord(BaseModel):
    """A registered service vendor."""

    provider_id: str = Field(..., description="Unique provider identifier")
    account_id: str = Field(..., description="Owning user account")
    business_name: str = Field(..., min_length=1, description="Trading name shown in search")
    description: Optional[str] = Field(None, description="Free-text presentation")

    verification_status: VerificationStatus = Field(
        default=VerificationStatus.UNVERIFIED, description="Identity verification status"
    )
    subscription_active: bool = Field(
        default=False, description="Cached: provider holds at least one ACTIVE subscription"
    )
    self_declared_available: bool = Field(default=False, description="Provider-controlled availability")
    account_active: bool = Field(default=True, description="Owning account is enabled")

    created_at: datetime = Field(..., description="Registration time")

    def set_verification_status(
        self, new_status: VerificationStatus, reason: Optional[str] = None
    ) -> None:
        """Change verification status and log the transition."""
        from provider_subscriptions.state_logger import log_verification_status_change

        old_status = self.verification_status
        if old_status != new_status:
            self.verification_status = new_status
            log_verification_status_change(
                provider_id=self.provider_id,
                old_status=old_status.value,
                new_status=new_status.value,
                reason=reason,
            )

    def set_subscription_active(self, value: bool, reason: Optional[str] = None) -> None:
        self._set_flag("subscription_active", value, reason)

    def set_self_declared_available(self, value: bool, reason: Optional[str] = None) -> None:
        self._set_flag("self_declared_available", value, reason)

    def _set_flag(self, flag: str, value: bool, reason: Optional[str]) -> None:
        from provider_subscriptions.state_logger import log_visibility_flag_change

        old_value = getattr(self, flag)
        if old_value != value:
            setattr(self, flag, value)
            log_visibility_flag_change(
                provider_id=self.provider_id,
                flag=flag,
                old_value=old_value,
                new_value=value,
                reason=reason,
            )

    class Config:
        json_schema_extra = {
            "example": {
                "provider_id": "prv_0f1e2d3c4b5a6978",
                "account_id": "acc-221-77-000-00-00",
                "business_name": "Plomberie Ndiaye",
                "verification_status": "VERIFIED",
                "subscription_active": True,
                "self_declared_available": True,
                "account_active": True,
                "created_at": "2024-02-20T10:00:00Z",
            }
        }
