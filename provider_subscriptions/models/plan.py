"""Subscription plan and configuration models.

Models from marketplace.yaml configuration.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from provider_subscriptions.models.subscription import SubscriptionKind


class SubscriptionPlan(BaseModel):
    """Priced subscription offering from configuration."""

    plan_id: str = Field(..., description="Plan identifier")
    name: str = Field(..., description="Human-readable name")
    kind: SubscriptionKind = Field(..., description="MONTHLY or ANNUAL")
    price: int = Field(..., ge=0, description="Price in the smallest currency unit")
    currency: str = Field(default="XOF", description="ISO 4217 currency code")
    active: bool = Field(default=True, description="Whether the plan can be subscribed to")
    features: list[str] = Field(default_factory=list, description="Selling points shown to providers")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "plan_id": "monthly-standard",
                "name": "Standard mensuel",
                "kind": "MONTHLY",
                "price": 5000,
                "currency": "XOF",
                "active": True,
                "features": ["Visible in search", "Contact button"],
            }
        }


class DefaultPrices(BaseModel):
    """Prices applied when a request names neither a plan nor a price."""

    monthly: Optional[int] = Field(None, ge=0)
    annual: Optional[int] = Field(None, ge=0)

    def for_kind(self, kind: SubscriptionKind) -> Optional[int]:
        if kind == SubscriptionKind.MONTHLY:
            return self.monthly
        return self.annual


class SubscriptionSettings(BaseModel):
    """Subscription lifecycle settings."""

    pending_timeout_days: Optional[int] = Field(
        None,
        gt=0,
        description="Lapse PENDING subscriptions older than this many days (null = never)",
    )


class SchedulerSettings(BaseModel):
    """Recurring job settings."""

    enabled: bool = Field(default=True, description="Run the expiration sweep on a schedule")
    expiration_cron: str = Field(default="0 0 * * *", description="Cron expression for the sweep")
    lease_ttl_seconds: int = Field(default=900, gt=0, description="TTL of the sweep lease")


class CacheSettings(BaseModel):
    """Key/value store settings."""

    redis_url: Optional[str] = Field(None, description="Redis URL for leases (null = no lease store)")
    key_prefix: str = Field(default="provider-subscriptions:", description="Prefix for all keys")


class MarketplaceConfig(BaseModel):
    """Complete marketplace.yaml configuration."""

    currency: str = Field(default="XOF", description="Default currency")
    plans: list[SubscriptionPlan] = Field(default_factory=list, description="Plan catalogue")
    default_prices: DefaultPrices = Field(default_factory=DefaultPrices)
    subscriptions: SubscriptionSettings = Field(default_factory=SubscriptionSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @model_validator(mode="after")
    def _unique_plan_ids(self) -> "MarketplaceConfig":
        seen = set()
        for plan in self.plans:
            if plan.plan_id in seen:
                raise ValueError(f"Duplicate plan_id in configuration: {plan.plan_id}")
            seen.add(plan.plan_id)
        return self
