"""Pydantic models for domain records, configuration and the HTTP API."""

# Subscription models
from .subscription import (
    ALLOWED_TRANSITIONS,
    LIVE_STATUSES,
    SubscriptionKind,
    SubscriptionRecord,
    SubscriptionStatus,
)

# Payment models
from .payment import (
    REFERENCED_METHODS,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
    ValidationDecision,
)

# Provider models
from .provider import (
    ProviderRecord,
    VerificationStatus,
)

# Audit models
from .audit import (
    AuditAction,
    AuditEntry,
    DirectActivationDetails,
    IdentityDecisionDetails,
    PaymentDecisionDetails,
)

# Plan and configuration models
from .plan import (
    CacheSettings,
    DefaultPrices,
    MarketplaceConfig,
    SchedulerSettings,
    SubscriptionPlan,
    SubscriptionSettings,
)

__all__ = [
    # Subscription
    "ALLOWED_TRANSITIONS",
    "LIVE_STATUSES",
    "SubscriptionKind",
    "SubscriptionRecord",
    "SubscriptionStatus",
    # Payment
    "REFERENCED_METHODS",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentStatus",
    "ValidationDecision",
    # Provider
    "ProviderRecord",
    "VerificationStatus",
    # Audit
    "AuditAction",
    "AuditEntry",
    "DirectActivationDetails",
    "IdentityDecisionDetails",
    "PaymentDecisionDetails",
    # Plans and configuration
    "CacheSettings",
    "DefaultPrices",
    "MarketplaceConfig",
    "SchedulerSettings",
    "SubscriptionPlan",
    "SubscriptionSettings",
]
