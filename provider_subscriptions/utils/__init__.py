"""Utility functions and helpers for the subscription engine."""

from provider_subscriptions.utils.billing_period import (
    BillingWindow,
    period_label,
    window_for,
    windows_overlap,
)
from provider_subscriptions.utils.token_generator import (
    extract_reference_timestamp,
    generate_audit_id,
    generate_id,
    generate_payment_id,
    generate_provider_id,
    generate_subscription_id,
    generate_transfer_reference,
    validate_id,
    validate_transfer_reference,
)

__all__ = [
    # Identifier generation
    "generate_id",
    "generate_provider_id",
    "generate_subscription_id",
    "generate_payment_id",
    "generate_audit_id",
    "generate_transfer_reference",
    # Identifier validation
    "validate_id",
    "validate_transfer_reference",
    "extract_reference_timestamp",
    # Billing windows
    "BillingWindow",
    "window_for",
    "windows_overlap",
    "period_label",
]
