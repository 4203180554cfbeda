"""Visibility gate - whether a provider appears in search results.

A provider is visible when its identity is verified, it holds an active
subscription, it declares itself available and its account is enabled.
"""

from typing import Iterable, List

from provider_subscriptions.models.provider import ProviderRecord, VerificationStatus

IDENTITY_NOT_VERIFIED = "identity_not_verified"
NO_ACTIVE_SUBSCRIPTION = "no_active_subscription"
NOT_AVAILABLE = "not_available"
ACCOUNT_INACTIVE = "account_inactive"


def blocking_reasons(provider: ProviderRecord) -> List[str]:
    """List the conditions keeping a provider out of search (empty when visible)."""
    reasons = []
    if provider.verification_status != VerificationStatus.VERIFIED:
        reasons.append(IDENTITY_NOT_VERIFIED)
    if not provider.subscription_active:
        reasons.append(NO_ACTIVE_SUBSCRIPTION)
    if not provider.self_declared_available:
        reasons.append(NOT_AVAILABLE)
    if not provider.account_active:
        reasons.append(ACCOUNT_INACTIVE)
    return reasons


def is_visible(provider: ProviderRecord) -> bool:
    return (
        provider.verification_status == VerificationStatus.VERIFIED
        and provider.subscription_active
        and provider.self_declared_available
        and provider.account_active
    )


def filter_visible(providers: Iterable[ProviderRecord]) -> List[ProviderRecord]:
    """Search-side filter keeping only visible providers, in input order."""
    return [p for p in providers if is_visible(p)]
