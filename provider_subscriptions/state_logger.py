"""State change logging for subscriptions, payments and providers.

Tracks state transitions with before/after values for debugging. The
administrator-facing audit trail lives in services/audit_trail.py; these
logs cover every transition, including the ones made by the sweep.
"""

from typing import Any, Optional

from provider_subscriptions.logging_config import get_logger

logger = get_logger(__name__)


def log_subscription_status_change(
    subscription_id: str,
    provider_id: str,
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log subscription status change.

    Args:
        subscription_id: Subscription identifier
        provider_id: Owning provider
        old_status: Previous status value
        new_status: New status value
        reason: Reason for status change
        **extra_context: Additional context (kind, end_date, etc.)
    """
    logger.info(
        "subscription_status_changed",
        subscription_id=subscription_id,
        provider_id=provider_id,
        old_status=str(old_status),
        new_status=str(new_status),
        reason=reason,
        **extra_context,
    )


def log_payment_status_change(
    payment_id: str,
    subscription_id: str,
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log payment status change.

    Args:
        payment_id: Payment identifier
        subscription_id: Subscription the payment was declared against
        old_status: Previous payment status
        new_status: New payment status
        reason: Reason for status change
        **extra_context: Additional context
    """
    logger.info(
        "payment_status_changed",
        payment_id=payment_id,
        subscription_id=subscription_id,
        old_status=str(old_status),
        new_status=str(new_status),
        reason=reason,
        **extra_context,
    )


def log_verification_status_change(
    provider_id: str,
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log identity verification status change."""
    logger.info(
        "verification_status_changed",
        provider_id=provider_id,
        old_status=str(old_status),
        new_status=str(new_status),
        reason=reason,
        **extra_context,
    )


def log_visibility_flag_change(
    provider_id: str,
    flag: str,
    old_value: bool,
    new_value: bool,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log a change to one of the provider's visibility flags.

    Args:
        provider_id: Provider identifier
        flag: Flag name (subscription_active, self_declared_available, account_active)
        old_value: Previous value
        new_value: New value
        reason: Reason for change
        **extra_context: Additional context
    """
    logger.info(
        "visibility_flag_changed",
        provider_id=provider_id,
        flag=flag,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
        **extra_context,
    )
