"""Domain error hierarchy.

Every failure surfaced to callers is one of four client-actionable kinds:
invalid request, conflict, not found, forbidden. The HTTP layer maps each
kind to a status code.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base exception for all subscription engine errors."""

    error_code = "marketplace_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(MarketplaceError):
    """Raised when a request is malformed (missing field, unknown kind, bad amount)."""

    error_code = "invalid_request"
    status_code = 400


class ConflictError(MarketplaceError):
    """Raised when a request conflicts with current state."""

    error_code = "conflict"
    status_code = 409


class NotFoundError(MarketplaceError):
    """Raised when a referenced entity does not exist."""

    error_code = "not_found"
    status_code = 404


class ForbiddenError(MarketplaceError):
    """Raised when an actor acts on an entity it does not own."""

    error_code = "forbidden"
    status_code = 403


class DuplicateSubscriptionError(ConflictError):
    """Raised when admission control finds an overlapping subscription."""

    error_code = "duplicate_subscription"

    def __init__(self, kind, existing_subscription_id: Optional[str] = None):
        from provider_subscriptions.utils.billing_period import period_label

        self.kind = kind
        self.existing_subscription_id = existing_subscription_id
        super().__init__(
            f"You already have a pending or active {kind.value.lower()} "
            f"subscription for the current {period_label(kind)}"
        )


class InvalidTransitionError(ConflictError):
    """Raised when a state transition is not allowed from the current state."""

    error_code = "invalid_transition"
