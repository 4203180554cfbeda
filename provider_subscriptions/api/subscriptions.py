"""Provider-facing subscription API.

Implements:
- GET /subscriptions/plans - List active plans (no auth)
- POST /subscriptions - Request a subscription
- GET /subscriptions/me - Current subscription with its payments
"""

from fastapi import APIRouter, Depends

from provider_subscriptions.api.dependencies import current_provider, http_error
from provider_subscriptions.config import get_config
from provider_subscriptions.errors import MarketplaceError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models import ProviderRecord, SubscriptionRecord
from provider_subscriptions.models.api_request import (
    CreateSubscriptionRequest,
    CurrentSubscriptionResponse,
    PlanListResponse,
)
from provider_subscriptions.services.payment_ledger import get_payment_ledger
from provider_subscriptions.services.subscription_lifecycle import get_subscription_lifecycle

logger = get_logger(__name__)
router = APIRouter(tags=["Subscriptions"], prefix="/subscriptions")
lifecycle = get_subscription_lifecycle()
ledger = get_payment_ledger()


@router.get("/plans", response_model=PlanListResponse, summary="List subscription plans")
async def list_plans() -> PlanListResponse:
    """Plans open for subscription, cheapest first."""
    plans = lifecycle.list_plans()
    logger.debug("list_plans_request", count=len(plans))
    return PlanListResponse(plans=plans, currency=get_config().currency)


@router.post(
    "",
    response_model=SubscriptionRecord,
    status_code=201,
    summary="Request a subscription",
)
async def create_subscription(
    request: CreateSubscriptionRequest,
    provider: ProviderRecord = Depends(current_provider),
) -> SubscriptionRecord:
    """Create a PENDING subscription for the current calendar window.

    Raises:
        400: Unusable plan or no price
        404: Unknown plan
        409: A pending or active subscription of this kind already covers the window
    """
    logger.info(
        "create_subscription_request",
        provider_id=provider.provider_id,
        kind=request.kind.value,
        plan_id=request.plan_id,
    )

    try:
        subscription = lifecycle.create(
            provider_id=provider.provider_id,
            kind=request.kind,
            plan_id=request.plan_id,
            price=request.price,
        )
    except MarketplaceError as e:
        logger.warning(
            "create_subscription_rejected",
            provider_id=provider.provider_id,
            error=e.error_code,
            message=e.message,
        )
        raise http_error(e)

    return subscription


@router.get(
    "/me",
    response_model=CurrentSubscriptionResponse,
    summary="Get my current subscription",
)
async def get_my_subscription(
    provider: ProviderRecord = Depends(current_provider),
) -> CurrentSubscriptionResponse:
    """Most recent PENDING or ACTIVE subscription with its payments, or null."""
    subscription = lifecycle.get_current(provider.provider_id)
    if subscription is None:
        return CurrentSubscriptionResponse(subscription=None, payments=[])

    payments = ledger.list_for_subscription(subscription.subscription_id)
    return CurrentSubscriptionResponse(subscription=subscription, payments=payments)
