"""Provider-facing payment API.

Implements:
- POST /payments - Declare a payment against a subscription
- GET /payments/me - Payment history
"""

from fastapi import APIRouter, Depends

from provider_subscriptions.api.dependencies import current_provider, http_error
from provider_subscriptions.errors import MarketplaceError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models import PaymentRecord, ProviderRecord
from provider_subscriptions.models.api_request import DeclarePaymentRequest, PaymentHistoryResponse
from provider_subscriptions.services.payment_ledger import get_payment_ledger

logger = get_logger(__name__)
router = APIRouter(tags=["Payments"], prefix="/payments")
ledger = get_payment_ledger()


@router.post("", response_model=PaymentRecord, status_code=201, summary="Declare a payment")
async def declare_payment(
    request: DeclarePaymentRequest,
    provider: ProviderRecord = Depends(current_provider),
) -> PaymentRecord:
    """Declare a payment; it stays PENDING until an administrator validates it.

    Raises:
        400: Non-positive amount, or cash without proof reference
        403: Subscription belongs to another provider
        404: Unknown subscription
        409: Subscription not payable, or a payment through this method is already pending
    """
    logger.info(
        "declare_payment_request",
        subscription_id=request.subscription_id,
        method=request.method.value,
        amount=request.amount,
    )

    try:
        payment = ledger.declare(
            subscription_id=request.subscription_id,
            method=request.method,
            amount=request.amount,
            proof_reference=request.proof_reference,
            external_reference=request.external_reference,
            provider_id=provider.provider_id,
        )
    except MarketplaceError as e:
        logger.warning(
            "declare_payment_rejected",
            subscription_id=request.subscription_id,
            error=e.error_code,
            message=e.message,
        )
        raise http_error(e)

    return payment


@router.get("/me", response_model=PaymentHistoryResponse, summary="Get my payment history")
async def get_my_payments(
    provider: ProviderRecord = Depends(current_provider),
) -> PaymentHistoryResponse:
    return PaymentHistoryResponse(payments=ledger.history_for_provider(provider.provider_id))
