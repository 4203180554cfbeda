"""Administrator API.

Implements:
- POST /admin/subscriptions/{subscription_id}/activate - Activate without payment
- POST /admin/payments/{payment_id}/validate - Approve or reject a payment
- GET /admin/payments/pending - Payments awaiting validation
- POST /admin/providers/{provider_id}/validate-identity - Resolve identity verification
- GET /admin/providers/pending-verification - Providers awaiting verification
- GET /admin/audit - Recent audit entries
- GET /admin/stats - Dashboard counters
- POST /admin/sweep - Run the expiration sweep now
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from provider_subscriptions.api.dependencies import Actor, http_error, require_admin
from provider_subscriptions.api.providers import provider_response
from provider_subscriptions.errors import MarketplaceError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models import (
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
    SubscriptionRecord,
    SubscriptionStatus,
    VerificationStatus,
)
from provider_subscriptions.models.api_request import (
    ActivateSubscriptionRequest,
    AuditListResponse,
    PendingPaymentsResponse,
    PendingVerificationResponse,
    ProviderResponse,
    StatsResponse,
    SweepResponse,
    ValidationRequest,
)
from provider_subscriptions.services import visibility_gate
from provider_subscriptions.services.audit_trail import get_audit_trail
from provider_subscriptions.services.expiration_sweep import SweepReport, get_expiration_sweep
from provider_subscriptions.services.payment_ledger import get_payment_ledger
from provider_subscriptions.services.provider_directory import get_provider_directory
from provider_subscriptions.services.validation_workflow import get_validation_workflow

logger = get_logger(__name__)
router = APIRouter(tags=["Administration"], prefix="/admin")
workflow = get_validation_workflow()
ledger = get_payment_ledger()
directory = get_provider_directory()
audit_trail = get_audit_trail()
sweep = get_expiration_sweep()


def sweep_response(report: SweepReport) -> SweepResponse:
    if report.skipped:
        message = "Sweep skipped: another run holds the lease"
    else:
        message = f"Expired {len(report.expired_ids)} subscription(s)"
    return SweepResponse(
        expired_count=len(report.expired_ids),
        lapsed_pending_count=len(report.lapsed_ids),
        failed_count=len(report.failed_ids),
        skipped=report.skipped,
        started_at=report.started_at,
        finished_at=report.finished_at or report.started_at,
        message=message,
    )


@router.post(
    "/subscriptions/{subscription_id}/activate",
    response_model=SubscriptionRecord,
    summary="Activate a subscription without payment",
)
async def activate_subscription(
    subscription_id: str,
    request: Optional[ActivateSubscriptionRequest] = None,
    admin: Actor = Depends(require_admin),
) -> SubscriptionRecord:
    """Administrator override: activate and make the provider visible.

    Raises:
        404: Unknown subscription
        409: Subscription expired
    """
    reason = request.reason if request else None
    logger.info("activate_subscription_request", subscription_id=subscription_id, admin_id=admin.actor_id)
    try:
        return workflow.activate_subscription(subscription_id, admin.actor_id, reason)
    except MarketplaceError as e:
        logger.warning(
            "activate_subscription_rejected",
            subscription_id=subscription_id,
            error=e.error_code,
            message=e.message,
        )
        raise http_error(e)


@router.post(
    "/payments/{payment_id}/validate",
    response_model=PaymentRecord,
    summary="Validate a payment",
)
async def validate_payment(
    payment_id: str,
    request: ValidationRequest,
    admin: Actor = Depends(require_admin),
) -> PaymentRecord:
    """Approve or reject a pending payment.

    Raises:
        404: Unknown payment
        409: Payment already resolved the other way
    """
    logger.info(
        "validate_payment_request",
        payment_id=payment_id,
        decision=request.decision.value,
        admin_id=admin.actor_id,
    )
    try:
        return workflow.validate_payment(payment_id, request.decision, admin.actor_id, request.reason)
    except MarketplaceError as e:
        logger.warning(
            "validate_payment_rejected",
            payment_id=payment_id,
            error=e.error_code,
            message=e.message,
        )
        raise http_error(e)


@router.get(
    "/payments/pending",
    response_model=PendingPaymentsResponse,
    summary="List payments awaiting validation",
)
async def list_pending_payments(
    method: Optional[PaymentMethod] = Query(None, description="Only this payment channel"),
    admin: Actor = Depends(require_admin),
) -> PendingPaymentsResponse:
    payments = ledger.list_pending(method)
    return PendingPaymentsResponse(payments=payments, count=len(payments))


@router.post(
    "/providers/{provider_id}/validate-identity",
    response_model=ProviderResponse,
    summary="Resolve identity verification",
)
async def validate_identity(
    provider_id: str,
    request: ValidationRequest,
    admin: Actor = Depends(require_admin),
) -> ProviderResponse:
    logger.info(
        "validate_identity_request",
        provider_id=provider_id,
        decision=request.decision.value,
        admin_id=admin.actor_id,
    )
    try:
        provider = workflow.validate_identity(
            provider_id, request.decision, admin.actor_id, request.reason
        )
    except MarketplaceError as e:
        logger.warning("validate_identity_rejected", provider_id=provider_id, error=e.error_code)
        raise http_error(e)
    return provider_response(provider)


@router.get(
    "/providers/pending-verification",
    response_model=PendingVerificationResponse,
    summary="List providers awaiting verification",
)
async def list_pending_verification(
    admin: Actor = Depends(require_admin),
) -> PendingVerificationResponse:
    providers = directory.list_pending_verification()
    return PendingVerificationResponse(providers=providers, count=len(providers))


@router.get("/audit", response_model=AuditListResponse, summary="List audit entries")
async def list_audit_entries(
    limit: int = Query(20, ge=1, le=500),
    target_id: Optional[str] = Query(None, description="Only entries about this entity"),
    admin: Actor = Depends(require_admin),
) -> AuditListResponse:
    if target_id:
        entries = list(reversed(audit_trail.for_target(target_id)))[:limit]
    else:
        entries = audit_trail.recent(limit)
    return AuditListResponse(entries=entries)


@router.get("/stats", response_model=StatsResponse, summary="Dashboard counters")
async def get_stats(admin: Actor = Depends(require_admin)) -> StatsResponse:
    lifecycle = workflow.lifecycle
    providers = directory.list_all()
    return StatsResponse(
        total_providers=len(providers),
        providers_pending_verification=sum(
            1 for p in providers if p.verification_status == VerificationStatus.PENDING
        ),
        payments_pending_validation=ledger.store.count_by_status(PaymentStatus.PENDING),
        active_subscriptions=lifecycle.store.count_by_status(SubscriptionStatus.ACTIVE),
        pending_subscriptions=lifecycle.store.count_by_status(SubscriptionStatus.PENDING),
        visible_providers=len(visibility_gate.filter_visible(providers)),
    )


@router.post("/sweep", response_model=SweepResponse, summary="Run the expiration sweep")
async def run_sweep(admin: Actor = Depends(require_admin)) -> SweepResponse:
    logger.info("manual_sweep_request", admin_id=admin.actor_id)
    sweep.run()
    return sweep_response(sweep.last_report)
