"""Control API for local testing: virtual clock and state management.

Implements:
- POST /control/time/advance - Fast-forward time, then run the sweep
- POST /control/time/set - Jump to an instant, then run the sweep
- POST /control/time/reset - Back to real time
- POST /control/reset - Clear all state
- GET /control/status - Clock and store statistics
"""

from fastapi import APIRouter, HTTPException

from provider_subscriptions.api.admin import sweep_response
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models.api_request import (
    AdvanceTimeRequest,
    AdvanceTimeResponse,
    ResetResponse,
    ResetTimeResponse,
    SetTimeRequest,
    SetTimeResponse,
    StatusResponse,
)
from provider_subscriptions.repositories.audit_log import get_audit_log
from provider_subscriptions.repositories.payment_store import get_payment_store
from provider_subscriptions.repositories.provider_store import get_provider_store
from provider_subscriptions.repositories.subscription_store import get_subscription_store
from provider_subscriptions.services.clock import get_clock
from provider_subscriptions.services.expiration_sweep import get_expiration_sweep

logger = get_logger(__name__)
router = APIRouter(tags=["Control API"], prefix="/control")
clock = get_clock()
sweep = get_expiration_sweep()


@router.post("/time/advance", response_model=AdvanceTimeResponse, summary="Advance virtual time")
async def advance_time(request: AdvanceTimeRequest) -> AdvanceTimeResponse:
    """Advance the virtual clock and expire whatever lapsed meanwhile.

    Raises:
        400: Invalid time parameters
    """
    logger.info(
        "advance_time_request",
        days=request.days,
        hours=request.hours,
        minutes=request.minutes,
    )

    try:
        previous_time, current_time = clock.advance(
            days=request.days or 0, hours=request.hours or 0, minutes=request.minutes or 0
        )
    except ValueError as e:
        logger.error("invalid_advance_time_request", error=str(e))
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_request", "message": str(e)},
        )

    expired = sweep.run()

    return AdvanceTimeResponse(
        previous_time=previous_time,
        current_time=current_time,
        expirations_processed=expired,
        message=(
            f"Advanced time by {request.days or 0} days, {request.hours or 0} hours, "
            f"{request.minutes or 0} minutes"
        ),
    )


@router.post("/time/set", response_model=SetTimeResponse, summary="Set virtual time")
async def set_time(request: SetTimeRequest) -> SetTimeResponse:
    """Jump the virtual clock forward to an instant.

    Raises:
        400: Target is in the virtual past
    """
    logger.info("set_time_request", time=request.time.isoformat())

    try:
        previous_time, current_time = clock.set_time(request.time)
    except ValueError as e:
        logger.error("invalid_set_time_request", error=str(e))
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_request", "message": str(e)},
        )

    expired = sweep.run()

    return SetTimeResponse(
        previous_time=previous_time,
        current_time=current_time,
        expirations_processed=expired,
        message=f"Time set to {current_time.isoformat()}",
    )


@router.post("/time/reset", response_model=ResetTimeResponse, summary="Reset virtual time")
async def reset_time() -> ResetTimeResponse:
    logger.info("reset_time_request")
    previous_time, current_time = clock.reset()
    return ResetTimeResponse(
        previous_time=previous_time,
        current_time=current_time,
        offset_cleared=True,
        message="Time reset to real current time",
    )


@router.post("/reset", response_model=ResetResponse, summary="Reset all state")
async def reset_state() -> ResetResponse:
    """Clear providers, subscriptions, payments and audit entries, and reset time."""
    logger.info("reset_state_request")

    providers_deleted = get_provider_store().clear()
    subscriptions_deleted = get_subscription_store().clear()
    payments_deleted = get_payment_store().clear()
    audit_entries_deleted = get_audit_log().clear()
    clock.reset()

    logger.info(
        "reset_state_success",
        providers_deleted=providers_deleted,
        subscriptions_deleted=subscriptions_deleted,
        payments_deleted=payments_deleted,
        audit_entries_deleted=audit_entries_deleted,
    )
    return ResetResponse(
        providers_deleted=providers_deleted,
        subscriptions_deleted=subscriptions_deleted,
        payments_deleted=payments_deleted,
        audit_entries_deleted=audit_entries_deleted,
        time_reset=True,
        message="State reset successfully",
    )


@router.get("/status", response_model=StatusResponse, summary="Get service status")
async def get_status() -> StatusResponse:
    logger.debug("get_status_request")

    statistics = {}
    statistics.update(get_provider_store().get_statistics())
    statistics.update(
        {f"subscriptions_{k}": v for k, v in get_subscription_store().get_statistics().items()}
    )
    statistics.update(
        {f"payments_{k}": v for k, v in get_payment_store().get_statistics().items()}
    )
    statistics["audit_entries"] = get_audit_log().count()

    last_report = sweep.last_report
    return StatusResponse(
        status="running",
        current_time=clock.now(),
        time_offset_seconds=clock.offset.total_seconds(),
        statistics=statistics,
        last_sweep=sweep_response(last_report) if last_report else None,
    )
