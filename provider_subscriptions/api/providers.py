"""Provider profile API.

Implements:
- POST /providers - Register the acting account as a provider
- GET /providers/me - Profile and visibility
- PATCH /providers/me - Update profile fields
- PUT /providers/me/availability - Set self-declared availability
- POST /providers/me/verification - Submit identity for verification
- GET /providers/{provider_id}/visibility - Visibility and blocking reasons
"""

from fastapi import APIRouter, Depends

from provider_subscriptions.api.dependencies import (
    Actor,
    current_provider,
    http_error,
    require_provider,
)
from provider_subscriptions.errors import MarketplaceError
from provider_subscriptions.logging_config import get_logger
from provider_subscriptions.models import ProviderRecord
from provider_subscriptions.models.api_request import (
    AvailabilityRequest,
    ProviderResponse,
    RegisterProviderRequest,
    UpdateProviderRequest,
)
from provider_subscriptions.services import visibility_gate
from provider_subscriptions.services.provider_directory import get_provider_directory

logger = get_logger(__name__)
router = APIRouter(tags=["Providers"], prefix="/providers")
directory = get_provider_directory()


def provider_response(provider: ProviderRecord) -> ProviderResponse:
    return ProviderResponse(
        provider=provider,
        visible=visibility_gate.is_visible(provider),
        blocking_reasons=visibility_gate.blocking_reasons(provider),
    )


@router.post("", response_model=ProviderResponse, status_code=201, summary="Register as provider")
async def register_provider(
    request: RegisterProviderRequest,
    actor: Actor = Depends(require_provider),
) -> ProviderResponse:
    """Register the acting account as a provider.

    Raises:
        409: The account is already registered
    """
    logger.info("register_provider_request", account_id=actor.actor_id)
    try:
        provider = directory.register(
            account_id=actor.actor_id,
            business_name=request.business_name,
            description=request.description,
        )
    except MarketplaceError as e:
        logger.warning("register_provider_rejected", error=e.error_code, message=e.message)
        raise http_error(e)
    return provider_response(provider)


@router.get("/me", response_model=ProviderResponse, summary="Get my provider profile")
async def get_my_profile(provider: ProviderRecord = Depends(current_provider)) -> ProviderResponse:
    return provider_response(provider)


@router.patch("/me", response_model=ProviderResponse, summary="Update my provider profile")
async def update_my_profile(
    request: UpdateProviderRequest,
    provider: ProviderRecord = Depends(current_provider),
) -> ProviderResponse:
    """Update business name and description. Visibility flags are not accepted here."""
    try:
        updated = directory.update_profile(
            provider.provider_id, **request.model_dump(exclude_unset=True)
        )
    except MarketplaceError as e:
        raise http_error(e)
    return provider_response(updated)


@router.put(
    "/me/availability",
    response_model=ProviderResponse,
    summary="Set my availability",
)
async def set_my_availability(
    request: AvailabilityRequest,
    provider: ProviderRecord = Depends(current_provider),
) -> ProviderResponse:
    logger.info(
        "set_availability_request",
        provider_id=provider.provider_id,
        available=request.available,
    )
    updated = directory.set_availability(provider.provider_id, request.available)
    return provider_response(updated)


@router.post(
    "/me/verification",
    response_model=ProviderResponse,
    summary="Submit identity for verification",
)
async def submit_verification(
    provider: ProviderRecord = Depends(current_provider),
) -> ProviderResponse:
    """Move the provider to PENDING verification.

    Raises:
        409: Already verified
    """
    try:
        updated = directory.submit_for_verification(provider.provider_id)
    except MarketplaceError as e:
        logger.warning(
            "submit_verification_rejected",
            provider_id=provider.provider_id,
            error=e.error_code,
        )
        raise http_error(e)
    return provider_response(updated)


@router.get(
    "/{provider_id}/visibility",
    response_model=ProviderResponse,
    summary="Check provider visibility",
)
async def get_visibility(provider_id: str) -> ProviderResponse:
    """Whether the provider appears in search, and what blocks it otherwise.

    Raises:
        404: Unknown provider
    """
    try:
        provider = directory.get_provider(provider_id)
    except MarketplaceError as e:
        raise http_error(e)
    return provider_response(provider)
