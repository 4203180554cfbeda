"""Request dependencies: actor identification and error mapping.

Actors identify themselves with the X-Actor-Id (account id) and X-Actor-Role
(provider or admin) headers. Authentication proper happens upstream.
"""

from enum import Enum
from typing import NamedTuple, Optional

from fastapi import Depends, Header, HTTPException

from provider_subscriptions.errors import MarketplaceError
from provider_subscriptions.logging_config import bind_context, get_logger
from provider_subscriptions.models.provider import ProviderRecord
from provider_subscriptions.repositories.provider_store import ProviderNotFoundError
from provider_subscriptions.services.provider_directory import get_provider_directory

logger = get_logger(__name__)


class ActorRole(str, Enum):
    PROVIDER = "provider"
    ADMIN = "admin"


class Actor(NamedTuple):
    actor_id: str
    role: ActorRole


def http_error(exc: MarketplaceError) -> HTTPException:
    """Map a domain error to the HTTP error body {"error", "message"}."""
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "error": exc.error_code,
            "message": exc.message,
        },
    )


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "unauthenticated",
                "message": "X-Actor-Id and X-Actor-Role headers are required",
            },
        )
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "unauthenticated",
                "message": f"Unknown actor role: {x_actor_role}",
            },
        )

    bind_context(actor_id=x_actor_id, actor_role=role.value)
    return Actor(actor_id=x_actor_id, role=role)


def require_provider(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ActorRole.PROVIDER:
        raise HTTPException(
            status_code=403,
            detail={"error": "forbidden", "message": "This operation is reserved to providers"},
        )
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ActorRole.ADMIN:
        logger.warning("admin_access_denied", actor_id=actor.actor_id)
        raise HTTPException(
            status_code=403,
            detail={"error": "forbidden", "message": "This operation is reserved to administrators"},
        )
    return actor


def current_provider(actor: Actor = Depends(require_provider)) -> ProviderRecord:
    """The provider profile owned by the acting account."""
    try:
        provider = get_provider_directory().get_by_account(actor.actor_id)
    except ProviderNotFoundError as e:
        raise http_error(e)
    bind_context(provider_id=provider.provider_id)
    return provider
