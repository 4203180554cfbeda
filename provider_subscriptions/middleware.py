"""FastAPI middleware for request/response logging and correlation."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from provider_subscriptions.logging_config import bind_actor, bind_context, clear_context, get_logger
from provider_subscriptions.utils.token_generator import validate_id

logger = get_logger(__name__)

# Path segment preceding an identifier -> (entity type, log context key)
_PATH_ENTITIES = {
    "subscriptions": ("subscription", "subscription_id"),
    "payments": ("payment", "payment_id"),
    "providers": ("provider", "provider_id"),
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses with correlation IDs.

    Features:
    - Generates unique request_id for each request
    - Logs request method, path, client IP
    - Logs response status code and duration
    - Binds request_id to all logs within request context
    """

    def __init__(self, app: ASGIApp, include_request_details: bool = True):
        super().__init__(app)
        self.include_request_details = include_request_details

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        bind_context(request_id=request_id)

        if self.include_request_details:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query_params=str(request.query_params) if request.query_params else None,
                client_host=request.client.host if request.client else "unknown",
                user_agent=request.headers.get("user-agent"),
            )
        else:
            logger.info("request_started", method=request.method, path=request.url.path)

        start_time = time.time()

        try:
            response = await call_next(request)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise

        finally:
            clear_context()


class ContextMiddleware(BaseHTTPMiddleware):
    """Binds business identifiers found in the request to the logging context.

    - actor_id and actor_role from the X-Actor-Id / X-Actor-Role headers
    - subscription_id / payment_id / provider_id from the path, when the
      segment after the collection name is a well-formed identifier
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        actor_id = request.headers.get("x-actor-id")
        if actor_id:
            bind_actor(actor_id, request.headers.get("x-actor-role"))

        parts = request.url.path.strip("/").split("/")
        for index, part in enumerate(parts[:-1]):
            entity = _PATH_ENTITIES.get(part)
            if entity is None:
                continue
            entity_type, context_key = entity
            candidate = parts[index + 1]
            if validate_id(candidate, entity_type):
                bind_context(**{context_key: candidate})

        return await call_next(request)
