from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from field_rate_limit.core.errors import RateLimitError, StoreError
from field_rate_limit.services.rate_limiter import FieldRateLimit, RateLimiter

logger = logging.getLogger(__name__)


class RateLimitErrorResponse(BaseModel):
    detail: str = Field(
        ...,
        json_schema_extra={"example": "You are trying to access 'list_books' too often"},
    )
    is_rate_limit_error: bool = Field(
        True,
        description="Marks the error as a rate limit rejection for client-side error handling.",
    )


RATE_LIMIT_RESPONSES: dict[int | str, dict[str, Any]] = {
    429: {"model": RateLimitErrorResponse, "description": "Too many requests for this caller/operation."},
    503: {"description": "Rate limit store unavailable."},
}


async def request_arguments(request: Request) -> dict[str, Any]:
    """
    Flatten query params, path params and a JSON object body into one mapping.

    Repeated query params become lists. Later sources win on key clashes.
    """
    args: dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        args[key] = values if len(values) > 1 else values[0]

    args.update(request.path_params)

    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            logger.debug("Ignoring undecodable JSON body for rate limit args path=%s", request.url.path)
            body = None
        if isinstance(body, Mapping):
            args.update(body)

    return args


def _endpoint_name(request: Request) -> str:
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", None) or request.url.path


def rate_limit(
        limiter: RateLimiter,
        config: FieldRateLimit | Mapping[str, Any] | None = None,
        *,
        field_name: str | None = None,
        **options: Any,
) -> Callable[[Request], Awaitable[None]]:
    """
    FastAPI dependency enforcing a limit on a route.

        @router.post("/books", dependencies=[Depends(rate_limit(limiter, max=2, window="10s"))])

    The Request object is the batch context; the endpoint function name is the
    field name unless `field_name` is given. The limit is built here, so an
    invalid window fails at import time rather than on the first request.
    """
    limit = FieldRateLimit.coerce(config) if config is not None else FieldRateLimit(**options)

    async def dependency(request: Request) -> None:
        args = await request_arguments(request)
        await limiter.enforce(
            field_name=field_name or _endpoint_name(request),
            args=args,
            context=request,
            config=limit,
        )

    return dependency


async def rate_limit_error_handler(request: Request, exc: Exception) -> JSONResponse:
    message = exc.message if isinstance(exc, RateLimitError) else str(exc)
    logger.info("Rejected path=%s reason=%s", request.url.path, message)
    return JSONResponse(
        status_code=429,
        content=RateLimitErrorResponse(detail=message).model_dump(),
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Rate limit store unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Rate limit store unavailable"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitError, rate_limit_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
