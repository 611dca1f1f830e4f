import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from field_rate_limit.api.limiter import limiter
from field_rate_limit.core.config import get_settings
from field_rate_limit.services.identity import Identity
from field_rate_limit.services.store import maybe_await

logger = logging.getLogger(__name__)
router = APIRouter(tags=["service"])

_PROBE_IDENTITY = Identity(context_identity="health", field_identity="probe")


class HealthResponse(BaseModel):
    status: str = Field(
        ...,
        json_schema_extra={"example": "ok"},
    )


class HealthStoreResponse(BaseModel):
    status: str = Field(..., json_schema_extra={"example": "ok"})
    store: str = Field(
        ...,
        description="Configured store backend (RATE_LIMIT_STORE).",
        json_schema_extra={"example": "redis"},
    )


@router.get("/health", response_model=HealthResponse, summary="Service health")
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/health/store",
    response_model=HealthStoreResponse,
    summary="Rate limit store health",
    description="Reads a probe key from the configured rate limit store.",
    responses={
        503: {"description": "Rate limit store unreachable."},
    },
)
async def health_store() -> HealthStoreResponse:
    settings = get_settings()

    try:
        await maybe_await(limiter.store.get_for_identity(_PROBE_IDENTITY))
    except Exception as exc:
        logger.exception("Rate limit store probe failed")
        raise HTTPException(
            status_code=503,
            detail=f"Rate limit store error: {type(exc).__name__}",
        ) from exc

    return HealthStoreResponse(status="ok", store=settings.store_backend)
