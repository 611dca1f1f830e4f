from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from field_rate_limit.api.books import router as books_router
from field_rate_limit.api.dependency import install_error_handlers
from field_rate_limit.api.health import router as health_router
from field_rate_limit.api.limiter import limiter
from field_rate_limit.core.logging import configure_logging

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await limiter.aclose()


app = FastAPI(
    title="Field Rate Limit",
    version="0.1.0",
    description="Sliding-window rate limiting for API operations, demonstrated on a small book catalogue.",
    lifespan=lifespan,
)

install_error_handlers(app)
app.include_router(health_router)
app.include_router(books_router)
